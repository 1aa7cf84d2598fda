"""
Passerelle vers le fournisseur de complétion (OpenAI ou Ollama)
"""
import logging
from typing import Optional

import httpx
import ollama

from .config import Settings
from .errors import GatewayError
from .prompt_builder import SYSTEM_PROMPT
from .schemas import RESPONSE_SCHEMA

logger = logging.getLogger(__name__)


class CompletionGateway:
    """Un appel, une réponse brute. Pas de retry, pas de cache."""

    async def complete(self, prompt: str, response_schema: dict = RESPONSE_SCHEMA) -> str:
        raise NotImplementedError

    async def aclose(self) -> None:
        """Libère les ressources réseau (appelé à l'arrêt de l'application)."""

    @staticmethod
    def build_messages(prompt: str) -> list:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]


class OpenAIGateway(CompletionGateway):
    """Chat completions OpenAI avec sortie contrainte par `json_schema`"""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.url = f"{base_url.rstrip('/')}/chat/completions"
        self.timeout = timeout
        self.transport = transport

    async def complete(self, prompt: str, response_schema: dict = RESPONSE_SCHEMA) -> str:
        if not self.api_key:
            raise GatewayError("OpenAI API key is not configured", kind="auth")

        payload = {
            "model": self.model,
            "messages": self.build_messages(prompt),
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": "form_mapping",
                    "strict": True,
                    "schema": response_schema,
                },
            },
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        logger.debug("Sending completion request model=%s prompt_chars=%d", self.model, len(prompt))
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise GatewayError(f"Completion request timed out after {self.timeout:g}s", kind="timeout") from e
        except httpx.HTTPError as e:
            raise GatewayError(f"Completion request failed: {e}", kind="network") from e

        if response.is_error:
            raise GatewayError(
                f"Completion provider returned HTTP {response.status_code}: {self._error_detail(response)}",
                kind="http_status",
                status_code=response.status_code,
            )

        return self._first_choice_content(response)

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            return str(response.json()["error"]["message"])
        except (ValueError, KeyError, TypeError):
            return response.text[:200]

    @staticmethod
    def _first_choice_content(response: httpx.Response) -> str:
        try:
            message = response.json()["choices"][0]["message"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GatewayError("Completion provider returned no choices", kind="empty_response") from e

        refusal = message.get("refusal")
        if refusal:
            raise GatewayError(f"Completion provider refused the request: {refusal}", kind="refused")

        content = message.get("content")
        if not content:
            raise GatewayError("Completion provider returned an empty message", kind="empty_response")
        return content


class OllamaGateway(CompletionGateway):
    """Modèle local via Ollama (`format` = schéma JSON attendu)"""

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "mistral",
        timeout: float = 60.0,
        client: Optional[ollama.AsyncClient] = None,
        temperature: float = 0.1,
    ):
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self._owns_client = client is None
        self.client = client or ollama.AsyncClient(host=host, timeout=timeout)

    async def aclose(self) -> None:
        # ollama.AsyncClient garde son pool httpx dans `_client`
        if self._owns_client:
            await self.client._client.aclose()

    async def complete(self, prompt: str, response_schema: dict = RESPONSE_SCHEMA) -> str:
        logger.debug("Sending Ollama chat request model=%s prompt_chars=%d", self.model, len(prompt))
        try:
            response = await self.client.chat(
                model=self.model,
                messages=self.build_messages(prompt),
                format=response_schema,
                options={"temperature": self.temperature},
            )
        except httpx.TimeoutException as e:
            raise GatewayError(f"Ollama request timed out after {self.timeout:g}s", kind="timeout") from e
        except ollama.ResponseError as e:
            raise GatewayError(
                f"Ollama returned HTTP {e.status_code}: {e.error}",
                kind="http_status",
                status_code=e.status_code,
            ) from e
        except (httpx.HTTPError, ConnectionError) as e:
            raise GatewayError(f"Ollama request failed: {e}", kind="network") from e

        try:
            content = response["message"]["content"]
        except (KeyError, TypeError) as e:
            raise GatewayError("Ollama returned no message", kind="empty_response") from e
        if not content:
            raise GatewayError("Ollama returned an empty message", kind="empty_response")
        return content


def build_gateway(settings: Settings) -> CompletionGateway:
    if settings.provider == "ollama":
        return OllamaGateway(
            host=settings.ollama_host,
            model=settings.ollama_model,
            timeout=settings.timeout,
        )
    return OpenAIGateway(
        api_key=settings.openai_api_key,
        model=settings.model,
        base_url=settings.openai_base_url,
        timeout=settings.timeout,
    )
