from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from form_filler.config import Settings
from form_filler.errors import GatewayError
from form_filler.llm_client import CompletionGateway
from form_filler.main import create_app


class FakeGateway(CompletionGateway):
    """Renvoie une réponse figée (ou lève une erreur) et garde les prompts reçus."""

    def __init__(self, reply: str = '{"mappedFields": []}', error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.prompts: list[str] = []
        self.schemas: list[dict] = []
        self.closed = False

    async def aclose(self) -> None:
        self.closed = True

    async def complete(self, prompt: str, response_schema: dict = None) -> str:
        self.prompts.append(prompt)
        self.schemas.append(response_schema)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def settings() -> Settings:
    return Settings(openai_api_key="sk-test", session_secret="test-secret", log_level="DEBUG")


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def client(settings: Settings, gateway: FakeGateway) -> TestClient:
    app = create_app(settings, gateway=gateway)
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def network_error() -> GatewayError:
    return GatewayError("Completion request failed: connection refused", kind="network")
