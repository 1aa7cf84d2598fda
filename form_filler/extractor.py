import logging
from typing import Sequence

from pydantic import ValidationError as PydanticValidationError

from .errors import DecodeError
from .llm_client import CompletionGateway
from .prompt_builder import build_prompt
from .schemas import FormField, ProcessedResult, RESPONSE_SCHEMA

logger = logging.getLogger(__name__)


def decode_response(raw_output: str) -> ProcessedResult:
    """
    Parse la sortie brute du modèle en ProcessedResult.

    Tout ou rien : pas de réparation, pas de coercition.

    Raises:
        DecodeError: si ce n'est pas du JSON ou si la forme attendue est absente
    """
    if not raw_output or not raw_output.strip():
        raise DecodeError("Model response was empty")

    try:
        return ProcessedResult.model_validate_json(raw_output)
    except PydanticValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
        raise DecodeError(
            f"Model response does not match the expected schema ({location}: {first.get('msg', 'invalid')})"
        ) from e


def keep_known_fields(result: ProcessedResult, form_fields: Sequence[FormField]) -> ProcessedResult:
    """Ne garde que les ids présents dans la requête (premier gagnant, ordre du modèle)."""
    known = {field.id for field in form_fields}
    seen = set()
    kept = []
    dropped = []

    for mapped in result.mappedFields:
        if mapped.id not in known or mapped.id in seen:
            dropped.append(mapped.id)
            continue
        seen.add(mapped.id)
        kept.append(mapped)

    if dropped:
        logger.warning("Dropped %d mapped field(s) not matching the form: %s", len(dropped), dropped)

    return ProcessedResult(mappedFields=kept)


class FormExtractor:
    def __init__(self, gateway: CompletionGateway, filter_unknown_fields: bool = True):
        self.gateway = gateway
        self.filter_unknown_fields = filter_unknown_fields

    async def extract(self, form_fields: Sequence[FormField], user_data: str) -> ProcessedResult:
        prompt = build_prompt(form_fields, user_data)

        raw_output = await self.gateway.complete(prompt, RESPONSE_SCHEMA)

        result = decode_response(raw_output)

        if self.filter_unknown_fields:
            result = keep_known_fields(result, form_fields)

        logger.info("Form processed: %d field(s) in, %d mapped", len(form_fields), len(result.mappedFields))
        return result
