from pydantic import BaseModel, ConfigDict, field_validator
from typing import List, Optional


class FormField(BaseModel):
    """Un champ du formulaire observé côté navigateur"""
    model_config = ConfigDict(extra="ignore")

    id: str
    type: str
    label: Optional[str] = None
    name: Optional[str] = None
    nearbyText: Optional[str] = None

    @property
    def display_name(self) -> str:
        # label > name > id
        return self.label or self.name or self.id


class ProcessFormRequest(BaseModel):
    """Corps de POST /api/process-form (formMap et userData vérifiés par la route)"""
    formMap: Optional[List[FormField]] = None
    userData: Optional[str] = None

    @field_validator("formMap")
    @classmethod
    def _unique_ids(cls, fields: Optional[List[FormField]]) -> Optional[List[FormField]]:
        if fields is None:
            return fields
        seen = set()
        for field in fields:
            if field.id in seen:
                raise ValueError(f"duplicate field id: {field.id}")
            seen.add(field.id)
        return fields


class MappedField(BaseModel):
    model_config = ConfigDict(strict=True)

    id: str
    value: str


class ProcessedResult(BaseModel):
    """Réponse décodée du modèle (les clés supplémentaires sont ignorées)"""
    model_config = ConfigDict(extra="ignore")

    mappedFields: List[MappedField]


class ProcessFormResponse(BaseModel):
    success: bool = True
    processedData: ProcessedResult


class ErrorResponse(BaseModel):
    error: str
    message: Optional[str] = None


class KeyStatusResponse(BaseModel):
    status: str
    message: str


# Schéma envoyé au fournisseur pour contraindre sa sortie
RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "mappedFields": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "value": {"type": "string"},
                },
                "required": ["id", "value"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["mappedFields"],
    "additionalProperties": False,
}
