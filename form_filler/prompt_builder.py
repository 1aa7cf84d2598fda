from typing import Sequence

from .schemas import FormField


SYSTEM_PROMPT = "You are a helpful assistant that fills out forms based on user data."


def build_field_block(field: FormField) -> str:
    return "\n".join([
        f"- Field: {field.display_name}",
        f"  ID: {field.id}",
        f"  Type: {field.type}",
        f"  Context: {field.nearbyText or ''}",
    ])


def build_prompt(form_fields: Sequence[FormField], user_data: str) -> str:
    """
    Construit le prompt envoyé au modèle.

    L'appelant garantit que form_fields et user_data ne sont pas vides.
    Aucun effet de bord : mêmes entrées → même texte, octet pour octet.
    """
    fields_block = "\n".join(build_field_block(field) for field in form_fields)

    prompt = f"""
I have a web form with the following fields:
{fields_block}

And I have the following user information:
{user_data}

Please analyze the form fields and provide the appropriate values from the user information.
Rules:
- Return a JSON object with a single key "mappedFields"
- "mappedFields" is a list of objects {{"id": "<field ID>", "value": "<value to fill in>"}}
- Use EXACTLY the field IDs listed above
- All values must be strings
- Omit any field you cannot fill confidently from the user information
""".strip()

    return prompt
