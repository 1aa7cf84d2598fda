from form_filler.prompt_builder import SYSTEM_PROMPT, build_prompt
from form_filler.schemas import FormField


def _fields():
    return [
        FormField(id="first", label="First name", name="fname", type="text", nearbyText="Your first name"),
        FormField(id="email", name="user_email", type="email"),
        FormField(id="zip", type="text", nearbyText="Postal code"),
    ]


def test_build_prompt_is_deterministic():
    fields = _fields()
    assert build_prompt(fields, "Jane Doe") == build_prompt(fields, "Jane Doe")


def test_display_name_priority_label_then_name_then_id():
    prompt = build_prompt(_fields(), "Jane Doe")
    assert "- Field: First name" in prompt
    assert "- Field: user_email" in prompt
    assert "- Field: zip" in prompt
    assert "- Field: fname" not in prompt


def test_field_without_label_or_name_uses_identifier():
    prompt = build_prompt([FormField(id="field_42", type="text")], "data")
    assert "- Field: field_42" in prompt
    assert "ID: field_42" in prompt


def test_empty_label_falls_through_to_name():
    prompt = build_prompt([FormField(id="x", label="", name="city", type="text")], "data")
    assert "- Field: city" in prompt


def test_missing_nearby_text_renders_empty_context():
    prompt = build_prompt([FormField(id="email", type="email")], "data")
    assert "Context: \n" in prompt
    assert "None" not in prompt


def test_prompt_contains_types_context_user_data_and_instructions():
    prompt = build_prompt(_fields(), "Jane Doe, jane@example.com, 75001")
    assert "Type: email" in prompt
    assert "Context: Postal code" in prompt
    assert "Jane Doe, jane@example.com, 75001" in prompt
    assert '"mappedFields"' in prompt
    assert '{"id": "<field ID>", "value": "<value to fill in>"}' in prompt


def test_fields_rendered_in_request_order():
    prompt = build_prompt(_fields(), "data")
    assert prompt.index("ID: first") < prompt.index("ID: email") < prompt.index("ID: zip")


def test_system_prompt_text():
    assert SYSTEM_PROMPT == "You are a helpful assistant that fills out forms based on user data."
