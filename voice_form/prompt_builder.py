import json

from .schemas import DemoConfig, FormField


def _describe(field: FormField) -> str:
    return field.semantic_hint or field.label.rstrip(" *")


def build_prompt(demo: DemoConfig, text: str) -> str:
    """Construit le prompt d'extraction à partir des champs de la démo"""
    skeleton = {field.name: _describe(field) for field in demo.extractable_fields()}
    skeleton_block = json.dumps(skeleton, indent=2, ensure_ascii=False)

    prompt = f"""{demo.context}

Extract information from this dictation into valid JSON for the "{demo.form_title}". Extract ALL fields mentioned.

Dictation: "{text}"

Return ONLY valid JSON with these fields (omit field entirely if not mentioned):
{skeleton_block}

Rules:
- Keys must match the field names EXACTLY
- All values must be strings
- If a field is not mentioned, DO NOT include it. Never output the word "undefined" or empty strings
- Infer information from surrounding context, but do not invent facts
- Be concise - extract each field ONCE only"""

    return prompt


def build_prompt_for_field(field: FormField, text: str) -> str:
    """
    Crée un prompt optimisé pour extraire un seul champ
    """
    prompt = f"""You are a precise data extraction assistant.

Extract ONLY the value of the following field from the dictation:

Field: {field.name}
Label: {field.label.rstrip(" *")}
Type: {field.type}
Required: {"yes" if field.required else "no"}
Hint: {field.semantic_hint or ""}

Dictation:
{text}

Answer ONLY with valid JSON:
{{"value": "<the extracted value or null>"}}

Rules:
- If the information is not present, return {{"value": null}}
- Extract ONLY data relevant to this field
"""
    return prompt
