import json

from voice_form.demos import MEDICAL_INTAKE, SUBSTATION_INSPECTION
from voice_form.prompt_builder import build_prompt, build_prompt_for_field


def _skeleton(prompt: str) -> dict:
    start = prompt.index("{")
    end = prompt.index("}", start) + 1
    return json.loads(prompt[start:end])


def test_prompt_lists_every_medical_field():
    prompt = build_prompt(MEDICAL_INTAKE, "Patient Jane Roe")

    assert list(_skeleton(prompt)) == [f.name for f in MEDICAL_INTAKE.fields]
    assert prompt.startswith("You are an expert medical transcriptionist")
    assert 'Dictation: "Patient Jane Roe"' in prompt
    assert "omit field entirely if not mentioned" in prompt


def test_prompt_uses_hint_or_label():
    skeleton = _skeleton(build_prompt(SUBSTATION_INSPECTION, "text"))

    assert skeleton["inspectorName"] == "Inspector Name"
    assert skeleton["inspectorSignature"] == "initials only"
    assert "imageAnomalyDetection" not in skeleton


def test_single_field_prompt():
    field = MEDICAL_INTAKE.fields[1]
    prompt = build_prompt_for_field(field, "she is 45")

    assert "Field: age" in prompt
    assert "Required: yes" in prompt
    assert '{"value": null}' in prompt
