import asyncio
import json
import logging
import math
import re
from typing import Any, Dict, Iterable, Optional

from .llm_client import LLMClient, with_timeout
from .prompt_builder import build_prompt, build_prompt_for_field
from .schemas import DemoConfig, FormField

logger = logging.getLogger(__name__)

EXTRACTION_TIMEOUT_MESSAGE = "Google Gemini extraction timeout"


def strip_code_fences(raw_output: str) -> str:
    """Retire les blocs markdown ```json ... ``` autour du JSON"""
    text = (raw_output or "").strip()
    if text.startswith("```json"):
        text = re.sub(r"```json\n?", "", text)
        text = re.sub(r"```\n?", "", text)
    elif text.startswith("```"):
        text = re.sub(r"```\n?", "", text)
    return text


def repair_truncated_json(text: str) -> str:
    """
    Ferme une réponse tronquée : une guillemet si leur nombre est impair,
    une accolade s'il manque des fermantes. Une seule de chaque.
    """
    repaired = text
    if repaired.count('"') % 2 != 0:
        repaired += '"'
    if repaired.count("{") > repaired.count("}"):
        repaired += "}"
    return repaired


def parse_llm_json(raw_output: str) -> Any:
    """
    Parse la sortie du LLM ; une seule tentative de réparation.
    Si elle échoue, l'erreur de parsing d'origine est relancée.
    """
    text = strip_code_fences(raw_output)
    try:
        return json.loads(text)
    except json.JSONDecodeError as parse_error:
        logger.warning("JSON parse error, attempting to repair: %s", parse_error)
        try:
            data = json.loads(repair_truncated_json(text))
        except json.JSONDecodeError as repair_error:
            logger.error("Could not repair JSON: %s", repair_error)
            raise parse_error from None
        logger.info("✓ Repaired and parsed JSON successfully")
        return data


def _clean_value(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        # 45.0 -> "45"
        if value.is_integer():
            value = int(value)
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None

    stripped = value.strip()
    if not stripped or stripped.lower() == "undefined" or "undefined undefined" in stripped:
        return None
    return stripped


def clean_extracted_data(data: Any, allowed: Optional[Iterable[str]] = None) -> Dict[str, str]:
    """Garde uniquement les valeurs texte exploitables (ni vides, ni "undefined")"""
    if not isinstance(data, dict):
        return {}

    allowed_names = set(allowed) if allowed is not None else None
    cleaned = {}
    for key, value in data.items():
        if allowed_names is not None and key not in allowed_names:
            continue
        clean = _clean_value(value)
        if clean is not None:
            cleaned[key] = clean
    return cleaned


class FormExtractor:
    """Utilise le LLM pour remplir un formulaire à partir d'une dictée"""

    def __init__(self, llm_client: LLMClient, timeout_s: float = 60):
        self.llm = llm_client
        self.timeout_s = timeout_s

    async def _generate(self, prompt: str) -> str:
        return await with_timeout(self.llm.generate(prompt), self.timeout_s, EXTRACTION_TIMEOUT_MESSAGE)

    async def extract(self, demo: DemoConfig, text: str) -> Dict[str, str]:
        prompt = build_prompt(demo, text)

        logger.info("📤 Extracting fields with %s...", self.llm.name)
        raw_output = await self._generate(prompt)
        logger.debug("📥 Raw response: %s", raw_output)

        data = parse_llm_json(raw_output)
        cleaned = clean_extracted_data(data, allowed=[f.name for f in demo.extractable_fields()])

        logger.info("✓ Extracted %d field(s) with %s", len(cleaned), self.llm.name)
        return cleaned

    async def extract_parallel(self, demo: DemoConfig, text: str) -> Dict[str, str]:
        """Une requête par champ, toutes en parallèle"""
        fields = demo.extractable_fields()
        values = await asyncio.gather(*(self._extract_field(field, text) for field in fields))

        return {field.name: value for field, value in zip(fields, values) if value is not None}

    async def _extract_field(self, field: FormField, text: str) -> Optional[str]:
        try:
            raw_output = await self._generate(build_prompt_for_field(field, text))
            data = parse_llm_json(raw_output)
        except Exception as e:
            logger.warning("Extraction failed for field %s: %s", field.name, e)
            return None

        if not isinstance(data, dict):
            return None
        return _clean_value(data.get("value"))
