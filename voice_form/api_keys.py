"""
BYOK (Bring Your Own Keys)

Le navigateur garde les clés et les envoie avec chaque requête.
Une clé fournie par la requête est prioritaire sur celle du serveur (.env).
"""

from typing import Dict, Literal, Mapping, Optional

from pydantic import BaseModel

from .config import Settings


Provider = Literal["elevenlabs", "deepgram", "google", "fal"]

PROVIDERS = ("elevenlabs", "deepgram", "google", "fal")

# Fournisseur STT -> fournisseur dont la clé est nécessaire
STT_KEY_PROVIDER: Dict[str, str] = {
    "elevenlabs": "elevenlabs",
    "deepgram": "deepgram",
    "gemini": "google",
}


class ProviderConfig(BaseModel):
    label: str
    description: str
    docs_url: str
    docs_label: str
    placeholder: str
    required: bool


PROVIDER_CONFIGS: Dict[str, ProviderConfig] = {
    "google": ProviderConfig(
        label="Google Gemini API Key",
        description="Required for field extraction (all providers) and Gemini voice transcription.",
        docs_url="https://aistudio.google.com/apikey",
        docs_label="Get key at aistudio.google.com →",
        placeholder="AIzaSy...",
        required=True,
    ),
    "elevenlabs": ProviderConfig(
        label="ElevenLabs API Key",
        description="High-accuracy transcription with ElevenLabs Scribe.",
        docs_url="https://elevenlabs.io/app/settings/api-keys",
        docs_label="Get key at elevenlabs.io →",
        placeholder="sk_...",
        required=False,
    ),
    "deepgram": ProviderConfig(
        label="Deepgram API Key",
        description="Fast, cost-effective transcription with Deepgram Nova.",
        docs_url="https://console.deepgram.com/",
        docs_label="Get key at console.deepgram.com →",
        placeholder="xxxxxxxxxxxxxxxxxxxxxxxxxxxxxxxx",
        required=False,
    ),
    "fal": ProviderConfig(
        label="fal.ai API Key",
        description="Image anomaly detection with Moondream 3.",
        docs_url="https://fal.ai/dashboard/keys",
        docs_label="Get key at fal.ai →",
        placeholder="xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx:xxxxxxxx",
        required=False,
    ),
}


def server_keys(settings: Settings) -> Dict[str, str]:
    """Clés configurées côté serveur"""
    return {
        "elevenlabs": settings.elevenlabs_api_key or "",
        "deepgram": settings.deepgram_api_key or "",
        "google": settings.google_generative_ai_api_key or "",
        "fal": settings.fal_key or "",
    }


def resolve_keys(provided: Optional[Mapping[str, Optional[str]]], settings: Settings) -> Dict[str, str]:
    keys = server_keys(settings)
    for provider, value in (provided or {}).items():
        if provider not in keys:
            continue
        if value and value.strip():
            keys[provider] = value.strip()
    return keys


def has_key(keys: Mapping[str, str], provider: str) -> bool:
    return bool(keys.get(provider))


def has_required_keys(keys: Mapping[str, str]) -> bool:
    return all(has_key(keys, name) for name, cfg in PROVIDER_CONFIGS.items() if cfg.required)
