"""
Module des moteurs de transcription
ElevenLabs, Deepgram, Gemini

Les trois API renvoient des formes de réponse différentes ; chaque moteur
les ramène à un TranscriptionResult.
"""

import base64
import logging
import time
from dataclasses import dataclass
from typing import Mapping, Optional

import httpx

from .api_keys import STT_KEY_PROVIDER
from .errors import MissingAPIKeyError, TranscriptionError

logger = logging.getLogger(__name__)


# ========== CONFIGURATION ==========

ELEVENLABS_URL = "https://api.elevenlabs.io/v1/speech-to-text"
ELEVENLABS_MODEL = "scribe_v1"

DEEPGRAM_URL = "https://api.deepgram.com/v1/listen"
DEEPGRAM_OPTIONS = {"model": "nova-2", "language": "en", "smart_format": "true"}

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
GEMINI_STT_MODEL = "gemini-2.0-flash-exp"
GEMINI_STT_INSTRUCTION = "Transcribe this audio to text. Only return the transcription, nothing else."

DEFAULT_AUDIO_NAME = "audio.webm"
DEFAULT_AUDIO_TYPE = "audio/webm"

PROVIDER_NAMES = {
    "elevenlabs": "ElevenLabs",
    "deepgram": "Deepgram",
    "gemini": "Google Gemini",
}


@dataclass
class TranscriptionResult:
    text: str
    provider: str
    duration_s: float = 0.0


def _client_or_new(client: Optional[httpx.AsyncClient], timeout: float) -> httpx.AsyncClient:
    return client if client is not None else httpx.AsyncClient(timeout=timeout)


# ========== MOTEUR ELEVENLABS ==========

def parse_elevenlabs_response(body: dict) -> str:
    """Réponse simple {"text"} ou multicanal {"transcripts": [{"text"}, ...]}"""
    if body.get("text") is not None:
        return body["text"] or ""
    transcripts = body.get("transcripts") or []
    return " ".join(t.get("text", "").strip() for t in transcripts if t.get("text")).strip()


async def transcribe_elevenlabs(
    audio: bytes,
    *,
    api_key: str,
    filename: str = DEFAULT_AUDIO_NAME,
    content_type: str = DEFAULT_AUDIO_TYPE,
    language_code: str = "en",
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 120,
) -> str:
    """Transcription avec ElevenLabs Scribe"""
    logger.info("🎙️ Starting transcription with ElevenLabs...")
    http = _client_or_new(client, timeout)
    try:
        response = await http.post(
            ELEVENLABS_URL,
            headers={"xi-api-key": api_key},
            data={"model_id": ELEVENLABS_MODEL, "language_code": language_code},
            files={"file": (filename or DEFAULT_AUDIO_NAME, audio, content_type or DEFAULT_AUDIO_TYPE)},
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise TranscriptionError("elevenlabs", f"ElevenLabs error {e.response.status_code}: {e.response.text}") from e
    except httpx.HTTPError as e:
        raise TranscriptionError("elevenlabs", f"ElevenLabs request failed: {e}") from e
    finally:
        if client is None:
            await http.aclose()

    return parse_elevenlabs_response(response.json())


# ========== MOTEUR DEEPGRAM ==========

def parse_deepgram_response(body: dict) -> str:
    """results.channels[0].alternatives[0].transcript, "" si absent"""
    try:
        channels = body["results"]["channels"]
        return channels[0]["alternatives"][0].get("transcript") or ""
    except (KeyError, IndexError, TypeError):
        return ""


async def transcribe_deepgram(
    audio: bytes,
    *,
    api_key: str,
    content_type: str = DEFAULT_AUDIO_TYPE,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 120,
    **_,
) -> str:
    """Transcription avec Deepgram Nova"""
    logger.info("🎙️ Starting transcription with Deepgram...")
    http = _client_or_new(client, timeout)
    try:
        response = await http.post(
            DEEPGRAM_URL,
            params=DEEPGRAM_OPTIONS,
            headers={
                "Authorization": f"Token {api_key}",
                "Content-Type": content_type or DEFAULT_AUDIO_TYPE,
            },
            content=audio,
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise TranscriptionError("deepgram", f"Deepgram error {e.response.status_code}: {e.response.text}") from e
    except httpx.HTTPError as e:
        raise TranscriptionError("deepgram", f"Deepgram request failed: {e}") from e
    finally:
        if client is None:
            await http.aclose()

    body = response.json()
    if body.get("err_code") or body.get("error"):
        raise TranscriptionError("deepgram", f"Deepgram error: {body.get('err_msg') or body.get('error')}")

    return parse_deepgram_response(body)


# ========== MOTEUR GEMINI ==========

def parse_gemini_text(body: dict) -> str:
    """Concatène le texte des parts du premier candidat"""
    candidates = body.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts)


async def transcribe_gemini(
    audio: bytes,
    *,
    api_key: str,
    content_type: str = DEFAULT_AUDIO_TYPE,
    model: str = GEMINI_STT_MODEL,
    base_url: str = GEMINI_BASE_URL,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 120,
    **_,
) -> str:
    """Transcription avec Google Gemini (audio inline en base64)"""
    logger.info("🎙️ Starting transcription with Google Gemini...")
    payload = {
        "contents": [{
            "parts": [
                {
                    "inline_data": {
                        # MediaRecorder envoie "audio/webm;codecs=opus", Gemini veut le type nu
                        "mime_type": (content_type or DEFAULT_AUDIO_TYPE).split(";")[0],
                        "data": base64.b64encode(audio).decode("ascii"),
                    }
                },
                {"text": GEMINI_STT_INSTRUCTION},
            ]
        }]
    }

    http = _client_or_new(client, timeout)
    try:
        response = await http.post(
            f"{base_url}/models/{model}:generateContent",
            headers={"x-goog-api-key": api_key},
            json=payload,
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise TranscriptionError("gemini", f"Gemini error {e.response.status_code}: {e.response.text}") from e
    except httpx.HTTPError as e:
        raise TranscriptionError("gemini", f"Gemini request failed: {e}") from e
    finally:
        if client is None:
            await http.aclose()

    return parse_gemini_text(response.json()).strip()


# ========== DISPATCH ==========

ENGINES = {
    "elevenlabs": transcribe_elevenlabs,
    "deepgram": transcribe_deepgram,
    "gemini": transcribe_gemini,
}


async def transcribe(
    provider: str,
    audio: bytes,
    *,
    keys: Mapping[str, str],
    filename: str = DEFAULT_AUDIO_NAME,
    content_type: str = DEFAULT_AUDIO_TYPE,
    client: Optional[httpx.AsyncClient] = None,
    **options,
) -> TranscriptionResult:
    """Transcrit avec le moteur choisi"""
    engine = ENGINES.get(provider)
    if engine is None:
        raise ValueError(f"Unknown STT provider: {provider}")

    api_key = keys.get(STT_KEY_PROVIDER[provider])
    if not api_key:
        raise MissingAPIKeyError(provider, f"{PROVIDER_NAMES[provider]} API key not configured")

    start = time.perf_counter()
    text = await engine(
        audio,
        api_key=api_key,
        filename=filename,
        content_type=content_type,
        client=client,
        **options,
    )
    duration = time.perf_counter() - start

    logger.info("✅ Transcribed text (%s, %.2fs): %s", provider, duration, text)
    return TranscriptionResult(text=text.strip(), provider=provider, duration_s=duration)
