"""
Pipeline voice-to-form : audio -> transcription -> extraction -> champs du formulaire

Toutes les erreurs sont renvoyées dans le résultat {data, error} ;
rien n'est levé vers l'appelant.
"""

import logging
from typing import Mapping, Optional

import httpx
from ollama import AsyncClient as OllamaAsyncClient

from .api_keys import STT_KEY_PROVIDER
from .config import Settings
from .demos import DEFAULT_DEMO_ID, get_demo
from .errors import MissingAPIKeyError, TranscriptionError
from .extractor import FormExtractor
from .llm_client import build_llm_client
from .schemas import VoiceToFormResponse
from .transcription_engines import ENGINES, PROVIDER_NAMES, transcribe

logger = logging.getLogger(__name__)

EXTRACTION_FAILED_MESSAGE = "AI extraction failed. Please try again."


async def voice_to_form(
    audio: Optional[bytes],
    *,
    keys: Mapping[str, str],
    settings: Settings,
    stt_provider: str = "elevenlabs",
    demo_id: str = DEFAULT_DEMO_ID,
    filename: str = "audio.webm",
    content_type: str = "audio/webm",
    client: Optional[httpx.AsyncClient] = None,
    ollama_client: Optional[OllamaAsyncClient] = None,
) -> VoiceToFormResponse:
    try:
        if not audio:
            return VoiceToFormResponse(data={})

        if stt_provider not in ENGINES:
            return VoiceToFormResponse(data={}, error=f"Unknown STT provider: {stt_provider}", success=False)

        # La démo est validée avant tout appel payant
        demo = get_demo(demo_id)

        if not keys.get(STT_KEY_PROVIDER[stt_provider]):
            message = f"{PROVIDER_NAMES[stt_provider]} API key not configured"
            logger.warning(message)
            return VoiceToFormResponse(data={}, error=message, stt_provider=stt_provider)

        if settings.llm_provider == "gemini" and not keys.get("google"):
            message = "Google Gemini API key not configured for extraction"
            logger.warning(message)
            return VoiceToFormResponse(data={}, error=message, stt_provider=stt_provider)

        options = {}
        if stt_provider == "gemini":
            options = {"model": settings.gemini_stt_model, "base_url": settings.gemini_base_url}

        try:
            result = await transcribe(
                stt_provider,
                audio,
                keys=keys,
                filename=filename or "audio.webm",
                content_type=content_type or "audio/webm",
                client=client,
                **options,
            )
        except TranscriptionError as e:
            if e.provider != "deepgram":
                raise
            logger.error("Deepgram transcription error: %s", e)
            return VoiceToFormResponse(data={}, error=str(e), stt_provider=stt_provider)

        transcript = result.text
        if not transcript:
            return VoiceToFormResponse(data={}, transcript="", stt_provider=stt_provider)

        extractor = FormExtractor(
            build_llm_client(
                settings, google_key=keys.get("google"), client=client, ollama_client=ollama_client
            ),
            timeout_s=settings.extraction_timeout_s,
        )
        try:
            data = await extractor.extract(demo, transcript)
        except Exception as e:
            logger.error("%s extraction failed: %s", extractor.llm.name, e)
            return VoiceToFormResponse(
                data={},
                error=EXTRACTION_FAILED_MESSAGE,
                transcript=transcript,
                stt_provider=stt_provider,
            )

        logger.info("Cleaned data: %s", data)
        return VoiceToFormResponse(data=data, success=True, transcript=transcript, stt_provider=stt_provider)

    except MissingAPIKeyError as e:
        logger.warning(str(e))
        return VoiceToFormResponse(data={}, error=str(e), success=False)
    except Exception as e:
        logger.exception("Voice to form error")
        return VoiceToFormResponse(data={}, error=str(e) or "Failed to process audio", success=False)
