"""
Tests du pipeline voice-to-form complet : chaque échec doit finir en {data, error}.
"""

import httpx
import pytest
from respx import MockRouter

from voice_form.api_keys import resolve_keys
from voice_form.pipeline import EXTRACTION_FAILED_MESSAGE, voice_to_form
from tests.helpers import GEMINI_HOST, GEMINI_LLM_PATH, GEMINI_STT_PATH, gemini_body

AUDIO = b"fake-webm"


def deepgram_body(transcript: str) -> dict:
    return {"results": {"channels": [{"alternatives": [{"transcript": transcript}]}]}}


@pytest.mark.asyncio
async def test_full_pipeline_with_elevenlabs(settings, respx_mock: MockRouter) -> None:
    respx_mock.post("https://api.elevenlabs.io/v1/speech-to-text").mock(
        return_value=httpx.Response(200, json={"text": "Seeing Sarah Smith, 32, she has a migraine."})
    )
    llm = respx_mock.post(host=GEMINI_HOST, path=GEMINI_LLM_PATH).mock(
        return_value=httpx.Response(
            200,
            json=gemini_body(
                '```json\n{"patientName": "Sarah Smith", "age": 32, "gender": "female", '
                '"chiefComplaint": "migraine", "allergies": "undefined"}\n```'
            ),
        )
    )

    result = await voice_to_form(
        AUDIO, keys=resolve_keys(None, settings), settings=settings, stt_provider="elevenlabs"
    )

    assert result.success is True
    assert result.error is None
    assert result.transcript == "Seeing Sarah Smith, 32, she has a migraine."
    assert result.data == {
        "patientName": "Sarah Smith",
        "age": "32",
        "gender": "female",
        "chiefComplaint": "migraine",
    }
    assert llm.calls.last.request.headers["x-goog-api-key"] == "google-server-key"


@pytest.mark.asyncio
async def test_gemini_stt_and_extraction_with_byok(settings, respx_mock: MockRouter) -> None:
    stt = respx_mock.post(host=GEMINI_HOST, path=GEMINI_STT_PATH).mock(
        return_value=httpx.Response(200, json=gemini_body("Inspector John Smith at Station Alpha-01"))
    )
    respx_mock.post(host=GEMINI_HOST, path=GEMINI_LLM_PATH).mock(
        return_value=httpx.Response(
            200, json=gemini_body('{"inspectorName": "John Smith", "substationName": "Station Alpha-01"')
        )
    )
    keys = resolve_keys({"google": " user-key "}, settings)

    result = await voice_to_form(
        AUDIO, keys=keys, settings=settings, stt_provider="gemini", demo_id="substation-inspection"
    )

    # JSON tronqué réparé
    assert result.data == {"inspectorName": "John Smith", "substationName": "Station Alpha-01"}
    assert stt.calls.last.request.headers["x-goog-api-key"] == "user-key"


@pytest.mark.asyncio
async def test_no_audio(settings) -> None:
    result = await voice_to_form(b"", keys=resolve_keys(None, settings), settings=settings)

    assert result.data == {}
    assert result.error is None
    assert result.success is True


@pytest.mark.asyncio
async def test_missing_stt_key(settings) -> None:
    keys = {**resolve_keys(None, settings), "deepgram": ""}

    result = await voice_to_form(AUDIO, keys=keys, settings=settings, stt_provider="deepgram")

    assert result.data == {}
    assert result.error == "Deepgram API key not configured"


@pytest.mark.asyncio
async def test_missing_google_key_for_extraction(settings) -> None:
    keys = {**resolve_keys(None, settings), "google": ""}

    result = await voice_to_form(AUDIO, keys=keys, settings=settings, stt_provider="elevenlabs")

    assert result.data == {}
    assert result.error == "Google Gemini API key not configured for extraction"


@pytest.mark.asyncio
async def test_ollama_extraction_without_google_key(settings, respx_mock: MockRouter) -> None:
    ollama_settings = settings.model_copy(
        update={"llm_provider": "ollama", "google_generative_ai_api_key": None}
    )
    respx_mock.post(host="api.deepgram.com", path="/v1/listen").mock(
        return_value=httpx.Response(200, json=deepgram_body("John Doe 45"))
    )
    chat = respx_mock.post("http://localhost:11434/api/chat").mock(
        return_value=httpx.Response(
            200,
            json={
                "model": "mistral",
                "created_at": "2025-01-01T00:00:00Z",
                "message": {"role": "assistant", "content": '{"patientName": "John Doe", "age": 45}'},
                "done": True,
            },
        )
    )
    keys = resolve_keys(None, ollama_settings)
    assert keys["google"] == ""

    result = await voice_to_form(AUDIO, keys=keys, settings=ollama_settings, stt_provider="deepgram")

    assert result.error is None
    assert result.data == {"patientName": "John Doe", "age": "45"}
    assert chat.called


@pytest.mark.asyncio
async def test_unknown_demo(settings) -> None:
    result = await voice_to_form(
        AUDIO, keys=resolve_keys(None, settings), settings=settings, demo_id="tax-return"
    )

    assert result.success is False
    assert result.error == "Unknown demo: tax-return"


@pytest.mark.asyncio
async def test_deepgram_error_gives_empty_data(settings, respx_mock: MockRouter) -> None:
    respx_mock.post(host="api.deepgram.com", path="/v1/listen").mock(
        return_value=httpx.Response(400, json={"err_code": "Bad Request", "err_msg": "bad audio"})
    )

    result = await voice_to_form(
        AUDIO, keys=resolve_keys(None, settings), settings=settings, stt_provider="deepgram"
    )

    assert result.data == {}
    assert "Deepgram error 400" in result.error


@pytest.mark.asyncio
async def test_empty_transcript_skips_extraction(settings, respx_mock: MockRouter) -> None:
    respx_mock.post(host="api.deepgram.com", path="/v1/listen").mock(
        return_value=httpx.Response(200, json=deepgram_body(""))
    )

    result = await voice_to_form(
        AUDIO, keys=resolve_keys(None, settings), settings=settings, stt_provider="deepgram"
    )

    assert result.data == {}
    assert result.error is None
    assert result.transcript == ""


@pytest.mark.asyncio
async def test_unparseable_llm_output(settings, respx_mock: MockRouter) -> None:
    respx_mock.post(host="api.deepgram.com", path="/v1/listen").mock(
        return_value=httpx.Response(200, json=deepgram_body("patient has a cough"))
    )
    respx_mock.post(host=GEMINI_HOST, path=GEMINI_LLM_PATH).mock(
        return_value=httpx.Response(200, json=gemini_body('{"chiefComplaint": "cough",'))
    )

    result = await voice_to_form(
        AUDIO, keys=resolve_keys(None, settings), settings=settings, stt_provider="deepgram"
    )

    assert result.data == {}
    assert result.error == EXTRACTION_FAILED_MESSAGE
    assert result.transcript == "patient has a cough"


@pytest.mark.asyncio
async def test_llm_http_error(settings, respx_mock: MockRouter) -> None:
    respx_mock.post(host="api.deepgram.com", path="/v1/listen").mock(
        return_value=httpx.Response(200, json=deepgram_body("patient has a cough"))
    )
    respx_mock.post(host=GEMINI_HOST, path=GEMINI_LLM_PATH).mock(
        return_value=httpx.Response(503, json={"error": {"message": "overloaded"}})
    )

    result = await voice_to_form(
        AUDIO, keys=resolve_keys(None, settings), settings=settings, stt_provider="deepgram"
    )

    assert result.error == EXTRACTION_FAILED_MESSAGE


@pytest.mark.asyncio
async def test_elevenlabs_failure_is_reported(settings, respx_mock: MockRouter) -> None:
    respx_mock.post("https://api.elevenlabs.io/v1/speech-to-text").mock(
        return_value=httpx.Response(500, text="internal error")
    )

    result = await voice_to_form(
        AUDIO, keys=resolve_keys(None, settings), settings=settings, stt_provider="elevenlabs"
    )

    assert result.success is False
    assert result.data == {}
    assert "ElevenLabs error 500" in result.error
