import pytest

from voice_form.config import Settings


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        app_env="test",
        app_password=None,
        elevenlabs_api_key="el-server-key",
        deepgram_api_key="dg-server-key",
        google_generative_ai_api_key="google-server-key",
        fal_key="fal-server-key",
        llm_provider="gemini",
        extraction_timeout_s=5,
        detection_timeout_s=5,
    )
