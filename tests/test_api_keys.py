from voice_form.api_keys import PROVIDER_CONFIGS, has_required_keys, resolve_keys
from voice_form.config import Settings


def test_request_key_wins_over_server(settings):
    keys = resolve_keys({"deepgram": "  user-dg  ", "google": "   ", "unknown": "x"}, settings)

    assert keys["deepgram"] == "user-dg"
    assert keys["google"] == "google-server-key"
    assert "unknown" not in keys


def test_no_server_keys():
    settings = Settings(
        _env_file=None,
        elevenlabs_api_key=None,
        deepgram_api_key=None,
        google_generative_ai_api_key=None,
        fal_key=None,
    )
    keys = resolve_keys({"elevenlabs": "el"}, settings)

    assert keys == {"elevenlabs": "el", "deepgram": "", "google": "", "fal": ""}
    assert not has_required_keys(keys)


def test_only_google_is_required(settings):
    assert [name for name, cfg in PROVIDER_CONFIGS.items() if cfg.required] == ["google"]
    assert has_required_keys({"google": "g"})
