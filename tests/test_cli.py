import json
from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from voice_form import cli
from voice_form.schemas import DetectAnomalyResponse, VoiceToFormResponse


def test_demos_command():
    result = CliRunner().invoke(cli.main, ["demos"])

    assert result.exit_code == 0
    assert "medical-intake" in result.output
    assert "imageAnomalyDetection" in result.output


def test_fill_prints_json(tmp_path):
    audio = tmp_path / "dictation.webm"
    audio.write_bytes(b"webm")
    fake = AsyncMock(return_value=VoiceToFormResponse(data={"age": "45"}, transcript="45 years old"))

    with patch.object(cli, "voice_to_form", fake):
        result = CliRunner().invoke(cli.main, ["fill", str(audio), "--provider", "deepgram"])

    assert result.exit_code == 0
    form = json.loads(result.output[result.output.index("{"):])
    assert form["age"] == "45"
    assert form["patientName"] == ""
    assert len(form) == 8
    kwargs = fake.call_args.kwargs
    assert kwargs["stt_provider"] == "deepgram"
    assert kwargs["content_type"] == "audio/webm"


def test_fill_reports_error(tmp_path):
    audio = tmp_path / "dictation.webm"
    audio.write_bytes(b"webm")
    fake = AsyncMock(return_value=VoiceToFormResponse(data={}, error="Deepgram API key not configured"))

    with patch.object(cli, "voice_to_form", fake):
        result = CliRunner().invoke(cli.main, ["fill", str(audio)])

    assert result.exit_code == 1


def test_detect_reads_local_image(tmp_path):
    image = tmp_path / "photo.png"
    image.write_bytes(b"\x89PNG")
    fake = AsyncMock(return_value=DetectAnomalyResponse(summary="No anomalies detected in the image."))

    with patch.object(cli, "detect_anomaly", fake):
        result = CliRunner().invoke(cli.main, ["detect", str(image)])

    assert result.exit_code == 0
    assert "No anomalies detected" in result.output
    assert fake.call_args.args[0].startswith("data:image/png;base64,")
