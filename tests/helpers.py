import httpx
from respx import MockRouter

GEMINI_HOST = "generativelanguage.googleapis.com"
GEMINI_STT_PATH = "/v1beta/models/gemini-2.0-flash-exp:generateContent"
GEMINI_LLM_PATH = "/v1beta/models/gemini-2.5-flash:generateContent"


def gemini_body(text: str) -> dict:
    """Réponse generateContent minimale"""
    return {
        "candidates": [
            {"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}
        ]
    }


class FakeLLM:
    """LLM factice : renvoie les réponses dans l'ordre"""
    name = "Fake"

    def __init__(self, *outputs):
        self.outputs = list(outputs)
        self.prompts = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        output = self.outputs.pop(0) if len(self.outputs) > 1 else self.outputs[0]
        if isinstance(output, Exception):
            raise output
        return output


# ══════════════════════════════════════════════════════════════
# fal.ai
# ══════════════════════════════════════════════════════════════

QUEUE = "https://queue.fal.run/fal-ai/moondream3-preview/detect"
STATUS_PATH = "/fal-ai/moondream3-preview/requests/req-1/status"
STATUS_URL = "https://queue.fal.run" + STATUS_PATH
RESPONSE_URL = "https://queue.fal.run/fal-ai/moondream3-preview/requests/req-1"

DETECTION = {
    "objects": [
        {"x_min": 0.1, "y_min": 0.2, "x_max": 0.35, "y_max": 0.5},
        {"x_min": 0.6, "y_min": 0.05, "x_max": 0.9, "y_max": 0.3},
    ],
    "finish_reason": "stop",
    "usage_info": {
        "input_tokens": 740,
        "output_tokens": 12,
        "prefill_time_ms": 40.5,
        "decode_time_ms": 80.1,
        "ttft_ms": 45.2,
    },
}


def mock_queue(respx_mock: MockRouter, statuses):
    submit = respx_mock.post(QUEUE).mock(
        return_value=httpx.Response(
            200, json={"request_id": "req-1", "status_url": STATUS_URL, "response_url": RESPONSE_URL}
        )
    )
    respx_mock.get(host="queue.fal.run", path=STATUS_PATH).mock(side_effect=[httpx.Response(200, json=s) for s in statuses])
    respx_mock.get(RESPONSE_URL).mock(return_value=httpx.Response(200, json=DETECTION))
    return submit
