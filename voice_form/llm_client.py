"""
Clients LLM pour l'extraction de champs

- GeminiClient : API REST generateContent (par défaut)
- OllamaClient : modèle local via `ollama serve`
"""

import asyncio
import logging
from typing import Awaitable, Optional, Protocol, TypeVar

import httpx
from ollama import AsyncClient as OllamaAsyncClient

from .config import Settings
from .errors import LLMError, LLMTimeoutError, MissingAPIKeyError
from .transcription_engines import GEMINI_BASE_URL, parse_gemini_text

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_timeout(awaitable: Awaitable[T], timeout_s: float, message: str) -> T:
    """Abandonne l'appel après timeout_s secondes"""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_s)
    except asyncio.TimeoutError:
        raise LLMTimeoutError(message) from None


class LLMClient(Protocol):
    name: str

    async def generate(self, prompt: str) -> str:
        ...


class GeminiClient:
    """Client pour Google Gemini"""
    name = "Google Gemini"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        temperature: float = 0,
        max_output_tokens: int = 2000,
        base_url: str = GEMINI_BASE_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 120,
    ):
        if not api_key:
            raise MissingAPIKeyError("google", "Google Gemini API key not configured for extraction")
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        # Assez grand pour éviter les JSON tronqués
        self.max_output_tokens = max_output_tokens
        self.base_url = base_url.rstrip("/")
        self.client = client
        self.timeout = timeout

    @property
    def url(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate(self, prompt: str) -> str:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
        }

        http = self.client or httpx.AsyncClient(timeout=self.timeout)
        try:
            response = await http.post(self.url, headers={"x-goog-api-key": self.api_key}, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise LLMError(f"Gemini error {e.response.status_code}: {e.response.text}") from e
        except httpx.HTTPError as e:
            raise LLMError(f"Gemini request failed: {e}") from e
        finally:
            if self.client is None:
                await http.aclose()

        body = response.json()
        if not body.get("candidates"):
            reason = (body.get("promptFeedback") or {}).get("blockReason")
            raise LLMError(f"Gemini returned no candidates{f' (blocked: {reason})' if reason else ''}")

        candidate = body["candidates"][0]
        finish_reason = candidate.get("finishReason")
        if finish_reason == "MAX_TOKENS":
            logger.warning("Gemini response hit maxOutputTokens, JSON may be truncated")
        # SAFETY, RECITATION... : candidat sans contenu
        if not (candidate.get("content") or {}).get("parts") and finish_reason not in ("STOP", "MAX_TOKENS"):
            raise LLMError(f"Gemini blocked the response ({finish_reason})")

        return parse_gemini_text(body).strip()


class OllamaClient:
    """Client pour Ollama (serveur local d'IA)"""
    name = "Ollama"

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "mistral",
        temperature: float = 0,
        client: Optional[OllamaAsyncClient] = None,
    ):
        self.host = host
        self.model = model
        self.temperature = temperature
        # Client partagé par l'application si fourni
        self._client = client or OllamaAsyncClient(host=host)

    async def generate(self, prompt: str) -> str:
        try:
            response = await self._client.chat(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                options={"temperature": self.temperature},
            )
        except Exception as e:
            raise LLMError(
                f"Ollama error: {e}. Check that 'ollama serve' is running on {self.host}."
            ) from e

        return response["message"]["content"].strip()


def build_llm_client(
    settings: Settings,
    *,
    google_key: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
    ollama_client: Optional[OllamaAsyncClient] = None,
) -> LLMClient:
    """Choisit le client LLM selon LLM_PROVIDER"""
    if settings.llm_provider == "ollama":
        return OllamaClient(host=settings.ollama_host, model=settings.ollama_model, client=ollama_client)

    return GeminiClient(
        api_key=google_key or settings.google_generative_ai_api_key or "",
        model=settings.extraction_model,
        base_url=settings.gemini_base_url,
        client=client,
        timeout=settings.http_timeout_s,
    )
