#!/usr/bin/env python3
"""
API REST FastAPI voice-to-form
Transcription (ElevenLabs, Deepgram, Gemini) + extraction LLM + détection d'anomalies
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

import httpx
from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from ollama import AsyncClient as OllamaAsyncClient

from . import __version__
from .anomaly import detect_anomaly, to_pixel_boxes
from .api_keys import PROVIDER_CONFIGS, has_key, has_required_keys, resolve_keys, server_keys
from .auth import PasswordGateMiddleware, router as auth_router
from .config import Settings, configure_logging, get_settings
from .demos import DEFAULT_DEMO_ID, DEMOS, UnknownDemoError, get_demo
from .errors import MissingAPIKeyError, TranscriptionError
from .extractor import FormExtractor
from .llm_client import build_llm_client
from .pages import HTML_PAGE, PASSWORD_PAGE
from .pipeline import voice_to_form
from .schemas import (
    DemoConfig,
    DetectAnomalyRequest,
    DetectAnomalyResponse,
    ExtractionRequest,
    ExtractionResponse,
    STTProvider,
    TranscriptionResponse,
    VoiceToFormResponse,
)
from .transcription_engines import transcribe

logger = logging.getLogger(__name__)


def get_http_client(request: Request) -> Optional[httpx.AsyncClient]:
    """Client httpx partagé (None hors lifespan : chaque appel crée le sien)"""
    return getattr(request.app.state, "http_client", None)


def get_ollama_client(request: Request) -> Optional[OllamaAsyncClient]:
    """Client Ollama partagé (None si LLM_PROVIDER=gemini)"""
    return getattr(request.app.state, "ollama_client", None)


def _demo_or_400(demo_id: str) -> DemoConfig:
    try:
        return get_demo(demo_id)
    except UnknownDemoError as e:
        raise HTTPException(status_code=400, detail=str(e))


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with httpx.AsyncClient(timeout=settings.http_timeout_s) as client:
            app.state.http_client = client
            if settings.llm_provider == "ollama":
                app.state.ollama_client = OllamaAsyncClient(host=settings.ollama_host)
            yield
        app.state.http_client = None
        app.state.ollama_client = None

    app = FastAPI(
        title="API Voice to Form",
        description="ElevenLabs, Deepgram, Gemini + extraction Gemini/Ollama + fal.ai",
        version=__version__,
        lifespan=lifespan,
    )
    app.dependency_overrides[get_settings] = lambda: settings

    app.add_middleware(PasswordGateMiddleware, settings=settings)
    # CORS : permettre les requêtes depuis un front séparé (ajouté en dernier = le plus externe)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(auth_router)

    # ══════════════════════════════════════════════════════════════
    # PAGES
    # ══════════════════════════════════════════════════════════════

    @app.get("/", response_class=HTMLResponse)
    async def index():
        return HTML_PAGE

    @app.get("/password", response_class=HTMLResponse)
    async def password_page():
        return PASSWORD_PAGE

    @app.get("/api/info")
    async def info():
        return {
            "message": f"API Voice to Form v{__version__}",
            "endpoints": {
                "/demos": "Available forms",
                "/providers": "API key configuration (BYOK)",
                "/voice-to-form": "Audio -> transcription -> form fields",
                "/transcribe": "Transcription only",
                "/extract": "Text -> form fields",
                "/detect-anomaly": "Image -> anomaly bounding boxes",
            },
            "documentation": "/docs",
        }

    @app.get("/health")
    async def health():
        """Route de santé"""
        keys = server_keys(settings)
        return {
            "status": "ok",
            "message": "Server running",
            "llm_provider": settings.llm_provider,
            "ready": has_required_keys(keys),
            "configured_providers": {name: has_key(keys, name) for name in PROVIDER_CONFIGS},
        }

    # ══════════════════════════════════════════════════════════════
    # CATALOGUE
    # ══════════════════════════════════════════════════════════════

    @app.get("/demos", response_model=List[DemoConfig])
    async def list_demos():
        return DEMOS

    @app.get("/demos/{demo_id}", response_model=DemoConfig)
    async def demo_detail(demo_id: str):
        try:
            return get_demo(demo_id)
        except UnknownDemoError as e:
            raise HTTPException(status_code=404, detail=str(e))

    @app.get("/providers")
    async def providers():
        keys = server_keys(settings)
        return {
            name: {**cfg.model_dump(), "configured_on_server": has_key(keys, name)}
            for name, cfg in PROVIDER_CONFIGS.items()
        }

    # ══════════════════════════════════════════════════════════════
    # VOICE TO FORM
    # ══════════════════════════════════════════════════════════════

    @app.post("/voice-to-form", response_model=VoiceToFormResponse)
    async def voice_to_form_route(
        audio: Optional[UploadFile] = File(None),
        stt_provider: STTProvider = Form("gemini"),
        demo_id: str = Form(DEFAULT_DEMO_ID),
        elevenlabs_key: Optional[str] = Form(None),
        deepgram_key: Optional[str] = Form(None),
        google_key: Optional[str] = Form(None),
        client: Optional[httpx.AsyncClient] = Depends(get_http_client),
        ollama_client: Optional[OllamaAsyncClient] = Depends(get_ollama_client),
    ):
        """
        Dictée -> champs du formulaire

        - **stt_provider**: elevenlabs, deepgram ou gemini
        - **demo_id**: medical-intake, substation-inspection
        - **\\*_key**: clés BYOK (sinon celles du serveur)
        """
        _demo_or_400(demo_id)
        keys = resolve_keys(
            {"elevenlabs": elevenlabs_key, "deepgram": deepgram_key, "google": google_key},
            settings,
        )

        audio_bytes = await audio.read() if audio is not None else b""
        logger.info("📝 Voice to form: provider=%s demo=%s audio=%d bytes", stt_provider, demo_id, len(audio_bytes))

        return await voice_to_form(
            audio_bytes,
            keys=keys,
            settings=settings,
            stt_provider=stt_provider,
            demo_id=demo_id,
            filename=(audio.filename if audio is not None else None) or "audio.webm",
            content_type=(audio.content_type if audio is not None else None) or "audio/webm",
            client=client,
            ollama_client=ollama_client,
        )

    @app.post("/transcribe", response_model=TranscriptionResponse)
    async def transcribe_route(
        audio: UploadFile = File(...),
        stt_provider: STTProvider = Form("gemini"),
        elevenlabs_key: Optional[str] = Form(None),
        deepgram_key: Optional[str] = Form(None),
        google_key: Optional[str] = Form(None),
        client: Optional[httpx.AsyncClient] = Depends(get_http_client),
    ):
        """Transcription seule"""
        keys = resolve_keys(
            {"elevenlabs": elevenlabs_key, "deepgram": deepgram_key, "google": google_key},
            settings,
        )
        options = {}
        if stt_provider == "gemini":
            options = {"model": settings.gemini_stt_model, "base_url": settings.gemini_base_url}

        try:
            result = await transcribe(
                stt_provider,
                await audio.read(),
                keys=keys,
                filename=audio.filename or "audio.webm",
                content_type=audio.content_type or "audio/webm",
                client=client,
                **options,
            )
        except MissingAPIKeyError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except TranscriptionError as e:
            raise HTTPException(status_code=502, detail=str(e))

        return TranscriptionResponse(text=result.text, provider=stt_provider, duration_s=result.duration_s)

    @app.post("/extract", response_model=ExtractionResponse)
    async def extract_form(
        req: ExtractionRequest,
        client: Optional[httpx.AsyncClient] = Depends(get_http_client),
        ollama_client: Optional[OllamaAsyncClient] = Depends(get_ollama_client),
    ):
        """
        Extrait des données d'un texte pour remplir un formulaire

        Exemple de requête :
        {
          "demo_id": "medical-intake",
          "text": "Patient John Doe, 45 years old, presenting with chest pain"
        }

        ou avec un formulaire libre :
        {
          "form": {"fields": [{"name": "name", "label": "Name"}]},
          "text": "..."
        }
        """
        if req.form is not None:
            demo = DemoConfig(
                id="custom",
                title="Custom form",
                description="Inline form schema",
                icon="📝",
                form_title="Form",
                submit_button_text="Submit",
                fields=req.form.fields,
            )
        else:
            demo = _demo_or_400(req.demo_id or DEFAULT_DEMO_ID)

        keys = resolve_keys({"google": req.google_key}, settings)
        try:
            llm = build_llm_client(
                settings, google_key=keys["google"], client=client, ollama_client=ollama_client
            )
        except MissingAPIKeyError as e:
            raise HTTPException(status_code=400, detail=str(e))

        logger.info("📝 Extraction requested for %d fields", len(demo.fields))
        try:
            data = await FormExtractor(llm, timeout_s=settings.extraction_timeout_s).extract(demo, req.text)
        except Exception as e:
            logger.error("❌ Extraction error: %s", e)
            raise HTTPException(status_code=500, detail=str(e))

        return {"data": data, "success": True}

    # ══════════════════════════════════════════════════════════════
    # DÉTECTION D'ANOMALIES
    # ══════════════════════════════════════════════════════════════

    @app.post("/detect-anomaly", response_model=DetectAnomalyResponse)
    async def detect_anomaly_route(
        req: DetectAnomalyRequest,
        client: Optional[httpx.AsyncClient] = Depends(get_http_client),
    ):
        keys = resolve_keys({"fal": req.fal_key}, settings)
        result = await detect_anomaly(
            req.image,
            req.prompt,
            fal_key=keys["fal"],
            client=client,
            timeout_s=settings.detection_timeout_s,
        )
        # Rectangles en pixels si la taille de l'image est connue
        if result.data is not None and req.width and req.height:
            result.boxes = to_pixel_boxes(result.data.objects, req.width, req.height)
        return result

    return app


app = create_app()


# ══════════════════════════════════════════════════════════════
# LANCEMENT
# ══════════════════════════════════════════════════════════════

if __name__ == "__main__":
    import uvicorn

    print("""
    ╔═══════════════════════════════════════════════════════╗
    ║   API VOICE TO FORM                                   ║
    ║                                                       ║
    ║   http://localhost:8000                               ║
    ║                                                       ║
    ║   ROUTES DISPONIBLES :                                ║
    ║   • POST /voice-to-form  - Dictée -> formulaire       ║
    ║   • POST /transcribe     - Transcription seule        ║
    ║   • POST /extract        - Extraction LLM             ║
    ║   • POST /detect-anomaly - Détection fal.ai           ║
    ║                                                       ║
    ║   📚 Documentation : http://localhost:8000/docs       ║
    ╚═══════════════════════════════════════════════════════╝
    """)

    uvicorn.run(app, host="0.0.0.0", port=8000)
