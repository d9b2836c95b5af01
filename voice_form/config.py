"""
Configuration du service (variables d'environnement + fichier .env)
"""

import logging
from functools import lru_cache
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    app_env: str = "dev"
    log_level: str = "INFO"
    app_password: Optional[str] = None

    # Clés fournisseurs (repli côté serveur si le navigateur n'en envoie pas)
    elevenlabs_api_key: Optional[str] = None
    deepgram_api_key: Optional[str] = None
    google_generative_ai_api_key: Optional[str] = None
    fal_key: Optional[str] = None

    # Extraction
    llm_provider: Literal["gemini", "ollama"] = "gemini"
    extraction_model: str = "gemini-2.5-flash"
    gemini_stt_model: str = "gemini-2.0-flash-exp"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "mistral"

    # Timeouts (secondes)
    extraction_timeout_s: float = 60.0
    detection_timeout_s: float = 60.0
    http_timeout_s: float = 120.0

    cors_origins: List[str] = ["*"]

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()


_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Installe le format de log une seule fois (uvicorn garde ses handlers)"""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=_LOG_FORMAT)
    root.setLevel(level.upper())
