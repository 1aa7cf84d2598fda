"""
Configuration du service — lue une seule fois au démarrage
"""
import logging
import os
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _env_bool(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "y", "on"}


class Settings(BaseModel):
    """
    Configuration immuable du processus.

    Construite au démarrage puis injectée dans l'application, la passerelle
    LLM et le middleware de session (jamais relue depuis l'environnement
    pendant une requête).
    """
    model_config = ConfigDict(frozen=True)

    openai_api_key: Optional[str] = None
    session_secret: str = "your-secret-key"
    host: str = "0.0.0.0"
    port: int = 3000
    production: bool = False

    provider: Literal["openai", "ollama"] = "openai"
    model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"
    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "mistral"
    timeout: float = Field(default=60.0, gt=0)

    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"
    filter_unknown_fields: bool = True

    @property
    def has_api_key(self) -> bool:
        return bool(self.openai_api_key)

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "Settings":
        """
        Lit les variables d'environnement (et `.env` si présent).

        Raises:
            ValueError: si PORT ou COMPLETION_TIMEOUT ne sont pas numériques
        """
        if load_env_file:
            load_dotenv(override=False)

        env_name = os.getenv("APP_ENV") or os.getenv("NODE_ENV") or ""
        origins = [o.strip() for o in (os.getenv("CORS_ORIGINS") or "*").split(",") if o.strip()]

        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            session_secret=os.getenv("SESSION_SECRET") or "your-secret-key",
            host=os.getenv("HOST") or "0.0.0.0",
            port=int(os.getenv("PORT") or 3000),
            production=env_name.strip().lower() == "production",
            provider=(os.getenv("COMPLETION_PROVIDER") or "openai").strip().lower(),
            model=os.getenv("OPENAI_MODEL") or "gpt-4o-mini",
            openai_base_url=(os.getenv("OPENAI_BASE_URL") or "https://api.openai.com/v1").rstrip("/"),
            ollama_host=os.getenv("OLLAMA_HOST") or "http://localhost:11434",
            ollama_model=os.getenv("OLLAMA_MODEL") or "mistral",
            timeout=float(os.getenv("COMPLETION_TIMEOUT") or 60),
            cors_origins=origins or ["*"],
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
            filter_unknown_fields=_env_bool("FILTER_UNKNOWN_FIELDS", True),
        )


def configure_logging(level: str = "INFO") -> None:
    """Un seul handler stdout pour tout le process (idempotent)."""
    root = logging.getLogger()
    if not any(getattr(h, "_form_filler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._form_filler = True
        root.addHandler(handler)
    root.setLevel(level)
