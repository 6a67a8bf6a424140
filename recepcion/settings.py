from __future__ import annotations
import os
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict
from dotenv import load_dotenv

load_dotenv(override=False)


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    # OpenAI
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    model_chat: str = os.getenv("OPENAI_MODEL_CHAT", "gpt-4o-mini")
    model_analysis: str = os.getenv("OPENAI_MODEL_ANALYSIS", "gpt-4o-mini")
    llm_timeout_seconds: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "8"))

    # Conversación
    history_window: int = int(os.getenv("HISTORY_WINDOW", "8"))
    turn_limit: int = int(os.getenv("TURN_LIMIT", "10"))
    session_ttl_seconds: int = int(os.getenv("SESSION_TTL_SECONDS", "1800"))
    sweep_interval_seconds: int = int(os.getenv("SWEEP_INTERVAL_SECONDS", "300"))

    # Supabase (upsert de sesiones)
    supabase_url: str = os.getenv("SUPABASE_URL", "")
    supabase_key: str = os.getenv("SUPABASE_ANON_KEY", "")
    supabase_table: str = os.getenv("SUPABASE_TABLE", "sessions")
    persist_timeout_seconds: float = float(os.getenv("PERSIST_TIMEOUT_SECONDS", "10"))

    # Gmail (formulario de leads)
    gmail_user: str = os.getenv("GMAIL_USER", "")
    gmail_app_password: str = os.getenv("GMAIL_APP_PASSWORD", "")
    lead_inbox: str = os.getenv("LEAD_INBOX", "") or os.getenv("GMAIL_USER", "")
    smtp_timeout_seconds: float = float(os.getenv("SMTP_TIMEOUT_SECONDS", "12"))

    # Rate limit (por IP, ventana fija)
    rate_limit_max: int = int(os.getenv("RATE_LIMIT_MAX", "120"))
    rate_limit_window_seconds: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "900"))

    # Server / logs
    debug: bool = _flag("DEBUG")
    log_dir: Optional[str] = os.getenv("LOG_DIR") or None
    port: int = int(os.getenv("PORT", "3000"))


class ConversationConfig(BaseModel):
    """Constantes que gobiernan el flujo de la conversación."""
    required_fields: Tuple[str, ...] = ("name", "reason", "city", "preferred_time")
    turn_limit: int = 10
    history_window: int = 8


settings = Settings()


def conversation_config(cfg: Settings = settings) -> ConversationConfig:
    return ConversationConfig(turn_limit=cfg.turn_limit, history_window=cfg.history_window)
