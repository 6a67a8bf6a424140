from __future__ import annotations
import asyncio, logging
from typing import Any, Dict, List, Optional

from openai import OpenAIError

from . import llm
from .models import Session
from .normalizer import sanitize_for_model

log = logging.getLogger(__name__)

FALLBACK_REPLY = "Podria contarme un poco mas?"

_ROLES = {"patient": "user", "system": "assistant"}


class ReplyGenerator:
    """Respuesta de recepción vía modelo de chat. Nunca levanta: ante cualquier falla, FALLBACK_REPLY."""

    def __init__(
        self,
        client: Any = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        history_window: int = 8,
    ):
        cfg = llm.LLMConfig()
        self._client = client
        self.model = model or cfg.chat_model
        self.timeout = timeout if timeout is not None else cfg.timeout
        self.history_window = history_window

    @property
    def client(self):
        return self._client if self._client is not None else llm._client_ok()

    def build_messages(self, session: Session, message: str) -> List[Dict[str, str]]:
        history = [
            {"role": _ROLES.get(m.role, "user"), "content": m.text}
            for m in session.messages[-self.history_window:]
        ] if self.history_window > 0 else []
        user_prompt = sanitize_for_model(message) if message else llm.CHAT_OPENING_PROMPT
        return [
            {"role": "system", "content": llm.CHAT_SYSTEM_PROMPT},
            *history,
            {"role": "user", "content": user_prompt},
        ]

    async def generate(self, session: Session, message: str) -> str:
        client = self.client
        if client is None:
            return FALLBACK_REPLY
        try:
            text = await llm.complete(
                client,
                model=self.model,
                messages=self.build_messages(session, message),
                timeout=self.timeout,
                temperature=0.2,
                max_tokens=180,
            )
        except (OpenAIError, asyncio.TimeoutError, ValueError, AttributeError, IndexError, TypeError) as e:
            log.warning("Reply fallback s=%s: %s", session.id, e.__class__.__name__)
            return FALLBACK_REPLY
        return text or FALLBACK_REPLY
