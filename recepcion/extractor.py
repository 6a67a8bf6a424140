from __future__ import annotations
import asyncio, json, logging
from typing import Any, Optional

from openai import OpenAIError
from pydantic import ValidationError

from . import llm
from .models import Analysis, Session
from .normalizer import sanitize_for_model

log = logging.getLogger(__name__)


class FieldExtractor:
    """
    Extrae name/reason/city/preferred_time + clasificación del último mensaje.
    None significa "sin información nueva" (sin modelo, timeout, JSON roto).
    """

    def __init__(self, client: Any = None, model: Optional[str] = None, timeout: Optional[float] = None):
        cfg = llm.LLMConfig()
        self._client = client
        self.model = model or cfg.analysis_model
        self.timeout = timeout if timeout is not None else cfg.timeout

    @property
    def client(self):
        return self._client if self._client is not None else llm._client_ok()

    async def extract(self, session: Session, message: str) -> Optional[Analysis]:
        client = self.client
        if client is None:
            return None

        context = {
            "last_message": sanitize_for_model(message),
            "captured": session.captured,
        }
        try:
            raw = await llm.complete(
                client,
                model=self.model,
                messages=[
                    {"role": "system", "content": llm.ANALYSIS_SYSTEM_PROMPT},
                    {"role": "user", "content": json.dumps(context, ensure_ascii=False)},
                ],
                timeout=self.timeout,
                temperature=0,
                max_tokens=220,
                response_format={"type": "json_object"},
            )
            data = json.loads(raw or "{}")
            if not isinstance(data, dict):
                return None
            return Analysis.model_validate(data)
        except (OpenAIError, asyncio.TimeoutError, ValueError, ValidationError,
                AttributeError, IndexError, TypeError) as e:
            log.warning("Extraction sin datos s=%s: %s", session.id, e.__class__.__name__)
            return None
