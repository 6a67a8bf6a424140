from __future__ import annotations
import logging
from typing import Any, Dict, Optional

import requests
from starlette.concurrency import run_in_threadpool

from .models import Session
from .utils import iso_from_ms

log = logging.getLogger(__name__)


def session_row(session: Session) -> Dict[str, Any]:
    return {
        "session_id": session.id,
        "step": session.step.value,
        "captured": dict(session.captured),
        "triage": session.triage.model_dump(),
        "timeline": [e.model_dump() for e in session.timeline],
        "updated_at": iso_from_ms(session.updated_at),
    }


class SupabaseSync:
    """Upsert idempotente por session_id contra la API REST de Supabase (PostgREST)."""

    def __init__(self, url: str, key: str, table: str = "sessions", timeout: float = 10,
                 http: Optional[requests.Session] = None) -> None:
        self.enabled = bool(url and key)
        self.endpoint = f"{url.rstrip('/')}/rest/v1/{table}"
        self.timeout = timeout
        self.http = http or requests.Session()
        self.http.headers.update({
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
            "Prefer": "resolution=merge-duplicates,return=minimal",
        })

    def upsert_sync(self, row: Dict[str, Any]) -> bool:
        r = self.http.post(self.endpoint, params={"on_conflict": "session_id"}, json=row, timeout=self.timeout)
        ok = 200 <= r.status_code < 300
        if not ok:
            log.warning("Supabase upsert %s: %s %s", row.get("session_id"), r.status_code, r.text[:300])
        return ok

    async def __call__(self, session: Session) -> bool:
        """Best-effort: los errores se loguean y no llegan al turno."""
        if not self.enabled:
            return False
        try:
            return await run_in_threadpool(self.upsert_sync, session_row(session))
        except (requests.RequestException, ValueError, TypeError) as e:
            log.warning("Supabase error %s: %s", session.id, e)
            return False
