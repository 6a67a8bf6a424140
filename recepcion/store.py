# recepcion/store.py
from __future__ import annotations
import asyncio, logging
from typing import Dict, List, Optional

from .events import EventBus
from .models import Session, TimelineEvent
from .utils import now_ms

log = logging.getLogger(__name__)


class SessionStore:
    """
    Sesiones en memoria del proceso. Se mutan in-place (get no copia).
    Cada sesión tiene su asyncio.Lock: los turnos de una misma sesión se serializan.
    """

    def __init__(self, bus: EventBus, ttl_seconds: int = 1800):
        self._sessions: Dict[str, Session] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self.bus = bus
        self.ttl_ms = ttl_seconds * 1000

    def create(self) -> Session:
        now = now_ms()
        session = Session(created_at=now, updated_at=now)
        while session.id in self._sessions:
            session = Session(created_at=now, updated_at=now)
        session.timeline.append(TimelineEvent(type="session", label="Sesion iniciada", ts=now))
        self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def lock(self, session_id: str) -> asyncio.Lock:
        if session_id not in self._locks:
            self._locks[session_id] = asyncio.Lock()
        return self._locks[session_id]

    def sweep(self, now: Optional[int] = None) -> List[str]:
        """Borra las sesiones inactivas más allá del TTL junto con sus suscriptores."""
        now = now if now is not None else now_ms()
        expired = [sid for sid, s in self._sessions.items() if now - s.updated_at > self.ttl_ms]
        for sid in expired:
            del self._sessions[sid]
            self._locks.pop(sid, None)
            self.bus.drop(sid)
        return expired

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions


async def sweep_forever(store: SessionStore, interval_seconds: float) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        expired = store.sweep()
        if expired:
            log.info("Sesiones expiradas: %d (quedan %d)", len(expired), len(store))
