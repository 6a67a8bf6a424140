"""Canal push por sesión: publish/subscribe best-effort, sin cola ni replay."""
from __future__ import annotations
import logging
from typing import Any, Dict, Protocol, Set

log = logging.getLogger(__name__)

TIMELINE_EVENT = "timeline.event"
PATIENT_UPDATED = "patient.updated"
TRIAGE_UPDATED = "triage.updated"


class Subscriber(Protocol):
    async def send_json(self, data: Any) -> None: ...


class EventBus:
    def __init__(self) -> None:
        self._subscribers: Dict[str, Set[Subscriber]] = {}

    def subscribe(self, session_id: str, subscriber: Subscriber) -> None:
        self._subscribers.setdefault(session_id, set()).add(subscriber)

    def unsubscribe(self, session_id: str, subscriber: Subscriber) -> None:
        subs = self._subscribers.get(session_id)
        if not subs:
            return
        subs.discard(subscriber)
        if not subs:
            del self._subscribers[session_id]

    def drop(self, session_id: str) -> int:
        """Suelta todos los suscriptores de la sesión (expiración)."""
        return len(self._subscribers.pop(session_id, set()))

    def count(self, session_id: str) -> int:
        return len(self._subscribers.get(session_id, ()))

    async def publish(self, session_id: str, event: str, data: Any) -> None:
        subs = self._subscribers.get(session_id)
        if not subs:
            return
        payload = {"event": event, "data": data}
        # copia: un envío fallido modifica el set
        for sub in list(subs):
            try:
                await sub.send_json(payload)
            except Exception as e:
                log.warning("Suscriptor caído en %s (%s): %s", session_id, event, e)
                self.unsubscribe(session_id, sub)
