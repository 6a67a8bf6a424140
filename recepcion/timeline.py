from __future__ import annotations

from .events import EventBus, TIMELINE_EVENT
from .models import Session, TimelineEvent


async def record(bus: EventBus, session: Session, type_: str, label: str) -> TimelineEvent:
    # primero se agrega al timeline, después se notifica
    entry = TimelineEvent(type=type_, label=label)
    session.timeline.append(entry)
    await bus.publish(session.id, TIMELINE_EVENT, entry.model_dump())
    return entry
