# Sin credenciales reales: OpenAI, Supabase y Gmail quedan en modo fallback/no-op.
import os
for _var in ("OPENAI_API_KEY", "SUPABASE_URL", "SUPABASE_ANON_KEY", "GMAIL_USER", "GMAIL_APP_PASSWORD", "LEAD_INBOX"):
    os.environ[_var] = ""

from typing import Any, List, Optional

import pytest

from recepcion.engine import ConversationEngine
from recepcion.events import EventBus
from recepcion.models import Analysis
from recepcion.store import SessionStore


class Recorder:
    """Suscriptor en memoria: guarda cada frame publicado."""

    def __init__(self):
        self.frames: List[dict] = []

    async def send_json(self, data: Any) -> None:
        self.frames.append(data)

    def events(self, name: str) -> List[Any]:
        return [f["data"] for f in self.frames if f["event"] == name]


class FakeExtractor:
    """Devuelve los resultados en orden; el último se repite."""

    def __init__(self, *results: Optional[Analysis]):
        self.results = list(results)
        self.calls: List[str] = []

    async def extract(self, session, message):
        self.calls.append(message)
        if not self.results:
            return None
        return self.results.pop(0) if len(self.results) > 1 else self.results[0]


class FakeReplier:
    def __init__(self, text: str = "¿Cuál es el motivo de su consulta?"):
        self.text = text
        self.calls: List[str] = []

    async def generate(self, session, message):
        self.calls.append(message)
        return self.text


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def store(bus):
    return SessionStore(bus, ttl_seconds=1800)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_engine(bus):
    def _make(extractor=None, replier=None, **kw):
        return ConversationEngine(
            bus,
            extractor=extractor or FakeExtractor(),
            replier=replier or FakeReplier(),
            **kw,
        )
    return _make
