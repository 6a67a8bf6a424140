from __future__ import annotations
import uuid
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict, AliasChoices, field_validator

from .utils import now_ms

# ========================
# Dominio
# ========================
FIELD_NAMES = ("name", "reason", "city", "preferred_time")

PRIORITIES = ("Alta", "Media", "Baja")
LABELS = ("Consulta", "Potencial cita")
ACTIONS = ("Automatico", "Derivar a equipo")


class Step(str, Enum):
    GREETING = "greeting"
    REASON = "reason"
    DONE = "done"


_STEP_ORDER = {Step.GREETING: 0, Step.REASON: 1, Step.DONE: 2}


class Triage(BaseModel):
    priority: str = "Baja"
    label: str = "Consulta"
    suggested_action: str = "Automatico"


class TimelineEvent(BaseModel):
    type: str
    label: str
    ts: int = Field(default_factory=now_ms)


class Message(BaseModel):
    role: str  # "patient" | "system"
    text: str
    ts: int = Field(default_factory=now_ms)


class Session(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = 0
    step: Step = Step.GREETING
    captured: Dict[str, str] = {}
    triage: Triage = Field(default_factory=Triage)
    timeline: List[TimelineEvent] = []
    messages: List[Message] = []
    assistant_count: int = 0

    def touch(self, ts: Optional[int] = None) -> None:
        # updated_at nunca retrocede
        self.updated_at = max(self.updated_at, ts if ts is not None else now_ms())

    def move_to(self, step: Step) -> bool:
        """Avanza de etapa. Devuelve True si hubo cambio; retroceder es un error."""
        if _STEP_ORDER[step] < _STEP_ORDER[self.step]:
            raise ValueError(f"transición inválida {self.step.value} -> {step.value}")
        changed = step != self.step
        self.step = step
        return changed

    def missing_fields(self, required=FIELD_NAMES) -> List[str]:
        return [f for f in required if not self.captured.get(f)]

    def state(self) -> Dict[str, Any]:
        return {"step": self.step.value, "captured": dict(self.captured)}


class Analysis(BaseModel):
    """Salida del modelo de análisis: campos detectados + clasificación. None = no existe."""
    model_config = ConfigDict(extra="ignore")
    name: Optional[str] = None
    reason: Optional[str] = None
    city: Optional[str] = None
    preferred_time: Optional[str] = None
    type: Optional[str] = None
    priority: Optional[str] = None
    suggested_action: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_none(cls, v):
        # un campo con tipo raro se descarta solo, no todo el análisis
        if not isinstance(v, str):
            return None
        return v.strip() or None

    def fields(self) -> Dict[str, str]:
        return {f: getattr(self, f) for f in FIELD_NAMES if getattr(self, f)}


# ========================
# I/O
# ========================
class ChatIn(BaseModel):
    model_config = ConfigDict(protected_namespaces=(), populate_by_name=True, extra="ignore")
    session_id: str = Field(default="", validation_alias=AliasChoices("session_id", "session"))
    message: str = Field(default="", validation_alias=AliasChoices("message", "text"))


class ChatOut(BaseModel):
    reply: str
    state: Dict[str, Any] = {}


class SessionOut(BaseModel):
    session_id: str
    state: Dict[str, Any] = {}
    triage: Triage
    timeline: List[TimelineEvent] = []


class LeadIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")
    name: Optional[str] = Field(default="", validation_alias=AliasChoices("name", "nombre"))
    email: Optional[str] = ""
    phone: Optional[str] = Field(default="", validation_alias=AliasChoices("phone", "whatsapp"))
    company: Optional[str] = Field(default="", validation_alias=AliasChoices("company", "clinica"))
    industry: Optional[str] = ""
    message: Optional[str] = Field(default="", validation_alias=AliasChoices("message", "comentarios"))
    source: Optional[str] = ""
    utm_source: Optional[str] = ""
    utm_medium: Optional[str] = ""
    utm_campaign: Optional[str] = ""
    website: Optional[str] = ""  # honeypot
