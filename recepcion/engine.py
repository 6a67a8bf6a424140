from __future__ import annotations
import logging
from typing import Dict, Optional

from .debug import trace
from .events import EventBus, PATIENT_UPDATED
from .extractor import FieldExtractor
from .models import Message, Session, Step
from .normalizer import sanitize
from .reply import FALLBACK_REPLY, ReplyGenerator
from .settings import ConversationConfig
from .timeline import record
from .triage import TriageClassifier

log = logging.getLogger(__name__)

CLOSING_REPLY = (
    "La clinica continuara el proceso por su canal habitual. "
    "Si desea seguir revisando el flujo, puede recuperar el control operativo en una demo."
)
COMPLETE_REPLY = "Gracias. " + CLOSING_REPLY

FIELD_LABELS = {
    "name": "Nombre detectado",
    "reason": "Motivo detectado",
    "city": "Ciudad detectada",
    "preferred_time": "Preferencia registrada",
}


class ConversationEngine:
    """
    greeting -> reason -> done. Cada colaborador externo se llama a lo sumo una vez
    por turno y su falla no corta el turno: sin análisis se clasifica por palabras clave.
    """

    def __init__(
        self,
        bus: EventBus,
        config: Optional[ConversationConfig] = None,
        extractor: Optional[FieldExtractor] = None,
        replier: Optional[ReplyGenerator] = None,
        classifier: Optional[TriageClassifier] = None,
        persist=None,
    ):
        self.bus = bus
        self.config = config or ConversationConfig()
        self.extractor = extractor or FieldExtractor()
        self.replier = replier or ReplyGenerator(history_window=self.config.history_window)
        self.classifier = classifier or TriageClassifier()
        self.persist = persist

    # ========================
    # Un paso de la máquina de estados
    # ========================
    async def advance(self, session: Session, raw_message: str) -> str:
        session.touch()

        if session.step == Step.DONE:
            return CLOSING_REPLY

        if session.step == Step.GREETING:
            session.move_to(Step.REASON)
            await record(self.bus, session, "system", "Saludo enviado")
            trace("step", session.id, step=session.step.value)
            return await self._reply(session, "")

        text = sanitize(raw_message)
        if text:
            await record(self.bus, session, "patient", "Mensaje recibido")

        analysis = await self._extract(session, text) if text else None
        if analysis is not None:
            updates: Dict[str, str] = {}
            for field, value in analysis.fields().items():
                if field not in self.config.required_fields or session.captured.get(field) == value:
                    continue
                session.captured[field] = value
                updates[field] = value
                await record(self.bus, session, "patient", FIELD_LABELS.get(field, f"{field} detectado"))
            if updates:
                await self.bus.publish(session.id, PATIENT_UPDATED, updates)
                trace("captured", session.id, fields=sorted(updates))

        # con análisis: clasificación del modelo; sin análisis y con texto: palabras clave
        triage = await self.classifier.apply(self.bus, session, text, analysis)
        if triage is not None:
            trace("triage", session.id, priority=triage.priority, label=triage.label)

        if not session.missing_fields(self.config.required_fields):
            session.move_to(Step.DONE)
            await record(self.bus, session, "system", "Datos completos")
            trace("step", session.id, step=session.step.value, reason="complete")
            return COMPLETE_REPLY

        return await self._reply(session, text)

    # falla de un colaborador: se registra y el turno sigue
    async def _extract(self, session: Session, text: str):
        try:
            return await self.extractor.extract(session, text)
        except Exception:
            log.exception("Extraccion fallida s=%s", session.id)
            return None

    async def _reply(self, session: Session, text: str) -> str:
        try:
            reply = await self.replier.generate(session, text)
        except Exception:
            log.exception("Respuesta fallida s=%s", session.id)
            return FALLBACK_REPLY
        return reply or FALLBACK_REPLY

    # ========================
    # Turno completo (lo que atiende /api/chat)
    # ========================
    async def take_turn(self, session: Session, raw_message: str) -> str:
        text = sanitize(raw_message)
        trace("turn", session.id, step=session.step.value, chars=len(text))
        try:
            reply = await self.advance(session, text)
        except Exception:
            log.exception("Fallo inesperado en el turno s=%s", session.id)
            reply = FALLBACK_REPLY
        reply = reply or FALLBACK_REPLY

        if text:
            session.messages.append(Message(role="patient", text=text))
        session.messages.append(Message(role="system", text=reply))
        session.assistant_count += 1

        if session.assistant_count >= self.config.turn_limit and session.step != Step.DONE:
            session.move_to(Step.DONE)
            await record(self.bus, session, "system", "Cierre de conversacion")
            trace("step", session.id, step=session.step.value, reason="turn_limit")

        if self.persist is not None:
            await self.persist(session)
        return reply
