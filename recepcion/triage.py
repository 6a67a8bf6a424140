"""
Triage de cada mensaje: prioridad / etiqueta / acción sugerida.

Dos estrategias detrás de la misma interfaz:
  - AnalysisClassifier: usa la clasificación que devolvió el modelo de análisis.
    Cada campo ausente o fuera de rango conserva el valor actual de la sesión.
  - KeywordClassifier: escaneo determinístico de palabras clave.
TriageClassifier elige: primero la primaria; si no hay análisis, el fallback.
"""
from __future__ import annotations
from typing import Iterable, Optional, Protocol

from .events import EventBus, TRIAGE_UPDATED
from .models import ACTIONS, LABELS, PRIORITIES, Analysis, Session, Triage
from .utils import contains_any

URGENT_WORDS = ("urgente", "dolor", "fuerte", "hoy", "ahora", "necesito", "fractura")
INFO_WORDS = ("precio", "valores", "costo", "horario", "disponibilidad", "consulta", "cotizacion")


class Classifier(Protocol):
    def classify(self, session: Session, message: str, analysis: Optional[Analysis]) -> Optional[Triage]: ...


class AnalysisClassifier:
    def classify(self, session: Session, message: str, analysis: Optional[Analysis]) -> Optional[Triage]:
        if analysis is None:
            return None
        current = session.triage

        def pick(value: Optional[str], allowed: Iterable[str], keep: str) -> str:
            # el modelo a veces devuelve "alta" o "potencial cita"
            wanted = (value or "").strip().casefold()
            for option in allowed:
                if option.casefold() == wanted:
                    return option
            return keep

        return Triage(
            priority=pick(analysis.priority, PRIORITIES, current.priority),
            label=pick(analysis.type, LABELS, current.label),
            suggested_action=pick(analysis.suggested_action, ACTIONS, current.suggested_action),
        )


class KeywordClassifier:
    def __init__(self, urgent: Iterable[str] = URGENT_WORDS, informational: Iterable[str] = INFO_WORDS):
        self.urgent = tuple(urgent)
        self.informational = tuple(informational)

    def classify(self, session: Session, message: str, analysis: Optional[Analysis] = None) -> Optional[Triage]:
        if not message:
            return None
        if contains_any(message, self.urgent):
            return Triage(priority="Alta", label="Potencial cita", suggested_action="Derivar a equipo")
        if contains_any(message, self.informational):
            return Triage(priority="Media", label="Potencial cita", suggested_action="Derivar a equipo")
        return Triage(priority="Baja", label="Consulta", suggested_action="Automatico")


class TriageClassifier:
    def __init__(self, primary: Optional[Classifier] = None, fallback: Optional[Classifier] = None):
        self.primary = primary or AnalysisClassifier()
        self.fallback = fallback or KeywordClassifier()

    def classify(self, session: Session, message: str, analysis: Optional[Analysis] = None) -> Optional[Triage]:
        result = self.primary.classify(session, message, analysis)
        if result is None:
            result = self.fallback.classify(session, message, analysis)
        return result

    async def apply(self, bus: EventBus, session: Session, message: str,
                    analysis: Optional[Analysis] = None) -> Optional[Triage]:
        """Clasifica, pisa session.triage completo y lo anuncia. None = no hubo clasificación."""
        result = self.classify(session, message, analysis)
        if result is None:
            return None
        session.triage = result
        await bus.publish(session.id, TRIAGE_UPDATED, result.model_dump())
        return result
