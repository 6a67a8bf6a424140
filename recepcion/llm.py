from __future__ import annotations
import asyncio
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict
from openai import AsyncOpenAI

from .settings import settings

CHAT_SYSTEM_PROMPT = (
    "Eres la recepcion digital de una clinica en Chile. Responde con tono profesional, sobrio y clinico. "
    "Haz preguntas breves y claras. No menciones tecnologia. No prometas agendamiento real. "
    "Si falta un dato (motivo, nombre, ciudad, preferencia horaria), pide solo uno a la vez."
)

CHAT_OPENING_PROMPT = "Inicia la conversacion con un saludo profesional y pregunta el motivo de la consulta."

ANALYSIS_SYSTEM_PROMPT = (
    "Analiza la conversacion clinica y devuelve JSON estricto. "
    "Extrae: name, reason, city, preferred_time. "
    "Clasifica: type (Consulta|Potencial cita), priority (Alta|Media|Baja), "
    "suggested_action (Automatico|Derivar a equipo). "
    "No inventes datos. Si no existe, usa null."
)


class LLMConfig(BaseModel):
    model_config = ConfigDict(protected_namespaces=())
    api_key: str = Field(default=settings.openai_api_key)
    chat_model: str = Field(default=settings.model_chat)
    analysis_model: str = Field(default=settings.model_analysis)
    timeout: float = Field(default=settings.llm_timeout_seconds)


_client: Optional[AsyncOpenAI] = None


def _client_ok() -> Optional[AsyncOpenAI]:
    global _client
    if _client is None:
        cfg = LLMConfig()
        if not cfg.api_key:
            return None
        _client = AsyncOpenAI(api_key=cfg.api_key, max_retries=0)
    return _client


async def complete(
    client: AsyncOpenAI,
    *,
    model: str,
    messages: List[Dict[str, str]],
    timeout: float,
    **opts: Any,
) -> str:
    """
    Una llamada de chat completion con tope duro de tiempo (sin reintentos).
    Devuelve el texto (puede ser ""); los errores se propagan al adaptador.
    """
    resp = await asyncio.wait_for(
        client.chat.completions.create(model=model, messages=messages, timeout=timeout, **opts),
        timeout=timeout,
    )
    content = resp.choices[0].message.content if resp.choices else None
    return (content or "").strip()
