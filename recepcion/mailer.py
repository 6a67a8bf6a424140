from __future__ import annotations
import asyncio, logging, smtplib
from email.message import EmailMessage
from typing import Dict

from starlette.concurrency import run_in_threadpool

log = logging.getLogger(__name__)

SMTP_HOST = "smtp.gmail.com"
SMTP_PORT = 465

INTERNAL_SUBJECT = "Nuevo lead – AutonomIA Suite"
AUTO_REPLY_SUBJECT = "Confirmacion de solicitud de demo – AutonomIA Suite"

_LEAD_FIELDS = (
    ("Nombre", "name"),
    ("Email", "email"),
    ("Telefono", "phone"),
    ("Empresa", "company"),
    ("Industria", "industry"),
    ("Mensaje", "message"),
    ("Source", "source"),
    ("UTM Source", "utm_source"),
    ("UTM Medium", "utm_medium"),
    ("UTM Campaign", "utm_campaign"),
)

AUTO_REPLY_TEXT = (
    "Hola,\n\n"
    "Gracias por contactarte con AutonomIA Suite.\n"
    "Hemos recibido correctamente tu solicitud de demo.\n\n"
    "Nuestro equipo revisara la informacion y se pondra en contacto contigo a la brevedad para "
    "coordinar una reunion 1:1, donde podremos mostrarte el sistema en funcionamiento y evaluar "
    "como se adapta a la operacion de tu clinica.\n\n"
    "Que puedes esperar de la demo?\n"
    "- Revision del flujo real de atencion y agenda\n"
    "- Ejemplo practico de como se ordena la operacion diaria\n"
    "- Espacio para resolver dudas tecnicas y operativas\n\n"
    "La demo es sin compromiso y esta pensada para que puedas evaluar con claridad si este sistema "
    "hace sentido para tu organizacion.\n\n"
    "Si necesitas agregar informacion o tienes alguna pregunta antes de la reunion, puedes responder "
    "directamente a este correo.\n\n"
    "Un saludo,\n\n"
    "Equipo AutonomIA Suite\n"
    "Software profesional para operacion clinica"
)


def build_lead_text(lead: Dict[str, str]) -> str:
    return "\n".join(f"{title}: {lead.get(key) or '—'}" for title, key in _LEAD_FIELDS)


class LeadMailer:
    def __init__(self, user: str, password: str, inbox: str = "", timeout: float = 12) -> None:
        self.user = user
        self.password = password
        self.inbox = inbox or user
        self.timeout = timeout

    @property
    def ready(self) -> bool:
        return bool(self.user and self.password)

    def _message(self, to: str, subject: str, text: str, reply_to: str = "") -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = f"AutonomIA Suite <{self.user}>"
        msg["To"] = to
        msg["Subject"] = subject
        if reply_to:
            msg["Reply-To"] = reply_to
        msg.set_content(text)
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        with smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, timeout=self.timeout) as smtp:
            smtp.login(self.user, self.password)
            smtp.send_message(msg)

    async def send(self, msg: EmailMessage) -> None:
        await asyncio.wait_for(run_in_threadpool(self._send_sync, msg), timeout=self.timeout)

    async def send_lead(self, lead: Dict[str, str]) -> None:
        """Aviso interno (reply-to = lead) + respuesta automática, en paralelo. Levanta si alguno falla."""
        internal = self._message(self.inbox, INTERNAL_SUBJECT, build_lead_text(lead), reply_to=lead["email"])
        auto = self._message(lead["email"], AUTO_REPLY_SUBJECT, AUTO_REPLY_TEXT)
        await asyncio.gather(self.send(internal), self.send(auto))
