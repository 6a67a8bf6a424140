from __future__ import annotations
import asyncio, contextlib, logging, smtplib
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from .debug import setup_logging, trace
from .engine import ConversationEngine
from .events import EventBus
from .mailer import LeadMailer
from .models import ChatIn, ChatOut, LeadIn, SessionOut
from .normalizer import sanitize, sanitize_long
from .persistence import SupabaseSync
from .ratelimit import RateLimiter
from .settings import settings, conversation_config
from .store import SessionStore, sweep_forever
from .utils import is_valid_email

setup_logging()
log = logging.getLogger(__name__)

# ========================
# Estado del proceso
# ========================
BUS = EventBus()
STORE = SessionStore(BUS, ttl_seconds=settings.session_ttl_seconds)
PERSIST = SupabaseSync(
    settings.supabase_url, settings.supabase_key,
    table=settings.supabase_table, timeout=settings.persist_timeout_seconds,
)
ENGINE = ConversationEngine(BUS, config=conversation_config(), persist=PERSIST)
MAILER = LeadMailer(
    settings.gmail_user, settings.gmail_app_password,
    inbox=settings.lead_inbox, timeout=settings.smtp_timeout_seconds,
)
LIMITER = RateLimiter(settings.rate_limit_max, settings.rate_limit_window_seconds)

# ========================
# FastAPI
# ========================
app = FastAPI(title="Recepcion Demo", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error(request, exc: StarletteHTTPException):
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code)


@app.on_event("startup")
async def startup() -> None:
    app.state.sweeper = asyncio.create_task(sweep_forever(STORE, settings.sweep_interval_seconds))
    log.info("Recepcion lista (openai=%s, supabase=%s, smtp=%s)",
             bool(settings.openai_api_key), PERSIST.enabled, MAILER.ready)


@app.on_event("shutdown")
async def shutdown() -> None:
    task = getattr(app.state, "sweeper", None)
    if task is not None:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


def _require(session_id: str):
    session = STORE.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


# ========================
# Sesiones / chat
# ========================
@app.post("/api/sessions", dependencies=[Depends(LIMITER)])
async def open_session():
    session = STORE.create()
    trace("session.open", session.id)
    await PERSIST(session)
    return {"session_id": session.id}


@app.post("/api/chat", response_model=ChatOut, dependencies=[Depends(LIMITER)])
async def chat(body: ChatIn):
    session_id = sanitize(body.session_id)
    session = _require(session_id)
    async with STORE.lock(session_id):
        reply = await ENGINE.take_turn(session, body.message)
    return ChatOut(reply=reply, state=session.state())


@app.get("/api/sessions/{session_id}", response_model=SessionOut, dependencies=[Depends(LIMITER)])
async def read_session(session_id: str):
    session = _require(sanitize(session_id))
    return SessionOut(
        session_id=session.id,
        state=session.state(),
        triage=session.triage,
        timeline=session.timeline,
    )


# ========================
# Push (WebSocket)
# ========================
class WebSocketSubscriber:
    """Envuelve el WebSocket de FastAPI para el EventBus."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def send_json(self, data: Any) -> None:
        await self.websocket.send_json(data)


@app.websocket("/ws")
async def push_channel(websocket: WebSocket):
    session_id = sanitize(websocket.query_params.get("session_id") or "")
    if not session_id or session_id not in STORE:
        await websocket.close(code=1008)
        return
    await websocket.accept()
    sub = WebSocketSubscriber(websocket)
    BUS.subscribe(session_id, sub)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        BUS.unsubscribe(session_id, sub)


# ========================
# Leads (formulario de demo)
# ========================
@app.post("/api/lead", dependencies=[Depends(LIMITER)])
async def lead(body: LeadIn):
    if sanitize_long(body.website, 200):
        return {"success": True}  # honeypot: bot, respondemos ok sin enviar

    payload = {
        "name": sanitize(body.name),
        "email": sanitize(body.email),
        "phone": sanitize_long(body.phone, 200),
        "company": sanitize_long(body.company, 200),
        "industry": sanitize_long(body.industry, 120),
        "message": sanitize_long(body.message, 2000),
        "source": sanitize_long(body.source, 120),
        "utm_source": sanitize_long(body.utm_source, 200),
        "utm_medium": sanitize_long(body.utm_medium, 200),
        "utm_campaign": sanitize_long(body.utm_campaign, 200),
    }

    if len(payload["name"]) < 2:
        return JSONResponse({"success": False, "error": "Nombre es requerido"}, status_code=400)
    if not is_valid_email(payload["email"]):
        return JSONResponse({"success": False, "error": "Email valido es requerido"}, status_code=400)
    if not MAILER.ready:
        return JSONResponse({"success": False, "error": "SMTP no configurado"}, status_code=500)

    try:
        await MAILER.send_lead(payload)
    except (smtplib.SMTPException, OSError, asyncio.TimeoutError) as e:
        log.error("Lead email error: %s", e)
        return JSONResponse({"success": False, "error": "No fue posible enviar"}, status_code=500)
    return {"success": True}


@app.get("/health")
async def health():
    return {"status": "ok"}


# Entrypoint
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
