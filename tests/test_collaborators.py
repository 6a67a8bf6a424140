import json
import logging
from unittest.mock import MagicMock

import requests

from recepcion.debug import trace
from recepcion.mailer import AUTO_REPLY_SUBJECT, INTERNAL_SUBJECT, LeadMailer, build_lead_text
from recepcion.persistence import SupabaseSync, session_row
from recepcion.ratelimit import RateLimiter


# ========================
# Supabase
# ========================
def http_ok(status=201):
    http = requests.Session()
    http.post = MagicMock(return_value=MagicMock(status_code=status, text=""))
    return http


def test_session_row(store):
    session = store.create()
    session.captured["name"] = "Ana"
    row = session_row(session)
    assert row["session_id"] == session.id
    assert row["step"] == "greeting"
    assert row["captured"] == {"name": "Ana"}
    assert row["triage"]["priority"] == "Baja"
    assert row["timeline"][0]["type"] == "session"
    assert row["updated_at"].endswith("+00:00")


async def test_upsert_por_session_id(store):
    http = http_ok()
    sync = SupabaseSync("https://x.supabase.co/", "anon", http=http)

    assert await sync(store.create()) is True

    args, kwargs = http.post.call_args
    assert args[0] == "https://x.supabase.co/rest/v1/sessions"
    assert kwargs["params"] == {"on_conflict": "session_id"}
    assert "merge-duplicates" in http.headers["Prefer"]
    assert http.headers["apikey"] == "anon"


async def test_upsert_deshabilitado(store):
    http = http_ok()
    sync = SupabaseSync("", "", http=http)
    assert await sync(store.create()) is False
    http.post.assert_not_called()


async def test_upsert_errores_no_se_propagan(store):
    http = requests.Session()
    http.post = MagicMock(side_effect=requests.ConnectionError("caído"))
    assert await SupabaseSync("https://x.supabase.co", "anon", http=http)(store.create()) is False

    assert await SupabaseSync("https://x.supabase.co", "anon", http=http_ok(500))(store.create()) is False


# ========================
# Mail
# ========================
def test_build_lead_text():
    text = build_lead_text({"name": "Ana", "email": "ana@x.cl"})
    lines = text.splitlines()
    assert lines[0] == "Nombre: Ana"
    assert lines[1] == "Email: ana@x.cl"
    assert lines[2] == "Telefono: —"
    assert len(lines) == 10


async def test_send_lead_arma_dos_mails(monkeypatch):
    mailer = LeadMailer("demo@gmail.com", "pass", inbox="ventas@x.cl")
    sent = []
    monkeypatch.setattr(mailer, "_send_sync", sent.append)

    await mailer.send_lead({"name": "Ana", "email": "ana@x.cl"})

    by_subject = {m["Subject"]: m for m in sent}
    internal, auto = by_subject[INTERNAL_SUBJECT], by_subject[AUTO_REPLY_SUBJECT]
    assert internal["To"] == "ventas@x.cl"
    assert internal["Reply-To"] == "ana@x.cl"
    assert auto["To"] == "ana@x.cl"
    assert auto["From"] == "AutonomIA Suite <demo@gmail.com>"


def test_mailer_ready():
    assert not LeadMailer("", "").ready
    assert LeadMailer("a@gmail.com", "x").inbox == "a@gmail.com"


# ========================
# Rate limit
# ========================
def test_rate_limiter_ventana_fija():
    limiter = RateLimiter(max_requests=2, window_seconds=60)
    assert limiter.hit("1.1.1.1", now=0)
    assert limiter.hit("1.1.1.1", now=1)
    assert not limiter.hit("1.1.1.1", now=2)
    assert limiter.hit("2.2.2.2", now=2)
    # nueva ventana
    assert limiter.hit("1.1.1.1", now=61)


def test_rate_limiter_descarta_ventanas_vencidas():
    limiter = RateLimiter(max_requests=5, window_seconds=60)
    for i in range(100):
        limiter.hit(f"10.0.0.{i}", now=0)
    limiter.hit("10.0.1.1", now=30)
    assert len(limiter._buckets) == 101

    limiter.hit("10.0.1.2", now=61)

    assert set(limiter._buckets) == {"10.0.1.1", "10.0.1.2"}


# ========================
# Trace
# ========================
def test_trace_resumen_y_detalle_json(caplog):
    caplog.set_level(logging.DEBUG, logger="recepcion")

    trace("captured", "s-1", fields=["city", "name"], step="reason")

    messages = [r.getMessage() for r in caplog.records if r.name == "recepcion"]
    assert messages[0] == "captured s=s-1 step=reason"
    assert json.loads(messages[1]) == {
        "event": "captured", "session": "s-1", "fields": ["city", "name"], "step": "reason",
    }
