# recepcion/debug.py
import json, logging
from pathlib import Path
from .settings import settings

_LOGGER = logging.getLogger("recepcion")


def setup_logging() -> None:
    """Configura consola y (si hay LOG_DIR) un archivo de líneas JSON. Idempotente."""
    if _LOGGER.handlers:
        return
    level = logging.DEBUG if settings.debug else logging.INFO
    _LOGGER.setLevel(level)

    # consola
    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s"))
    _LOGGER.addHandler(sh)

    # archivo (json lines)
    if settings.log_dir:
        logdir = Path(settings.log_dir)
        logdir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logdir / "recepcion.log", encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter("%(message)s"))  # ya mandamos JSON
        _LOGGER.addHandler(fh)


def trace(event: str, session_id: str, **kv) -> None:
    """Evento del flujo: resumen legible en INFO, registro JSON completo en DEBUG."""
    parts = [event, f"s={session_id}"]
    parts += [f"{k}={v}" for k, v in kv.items() if not isinstance(v, (list, dict))]
    _LOGGER.info(" ".join(parts))
    if _LOGGER.isEnabledFor(logging.DEBUG):
        record = {"event": event, "session": session_id, **kv}
        _LOGGER.debug(json.dumps(record, ensure_ascii=False, default=str))
