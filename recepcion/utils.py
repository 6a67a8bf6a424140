# recepcion/utils.py
import re, time
from datetime import datetime, timezone
from typing import Iterable

_email_re = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def now_ms() -> int:
    return int(time.time() * 1000)


def iso_from_ms(ts: int) -> str:
    return datetime.fromtimestamp(ts / 1000, tz=timezone.utc).isoformat()


def contains_any(haystack: str, tokens: Iterable[str]) -> bool:
    h = (haystack or "").lower()
    return any(tok.lower() in h for tok in tokens if tok)


def is_valid_email(email: str) -> bool:
    return bool(_email_re.match(email or ""))
