import re

_ANGLE_RE = re.compile(r"[<>]")


def sanitize(value, limit: int = 200) -> str:
    """Entrada de usuario: sin '<' ni '>', recortada y acotada."""
    t = _ANGLE_RE.sub("", str(value or "")).strip()
    return t[:limit]


def sanitize_long(value, limit: int = 2000) -> str:
    return sanitize(value, limit)


def sanitize_for_model(value, limit: int = 400) -> str:
    # lo que viaja al modelo: además colapsa espacios
    t = _ANGLE_RE.sub("", str(value or ""))
    t = re.sub(r"\s+", " ", t).strip()
    return t[:limit]
