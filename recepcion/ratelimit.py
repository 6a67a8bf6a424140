from __future__ import annotations
import logging, time
from typing import Dict, Tuple

from fastapi import HTTPException, Request

log = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    fwd = request.headers.get("x-forwarded-for", "")
    if fwd.split(",")[0].strip():
        return fwd.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimiter:
    """Ventana fija por IP. Se usa como dependencia: Depends(limiter)."""

    def __init__(self, max_requests: int = 120, window_seconds: int = 900) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        # ip -> (contador, reset_at)
        self._buckets: Dict[str, Tuple[int, float]] = {}
        self._next_prune = 0.0

    def hit(self, ip: str, now: float | None = None) -> bool:
        now = time.time() if now is None else now
        if now >= self._next_prune:
            self.prune(now)
        count, reset_at = self._buckets.get(ip, (0, now + self.window_seconds))
        if now > reset_at:
            count, reset_at = 0, now + self.window_seconds
        count += 1
        self._buckets[ip] = (count, reset_at)
        return count <= self.max_requests

    def prune(self, now: float) -> int:
        """Descarta las ventanas vencidas; se corre a lo sumo una vez por ventana."""
        expired = [ip for ip, (_, reset_at) in self._buckets.items() if now > reset_at]
        for ip in expired:
            del self._buckets[ip]
        self._next_prune = now + self.window_seconds
        return len(expired)

    def reset(self) -> None:
        self._buckets.clear()
        self._next_prune = 0.0

    async def __call__(self, request: Request) -> None:
        ip = client_ip(request)
        if not self.hit(ip):
            log.warning("Rate limit excedido ip=%s path=%s", ip, request.url.path)
            raise HTTPException(status_code=429, detail="Rate limit exceeded")
