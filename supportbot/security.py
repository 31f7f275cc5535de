"""
Request perimeter: client IP detection, per-IP rate limiting and body size limits.
"""

import logging
import threading
import time
from collections import deque
from typing import Deque, Dict

from fastapi import Request
from fastapi.responses import JSONResponse

from . import config

logger = logging.getLogger(__name__)


def get_client_ip(request: Request, trust_proxy: bool = None) -> str:
    """Extract the client IP from a request.

    Proxy headers are only honoured when `trust_proxy` is on (config.TRUST_PROXY
    by default); otherwise any client could pick its own rate limit key.
    """
    if trust_proxy is None:
        trust_proxy = config.TRUST_PROXY

    if trust_proxy:
        forwarded_for = request.headers.get('X-Forwarded-For')
        if forwarded_for:
            # X-Forwarded-For can contain multiple IPs, use the first one
            return forwarded_for.split(',')[0].strip()

        real_ip = request.headers.get('X-Real-IP')
        if real_ip:
            return real_ip.strip()

    return str(request.client.host) if request.client else "unknown"


class RateLimiter:
    """Sliding-window request counter keyed by client IP."""

    def __init__(self, max_requests: int = None, window_seconds: int = None):
        self.max_requests = config.RATE_LIMIT_MAX_REQUESTS if max_requests is None else max_requests
        self.window_seconds = config.RATE_LIMIT_WINDOW_SECONDS if window_seconds is None else window_seconds
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = None

    def __len__(self) -> int:
        return len(self._hits)

    def allow(self, key: str, now: float = None) -> bool:
        """Record a hit for `key`; False once the window already holds max_requests hits."""
        now = time.monotonic() if now is None else now
        cutoff = now - self.window_seconds
        with self._lock:
            # Drop idle clients at most once per window
            if self._last_sweep is None or now - self._last_sweep >= self.window_seconds:
                self._sweep(cutoff)
                self._last_sweep = now

            hits = self._hits.setdefault(key, deque())
            self._prune(hits, cutoff)
            if len(hits) >= self.max_requests:
                return False
            hits.append(now)
            return True

    @staticmethod
    def _prune(hits: Deque[float], cutoff: float) -> None:
        while hits and hits[0] <= cutoff:
            hits.popleft()

    def _sweep(self, cutoff: float) -> None:
        for key in list(self._hits):
            hits = self._hits[key]
            self._prune(hits, cutoff)
            if not hits:
                del self._hits[key]


def install_perimeter(app, limiter: RateLimiter, max_body_bytes: int = config.MAX_BODY_BYTES, trust_proxy: bool = None) -> None:
    """Register the body size and rate limit middleware on a FastAPI app."""

    @app.middleware("http")
    async def perimeter(request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > max_body_bytes:
            return JSONResponse(status_code=413, content={"error": "Request body too large"})

        client_ip = get_client_ip(request, trust_proxy=trust_proxy)
        if not limiter.allow(client_ip):
            logger.warning(f"[SECURITY] Rate limit exceeded for {client_ip} on {request.url.path}")
            return JSONResponse(status_code=429, content={"error": "Too many requests, please try again later."})

        return await call_next(request)
