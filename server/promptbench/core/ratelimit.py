from __future__ import annotations
import time
from typing import Dict, Optional, Tuple
from fastapi import HTTPException, Request


class FixedWindowLimiter:
    """In-process fixed-window counter keyed by (client ip, route path).

    Expired windows are evicted on every hit, so the table only holds clients
    seen within the last window. Not shared across worker processes.
    """

    def __init__(self) -> None:
        # key -> (window_start_epoch, count)
        self._windows: Dict[Tuple[str, str], Tuple[float, int]] = {}

    def __len__(self) -> int:
        return len(self._windows)

    def _evict(self, now: float, window_seconds: int) -> None:
        expired = [k for k, (start, _) in self._windows.items() if now - start >= window_seconds]
        for key in expired:
            del self._windows[key]

    def hit(self, key: Tuple[str, str], limit: int, window_seconds: int, now: Optional[float] = None) -> Optional[int]:
        """Count one request; return seconds to wait when over the limit, else None."""
        now = time.time() if now is None else now
        self._evict(now, window_seconds)
        start, count = self._windows.get(key, (now, 0))
        count += 1
        self._windows[key] = (start, count)
        if count > limit:
            return max(1, int(window_seconds - (now - start)))
        return None

    def clear(self) -> None:
        self._windows.clear()


_limiter = FixedWindowLimiter()


def get_client_ip(request: Request) -> str:
    # Proxies put the original client first
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def enforce_rate_limit(request: Request, limit: int = 30, window_seconds: int = 60) -> None:
    retry_after = _limiter.hit((get_client_ip(request), request.url.path), limit, window_seconds)
    if retry_after is not None:
        raise HTTPException(status_code=429, detail="Rate limit exceeded", headers={"Retry-After": str(retry_after)})


def reset() -> None:
    _limiter.clear()
