from __future__ import annotations

import logging
import threading
import time
import traceback
from typing import Any, Callable, Dict, Optional

import httpx

from ..config import settings

logger = logging.getLogger(__name__)


class DedupRateLimiter:
    """
    Decides whether an error event may be delivered.

    - the same key is delivered at most once per ttl_s window
    - after max_failures consecutive delivery failures, nothing is delivered
      for ttl_s (then one attempt is allowed through again)
    """

    def __init__(self, ttl_s: float, max_failures: int = 3, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_s = float(ttl_s)
        self.max_failures = max(1, int(max_failures))
        self._clock = clock
        self._lock = threading.Lock()
        self._seen: Dict[str, float] = {}
        self._failures = 0
        self._open_until = 0.0

    def allow(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            if now < self._open_until:
                return False

            # drop expired keys so the window map can't grow without bound
            expired = [k for k, t in self._seen.items() if now - t >= self.ttl_s]
            for k in expired:
                del self._seen[k]

            if key in self._seen:
                return False
            self._seen[key] = now
            return True

    def record_success(self) -> None:
        with self._lock:
            self._failures = 0

    def record_failure(self) -> None:
        with self._lock:
            self._failures += 1
            if self._failures >= self.max_failures:
                self._open_until = self._clock() + self.ttl_s
                self._failures = 0

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self._clock() < self._open_until


class ErrorReporter:
    """
    Logs errors and forwards them, best-effort, to an optional webhook.
    Delivery problems are logged and swallowed; report() never raises.
    """

    def __init__(
        self,
        webhook_url: str = "",
        limiter: Optional[DedupRateLimiter] = None,
        *,
        timeout_s: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.webhook_url = webhook_url
        self.limiter = limiter or DedupRateLimiter(ttl_s=60.0)
        self.timeout_s = timeout_s
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def report(
        self,
        error: BaseException | str,
        source: str,
        *,
        route: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        message = str(error)
        logger.error("[%s] %s", source, message)

        if not self.enabled:
            return False

        key = f"{source}:{type(error).__name__}:{message}"
        if not self.limiter.allow(key):
            logger.debug("error report suppressed: %s", key)
            return False

        payload: Dict[str, Any] = {
            "message": message,
            "source": source,
            "route": route,
            "metadata": metadata or {},
        }
        if isinstance(error, BaseException):
            payload["stack"] = "".join(traceback.format_exception(type(error), error, error.__traceback__))

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                r = await client.post(self.webhook_url, json=payload)
                r.raise_for_status()
        # InvalidURL is not an HTTPError; TypeError/ValueError come from unserializable metadata
        except (httpx.HTTPError, httpx.InvalidURL, TypeError, ValueError) as e:
            self.limiter.record_failure()
            logger.warning("error webhook delivery failed: %s", e)
            return False

        self.limiter.record_success()
        return True


def build_reporter() -> ErrorReporter:
    return ErrorReporter(
        webhook_url=settings.error_webhook_url,
        limiter=DedupRateLimiter(ttl_s=settings.error_dedup_ttl_s, max_failures=settings.error_max_failures),
    )
