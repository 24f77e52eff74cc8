"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

Emits one access record per request on the "relayhttp.access" logger:

    TEXT FORMAT (default):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ [18/Oct/2026:10:55:36 +0000] "GET /amelia/" 200 OK 14 0.41ms       │
    │ ─────────────────────────── ───────────── ────── ── ──────        │
    │ Timestamp                   Method/Target Status Len Duration     │
    └─────────────────────────────────────────────────────────────────────┘

    JSON FORMAT (for log aggregators):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"request_id": "a1b2c3d4", "method": "GET", "target": "/amelia/",   │
    │  "status_code": 200, "content_length": 14, "duration_ms": 0.41,    │
    │  "timestamp": "18/Oct/2026:10:55:36 +0000"}                        │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHAT GETS LOGGED
=============================================================================

Method and target are captured BEFORE the inner handler runs, so with

    app.use(LoggingMiddleware())
    app.use(RemoveTrailingSlash())

a request for "/amelia/" is logged as "/amelia/" even though the route that
matched was "/amelia". The status is read AFTER the inner handler returns,
so 404s from the routing step show up too.

=============================================================================
"""

from dataclasses import asdict, dataclass
from typing import Any
import json
import logging
import time
import uuid

from .base import Middleware, NextHandler


# Configure separately from the server logs, e.g.
#   logging.getLogger("relayhttp.access").addHandler(file_handler)
logger = logging.getLogger("relayhttp.access")


@dataclass
class RequestLog:
    """One access record."""

    request_id: str
    method: str
    target: str
    status_code: int
    status: str
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        return (
            f'[{self.timestamp}] "{self.method} {self.target}" {self.status} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Register it FIRST so it sees every request, including the ones that
    end up as 404s or fail in a handler:

        app.use(LoggingMiddleware(log_format="json"))

    Args:
        log_format: "text" or "json".
        log_level: Level for successful access records. Failed requests
            are always logged at ERROR.
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        if log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {log_format!r}")
        self.log_format = log_format
        self.log_level = log_level

    def apply(self, handler: NextHandler) -> NextHandler:
        def logged(ctx: Any) -> Any:
            request_id = uuid.uuid4().hex[:8]
            method = str(ctx.request.method)
            target = ctx.request.target
            start_time = time.perf_counter()

            try:
                result = handler(ctx)
            except Exception as e:
                duration_ms = (time.perf_counter() - start_time) * 1000
                logger.error(
                    f"Request failed: {method} {target} "
                    f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
                )
                raise

            duration_ms = (time.perf_counter() - start_time) * 1000
            status = ctx.response.status
            entry = RequestLog(
                request_id=request_id,
                method=method,
                target=target,
                status_code=status.value,
                status=str(status),
                content_length=len(ctx.response.body.encode("utf-8")),
                duration_ms=duration_ms,
                timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
            )

            if self.log_format == "json":
                logger.log(self.log_level, json.dumps(entry.to_dict()))
            else:
                logger.log(self.log_level, entry.to_text())

            return result

        return logged
