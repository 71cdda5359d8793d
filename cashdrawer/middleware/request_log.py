from __future__ import annotations

import json
import re
import time
from datetime import datetime, timezone
from typing import Optional

from starlette.concurrency import iterate_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from cashdrawer.core.config import settings
from cashdrawer.core.logging import get_logger
from cashdrawer.utils.audit_trail import AuditTrail

log = get_logger("http")

# (método, ruta) -> tipo de evento de auditoría
_AUDITED = (
    ("POST", re.compile(r"^/shifts/open$"), "shift_opened"),
    ("PUT", re.compile(r"^/shifts/[^/]+/close$"), "shift_closed"),
    ("POST", re.compile(r"^/shifts/[^/]+/movements$"), "movement_recorded"),
)


def _audit_kind(method: str, path: str) -> Optional[str]:
    for m, rx, kind in _AUDITED:
        if m == method and rx.match(path):
            return kind
    return None


class RequestLogMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, audit_file: Optional[str] = None):
        super().__init__(app)
        self.audit = AuditTrail(audit_file) if audit_file else None

    async def dispatch(self, request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        path = request.url.path
        log.info("%s %s -> %s (%.1f ms)", request.method, path, response.status_code, elapsed_ms)

        kind = _audit_kind(request.method, path)
        if self.audit is None or kind is None or response.status_code != 200:
            return response

        # Captura el body y reinyéctalo para no consumir el stream
        body_chunks = [section async for section in response.body_iterator]
        body_bytes = b"".join(body_chunks)
        response.body_iterator = iterate_in_threadpool(iter([body_bytes]))

        try:
            data = json.loads(body_bytes.decode("utf-8"))
        except ValueError:
            log.warning("audit skipped for %s: response is not JSON", path)
            return response

        if data.get("already_closed"):
            # cierre repetido: el evento original ya está en la bitácora
            return response

        try:
            self.audit.record(
                kind,
                data.get("shift_id") or data.get("id"),
                request.headers.get("x-actor-id"),
                ts=datetime.now(timezone.utc).isoformat(),
                path=path,
                data=data,
            )
        except OSError as exc:
            log.error("audit write failed for %s: %r", path, exc)
        return response


def install_request_log(app, audit_file: Optional[str] = None):
    app.add_middleware(RequestLogMiddleware, audit_file=audit_file or settings.audit_file)
