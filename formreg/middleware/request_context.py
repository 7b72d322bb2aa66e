from __future__ import annotations
import logging
import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from ..observability.logging import request_id_for

log = logging.getLogger("formreg.request")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id, echoes it back and writes one access line."""

    def __init__(self, app, header: str = "X-Request-ID") -> None:
        super().__init__(app)
        self.header = header

    async def dispatch(self, request: Request, call_next):
        rid = request_id_for(request, self.header)
        request.state.request_id = rid
        started = time.perf_counter()
        route = f"{request.method} {request.url.path}"

        try:
            response = await call_next(request)
        except Exception:
            ms = int((time.perf_counter() - started) * 1000)
            log.exception("unhandled_error", extra={"request_id": rid, "extra": f"route={route} ms={ms}"})
            raise

        ms = int((time.perf_counter() - started) * 1000)
        response.headers[self.header] = rid
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        log.log(level, "request", extra={"request_id": rid, "extra": f"route={route} status={response.status_code} ms={ms}"})
        return response
