from __future__ import annotations
import logging
import sys
import uuid
from typing import Optional
from pythonjsonlogger.json import JsonFormatter
from starlette.requests import Request
from ..config import Settings, get_settings

# Fields every line carries; request-scoped ones are empty outside a request.
LOG_FORMAT = "%(levelname)s %(name)s %(message)s %(asctime)s %(request_id)s %(extra)s"


class _RequestFieldsFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        for attr in ("request_id", "extra"):
            if not hasattr(record, attr):
                setattr(record, attr, "")
        return True


def setup_logging(settings: Optional[Settings] = None) -> None:
    S = settings or get_settings()
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter(LOG_FORMAT))
    handler.addFilter(_RequestFieldsFilter())
    root.addHandler(handler)
    root.setLevel(S.LOG_LEVEL)

    logging.getLogger("uvicorn.access").setLevel("WARNING")
    logging.getLogger("googleapiclient.discovery_cache").setLevel("ERROR")


def request_id_for(req: Request, header: str) -> str:
    """Reuse the caller's request id when it sent one."""
    return req.headers.get(header) or uuid.uuid4().hex
