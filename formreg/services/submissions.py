from __future__ import annotations

import logging
from typing import Mapping, Protocol

from ..domain.errors import ErrorKind, StoreError, SubmissionError

logger = logging.getLogger(__name__)

IDENTITY_FIELD = "email"


class SubmissionStore(Protocol):
    async def append(self, payload: Mapping[str, str]) -> None: ...


class SubmissionRecorder:
    """Passes validated submissions through to the store, unchanged."""

    def __init__(self, store: SubmissionStore) -> None:
        self._store = store

    async def record(self, payload: Mapping[str, str]) -> None:
        if not str(payload.get(IDENTITY_FIELD) or "").strip():
            raise SubmissionError(ErrorKind.MISSING_IDENTITY, "email required")
        try:
            await self._store.append(payload)
        except StoreError as exc:
            logger.exception("submission_store_failed")
            raise SubmissionError(ErrorKind.STORE_FAILURE, "Failed to save registration") from exc
        logger.info("submission_recorded", extra={"extra": f"email={payload[IDENTITY_FIELD]}"})
