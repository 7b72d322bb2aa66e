from __future__ import annotations

import asyncio
import base64
import json
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import google.auth
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..config import Settings
from ..domain.errors import StoreError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

# Column order of the registrations sheet, after the timestamp column.
ROW_FIELDS = (
    "email",
    "fullName",
    "secondaryEmail",
    "phone",
    "organization",
    "city",
    "startupName",
    "website",
    "industry",
    "socialImpact",
    "iitkgpAffiliation",
    "aiMlCore",
    "tis",
    "problem",
    "solution",
    "market",
    "traction",
    "revenue",
    "extra",
)


def build_row(payload: Mapping[str, str], *, now: Optional[datetime] = None) -> list[str]:
    """Flatten a submission into a sheet row: timestamp, known fields, raw JSON."""
    ts = (now or datetime.now(timezone.utc)).isoformat()
    row = [ts]
    row.extend(payload.get(f) or "" for f in ROW_FIELDS)
    row.append(json.dumps(dict(payload), ensure_ascii=False))
    return row


class SheetsSubmissionStore:
    """Append-only submission store backed by a Google Sheets tab."""

    def __init__(self, settings: Settings, service: Any = None) -> None:
        self._spreadsheet_id = settings.SPREADSHEET_ID
        self._sheet_name = settings.SHEET_NAME
        self._credentials_b64 = settings.GOOGLE_CREDENTIALS_JSON_BASE64
        self._service = service
        self._service_lock = threading.Lock()
        if not self._spreadsheet_id:
            logger.warning("SPREADSHEET_ID not configured; registrations cannot be saved.")

    @property
    def enabled(self) -> bool:
        return bool(self._spreadsheet_id)

    def _credentials(self):
        if self._credentials_b64:
            info = json.loads(base64.b64decode(self._credentials_b64).decode("utf-8"))
            return service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
        # GOOGLE_APPLICATION_CREDENTIALS or the runtime's default identity
        creds, _project = google.auth.default(scopes=SCOPES)
        return creds

    def _get_service(self):
        with self._service_lock:
            if self._service is None:
                self._service = build("sheets", "v4", credentials=self._credentials(), cache_discovery=False)
            return self._service

    def _append_blocking(self, row: list[str]) -> None:
        try:
            service = self._get_service()
            service.spreadsheets().values().append(
                spreadsheetId=self._spreadsheet_id,
                range=f"{self._sheet_name}!A:Z",
                valueInputOption="USER_ENTERED",
                body={"values": [row]},
            ).execute()
        except HttpError as exc:
            raise StoreError(f"Sheets API error: {exc}") from exc
        except (GoogleAuthError, ValueError, OSError) as exc:
            raise StoreError(f"Sheets client unavailable: {exc}") from exc

    async def append(self, payload: Mapping[str, str]) -> None:
        if not self._spreadsheet_id:
            raise StoreError("SPREADSHEET_ID not configured")
        row = build_row(payload)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._append_blocking, row)
