"""
Google Sheets sync.

Pushes the deduplicated pipeline into one tab of a spreadsheet shared with a
service account: the tab is created if missing, cleared, then rewritten with
the export header and rows. gspread is blocking, so the push runs in a worker
thread.
"""

import asyncio
import json
import logging
from collections.abc import Sequence

import gspread
from google.auth.exceptions import GoogleAuthError
from gspread.exceptions import GSpreadException, WorksheetNotFound
from gspread.utils import ValueInputOption

from cardleads.services.errors import LeadServiceError
from cardleads.services.export import SHEET_HEADER

logger = logging.getLogger(__name__)

SHEETS_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive.file",
]
CLEAR_RANGE = "A:Z"


class SheetsSyncError(LeadServiceError):
    def __init__(self, message: str, service_account: str | None = None):
        self.service_account = service_account
        super().__init__(message)


def service_account_email(credentials_json: str) -> str | None:
    try:
        return json.loads(credentials_json).get("client_email")
    except (ValueError, AttributeError):
        return None


def build_sheets_client(credentials_json: str) -> gspread.Client:
    """Authorize a gspread client from a service-account key given as JSON text."""
    try:
        info = json.loads(credentials_json)
    except ValueError as e:
        raise SheetsSyncError(
            "Invalid GOOGLE_SHEETS_CREDENTIALS_JSON (must be valid JSON). "
            "If you're using .env, wrap the JSON in single quotes."
        ) from e
    try:
        return gspread.service_account_from_dict(info, scopes=SHEETS_SCOPES)
    except (ValueError, KeyError) as e:
        raise SheetsSyncError(f"Invalid service-account credentials: {e}") from e


def _hint(message: str, tab_name: str, service_account: str | None) -> str | None:
    if "The caller does not have permission" in message or "PERMISSION_DENIED" in message:
        return f"Share the spreadsheet with this service account email: {service_account}"
    if "Unable to parse range" in message:
        return f'Confirm the tab name matches exactly: GOOGLE_SHEETS_TAB_NAME="{tab_name}"'
    if "insufficient authentication scopes" in message:
        return "OAuth scopes are insufficient. Ensure Sheets API is enabled and scopes include spreadsheets."
    return None


def write_sheet(
    client: gspread.Client,
    spreadsheet_id: str,
    tab_name: str,
    rows: Sequence[Sequence[str]],
) -> bool:
    """Replace the tab's contents with header + rows. Returns True if the tab was created."""
    spreadsheet = client.open_by_key(spreadsheet_id)
    created = False
    try:
        worksheet = spreadsheet.worksheet(tab_name)
    except WorksheetNotFound:
        worksheet = spreadsheet.add_worksheet(
            title=tab_name, rows=len(rows) + 1, cols=len(SHEET_HEADER)
        )
        created = True

    worksheet.batch_clear([CLEAR_RANGE])
    worksheet.update(
        values=[SHEET_HEADER, *[list(r) for r in rows]],
        range_name="A1",
        value_input_option=ValueInputOption.raw,
    )
    return created


async def push_rows_to_sheet(
    client: gspread.Client,
    spreadsheet_id: str,
    tab_name: str,
    rows: Sequence[Sequence[str]],
    service_account: str | None = None,
) -> int:
    """Write the rows to the sheet and return how many data rows were written."""
    try:
        created = await asyncio.to_thread(write_sheet, client, spreadsheet_id, tab_name, rows)
    except (GSpreadException, GoogleAuthError) as e:
        message = str(e) or "Google Sheets sync failed"
        hint = _hint(message, tab_name, service_account)
        logger.warning("Sheets sync to %s failed: %s", spreadsheet_id, message)
        raise SheetsSyncError(f"{message}. {hint}" if hint else message, service_account) from e

    if created:
        logger.info("Created sheet tab %r in %s", tab_name, spreadsheet_id)
    logger.info("Synced %d leads to sheet tab %r", len(rows), tab_name)
    return len(rows)
