"""FastAPI dependencies."""

from functools import lru_cache

from fastapi import Header, HTTPException

from cardleads.config import settings
from cardleads.db.repository import LeadStore


@lru_cache
def _memory_store() -> LeadStore:
    from cardleads.db.memory import InMemoryLeadStore

    return InMemoryLeadStore()


@lru_cache
def _sql_store() -> LeadStore:
    from cardleads.db.repository import SqlLeadStore
    from cardleads.db.session import async_session

    return SqlLeadStore(async_session)


def get_lead_store() -> LeadStore:
    """The configured lead store; one instance per process."""
    if settings.storage_backend == "memory":
        return _memory_store()
    return _sql_store()


def require_sync_token(x_sync_token: str | None = Header(None)) -> None:
    """Guard export endpoints when SHEETS_SYNC_TOKEN is configured."""
    if settings.sheets_sync_token and x_sync_token != settings.sheets_sync_token:
        raise HTTPException(status_code=401, detail="Invalid sync token.")


def get_sheets_client():
    """gspread client for the configured service account; 500 when Sheets sync isn't set up."""
    from cardleads.services.sheets import SheetsSyncError, build_sheets_client

    if not (
        settings.google_sheets_spreadsheet_id
        and settings.google_sheets_tab_name
        and settings.google_sheets_credentials_json
    ):
        raise HTTPException(status_code=500, detail="Missing Google Sheets settings.")
    try:
        return build_sheets_client(settings.google_sheets_credentials_json)
    except SheetsSyncError as e:
        raise HTTPException(status_code=500, detail=str(e))
