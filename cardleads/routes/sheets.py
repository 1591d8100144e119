"""
POST /sheets/sync — push the deduplicated pipeline to Google Sheets.
"""

from fastapi import APIRouter, Depends, HTTPException

from cardleads.config import settings
from cardleads.db.repository import LeadStore
from cardleads.deps import get_lead_store, get_sheets_client, require_sync_token
from cardleads.schemas.lead import SheetSyncRequest, SheetSyncResponse
from cardleads.services.export import export_rows
from cardleads.services.sheets import SheetsSyncError, push_rows_to_sheet, service_account_email

router = APIRouter(
    prefix="/sheets",
    tags=["sheets"],
    dependencies=[Depends(require_sync_token)],
)


@router.post("/sync", response_model=SheetSyncResponse)
async def sync_sheet(
    data: SheetSyncRequest | None = None,
    store: LeadStore = Depends(get_lead_store),
    client=Depends(get_sheets_client),
):
    """
    Replace the configured tab with the export header and the deduplicated
    leads (newest first), optionally limited to one stage.
    """
    rows = await export_rows(store, data.stage_id if data else None)
    try:
        written = await push_rows_to_sheet(
            client,
            settings.google_sheets_spreadsheet_id,
            settings.google_sheets_tab_name,
            rows,
            service_account=service_account_email(settings.google_sheets_credentials_json),
        )
    except SheetsSyncError as e:
        raise HTTPException(
            status_code=500,
            detail={"message": str(e), "service_account": e.service_account},
        )
    return SheetSyncResponse(rows_written=written)
