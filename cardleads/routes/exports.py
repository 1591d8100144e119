"""
/exports — spreadsheet downloads of the deduplicated pipeline.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from cardleads.db.repository import LeadStore
from cardleads.deps import get_lead_store, require_sync_token
from cardleads.services.export import export_rows, rows_to_csv, rows_to_xlsx

router = APIRouter(
    prefix="/exports",
    tags=["exports"],
    dependencies=[Depends(require_sync_token)],
)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/leads.csv")
async def export_csv(
    stage_id: Optional[str] = Query(None, description="Only leads in this stage"),
    store: LeadStore = Depends(get_lead_store),
):
    rows = await export_rows(store, stage_id)
    return Response(
        content=rows_to_csv(rows),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": "attachment; filename=leads.csv"},
    )


@router.get("/leads.xlsx")
async def export_xlsx(
    stage_id: Optional[str] = Query(None, description="Only leads in this stage"),
    store: LeadStore = Depends(get_lead_store),
):
    rows = await export_rows(store, stage_id)
    return Response(
        content=rows_to_xlsx(rows),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=leads.xlsx"},
    )
