"""
/stages and /leads — the lead pipeline.

Saving runs the draft through normalization and a duplicate check; a
duplicate is answered with 409 and the existing lead, and nothing is stored.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from cardleads.db.repository import LeadStore
from cardleads.deps import get_lead_store
from cardleads.schemas.lead import (
    LeadListResponse,
    LeadRecord,
    LeadStatus,
    LeadUpdateRequest,
    PipelineStage,
    SaveLeadRequest,
    SaveLeadResponse,
)
from cardleads.services import leads as lead_service
from cardleads.services.errors import DuplicateLeadError, InvalidStageError, LeadNotFoundError

router = APIRouter(tags=["leads"])


# ============================================================
# Helpers
# ============================================================

def _validate_uuid(lead_id: str) -> None:
    try:
        UUID(lead_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid lead ID format.")


# ============================================================
# STAGES  GET /stages
# ============================================================

@router.get("/stages", response_model=list[PipelineStage])
async def list_stages_api(store: LeadStore = Depends(get_lead_store)):
    """Pipeline stages in display order."""
    return await store.list_stages()


# ============================================================
# LIST LEADS  GET /leads
# ============================================================

@router.get("/leads", response_model=LeadListResponse)
async def list_leads_api(
    stage_id: Optional[str] = Query(None, description="Filter by stage"),
    status: Optional[LeadStatus] = Query(None, description="Filter: active | follow_up | do_not_contact"),
    search: Optional[str] = Query(None, description="Search name, company, email, phone or title"),
    store: LeadStore = Depends(get_lead_store),
):
    """Deduplicated leads, newest first."""
    leads = await lead_service.list_leads(store, stage_id=stage_id, status=status, search=search)
    return LeadListResponse(leads=leads, total=len(leads))


# ============================================================
# GET SINGLE LEAD  GET /leads/{lead_id}
# ============================================================

@router.get("/leads/{lead_id}", response_model=LeadRecord)
async def get_lead_api(lead_id: str, store: LeadStore = Depends(get_lead_store)):
    _validate_uuid(lead_id)
    try:
        return await lead_service.get_lead(store, lead_id)
    except LeadNotFoundError:
        raise HTTPException(status_code=404, detail="Lead not found.")


# ============================================================
# SAVE LEAD  POST /leads
# ============================================================

@router.post("/leads", response_model=SaveLeadResponse, status_code=201)
async def save_lead_api(data: SaveLeadRequest, store: LeadStore = Depends(get_lead_store)):
    """
    Save a reviewed lead.

    - 400 when no stage (or an unknown stage) is picked.
    - 409 when the same person is already in the pipeline; the existing
      lead is returned in the detail.
    """
    try:
        return await lead_service.save_lead(store, data.lead, raw_ocr_text=data.raw_ocr_text)
    except InvalidStageError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DuplicateLeadError as e:
        raise HTTPException(
            status_code=409,
            detail={
                "message": str(e),
                "dedupe_key": e.dedupe_key,
                "existing": e.existing.model_dump(mode="json"),
            },
        )


# ============================================================
# UPDATE LEAD  PATCH /leads/{lead_id}
# ============================================================

@router.patch("/leads/{lead_id}", response_model=LeadRecord)
async def update_lead_api(
    lead_id: str, data: LeadUpdateRequest, store: LeadStore = Depends(get_lead_store)
):
    """Change stage, status or notes."""
    _validate_uuid(lead_id)

    if data.stage_id is None and data.status is None and data.notes is None:
        raise HTTPException(
            status_code=400,
            detail="Provide at least one field: stage_id, status, or notes.",
        )

    try:
        return await lead_service.update_lead(
            store,
            lead_id,
            stage_id=data.stage_id,
            status=data.status,
            notes=data.notes,
        )
    except InvalidStageError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LeadNotFoundError:
        raise HTTPException(status_code=404, detail="Lead not found.")
