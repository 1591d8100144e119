"""
POST /cards   — upload a business-card photo.
POST /extract — OCR + field extraction for an uploaded card.
"""

from fastapi import APIRouter, File, HTTPException, UploadFile

from cardleads.config import settings
from cardleads.schemas.lead import CardUploadResponse, ExtractRequest, ExtractResponse
from cardleads.services.card_images import save_card_image
from cardleads.services.extraction import extract_lead_draft

router = APIRouter(tags=["cards"])


@router.post("/cards", response_model=CardUploadResponse, status_code=201)
async def upload_card(file: UploadFile = File(...)):
    """Store a card image and return the path to pass to /extract."""
    if file.content_type and not file.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Upload must be an image.")

    too_large = HTTPException(
        status_code=413,
        detail=f"Image too large. Maximum size is {settings.max_upload_bytes} bytes.",
    )
    if file.size is not None and file.size > settings.max_upload_bytes:
        raise too_large

    # Never buffer more than one byte past the limit.
    data = await file.read(settings.max_upload_bytes + 1)
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty.")
    if len(data) > settings.max_upload_bytes:
        raise too_large

    path = await save_card_image(data, file.filename)
    return CardUploadResponse(card_image_path=path)


@router.post("/extract", response_model=ExtractResponse)
async def extract(data: ExtractRequest):
    """
    Extract a draft lead from a stored card.

    Always answers 200: when OCR or parsing fails the draft comes back empty
    with the core fields flagged and `error` set, so it can be filled in by hand.
    """
    return await extract_lead_draft(data.card_image_path)
