"""
Pydantic schemas for leads, stages and the review/extract flow.

Text fields use "" for absent values; None coming from the store or the LLM
is coerced to "" on the way in.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


LeadStatus = Literal["active", "follow_up", "do_not_contact"]

TEXT_FIELDS = (
    "full_name",
    "first_name",
    "last_name",
    "company",
    "title",
    "email",
    "phone",
    "website",
    "address",
)


class LeadDraft(BaseModel):
    """A contact pending human review; not yet persisted."""

    full_name: str = ""
    first_name: str = ""
    last_name: str = ""
    company: str = ""
    title: str = ""
    email: str = ""
    phone: str = ""
    website: str = ""
    address: str = ""
    notes: str = ""
    stage_id: str | None = None
    card_image_path: str = ""

    @field_validator(*TEXT_FIELDS, "notes", "card_image_path", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value


class LeadRecord(LeadDraft):
    """A persisted lead."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    raw_ocr_text: str | None = None
    status: LeadStatus = "active"
    created_at: datetime
    updated_at: datetime

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value):
        return value or "active"


class PipelineStage(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    sort_order: int


class ValidationResult(BaseModel):
    lead: LeadDraft
    uncertain_fields: list[str] = Field(default_factory=list)


# ── Request / response bodies ───────────────────────────────────────────────

class CardUploadResponse(BaseModel):
    card_image_path: str


class ExtractRequest(BaseModel):
    card_image_path: str = Field(..., min_length=1)


class ExtractResponse(BaseModel):
    extracted: LeadDraft
    uncertain_fields: list[str] = Field(default_factory=list)
    raw_ocr_text: str = ""
    error: str | None = None


class SaveLeadRequest(BaseModel):
    lead: LeadDraft
    raw_ocr_text: str = ""


class SaveLeadResponse(BaseModel):
    lead: LeadRecord
    uncertain_fields: list[str] = Field(default_factory=list)


class LeadUpdateRequest(BaseModel):
    stage_id: str | None = Field(None, examples=["prospecting", "met"])
    status: LeadStatus | None = Field(None, examples=["active", "follow_up", "do_not_contact"])
    notes: str | None = None


class LeadListResponse(BaseModel):
    leads: list[LeadRecord]
    total: int


class SheetSyncRequest(BaseModel):
    stage_id: str | None = None


class SheetSyncResponse(BaseModel):
    success: bool = True
    rows_written: int
