"""
Lead pipeline operations: save with duplicate check, deduped listing, edits.

The duplicate check and the insert are two separate store calls with no
transaction between them. Two concurrent saves of the same card can both pass
the check; this best-effort behaviour is accepted.
"""

import logging

from cardleads.db.repository import LeadStore
from cardleads.schemas.lead import LeadDraft, LeadRecord, LeadStatus, SaveLeadResponse
from cardleads.services.dedupe import (
    DedupeKey,
    EmailKey,
    NameCompanyKey,
    PhoneNameKey,
    build_dedupe_key,
    dedupe_lead_rows,
)
from cardleads.services.errors import DuplicateLeadError, InvalidStageError, LeadNotFoundError
from cardleads.services.validation import normalize_and_validate_draft

logger = logging.getLogger(__name__)

# Candidate windows for the narrowed lookups. A true duplicate beyond the
# window is missed.
PHONE_CANDIDATE_LIMIT = 25
COMPANY_CANDIDATE_LIMIT = 50

SEARCHABLE_FIELDS = ("full_name", "company", "email", "phone", "title")


# ======================================================
# DUPLICATE LOOKUP
# ======================================================

def _first_match(candidates: list[LeadRecord], key: DedupeKey) -> LeadRecord | None:
    for candidate in candidates:
        if build_dedupe_key(candidate) == key:
            return candidate
    return None


async def find_duplicate_lead(store: LeadStore, key: DedupeKey) -> LeadRecord | None:
    """
    Look up an existing lead with the same key.

    Email keys are an exact lookup. The other shapes narrow by a fragment
    (last four phone digits, or first company word) and then confirm each
    candidate by re-deriving its key.
    """
    if isinstance(key, EmailKey):
        return await store.find_lead_by_email(key.email)

    if isinstance(key, PhoneNameKey):
        last4 = key.phone_digits[-4:]
        candidates = await store.search_leads_by_phone(last4, PHONE_CANDIDATE_LIMIT)
        return _first_match(candidates, key)

    if isinstance(key, NameCompanyKey):
        token = key.company.split(" ")[0]
        candidates = await store.search_leads_by_company(token, COMPANY_CANDIDATE_LIMIT)
        return _first_match(candidates, key)

    return None


# ======================================================
# SAVE
# ======================================================

async def save_lead(store: LeadStore, draft: LeadDraft, raw_ocr_text: str = "") -> SaveLeadResponse:
    """
    Normalize a reviewed draft and insert it unless it duplicates a stored lead.

    Raises InvalidStageError when no known stage is picked and
    DuplicateLeadError when a match exists.
    """
    validated = normalize_and_validate_draft(draft)
    lead = validated.lead

    if not lead.stage_id:
        raise InvalidStageError("Pick a stage")
    if await store.get_stage(lead.stage_id) is None:
        raise InvalidStageError(f"Unknown stage: {lead.stage_id}")

    key = build_dedupe_key(lead)
    if key is not None:
        match = await find_duplicate_lead(store, key)
        if match is not None:
            logger.info("Duplicate lead blocked: key=%s existing=%s", key, match.id)
            raise DuplicateLeadError(match, str(key))

    record = await store.insert_lead(
        lead,
        raw_ocr_text=raw_ocr_text,
        dedupe_key=str(key) if key is not None else None,
    )
    logger.info("Lead saved: id=%s stage=%s", record.id, record.stage_id)
    return SaveLeadResponse(lead=record, uncertain_fields=validated.uncertain_fields)


# ======================================================
# READS
# ======================================================

def _matches_search(lead: LeadRecord, search: str) -> bool:
    needle = search.strip().lower()
    return any(needle in getattr(lead, name).lower() for name in SEARCHABLE_FIELDS)


async def list_leads(
    store: LeadStore,
    stage_id: str | None = None,
    status: LeadStatus | None = None,
    search: str | None = None,
) -> list[LeadRecord]:
    """Deduplicated leads, newest first, optionally filtered."""
    leads = dedupe_lead_rows(await store.list_leads(stage_id=stage_id))
    if status:
        leads = [l for l in leads if l.status == status]
    if search and search.strip():
        leads = [l for l in leads if _matches_search(l, search)]
    return leads


async def get_lead(store: LeadStore, lead_id: str) -> LeadRecord:
    lead = await store.get_lead(lead_id)
    if lead is None:
        raise LeadNotFoundError(lead_id)
    return lead


# ======================================================
# EDITS
# ======================================================

async def update_lead(
    store: LeadStore,
    lead_id: str,
    *,
    stage_id: str | None = None,
    status: LeadStatus | None = None,
    notes: str | None = None,
) -> LeadRecord:
    """Change stage, status and/or notes. Identity fields are never edited here."""
    if stage_id is not None and await store.get_stage(stage_id) is None:
        raise InvalidStageError(f"Unknown stage: {stage_id}")

    updated = await store.update_lead(lead_id, stage_id=stage_id, status=status, notes=notes)
    if updated is None:
        raise LeadNotFoundError(lead_id)
    return updated
