"""In-process LeadStore for demo mode and tests. Newest leads are kept first."""

from datetime import datetime, timezone
from uuid import uuid4

from cardleads.db.models import DEFAULT_STAGES
from cardleads.schemas.lead import LeadDraft, LeadRecord, LeadStatus, PipelineStage


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryLeadStore:
    def __init__(self, stages: list[PipelineStage] | None = None, leads: list[LeadRecord] | None = None):
        if stages is None:
            stages = [
                PipelineStage(id=stage_id, name=name, sort_order=order)
                for stage_id, name, order in DEFAULT_STAGES
            ]
        self._stages = {s.id: s for s in stages}
        self._leads: list[LeadRecord] = list(leads or [])

    async def list_stages(self) -> list[PipelineStage]:
        return sorted(self._stages.values(), key=lambda s: s.sort_order)

    async def get_stage(self, stage_id: str) -> PipelineStage | None:
        return self._stages.get(stage_id)

    async def list_leads(self, stage_id: str | None = None) -> list[LeadRecord]:
        rows = [l for l in self._leads if not stage_id or l.stage_id == stage_id]
        return sorted(rows, key=lambda l: l.created_at, reverse=True)

    async def get_lead(self, lead_id: str) -> LeadRecord | None:
        return next((l for l in self._leads if l.id == lead_id), None)

    async def find_lead_by_email(self, email: str) -> LeadRecord | None:
        wanted = email.lower()
        return next((l for l in self._leads if l.email.lower() == wanted), None)

    async def search_leads_by_phone(self, fragment: str, limit: int) -> list[LeadRecord]:
        return [l for l in self._leads if fragment.lower() in l.phone.lower()][:limit]

    async def search_leads_by_company(self, fragment: str, limit: int) -> list[LeadRecord]:
        return [l for l in self._leads if fragment.lower() in l.company.lower()][:limit]

    async def insert_lead(
        self, lead: LeadDraft, raw_ocr_text: str, dedupe_key: str | None
    ) -> LeadRecord:
        now = _now()
        record = LeadRecord(
            **lead.model_dump(),
            id=str(uuid4()),
            raw_ocr_text=raw_ocr_text,
            status="active",
            created_at=now,
            updated_at=now,
        )
        self._leads.insert(0, record)
        return record

    async def update_lead(
        self,
        lead_id: str,
        *,
        stage_id: str | None = None,
        status: LeadStatus | None = None,
        notes: str | None = None,
    ) -> LeadRecord | None:
        values = {}
        if stage_id is not None:
            values["stage_id"] = stage_id
        if status is not None:
            values["status"] = status
        if notes is not None:
            values["notes"] = notes

        if not values:
            raise ValueError("No fields to update")

        for i, lead in enumerate(self._leads):
            if lead.id == lead_id:
                updated = lead.model_copy(update={**values, "updated_at": _now()})
                self._leads[i] = updated
                return updated
        return None
