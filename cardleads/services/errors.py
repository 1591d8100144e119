"""Lead service exceptions. Routes map these onto HTTP status codes."""

from cardleads.schemas.lead import LeadRecord


class LeadServiceError(Exception):
    pass


class DuplicateLeadError(LeadServiceError):
    """The lead already exists; an expected outcome, not a storage failure."""

    def __init__(self, existing: LeadRecord, dedupe_key: str):
        self.existing = existing
        self.dedupe_key = dedupe_key
        name = existing.full_name or "Existing lead"
        super().__init__(f"Duplicate detected: {name} already exists in your pipeline.")


class InvalidStageError(LeadServiceError):
    pass


class LeadNotFoundError(LeadServiceError):
    def __init__(self, lead_id: str):
        self.lead_id = lead_id
        super().__init__(f"Lead not found: {lead_id}")
