"""Spreadsheet export of the lead pipeline (CSV / XLSX / Google Sheets rows)."""

import io
from collections.abc import Iterable

import pandas as pd

from cardleads.db.repository import LeadStore
from cardleads.schemas.lead import LeadRecord, PipelineStage
from cardleads.services import leads as lead_service


SHEET_HEADER = [
    "Full Name",
    "First Name",
    "Last Name",
    "Company",
    "Title",
    "Email",
    "Phone",
    "Website",
    "Address",
    "Stage",
    "Notes",
    "Date Added",
    "Source",
]
SOURCE_LABEL = "Business Card"
XLSX_SHEET_NAME = "Leads"


def build_export_rows(leads: Iterable[LeadRecord], stages: Iterable[PipelineStage]) -> list[list[str]]:
    stage_name_by_id = {s.id: s.name for s in stages}
    return [
        [
            l.full_name,
            l.first_name,
            l.last_name,
            l.company,
            l.title,
            l.email,
            l.phone,
            l.website,
            l.address,
            stage_name_by_id.get(l.stage_id or "", ""),
            l.notes,
            l.created_at.date().isoformat(),
            SOURCE_LABEL,
        ]
        for l in leads
    ]


async def export_rows(store: LeadStore, stage_id: str | None = None) -> list[list[str]]:
    """Rows for the deduplicated pipeline, newest first."""
    leads = await lead_service.list_leads(store, stage_id=stage_id)
    stages = await store.list_stages()
    return build_export_rows(leads, stages)


def _frame(rows: list[list[str]]) -> pd.DataFrame:
    return pd.DataFrame(rows, columns=SHEET_HEADER, dtype=str)


def rows_to_csv(rows: list[list[str]]) -> bytes:
    return _frame(rows).to_csv(index=False).encode("utf-8")


def rows_to_xlsx(rows: list[list[str]]) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        _frame(rows).to_excel(writer, sheet_name=XLSX_SHEET_NAME, index=False)
    return buffer.getvalue()
