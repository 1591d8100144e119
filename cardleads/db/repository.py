"""
Lead storage.

`LeadStore` is what the services depend on. `SqlLeadStore` talks to Postgres
through the async session; `InMemoryLeadStore` (cardleads.db.memory) backs
demo mode and the tests.
"""

from typing import Protocol

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardleads.db.models import Lead, PipelineStage
from cardleads.schemas.lead import LeadDraft, LeadRecord, LeadStatus
from cardleads.schemas.lead import PipelineStage as StageSchema


class LeadStore(Protocol):
    async def list_stages(self) -> list[StageSchema]: ...

    async def get_stage(self, stage_id: str) -> StageSchema | None: ...

    async def list_leads(self, stage_id: str | None = None) -> list[LeadRecord]: ...

    async def get_lead(self, lead_id: str) -> LeadRecord | None: ...

    async def find_lead_by_email(self, email: str) -> LeadRecord | None: ...

    async def search_leads_by_phone(self, fragment: str, limit: int) -> list[LeadRecord]: ...

    async def search_leads_by_company(self, fragment: str, limit: int) -> list[LeadRecord]: ...

    async def insert_lead(
        self, lead: LeadDraft, raw_ocr_text: str, dedupe_key: str | None
    ) -> LeadRecord: ...

    async def update_lead(
        self,
        lead_id: str,
        *,
        stage_id: str | None = None,
        status: LeadStatus | None = None,
        notes: str | None = None,
    ) -> LeadRecord | None: ...


class SqlLeadStore:
    """LeadStore over SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # ======================================================
    # STAGES
    # ======================================================

    async def list_stages(self) -> list[StageSchema]:
        stmt = select(PipelineStage).order_by(PipelineStage.sort_order.asc())
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [StageSchema.model_validate(s) for s in result.scalars().all()]

    async def get_stage(self, stage_id: str) -> StageSchema | None:
        async with self._session_factory() as session:
            stage = await session.get(PipelineStage, stage_id)
            return StageSchema.model_validate(stage) if stage else None

    # ======================================================
    # LEAD LOOKUPS
    # ======================================================

    async def _fetch(self, stmt) -> list[LeadRecord]:
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [LeadRecord.model_validate(row) for row in result.scalars().all()]

    async def list_leads(self, stage_id: str | None = None) -> list[LeadRecord]:
        stmt = select(Lead).order_by(Lead.created_at.desc())
        if stage_id:
            stmt = stmt.where(Lead.stage_id == stage_id)
        return await self._fetch(stmt)

    async def get_lead(self, lead_id: str) -> LeadRecord | None:
        rows = await self._fetch(select(Lead).where(Lead.id == lead_id))
        return rows[0] if rows else None

    async def find_lead_by_email(self, email: str) -> LeadRecord | None:
        """Case-insensitive exact match."""
        stmt = select(Lead).where(func.lower(Lead.email) == email.lower()).limit(1)
        rows = await self._fetch(stmt)
        return rows[0] if rows else None

    async def search_leads_by_phone(self, fragment: str, limit: int) -> list[LeadRecord]:
        stmt = (
            select(Lead)
            .where(Lead.phone.icontains(fragment, autoescape=True))
            .order_by(Lead.created_at.desc())
            .limit(limit)
        )
        return await self._fetch(stmt)

    async def search_leads_by_company(self, fragment: str, limit: int) -> list[LeadRecord]:
        stmt = (
            select(Lead)
            .where(Lead.company.icontains(fragment, autoescape=True))
            .order_by(Lead.created_at.desc())
            .limit(limit)
        )
        return await self._fetch(stmt)

    # ======================================================
    # LEAD WRITES
    # ======================================================

    async def insert_lead(
        self, lead: LeadDraft, raw_ocr_text: str, dedupe_key: str | None
    ) -> LeadRecord:
        row = Lead(
            **lead.model_dump(),
            raw_ocr_text=raw_ocr_text,
            status="active",
            dedupe_key=dedupe_key,
        )
        async with self._session_factory() as session:
            session.add(row)
            await session.flush()
            await session.refresh(row)
            record = LeadRecord.model_validate(row)
            await session.commit()
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

        async with self._session_factory() as session:
            stmt = (
                update(Lead)
                .where(Lead.id == lead_id)
                .values(**values)
                .execution_options(synchronize_session="fetch")
            )
            await session.execute(stmt)
            await session.flush()
            result = await session.execute(
                select(Lead).where(Lead.id == lead_id).execution_options(populate_existing=True)
            )
            row = result.scalar_one_or_none()
            record = LeadRecord.model_validate(row) if row else None
            await session.commit()
        return record
