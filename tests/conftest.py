import os

os.environ["STORAGE_BACKEND"] = "memory"
os.environ["OCR_PROVIDER"] = "mock"
os.environ["OPENAI_API_KEY"] = ""
os.environ.pop("SHEETS_SYNC_TOKEN", None)

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from cardleads.config import settings
from cardleads.db.memory import InMemoryLeadStore
from cardleads.deps import get_lead_store
from cardleads.main import app
from cardleads.schemas.lead import LeadRecord


BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return InMemoryLeadStore()


@pytest.fixture
def image_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "card_image_dir", str(tmp_path))
    return tmp_path


@pytest.fixture
def client(store, image_dir):
    app.dependency_overrides[get_lead_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_record():
    """Build a LeadRecord; created/updated are given as minutes after BASE_TIME."""

    def _make(created: int = 0, updated: int | None = None, **fields) -> LeadRecord:
        fields.setdefault("stage_id", "prospecting")
        return LeadRecord(
            id=str(uuid4()),
            created_at=BASE_TIME + timedelta(minutes=created),
            updated_at=BASE_TIME + timedelta(minutes=created if updated is None else updated),
            **fields,
        )

    return _make
