from types import SimpleNamespace

import pytest

from cardleads.config import settings
from cardleads.services import extraction
from cardleads.services.card_images import load_card_image, save_card_image
from cardleads.services.extraction import (
    FALLBACK_UNCERTAIN_FIELDS,
    extract_lead_draft,
    heuristic_parse,
    parse_lead_from_ocr_text,
)
from cardleads.services.ocr import MOCK_OCR_TEXT, guess_mime_type


class FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(content):
    completions = FakeCompletions(content)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


class TestHeuristicParse:
    def test_sample_card(self):
        fields = heuristic_parse(MOCK_OCR_TEXT)
        assert fields == {
            "full_name": "Jane Doe",
            "first_name": "Jane",
            "last_name": "Doe",
            "company": "Acme Staffing",
            "title": "Senior Recruiter",
            "email": "jane.doe@acmestaffing.com",
            "phone": "(650) 253-0000",
            "website": "acmestaffing.com",
            "address": "",
        }

    def test_empty_text(self):
        fields = heuristic_parse("")
        assert set(fields.values()) == {""}

    def test_short_card(self):
        fields = heuristic_parse("Cher\r\n\r\n+1 650 253 0000\n")
        assert fields["full_name"] == "Cher"
        assert fields["last_name"] == ""
        assert fields["title"] == "+1 650 253 0000"
        assert fields["company"] == ""
        assert fields["phone"] == "+1 650 253 0000"


class TestParseWithLLM:
    async def test_no_api_key_uses_heuristics(self, monkeypatch):
        monkeypatch.setattr(settings, "openai_api_key", "")
        assert await parse_lead_from_ocr_text(MOCK_OCR_TEXT) == heuristic_parse(MOCK_OCR_TEXT)

    async def test_parses_fenced_json(self, monkeypatch):
        monkeypatch.setattr(settings, "openai_api_key", "sk-test")
        client, completions = fake_client(
            '```json\n{"full_name": " Jane Doe ", "email": "jane@acme.com", "phone": null}\n```'
        )
        monkeypatch.setattr(extraction, "build_client", lambda: client)

        fields = await parse_lead_from_ocr_text("Jane Doe\njane@acme.com")

        assert fields["full_name"] == "Jane Doe"
        assert fields["email"] == "jane@acme.com"
        assert fields["phone"] == ""
        assert fields["address"] == ""
        assert completions.calls[0]["temperature"] == 0
        assert completions.calls[0]["messages"][1]["content"] == "Jane Doe\njane@acme.com"

    async def test_empty_reply_falls_back(self, monkeypatch):
        monkeypatch.setattr(settings, "openai_api_key", "sk-test")
        client, _ = fake_client("")
        monkeypatch.setattr(extraction, "build_client", lambda: client)
        assert await parse_lead_from_ocr_text(MOCK_OCR_TEXT) == heuristic_parse(MOCK_OCR_TEXT)

    async def test_malformed_reply_raises(self, monkeypatch):
        monkeypatch.setattr(settings, "openai_api_key", "sk-test")
        client, _ = fake_client("not json")
        monkeypatch.setattr(extraction, "build_client", lambda: client)
        with pytest.raises(ValueError):
            await parse_lead_from_ocr_text(MOCK_OCR_TEXT)


class TestExtractLeadDraft:
    async def test_mock_ocr_pipeline(self, image_dir, monkeypatch):
        monkeypatch.setattr(settings, "ocr_provider", "mock")
        monkeypatch.setattr(settings, "openai_api_key", "")
        path = await save_card_image(b"\x89PNG fake", "card.png")

        result = await extract_lead_draft(path)

        assert result.error is None
        assert result.raw_ocr_text == MOCK_OCR_TEXT
        assert result.extracted.card_image_path == path
        assert result.extracted.full_name == "Jane Doe"
        assert result.extracted.email == "jane.doe@acmestaffing.com"
        assert result.uncertain_fields == []

    async def test_missing_image_degrades(self, image_dir):
        result = await extract_lead_draft("cards/missing.jpg")

        assert result.error is not None
        assert result.uncertain_fields == FALLBACK_UNCERTAIN_FIELDS
        assert result.extracted.card_image_path == "cards/missing.jpg"
        assert result.extracted.full_name == ""

    async def test_provider_failure_degrades(self, image_dir, monkeypatch):
        async def broken_ocr(image_bytes, filename=None):
            raise RuntimeError("vision unavailable")

        monkeypatch.setattr(extraction, "ocr_business_card", broken_ocr)
        path = await save_card_image(b"jpeg", "card.jpg")

        result = await extract_lead_draft(path)

        assert result.error == "vision unavailable"
        assert result.raw_ocr_text == ""
        assert result.uncertain_fields == FALLBACK_UNCERTAIN_FIELDS


class TestCardImages:
    async def test_round_trip(self, image_dir):
        path = await save_card_image(b"data", "Photo.JPEG")
        assert path.startswith("cards/") and path.endswith(".jpeg")
        assert await load_card_image(path) == b"data"

    async def test_unknown_extension_defaults_to_jpg(self, image_dir):
        path = await save_card_image(b"data", "card.exe")
        assert path.endswith(".jpg")

    async def test_rejects_paths_outside_store(self, image_dir):
        with pytest.raises(ValueError):
            await load_card_image("../secrets.txt")

    async def test_missing_file(self, image_dir):
        with pytest.raises(FileNotFoundError):
            await load_card_image("cards/nope.png")


@pytest.mark.parametrize(
    "filename, mime",
    [("a.JPG", "image/jpeg"), ("b.png", "image/png"), ("c.webp", "image/webp"), (None, "image/png")],
)
def test_guess_mime_type(filename, mime):
    assert guess_mime_type(filename) == mime
