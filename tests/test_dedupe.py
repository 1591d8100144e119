from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from cardleads.schemas.lead import LeadDraft
from cardleads.services.dedupe import (
    EmailKey,
    NameCompanyKey,
    PhoneNameKey,
    build_dedupe_key,
    dedupe_lead_rows,
    encode_dedupe_key,
    normalize_company,
    normalize_email,
    normalize_name,
    normalize_phone_digits,
    parse_dedupe_key,
)
from cardleads.services.validation import normalize_and_validate_draft


class TestNormalizers:
    def test_email(self):
        assert normalize_email("  JANE@Acme.COM ") == "jane@acme.com"
        assert normalize_email("   ") is None
        assert normalize_email(None) is None

    def test_phone_formats_share_digits(self):
        assert normalize_phone_digits("(555) 123-4567") == "5551234567"
        assert normalize_phone_digits("555.123.4567") == "5551234567"
        assert normalize_phone_digits("+1 555 123 4567") == "15551234567"

    def test_phone_without_digits_is_absent(self):
        assert normalize_phone_digits("call me") is None
        assert normalize_phone_digits("") is None

    def test_name_collapses_whitespace(self):
        assert normalize_name("  Jane \t  DOE ") == "jane doe"
        assert normalize_name("\n") is None

    def test_company_matches_name_rules(self):
        assert normalize_company(" Acme   Staffing ") == "acme staffing"
        assert normalize_company(None) is None


class TestBuildKey:
    def test_email_wins(self):
        a = LeadDraft(email="Jane@Acme.com", company="Acme", full_name="Jane Doe", phone="5551234567")
        b = LeadDraft(email=" jane@acme.com", company="Other Corp")
        assert build_dedupe_key(a) == build_dedupe_key(b) == EmailKey(email="jane@acme.com")
        assert str(build_dedupe_key(a)) == "email:jane@acme.com"

    def test_phone_and_name(self):
        key = build_dedupe_key(LeadDraft(full_name="Jane  Doe", phone="(555) 123-4567", company="Acme"))
        assert key == PhoneNameKey(phone_digits="5551234567", full_name="jane doe")
        assert key.encode() == "phone_name:5551234567|jane doe"

    def test_name_falls_back_to_first_and_last(self):
        key = build_dedupe_key(LeadDraft(first_name="Jane", last_name="Doe", phone="555.123.4567"))
        assert str(key) == "phone_name:5551234567|jane doe"

    def test_first_name_only(self):
        key = build_dedupe_key(LeadDraft(first_name="Jane", company="Acme"))
        assert str(key) == "name_company:jane|acme"

    def test_name_and_company(self):
        key = build_dedupe_key(LeadDraft(full_name="Jane Doe", company=" ACME  Staffing "))
        assert key == NameCompanyKey(full_name="jane doe", company="acme staffing")
        assert str(key) == "name_company:jane doe|acme staffing"

    def test_company_alone_has_no_key(self):
        assert build_dedupe_key(LeadDraft(company="Acme", phone="5551234567")) is None

    def test_phone_alone_has_no_key(self):
        assert build_dedupe_key(LeadDraft(phone="5551234567")) is None

    def test_empty_record_has_no_key(self):
        assert build_dedupe_key(LeadDraft()) is None

    def test_accepts_mappings_with_nulls(self):
        row = {"email": None, "phone": "555-123-4567", "full_name": None,
               "first_name": "Jane", "last_name": None, "company": None}
        assert str(build_dedupe_key(row)) == "phone_name:5551234567|jane"

    def test_order_of_filling_does_not_matter(self):
        by_full = LeadDraft(full_name="Jane Doe", company="Acme")
        by_parts = LeadDraft(first_name="Jane", last_name="Doe", company="acme")
        assert build_dedupe_key(by_full) == build_dedupe_key(by_parts)

    def test_keys_are_hashable(self):
        keys = {build_dedupe_key(LeadDraft(email="a@b.co")), EmailKey(email="a@b.co")}
        assert len(keys) == 1


class TestKeyEncoding:
    @pytest.mark.parametrize(
        "text",
        ["email:jane@acme.com", "phone_name:5551234567|jane doe", "name_company:jane doe|acme staffing"],
    )
    def test_parse_stored_key(self, text):
        assert encode_dedupe_key(parse_dedupe_key(text)) == text

    @pytest.mark.parametrize("text", [None, "", "email:", "phone_name:555", "name_company:|acme", "zip:123", "zip:a|b"])
    def test_malformed_keys(self, text):
        assert parse_dedupe_key(text) is None

    def test_encode_absent(self):
        assert encode_dedupe_key(None) is None


class TestBatchDedupe:
    def test_keeps_most_recently_updated(self, make_record):
        a = make_record(created=0, updated=20, email="jane@acme.com", full_name="Jane A")
        b = make_record(created=10, updated=10, email="JANE@acme.com", full_name="Jane B")
        c = make_record(created=5, company="Acme")

        result = dedupe_lead_rows([b, c, a])

        assert [r.id for r in result] == [c.id, a.id]

    def test_ordered_by_creation_after_dedupe(self, make_record):
        a = make_record(created=30, updated=30, full_name="Ann Lee", company="Acme")
        b = make_record(created=10, updated=40, full_name="Bob Ray", company="Acme")
        c = make_record(created=20, updated=20, email="c@x.io")

        result = dedupe_lead_rows([a, b, c])

        assert [r.id for r in result] == [a.id, c.id, b.id]

    def test_keyless_records_never_collapse(self, make_record):
        rows = [make_record(created=i) for i in range(3)]
        assert len(dedupe_lead_rows(rows)) == 3

    def test_falls_back_to_created_at(self):
        t1 = datetime(2025, 1, 1, tzinfo=timezone.utc)
        t2 = datetime(2025, 1, 2, tzinfo=timezone.utc)
        old = SimpleNamespace(email="x@y.co", created_at=t1, updated_at=None)
        new = SimpleNamespace(email="X@y.co", created_at=t2, updated_at=None)
        assert dedupe_lead_rows([old, new]) == [new]

    def test_empty_batch(self):
        assert dedupe_lead_rows([]) == []


def test_draft_to_key_end_to_end():
    draft = LeadDraft(
        full_name="",
        first_name="Jane",
        last_name="Doe",
        company="Acme",
        email="JANE@ACME.com",
        phone="(555) 123-4567",
    )
    lead = normalize_and_validate_draft(draft).lead
    assert lead.full_name == "Jane Doe"
    assert str(build_dedupe_key(lead)) == "email:jane@acme.com"


def test_parsed_key_compares_with_derived_key():
    stored = parse_dedupe_key("phone_name:5551234567|jane doe")
    assert isinstance(stored, PhoneNameKey)
    assert stored == build_dedupe_key({"full_name": "Jane  Doe", "phone": "(555) 123-4567"})
