"""
Draft normalization and validation.

Runs on every extracted draft and again on save. Never raises: bad input only
produces more uncertain fields.
"""

import re

import phonenumbers
from pydantic import AnyUrl, TypeAdapter, ValidationError

from cardleads.schemas.lead import TEXT_FIELDS, LeadDraft, ValidationResult


EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DEFAULT_PHONE_REGION = "US"

_url_adapter = TypeAdapter(AnyUrl)


def is_valid_email(email: str) -> bool:
    e = email.strip()
    if not e:
        return True
    return EMAIL_RE.match(e) is not None


def is_valid_phone(phone: str, region: str = DEFAULT_PHONE_REGION) -> bool:
    p = phone.strip()
    if not p:
        return True
    try:
        parsed = phonenumbers.parse(p, region)
    except phonenumbers.NumberParseException:
        return False
    return phonenumbers.is_valid_number(parsed)


def is_probably_url(value: str) -> bool:
    """Check a website value, allowing bare domains. The value itself is not rewritten."""
    v = value.strip()
    if not v:
        return True
    candidate = v if v.startswith(("http://", "https://")) else f"https://{v}"
    try:
        _url_adapter.validate_python(candidate)
    except ValidationError:
        return False
    return True


def normalize_and_validate_draft(draft: LeadDraft) -> ValidationResult:
    """
    Trim the draft, back-fill names, and flag fields that need a human look.

    Order matters: names are derived from trimmed values, and the uncertainty
    checks run on the derived values.
    """
    values = {name: getattr(draft, name).strip() for name in TEXT_FIELDS}
    values["notes"] = draft.notes or ""

    if not values["full_name"]:
        combined = " ".join(p for p in (values["first_name"], values["last_name"]) if p)
        if combined:
            values["full_name"] = combined

    if (not values["first_name"] or not values["last_name"]) and values["full_name"]:
        parts = values["full_name"].split()
        if len(parts) >= 2:
            values["first_name"] = values["first_name"] or parts[0]
            values["last_name"] = values["last_name"] or " ".join(parts[1:])

    lead = draft.model_copy(update=values)

    uncertain: list[str] = []
    if lead.full_name and len(lead.full_name.split()) == 1:
        uncertain.append("full_name")
    if lead.email and not is_valid_email(lead.email):
        uncertain.append("email")
    if lead.phone and not is_valid_phone(lead.phone):
        uncertain.append("phone")
    if lead.website and not is_probably_url(lead.website):
        uncertain.append("website")

    return ValidationResult(lead=lead, uncertain_fields=uncertain)
