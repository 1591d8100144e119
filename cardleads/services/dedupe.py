"""
Lead dedupe keys.

A key is derived fresh from identity fields every time, in priority order:
email, then phone + full name, then full name + company. Records with none of
those combinations have no key and are always treated as unique.

Keys are a tagged variant; the string encoding ("email:...", "phone_name:...",
"name_company:...") is only used where keys are stored.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Annotated, Any, Literal, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError


# ======================================================
# NORMALIZATION HELPERS
# ======================================================

def _normalize_spaces(value: str) -> str:
    return " ".join(value.split())


def normalize_email(email: str | None) -> str | None:
    e = (email or "").strip().lower()
    return e or None


def normalize_phone_digits(phone: str | None) -> str | None:
    digits = "".join(ch for ch in (phone or "") if "0" <= ch <= "9")
    return digits or None


def normalize_name(name: str | None) -> str | None:
    n = _normalize_spaces(name or "").lower()
    return n or None


def normalize_company(company: str | None) -> str | None:
    c = _normalize_spaces(company or "").lower()
    return c or None


# ======================================================
# KEY VARIANTS
# ======================================================

class _Key(BaseModel):
    model_config = ConfigDict(frozen=True)

    def encode(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.encode()


class EmailKey(_Key):
    kind: Literal["email"] = "email"
    email: str

    def encode(self) -> str:
        return f"email:{self.email}"


class PhoneNameKey(_Key):
    kind: Literal["phone_name"] = "phone_name"
    phone_digits: str
    full_name: str

    def encode(self) -> str:
        return f"phone_name:{self.phone_digits}|{self.full_name}"


class NameCompanyKey(_Key):
    kind: Literal["name_company"] = "name_company"
    full_name: str
    company: str

    def encode(self) -> str:
        return f"name_company:{self.full_name}|{self.company}"


DedupeKey = Annotated[
    Union[EmailKey, PhoneNameKey, NameCompanyKey],
    Field(discriminator="kind"),
]


def _field(lead: Any, name: str) -> str:
    if isinstance(lead, Mapping):
        value = lead.get(name)
    else:
        value = getattr(lead, name, None)
    return value or ""


def resolve_full_name(lead: Any) -> str | None:
    """Normalized full name, falling back to first + last."""
    full_name = normalize_name(_field(lead, "full_name"))
    if full_name:
        return full_name
    joined = " ".join(p for p in (_field(lead, "first_name"), _field(lead, "last_name")) if p)
    return normalize_name(joined)


def build_dedupe_key(lead: Any) -> DedupeKey | None:
    """
    Derive the dedupe key for anything carrying the identity fields.

    Accepts drafts, records, ORM rows or plain mappings; missing or None
    fields count as empty.
    """
    email = normalize_email(_field(lead, "email"))
    if email:
        return EmailKey(email=email)

    phone_digits = normalize_phone_digits(_field(lead, "phone"))
    full_name = resolve_full_name(lead)
    if phone_digits and full_name:
        return PhoneNameKey(phone_digits=phone_digits, full_name=full_name)

    company = normalize_company(_field(lead, "company"))
    if full_name and company:
        return NameCompanyKey(full_name=full_name, company=company)

    return None


def encode_dedupe_key(key: DedupeKey | None) -> str | None:
    return key.encode() if key is not None else None


_KEY_FIELDS = {
    "phone_name": ("phone_digits", "full_name"),
    "name_company": ("full_name", "company"),
}
_KEY_ADAPTER = TypeAdapter(DedupeKey)


def parse_dedupe_key(text: str | None) -> DedupeKey | None:
    """Decode a stored key string. Unknown or malformed input gives None."""
    if not text:
        return None
    tag, sep, rest = text.partition(":")
    if not sep or not rest:
        return None

    if tag == "email":
        data = {"kind": tag, "email": rest}
    else:
        first, sep, second = rest.partition("|")
        if not sep or not first or not second:
            return None
        data = {"kind": tag, **dict(zip(_KEY_FIELDS.get(tag, ()), (first, second)))}

    try:
        return _KEY_ADAPTER.validate_python(data)
    except ValidationError:
        return None


# ======================================================
# BATCH DEDUPE
# ======================================================

R = TypeVar("R")


def _recency(lead: Any) -> datetime:
    return getattr(lead, "updated_at", None) or lead.created_at


def dedupe_lead_rows(rows: Iterable[R]) -> list[R]:
    """
    Collapse duplicates, keeping the most recently updated row per key.

    Survivors come back newest-created first. Keyless rows are always kept.
    """
    by_recency = sorted(rows, key=_recency, reverse=True)

    seen: set[DedupeKey] = set()
    out: list[R] = []
    for lead in by_recency:
        key = build_dedupe_key(lead)
        if key is None:
            out.append(lead)
            continue
        if key in seen:
            continue
        seen.add(key)
        out.append(lead)

    out.sort(key=lambda lead: lead.created_at, reverse=True)
    return out
