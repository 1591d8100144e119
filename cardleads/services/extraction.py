"""
Contact field extraction from business-card OCR text.

Uses the LLM when an API key is configured and falls back to a line-based
heuristic otherwise. `extract_lead_draft` runs the whole image → draft flow
and degrades to an empty, fully-flagged draft when anything fails, so the
reviewer can still enter the contact by hand.
"""

import json
import logging
import re

from pydantic import BaseModel

from cardleads.config import settings
from cardleads.schemas.lead import TEXT_FIELDS, ExtractResponse, LeadDraft
from cardleads.services.card_images import load_card_image
from cardleads.services.ocr import build_client, ocr_business_card
from cardleads.services.validation import normalize_and_validate_draft


logger = logging.getLogger(__name__)

# Flagged when extraction fails outright.
FALLBACK_UNCERTAIN_FIELDS = ["full_name", "company", "email", "phone"]

SYSTEM_PROMPT = """You extract contact info from business-card OCR text.
Do not guess or hallucinate. If a field is missing, return null for that field.
Keep the original spelling/casing from the OCR when possible.

Output ONLY valid JSON matching this exact schema (no markdown, no extra keys):
{
  "full_name": "string or null",
  "first_name": "string or null",
  "last_name": "string or null",
  "company": "string or null",
  "title": "string or null",
  "email": "string or null",
  "phone": "string or null",
  "website": "string or null",
  "address": "string or null"
}"""

EMAIL_RE = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)
PHONE_RE = re.compile(r"\+?\(?\d[\d(). -]{7,}\d")
WEBSITE_RE = re.compile(r"\b((https?://)?([a-z0-9-]+\.)+[a-z]{2,})(/\S*)?\b", re.IGNORECASE)


class ExtractedLead(BaseModel):
    """Fields the LLM may return; anything missing is null."""

    full_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    company: str | None = None
    title: str | None = None
    email: str | None = None
    phone: str | None = None
    website: str | None = None
    address: str | None = None


def _strip_markdown_json(text: str) -> str:
    """Remove ```json ... ``` wrapper if present."""
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?\s*", "", text)
        text = re.sub(r"\s*```$", "", text)
    return text


def heuristic_parse(ocr_text: str) -> dict[str, str]:
    """
    Best-effort parse without an LLM.

    Assumes the first three lines are name, title and company; email, phone
    and website are picked out with regexes. Website matching skips lines
    containing an email so the address is not mistaken for a domain.
    """
    text = ocr_text or ""
    lines = [line.strip() for line in re.split(r"\r?\n", text) if line.strip()]

    email = EMAIL_RE.search(text)
    phone = PHONE_RE.search(text)
    website = None
    for line in lines:
        if "@" in line:
            continue
        website = WEBSITE_RE.search(line)
        if website:
            break

    full_name = lines[0] if lines else ""
    name_parts = full_name.split()

    return {
        "full_name": full_name,
        "first_name": name_parts[0] if name_parts else "",
        "last_name": " ".join(name_parts[1:]),
        "company": lines[2] if len(lines) > 2 else "",
        "title": lines[1] if len(lines) > 1 else "",
        "email": email.group(0) if email else "",
        "phone": phone.group(0) if phone else "",
        "website": website.group(0) if website else "",
        "address": "",
    }


async def parse_lead_from_ocr_text(ocr_text: str) -> dict[str, str]:
    """
    Extract the nine contact fields from OCR text.

    Raises on a malformed LLM reply (bad JSON or schema mismatch); an empty
    reply falls back to the heuristic parser.
    """
    if not settings.openai_api_key:
        return heuristic_parse(ocr_text)

    client = build_client()
    response = await client.chat.completions.create(
        model=settings.openai_model,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": ocr_text},
        ],
        temperature=0,
    )

    content = response.choices[0].message.content
    if not content or not content.strip():
        logger.warning("LLM returned empty response; using heuristic parse")
        return heuristic_parse(ocr_text)

    data = json.loads(_strip_markdown_json(content))
    parsed = ExtractedLead.model_validate(data)
    return {name: (getattr(parsed, name) or "").strip() for name in TEXT_FIELDS}


async def extract_lead_draft(card_image_path: str) -> ExtractResponse:
    """Run OCR and field extraction for a stored card image."""
    draft = LeadDraft(card_image_path=card_image_path)
    raw_ocr_text = ""

    try:
        image_bytes = await load_card_image(card_image_path)
        raw_ocr_text = await ocr_business_card(image_bytes, filename=card_image_path)
        fields = await parse_lead_from_ocr_text(raw_ocr_text)
        validated = normalize_and_validate_draft(draft.model_copy(update=fields))
    except Exception as e:
        logger.exception("Extraction failed for %s", card_image_path)
        return ExtractResponse(
            extracted=draft,
            uncertain_fields=list(FALLBACK_UNCERTAIN_FIELDS),
            raw_ocr_text=raw_ocr_text,
            error=str(e) or "Extraction failed",
        )

    return ExtractResponse(
        extracted=validated.lead,
        uncertain_fields=validated.uncertain_fields,
        raw_ocr_text=raw_ocr_text,
    )
