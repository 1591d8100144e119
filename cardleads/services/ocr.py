"""
Business-card OCR.

"openai" sends the image to a vision-capable chat model and asks for a plain
transcription; "mock" returns a fixed card for local runs.
"""

import base64
import logging

from openai import AsyncOpenAI

from cardleads.config import settings


logger = logging.getLogger(__name__)

MOCK_OCR_TEXT = """Jane Doe
Senior Recruiter
Acme Staffing
jane.doe@acmestaffing.com
(650) 253-0000
acmestaffing.com
123 Main St, Austin, TX 78701"""

OCR_PROMPT = """You are an OCR engine for business cards.
Transcribe every line of text printed on the card, top to bottom, one line per row.
Output ONLY the transcribed text (no markdown, no commentary, no field labels).
If the image contains no text, output nothing."""

MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".heic": "image/heic",
}


def guess_mime_type(filename: str | None) -> str:
    name = (filename or "").lower()
    for ext, mime in MIME_TYPES.items():
        if name.endswith(ext):
            return mime
    return "image/png"


def build_client() -> AsyncOpenAI:
    """Build the AsyncOpenAI client, optionally with a custom base URL."""
    kwargs: dict = {"api_key": settings.openai_api_key}
    if settings.openai_base_url:
        kwargs["base_url"] = settings.openai_base_url
    return AsyncOpenAI(**kwargs)


async def ocr_business_card(image_bytes: bytes, filename: str | None = None) -> str:
    """Return the raw text printed on the card image."""
    if settings.ocr_provider == "mock":
        return MOCK_OCR_TEXT

    data_uri = f"data:{guess_mime_type(filename)};base64," + base64.b64encode(image_bytes).decode()
    client = build_client()
    response = await client.chat.completions.create(
        model=settings.openai_vision_model,
        temperature=0,
        messages=[
            {"role": "system", "content": OCR_PROMPT},
            {"role": "user", "content": [
                {"type": "image_url", "image_url": {"url": data_uri}},
            ]},
        ],
    )
    text = (response.choices[0].message.content or "").strip()
    logger.debug("OCR returned %d characters", len(text))
    return text
