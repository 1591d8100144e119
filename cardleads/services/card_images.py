"""Card image storage on the local filesystem."""

import asyncio
from pathlib import Path
from uuid import uuid4

from cardleads.config import settings


ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".heic"}


def _root() -> Path:
    return Path(settings.card_image_dir).resolve()


def _resolve(card_image_path: str) -> Path:
    root = _root()
    path = (root / card_image_path).resolve()
    if not path.is_relative_to(root):
        raise ValueError(f"Card image path escapes the image store: {card_image_path}")
    return path


def _extension(filename: str | None) -> str:
    ext = Path(filename or "").suffix.lower()
    return ext if ext in ALLOWED_EXTENSIONS else ".jpg"


async def save_card_image(data: bytes, filename: str | None = None) -> str:
    """Store an uploaded card and return its path relative to the store root."""
    relative = f"cards/{uuid4().hex}{_extension(filename)}"
    path = _resolve(relative)

    def _write():
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    await asyncio.to_thread(_write)
    return relative


async def load_card_image(card_image_path: str) -> bytes:
    """Read a stored card. Raises FileNotFoundError when it is missing."""
    path = _resolve(card_image_path)
    if not path.is_file():
        raise FileNotFoundError(f"Card image not found: {card_image_path}")
    return await asyncio.to_thread(path.read_bytes)
