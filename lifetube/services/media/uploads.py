"""
Upload receipt helpers: allow-list checks, unique naming, size-capped spooling.
"""
from __future__ import annotations

import logging
import secrets
import time
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import UploadFile

from lifetube.core.config import get_settings
from lifetube.core.errors import PayloadTooLarge, ValidationFailed
from lifetube.core.upload_limit import too_large_message

logger = logging.getLogger(__name__)
settings = get_settings()


def file_extension(filename: Optional[str]) -> str:
    """Lower-case extension including the dot, '' when there is none."""
    return Path(filename or "").suffix.lower()


def unique_filename(prefix: str, extension: str) -> str:
    """``<prefix>-<epoch ms>-<random>``: time keeps names ordered, the suffix keeps them apart."""
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{extension}"


def parse_tags(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def check_allowed(upload: UploadFile, allowed: Dict[str, List[str]], message: str) -> str:
    """Both the extension and the declared media type must be on the allow-list."""
    ext = file_extension(upload.filename)
    media_type = (upload.content_type or "").split(";")[0].strip().lower()
    if ext.lstrip(".") not in allowed or media_type not in allowed[ext.lstrip(".")]:
        raise ValidationFailed(message)
    return ext


async def spool_upload(upload: UploadFile, dest: Path, max_bytes: int) -> int:
    """Stream an upload to ``dest``; removes the partial file and raises when over ``max_bytes``."""
    total = 0
    try:
        with open(dest, "wb") as f:
            while True:
                chunk = await upload.read(settings.upload_chunk_bytes)
                if not chunk:
                    break
                total += len(chunk)
                if total > max_bytes:
                    raise PayloadTooLarge(too_large_message(max_bytes))
                f.write(chunk)
    except Exception:
        dest.unlink(missing_ok=True)
        raise
    return total
