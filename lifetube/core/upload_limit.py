"""
Request-size cap for the upload route.

FastAPI parses multipart bodies into spooled temp files before any route
dependency runs, so the cap has to sit in front of the router:
  - a declared Content-Length over the cap is refused before any body byte
    is read
  - otherwise (chunked bodies, lying headers) bytes are counted as they are
    received and parsing stops as soon as the cap is crossed
"""
from __future__ import annotations

import logging

from fastapi import HTTPException
from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

MIB = 1024 * 1024


def describe_size(num_bytes: int) -> str:
    """Human-readable cap for error messages ("500 MB", "2 KB")."""
    if num_bytes >= MIB:
        return f"{num_bytes / MIB:.0f} MB"
    return f"{max(1, round(num_bytes / 1024))} KB"


def too_large_message(max_bytes: int) -> str:
    return f"File too large. Maximum size is {describe_size(max_bytes)}"


class UploadSizeLimitMiddleware:
    """Pure ASGI middleware guarding POSTs to one path."""

    def __init__(self, app: ASGIApp, path: str, max_bytes: int):
        self.app = app
        self.path = path
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] != "POST" or scope["path"] != self.path:
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length:
            try:
                declared = int(content_length)
            except ValueError:
                declared = None  # counted while streaming instead
            if declared is not None and declared > self.max_bytes:
                logger.warning(f"Rejected upload of {declared} bytes (cap {self.max_bytes})")
                response = JSONResponse(status_code=413, content={"error": too_large_message(self.max_bytes)})
                await response(scope, receive, send)
                return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    logger.warning(f"Upload body crossed cap of {self.max_bytes} bytes while streaming")
                    raise HTTPException(status_code=413, detail=too_large_message(self.max_bytes))
            return message

        await self.app(scope, limited_receive, send)
