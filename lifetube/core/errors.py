"""
LifeTube error taxonomy.

Services raise these; ``lifetube.main`` owns the single translation to HTTP
responses, so route handlers never build error payloads themselves.
"""
from __future__ import annotations

import uuid
from typing import Optional


class LifeTubeError(Exception):
    """Base error carrying a client-facing message and an HTTP status."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(LifeTubeError):
    status_code = 400


class AuthenticationRequired(LifeTubeError):
    status_code = 401


class NotAuthorized(LifeTubeError):
    status_code = 403


class NotFound(LifeTubeError):
    status_code = 404


class Conflict(LifeTubeError):
    status_code = 409


class PayloadTooLarge(LifeTubeError):
    status_code = 413


class UpstreamFailure(LifeTubeError):
    """A store, database or probe call failed and nothing sensible can be substituted."""

    status_code = 500


def parse_uuid(value: Optional[str], message: str) -> uuid.UUID:
    """Parse an identifier from a path or body, raising ``ValidationFailed(message)`` when malformed."""
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationFailed(message)
