"""
app/core/errors.py — Exception taxonomy
Raised by clients and services, mapped to HTTP responses in app/main.py.
"""
from __future__ import annotations

from typing import Optional


class BridgeError(Exception):
    """Base class for all errors with a user-facing HTTP mapping."""

    status_code: int = 500

    def __init__(self, message: str = "", *, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        # Operator-facing detail; never sent to the client
        self.detail = detail


class NotFoundError(BridgeError):
    status_code = 404


class MemberNotFoundError(NotFoundError):
    """The user is not a member of the configured guild."""


class UserNotFoundError(NotFoundError):
    """The user id does not resolve to a Discord user."""


class RateLimitedError(BridgeError):
    status_code = 429


class UpstreamError(BridgeError):
    """Discord answered with an unexpected status or could not be reached."""

    status_code = 502

    def __init__(
        self,
        message: str = "Upstream service unavailable. Please try again later.",
        *,
        detail: Optional[str] = None,
        upstream_status: Optional[int] = None,
    ) -> None:
        super().__init__(message, detail=detail)
        self.upstream_status = upstream_status
