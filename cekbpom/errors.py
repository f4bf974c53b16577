from __future__ import annotations

from typing import Optional


class CekBpomError(Exception):
    """Base error. ``status`` is the envelope status the error maps to."""

    status = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InputError(CekBpomError):
    """Caller-supplied arguments are invalid (missing queries, unknown field)."""

    status = 400


class TransportError(CekBpomError):
    """The HTTP layer reported a non-success status."""

    def __init__(self, status: int, message: str, url: Optional[str] = None):
        self.status = status
        self.url = url
        super().__init__(message)

    def __str__(self) -> str:
        if self.url:
            return f"{self.status} {self.message} ({self.url})"
        return f"{self.status} {self.message}"


class ProtocolError(CekBpomError):
    """An expected structural marker is missing from an upstream response."""

    status = 543
