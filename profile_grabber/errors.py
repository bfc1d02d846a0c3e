"""Exception hierarchy for the grabber pipeline."""

from __future__ import annotations

from typing import Optional


class GrabberError(Exception):
    """Base class for every failure raised by profile_grabber."""


class InvalidAddress(GrabberError):
    """The target address failed the scheme/domain/shape check."""


class NavigationError(GrabberError):
    """The document could not be loaded or timed out."""


class RetrievalError(GrabberError):
    """Fetching or decoding the resolved image failed."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class DecodeError(RetrievalError):
    """An inline ``data:`` payload is malformed or not valid base64."""


class EmptyPayloadError(RetrievalError):
    """The retrieval succeeded but produced zero bytes."""
