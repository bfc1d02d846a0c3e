"""Deterministic artifact names derived from the target address and time."""

from __future__ import annotations

import datetime as dt
from pathlib import Path
from urllib.parse import unquote, urlparse

from .utils import slugify

UNKNOWN_IDENTIFIER = "unknown"
ARTIFACT_SUFFIX = ".jpg"
TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S"


def extract_identifier(address: str, marker: str = "in") -> str:
    """Return the path segment following ``/<marker>/``, or ``"unknown"``."""
    try:
        path = urlparse(address).path
    except (TypeError, ValueError, AttributeError):
        return UNKNOWN_IDENTIFIER
    segments = [segment for segment in path.split("/") if segment]
    for index, segment in enumerate(segments[:-1]):
        if segment == marker:
            return slugify(unquote(segments[index + 1]), fallback=UNKNOWN_IDENTIFIER)
    return UNKNOWN_IDENTIFIER


def format_timestamp(moment: dt.datetime) -> str:
    """Sortable, filesystem-safe timestamp at second resolution."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(dt.timezone.utc)
    return moment.strftime(TIMESTAMP_FORMAT)


def name_artifact(address: str, moment: dt.datetime) -> str:
    return f"{extract_identifier(address)}_{format_timestamp(moment)}{ARTIFACT_SUFFIX}"


def diagnostics_name(address: str, moment: dt.datetime, suffix: str) -> str:
    return f"{extract_identifier(address)}_debug_{format_timestamp(moment)}{suffix}"


def unique_destination(directory: Path, filename: str) -> Path:
    """Path inside ``directory`` that does not exist yet.

    Two targets sharing an identifier within the same second would produce the
    same name; a ``-1``, ``-2``... suffix keeps the earlier artifact intact.
    """
    candidate = directory / filename
    stem, suffix = candidate.stem, candidate.suffix
    counter = 1
    while candidate.exists():
        candidate = directory / f"{stem}-{counter}{suffix}"
        counter += 1
    return candidate
