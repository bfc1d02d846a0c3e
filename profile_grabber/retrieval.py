"""Turn a resolved image reference into raw bytes.

Remote references are fetched once through the document's fetcher; inline
``data:`` references are decoded locally and never touch the network.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import TYPE_CHECKING, Optional, Tuple
from urllib.parse import unquote_to_bytes, urljoin

from filetype import guess

from .errors import DecodeError, EmptyPayloadError, RetrievalError
from .models import ImageReference, OriginKind, RetrievalResult

if TYPE_CHECKING:
    from .document import ByteFetcher

logger = logging.getLogger("profile_grabber")

INLINE_PREFIX = "data:"


def classify_origin(source_value: str) -> OriginKind:
    """Tag a source value as inline (``data:``) or remote."""
    if source_value.lstrip()[: len(INLINE_PREFIX)].lower() == INLINE_PREFIX:
        return OriginKind.INLINE
    return OriginKind.REMOTE


def parse_inline(source_value: str) -> Tuple[str, bool, str]:
    """Split a ``data:`` reference into (mime type, is_base64, body)."""
    value = source_value.strip()
    if value[: len(INLINE_PREFIX)].lower() != INLINE_PREFIX:
        raise DecodeError("Inline reference does not start with 'data:'")
    header, sep, body = value[len(INLINE_PREFIX):].partition(",")
    if not sep:
        raise DecodeError("Inline reference is missing the ',' separator")
    body = body.strip()
    if not body:
        raise DecodeError("Inline reference has an empty body")
    params = [part.strip() for part in header.split(";")]
    mime = params[0].lower() or "text/plain"
    is_base64 = any(part.lower() == "base64" for part in params[1:])
    return mime, is_base64, body


def decode_inline(source_value: str) -> bytes:
    """Decode a ``data:`` reference; the same input always yields the same bytes."""
    mime, is_base64, body = parse_inline(source_value)
    if not is_base64:
        raise DecodeError(f"Inline {mime} payload is not base64 encoded")
    if "%" in body:
        body = unquote_to_bytes(body).decode("ascii", "replace")
    compact = "".join(body.split())
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"Inline {mime} payload is not valid base64: {exc}") from exc


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


def absolute_source(ref: ImageReference, base_url: Optional[str] = None) -> str:
    """Where the reference points, resolved against the document address."""
    value = ref.source_value.strip()
    if ref.origin_kind is OriginKind.INLINE or not base_url:
        return value
    return urljoin(base_url, value)


async def retrieve(
    ref: ImageReference,
    fetcher: "ByteFetcher",
    base_url: Optional[str] = None,
) -> RetrievalResult:
    """Produce the bytes behind ``ref`` through the decode or fetch path."""
    if ref.origin_kind is OriginKind.INLINE:
        data = decode_inline(ref.source_value)
        origin = "inline payload"
    else:
        url = absolute_source(ref, base_url)
        logger.info("Downloading image from %s", url)
        response = await fetcher.fetch_bytes(url)
        if not response.ok:
            raise RetrievalError(
                f"Failed to download image: HTTP {response.status}",
                status=response.status,
            )
        data = response.body
        origin = url

    if not data:
        raise EmptyPayloadError(f"Retrieved zero bytes from {origin}")

    image_format = detect_image_format(data)
    if image_format is None:
        logger.warning("Payload from %s does not look like an image", origin)
    return RetrievalResult(data=data, byte_length=len(data), image_format=image_format)
