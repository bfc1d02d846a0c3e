"""Ranked, fault-tolerant search for the profile image element."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence, Tuple

from .candidates import CLASSIFY_ATTRIBUTES, LAZY_SOURCE_ATTRIBUTES, CandidateDescriptor
from .document import DocumentAdapter
from .models import Found, ImageReference, NotFound, OriginKind, ResolutionOutcome
from .retrieval import classify_origin
from .utils import truncate

logger = logging.getLogger("profile_grabber")


async def _read_attributes(document: DocumentAdapter, handle: Any) -> Dict[str, Optional[str]]:
    attrs: Dict[str, Optional[str]] = {}
    for name in CLASSIFY_ATTRIBUTES:
        attrs[name] = await document.attribute(handle, name)
    return attrs


def _pick_source(attrs: Dict[str, Optional[str]]) -> Tuple[str, str]:
    """Attribute name and value to use as the reference.

    An inline ``src`` next to a remote lazy-load URL is a placeholder; the
    lazy-load URL is the real image.
    """
    src = attrs.get("src") or ""
    if classify_origin(src) is OriginKind.INLINE:
        for name in LAZY_SOURCE_ATTRIBUTES:
            value = (attrs.get(name) or "").strip()
            if value and classify_origin(value) is OriginKind.REMOTE:
                return name, value
    return "src", src


async def resolve(
    document: DocumentAdapter,
    candidates: Sequence[CandidateDescriptor],
    selector_timeout_ms: int = 5_000,
) -> ResolutionOutcome:
    """Return the first classified image across ``candidates`` in order.

    Descriptors are tried in registry order and elements in document order;
    the first element that passes its descriptor's classifier and carries a
    non-empty ``src`` wins. When that ``src`` is an inline placeholder and a
    lazy-load attribute holds a remote URL, the URL is the reference. A
    descriptor whose query fails counts as having no elements. ``NotFound`` lists every selector that was tried.
    """
    if not candidates:
        raise ValueError("resolve() needs at least one candidate descriptor")

    attempted = []
    for descriptor in candidates:
        attempted.append(descriptor.selector)
        logger.debug("Trying selector %s", descriptor.selector)
        try:
            elements = await document.find_all(descriptor.selector, selector_timeout_ms)
        except Exception as exc:  # pylint: disable=broad-except
            logger.debug("Selector %s failed: %s", descriptor.selector, exc)
            continue

        for handle in elements:
            try:
                attrs = await _read_attributes(document, handle)
            except Exception as exc:  # pylint: disable=broad-except
                logger.debug("Could not read element for %s: %s", descriptor.selector, exc)
                continue
            if not descriptor.classify(attrs):
                continue
            src = attrs.get("src") or ""
            if not src.strip():
                logger.debug(
                    "Element for %s classified but has no src; skipping",
                    descriptor.selector,
                )
                continue
            attribute, value = _pick_source(attrs)
            logger.info("Found profile image using selector: %s", descriptor.selector)
            logger.info("Source (%s): %s", attribute, truncate(value, 80))
            reference = ImageReference(
                source_value=value,
                origin_kind=classify_origin(value),
                selector=descriptor.selector,
                attribute=attribute,
            )
            return Found(reference)

    return NotFound(tuple(attempted))
