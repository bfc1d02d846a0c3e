"""High-level orchestration: one target at a time, results collected in order."""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Optional, Sequence
from urllib.parse import urlparse

from playwright.async_api import async_playwright

from .browser import open_browser
from .candidates import CandidateDescriptor, registry_with_keywords
from .config import DEFAULT_ALLOWED_DOMAINS, GrabConfig
from .diagnostics import capture_failure, format_inventory
from .document import DocumentAdapter, PlaywrightDocument
from .errors import InvalidAddress, NavigationError, RetrievalError
from .locator import resolve
from .models import (
    BatchReport,
    Failure,
    ImageReference,
    NotFound,
    OriginKind,
    Success,
    TargetResult,
)
from .naming import (
    UNKNOWN_IDENTIFIER,
    diagnostics_name,
    extract_identifier,
    name_artifact,
    unique_destination,
)
from .retrieval import absolute_source, retrieve
from .utils import truncate

logger = logging.getLogger("profile_grabber")

Clock = Callable[[], dt.datetime]
Sleeper = Callable[[float], Awaitable[None]]

CANCELLED_REASON = "cancelled"


class TargetState(str, Enum):
    PENDING = "pending"
    RESOLVING = "resolving"
    RETRIEVING = "retrieving"
    PERSISTING = "persisting"
    SUCCEEDED = "succeeded"
    DIAGNOSING_FAILURE = "diagnosing_failure"
    FAILED = "failed"


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _enter(address: str, state: TargetState) -> None:
    logger.debug("%s -> %s", address, state.value)


def validate_address(
    address: str,
    allowed_domains: Iterable[str] = DEFAULT_ALLOWED_DOMAINS,
) -> str:
    """Reject addresses that are not profile URLs on an allowed domain.

    An empty ``allowed_domains`` accepts any host.
    """
    candidate = (address or "").strip()
    parsed = urlparse(candidate)
    if parsed.scheme not in ("http", "https"):
        raise InvalidAddress(f"Not an http(s) URL: {address!r}")
    host = (parsed.hostname or "").lower()
    if not host:
        raise InvalidAddress(f"URL has no host: {address!r}")
    domains = [domain.lower().lstrip(".") for domain in allowed_domains]
    if domains and not any(
        host == domain or host.endswith("." + domain) for domain in domains
    ):
        raise InvalidAddress(
            f"{host} is not one of the allowed domains ({', '.join(domains)})"
        )
    if extract_identifier(candidate) == UNKNOWN_IDENTIFIER:
        raise InvalidAddress(
            f"Please provide a profile URL of the form https://{host}/in/<username>/"
        )
    return candidate


def _cancelled(cancel: Optional[asyncio.Event]) -> bool:
    return cancel is not None and cancel.is_set()


def _source_label(reference: ImageReference, base_url: Optional[str]) -> str:
    source = absolute_source(reference, base_url)
    if reference.origin_kind is OriginKind.INLINE:
        return truncate(source, 100)
    return source


async def _diagnose(
    document: DocumentAdapter,
    address: str,
    outcome: NotFound,
    config: GrabConfig,
    clock: Clock,
) -> TargetResult:
    _enter(address, TargetState.DIAGNOSING_FAILURE)
    logger.error(
        "No profile image found for %s after trying %d selectors",
        address,
        len(outcome.attempted_selectors),
    )
    diagnostics_path: Optional[Path] = None
    inventory = ()
    if config.capture_diagnostics:
        snapshot_path = unique_destination(
            config.output_root,
            diagnostics_name(address, clock(), document.snapshot_suffix),
        )
        artifact = await capture_failure(
            document, snapshot_path, config.inventory_src_limit
        )
        diagnostics_path = artifact.snapshot_path
        inventory = artifact.image_inventory
        logger.info("%s", format_inventory(artifact))

    _enter(address, TargetState.FAILED)
    reason = "No profile image found with any of the attempted selectors"
    if diagnostics_path is not None:
        reason += f"; check {diagnostics_path}"
    return TargetResult(
        target_id=address,
        outcome=Failure(
            reason=reason,
            attempted_selectors=outcome.attempted_selectors,
            diagnostics_path=diagnostics_path,
            image_inventory=inventory,
        ),
    )


async def process_target(
    document: DocumentAdapter,
    address: str,
    config: GrabConfig,
    candidates: Optional[Sequence[CandidateDescriptor]] = None,
    clock: Clock = utc_now,
) -> TargetResult:
    """Run one target through navigate, resolve, retrieve and persist.

    Every per-target failure is returned as a ``Failure``; nothing raised by
    navigation, resolution or retrieval escapes.
    """
    candidates = candidates or registry_with_keywords(config.extra_keywords)
    _enter(address, TargetState.PENDING)
    try:
        await document.navigate(
            address,
            wait_until=config.wait_until,
            timeout_ms=config.navigation_timeout_ms,
            settle_ms=int(config.wait_after_load * 1000),
        )
    except NavigationError as exc:
        _enter(address, TargetState.FAILED)
        return TargetResult(address, Failure(reason=str(exc)))

    _enter(address, TargetState.RESOLVING)
    outcome = await resolve(document, candidates, config.selector_timeout_ms)
    if isinstance(outcome, NotFound):
        return await _diagnose(document, address, outcome, config, clock)

    reference = outcome.reference
    base_url = document.base_url or address
    source_url = _source_label(reference, base_url)

    _enter(address, TargetState.RETRIEVING)
    try:
        retrieved = await retrieve(reference, document, base_url=base_url)
    except RetrievalError as exc:
        _enter(address, TargetState.FAILED)
        return TargetResult(
            address,
            Failure(
                reason=str(exc),
                selector_used=reference.selector,
                source_url=source_url,
            ),
        )

    _enter(address, TargetState.PERSISTING)
    try:
        config.output_root.mkdir(parents=True, exist_ok=True)
        destination = unique_destination(
            config.output_root, name_artifact(address, clock())
        )
        destination.write_bytes(retrieved.data)
    except OSError as exc:
        _enter(address, TargetState.FAILED)
        return TargetResult(
            address,
            Failure(
                reason=f"Failed to write image: {exc}",
                selector_used=reference.selector,
                source_url=source_url,
            ),
        )

    _enter(address, TargetState.SUCCEEDED)
    return TargetResult(
        address,
        Success(
            path=destination,
            source_url=source_url,
            selector_used=reference.selector,
            byte_length=retrieved.byte_length,
        ),
    )


def log_result(result: TargetResult) -> None:
    outcome = result.outcome
    if isinstance(outcome, Success):
        logger.info(
            "Saved %s -> %s (%.1fKB, selector %s, source %s)",
            result.target_id,
            outcome.path,
            outcome.byte_length / 1024,
            outcome.selector_used,
            outcome.source_url,
        )
        return
    logger.error("Failed %s: %s", result.target_id, outcome.reason)
    if outcome.selector_used:
        logger.error(
            "  matched selector %s, source %s", outcome.selector_used, outcome.source_url
        )
    if outcome.attempted_selectors:
        logger.error("  attempted selectors: %s", ", ".join(outcome.attempted_selectors))
    if outcome.diagnostics_path:
        logger.error("  diagnostics snapshot: %s", outcome.diagnostics_path)


async def run_batch(
    document: DocumentAdapter,
    addresses: Sequence[str],
    config: GrabConfig,
    candidates: Optional[Sequence[CandidateDescriptor]] = None,
    clock: Clock = utc_now,
    sleep: Sleeper = asyncio.sleep,
    cancel: Optional[asyncio.Event] = None,
) -> BatchReport:
    """Process ``addresses`` sequentially with a fixed cooldown between them."""
    candidates = candidates or registry_with_keywords(config.extra_keywords)
    report = BatchReport()
    for index, address in enumerate(addresses):
        if index and config.cooldown > 0 and not _cancelled(cancel):
            await sleep(config.cooldown)
        if _cancelled(cancel):
            logger.warning("Cancelled before %s", address)
            report.add(TargetResult(address, Failure(reason=CANCELLED_REASON)))
            continue

        logger.info("Processing %s (%d/%d)", address, index + 1, len(addresses))
        try:
            validate_address(address, config.allowed_domains)
            result = await process_target(document, address, config, candidates, clock)
        except InvalidAddress as exc:
            result = TargetResult(address, Failure(reason=str(exc)))
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected error processing %s", address)
            result = TargetResult(address, Failure(reason=f"Unexpected error: {exc}"))
        log_result(result)
        report.add(result)
    return report


async def run_grabber(
    addresses: Sequence[str],
    config: GrabConfig,
    cancel: Optional[asyncio.Event] = None,
) -> BatchReport:
    """Launch a browser, run every address through it, always close it."""
    async with async_playwright() as playwright:
        browser, context, page = await open_browser(playwright, config)
        try:
            document = PlaywrightDocument(page, config.fetch_timeout_ms)
            return await run_batch(document, addresses, config, cancel=cancel)
        finally:
            await context.close()
            await browser.close()


async def grab_profile_image(address: str, config: GrabConfig) -> TargetResult:
    """Single-target entry point; ``InvalidAddress`` is raised before any browser work."""
    validate_address(address, config.allowed_domains)
    report = await run_grabber([address], config)
    return report[0]
