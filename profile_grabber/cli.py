"""Command-line entry point for the profile image grabber."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import List, Sequence

from .config import DEFAULT_ALLOWED_DOMAINS, DEFAULT_OUTPUT_DIR, GrabConfig
from .document import HtmlDocument
from .errors import InvalidAddress
from .models import BatchReport
from .pipeline import run_batch, run_grabber, validate_address

logger = logging.getLogger("profile_grabber.cli")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="profile-grabber",
        description="Locate and download the profile photo of a profile page via Playwright.",
        epilog='Example: profile-grabber "https://www.linkedin.com/in/username/" ./images',
    )
    parser.add_argument("address", help="Profile URL to grab the photo from")
    parser.add_argument(
        "output",
        nargs="?",
        default=DEFAULT_OUTPUT_DIR,
        type=Path,
        help="Directory where images and debug snapshots are written (default: %(default)s)",
    )
    parser.add_argument(
        "--batch-file",
        type=Path,
        default=None,
        help="File with additional profile URLs, one per line, processed after ADDRESS",
    )
    parser.add_argument(
        "--html",
        type=Path,
        default=None,
        help="Resolve against a saved HTML file instead of launching a browser",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Navigation timeout in seconds",
    )
    parser.add_argument(
        "--selector-timeout",
        type=float,
        default=5.0,
        help="Seconds to wait for each candidate selector to appear",
    )
    parser.add_argument(
        "--wait",
        type=float,
        default=3.0,
        help="Seconds to let the page settle after loading",
    )
    parser.add_argument(
        "--cooldown",
        type=float,
        default=2.0,
        help="Seconds to pause between targets in batch mode",
    )
    parser.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser window",
    )
    parser.add_argument(
        "--storage-state",
        default=None,
        help="Playwright storage_state JSON of an already logged-in session",
    )
    parser.add_argument(
        "--keyword",
        action="append",
        default=[],
        help="Extra alt-text token identifying a profile photo (repeatable)",
    )
    parser.add_argument(
        "--allow-domain",
        action="append",
        default=[],
        help=f"Accept profile URLs on this domain (default: {', '.join(DEFAULT_ALLOWED_DOMAINS)})",
    )
    parser.add_argument(
        "--no-diagnostics",
        action="store_true",
        help="Skip the debug snapshot and image inventory on failure",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the batch report as JSON on STDOUT",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def _read_batch_file(path: Path) -> List[str]:
    lines = path.read_text(encoding="utf-8").splitlines()
    return [line.strip() for line in lines if line.strip() and not line.startswith("#")]


def build_config(args: argparse.Namespace) -> GrabConfig:
    return GrabConfig(
        output_root=Path(args.output).resolve(),
        navigation_timeout=args.timeout,
        wait_after_load=args.wait,
        selector_timeout=args.selector_timeout,
        cooldown=args.cooldown,
        headless=not args.headed,
        storage_state=args.storage_state,
        allowed_domains=tuple(args.allow_domain) or DEFAULT_ALLOWED_DOMAINS,
        extra_keywords=tuple(args.keyword),
        capture_diagnostics=not args.no_diagnostics,
    )


async def _run_static(html_path: Path, address: str, config: GrabConfig) -> BatchReport:
    document = HtmlDocument.from_file(
        html_path, base_url=address, fetch_timeout=config.fetch_timeout
    )
    try:
        return await run_batch(document, [address], config)
    finally:
        document.close()


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    config = build_config(args)

    try:
        validate_address(args.address, config.allowed_domains)
    except InvalidAddress as exc:
        logger.error("%s", exc)
        return 1

    addresses = [args.address]
    if args.batch_file:
        try:
            addresses.extend(_read_batch_file(args.batch_file))
        except OSError as exc:
            logger.error("Could not read batch file %s: %s", args.batch_file, exc)
            return 1
    if args.html and len(addresses) > 1:
        logger.error("--html resolves a single saved page; drop --batch-file")
        return 1

    logger.info("Target: %s", args.address if len(addresses) == 1 else f"{len(addresses)} profiles")
    logger.info("Output: %s", config.output_root)

    overall_start = time.perf_counter()
    try:
        if args.html:
            report = asyncio.run(_run_static(args.html, args.address, config))
        else:
            report = asyncio.run(run_grabber(addresses, config))
    except Exception as exc:  # pylint: disable=broad-except
        logger.error("Grabber failed before producing a report: %s", exc)
        logger.debug("Traceback for the failed run", exc_info=True)
        return 1
    total_elapsed = time.perf_counter() - overall_start

    logger.info(
        "Finished in %.2fs (%d/%d succeeded, %d failed)",
        total_elapsed,
        len(report.succeeded),
        len(report),
        len(report.failed),
    )

    if args.json:
        sys.stdout.write(json.dumps(report.to_dict(), indent=2, ensure_ascii=False) + "\n")
        sys.stdout.flush()

    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
