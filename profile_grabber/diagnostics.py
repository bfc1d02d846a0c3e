"""Evidence captured when no candidate descriptor matched."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from .document import DocumentAdapter
from .models import DiagnosticsArtifact, ImageSummary
from .utils import truncate

logger = logging.getLogger("profile_grabber")

INVENTORY_SELECTOR = "img"


async def collect_image_inventory(
    document: DocumentAdapter,
    src_limit: int = 100,
) -> List[ImageSummary]:
    """Every image element in document order, unfiltered."""
    inventory: List[ImageSummary] = []
    for handle in await document.find_all(INVENTORY_SELECTOR, 0):
        src = await document.attribute(handle, "src")
        alt = await document.attribute(handle, "alt")
        class_names = await document.attribute(handle, "class")
        inventory.append(
            ImageSummary(
                src=truncate(src, src_limit),
                alt=alt or "",
                class_names=class_names or "",
            )
        )
    return inventory


async def capture_failure(
    document: DocumentAdapter,
    snapshot_path: Path,
    src_limit: int = 100,
) -> DiagnosticsArtifact:
    """Snapshot the page and list its images; never raises."""
    captured_path = None
    try:
        snapshot_path.parent.mkdir(parents=True, exist_ok=True)
        await document.snapshot(snapshot_path)
        captured_path = snapshot_path
        logger.info("Saved debug snapshot to %s", snapshot_path)
    except Exception as exc:  # pylint: disable=broad-except
        logger.warning("Could not capture debug snapshot: %s", exc)

    try:
        inventory = await collect_image_inventory(document, src_limit)
    except Exception as exc:  # pylint: disable=broad-except
        logger.warning("Could not list images on the page: %s", exc)
        inventory = []

    return DiagnosticsArtifact(snapshot_path=captured_path, image_inventory=tuple(inventory))


def format_inventory(artifact: DiagnosticsArtifact) -> str:
    if not artifact.image_inventory:
        return "No images found on page."
    lines = ["All images found on page:"]
    for idx, image in enumerate(artifact.image_inventory, start=1):
        alt = image.alt or "No alt"
        line = f"  {idx}. {alt} - {image.src or '(no src)'}"
        if image.class_names:
            line += f" [{image.class_names}]"
        lines.append(line)
    return "\n".join(lines)
