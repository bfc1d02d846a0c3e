"""Configuration objects and constants for the grabber."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

DEFAULT_OUTPUT_DIR = "images"
DEFAULT_ALLOWED_DOMAINS = ("linkedin.com",)


@dataclass
class GrabConfig:
    """Top-level settings that control navigation, resolution and retrieval."""

    output_root: Path
    navigation_timeout: float = 30.0
    wait_until: str = "domcontentloaded"
    wait_after_load: float = 3.0
    selector_timeout: float = 5.0
    fetch_timeout: float = 15.0
    cooldown: float = 2.0
    headless: bool = True
    storage_state: Optional[str] = None
    allowed_domains: Tuple[str, ...] = DEFAULT_ALLOWED_DOMAINS
    extra_keywords: Tuple[str, ...] = ()
    inventory_src_limit: int = 100
    capture_diagnostics: bool = True

    @property
    def navigation_timeout_ms(self) -> int:
        return int(self.navigation_timeout * 1000)

    @property
    def selector_timeout_ms(self) -> int:
        return int(self.selector_timeout * 1000)

    @property
    def fetch_timeout_ms(self) -> int:
        return int(self.fetch_timeout * 1000)
