"""Chromium launch settings for the rendered-document provider."""

from __future__ import annotations

import logging
from typing import Tuple

from playwright.async_api import Browser, BrowserContext, Page, Playwright

from .config import GrabConfig

logger = logging.getLogger("profile_grabber")

CHROME_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-first-run",
    "--disable-default-apps",
    "--disable-dev-shm-usage",
]

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

VIEWPORT = {"width": 1280, "height": 720}

_HIDE_WEBDRIVER = (
    "Object.defineProperty(navigator, 'webdriver', { get: () => undefined });"
)


async def open_browser(
    playwright: Playwright,
    config: GrabConfig,
) -> Tuple[Browser, BrowserContext, Page]:
    """Launch Chromium and return the browser, context and a fresh page.

    ``config.storage_state`` points at a saved session (cookies and local
    storage) so an already-authenticated profile view can be reused.
    """
    browser = await playwright.chromium.launch(
        headless=config.headless, args=CHROME_ARGS
    )
    context = await browser.new_context(
        storage_state=config.storage_state,
        user_agent=USER_AGENT,
        viewport=VIEWPORT,
    )
    await context.add_init_script(_HIDE_WEBDRIVER)
    page = await context.new_page()
    page.set_default_navigation_timeout(config.navigation_timeout_ms)
    logger.debug(
        "Browser ready (headless=%s, storage_state=%s)",
        config.headless,
        config.storage_state,
    )
    return browser, context, page
