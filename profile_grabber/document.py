"""Document adapters: the query surface the locator and retriever rely on.

Two implementations share one async contract. ``PlaywrightDocument`` wraps a
live page; ``HtmlDocument`` wraps saved markup parsed with BeautifulSoup and
fetches with requests.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Protocol, Union

import requests
from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .browser import USER_AGENT
from .errors import NavigationError, RetrievalError

logger = logging.getLogger("profile_grabber")


@dataclass(frozen=True)
class FetchResponse:
    """Status and body of a direct byte fetch."""

    status: int
    body: bytes = field(repr=False)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class ByteFetcher(Protocol):
    async def fetch_bytes(self, url: str) -> FetchResponse: ...


class DocumentAdapter(ByteFetcher, Protocol):
    """Contract consumed by the locator, retriever and diagnostics."""

    snapshot_suffix: str

    @property
    def base_url(self) -> str: ...

    async def navigate(
        self,
        address: str,
        wait_until: str = "domcontentloaded",
        timeout_ms: int = 30_000,
        settle_ms: int = 0,
    ) -> None: ...

    async def find_all(self, selector: str, timeout_ms: int = 0) -> List[Any]: ...

    async def attribute(self, handle: Any, name: str) -> Optional[str]: ...

    async def snapshot(self, path: Path) -> None: ...


class PlaywrightDocument:
    """Adapter over a rendered Playwright page."""

    snapshot_suffix = ".png"

    def __init__(self, page: Page, fetch_timeout_ms: int = 15_000) -> None:
        self._page = page
        self._fetch_timeout_ms = fetch_timeout_ms

    @property
    def base_url(self) -> str:
        return self._page.url

    async def navigate(
        self,
        address: str,
        wait_until: str = "domcontentloaded",
        timeout_ms: int = 30_000,
        settle_ms: int = 0,
    ) -> None:
        logger.info("Loading %s", address)
        try:
            response = await self._page.goto(
                address, wait_until=wait_until, timeout=timeout_ms
            )
        except PlaywrightTimeoutError as exc:
            raise NavigationError(f"Timed out loading {address}") from exc
        except PlaywrightError as exc:
            raise NavigationError(f"Failed to load {address}: {exc}") from exc
        if response is not None and not response.ok:
            logger.warning("%s answered with HTTP %s", address, response.status)
        if settle_ms > 0:
            await self._page.wait_for_timeout(settle_ms)

    async def find_all(self, selector: str, timeout_ms: int = 0) -> List[Any]:
        # A timeout of 0 means "wait forever" to Playwright, so skip the wait.
        if timeout_ms > 0:
            try:
                await self._page.wait_for_selector(
                    selector, state="attached", timeout=timeout_ms
                )
            except PlaywrightTimeoutError:
                return []
        return await self._page.query_selector_all(selector)

    async def attribute(self, handle: Any, name: str) -> Optional[str]:
        return await handle.get_attribute(name)

    async def fetch_bytes(self, url: str) -> FetchResponse:
        try:
            response = await self._page.context.request.get(
                url, timeout=self._fetch_timeout_ms
            )
            try:
                body = await response.body()
            finally:
                await response.dispose()
        except PlaywrightError as exc:
            raise RetrievalError(f"Request for {url} failed: {exc}") from exc
        return FetchResponse(status=response.status, body=body)

    async def snapshot(self, path: Path) -> None:
        await self._page.screenshot(path=str(path), full_page=True)


class HtmlDocument:
    """Adapter over static markup, e.g. a page saved from a browser."""

    snapshot_suffix = ".html"

    def __init__(
        self,
        html: str,
        base_url: str = "",
        session: Optional[requests.Session] = None,
        fetch_timeout: float = 15.0,
    ) -> None:
        self._soup = BeautifulSoup(html, "html.parser")
        self._base_url = base_url
        self._session = session
        self._owns_session = False
        self._fetch_timeout = fetch_timeout

    @classmethod
    def from_file(
        cls, path: Union[str, Path], base_url: str = "", **kwargs: Any
    ) -> "HtmlDocument":
        html = Path(path).read_text(encoding="utf-8", errors="replace")
        return cls(html, base_url=base_url, **kwargs)

    @property
    def base_url(self) -> str:
        return self._base_url

    async def navigate(
        self,
        address: str,
        wait_until: str = "domcontentloaded",
        timeout_ms: int = 30_000,
        settle_ms: int = 0,
    ) -> None:
        logger.debug("Static document for %s; nothing to load", address)
        if not self._base_url:
            self._base_url = address

    async def find_all(self, selector: str, timeout_ms: int = 0) -> List[Any]:
        return self._soup.select(selector)

    async def attribute(self, handle: Any, name: str) -> Optional[str]:
        value = handle.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    async def fetch_bytes(self, url: str) -> FetchResponse:
        if self._session is None:
            self._session = requests.Session()
            self._session.headers["User-Agent"] = USER_AGENT
            self._owns_session = True
        try:
            resp = await asyncio.to_thread(
                self._session.get, url, timeout=self._fetch_timeout
            )
        except requests.RequestException as exc:
            raise RetrievalError(f"Request for {url} failed: {exc}") from exc
        return FetchResponse(status=resp.status_code, body=resp.content)

    async def snapshot(self, path: Path) -> None:
        Path(path).write_text(str(self._soup), encoding="utf-8")

    def close(self) -> None:
        """Close the requests session if this document created it."""
        if self._owns_session and self._session is not None:
            self._session.close()
            self._session = None
            self._owns_session = False
