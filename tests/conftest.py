"""Shared fakes: a scripted document that never touches a browser or network."""

import datetime as dt
from pathlib import Path

import pytest

from profile_grabber.config import GrabConfig
from profile_grabber.document import FetchResponse

JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x00" * 200
FIXED_TIME = dt.datetime(2024, 5, 6, 7, 8, 9, tzinfo=dt.timezone.utc)


class FakeDocument:
    """Document adapter backed by dicts of selector -> element attributes.

    ``pages`` maps an address to its elements; ``navigate`` switches to it.
    Elements are plain dicts of attribute name -> value.
    """

    snapshot_suffix = ".png"

    def __init__(
        self,
        elements=None,
        pages=None,
        responses=None,
        broken_selectors=(),
        navigation_error=None,
        snapshot_error=None,
        base_url="https://example.com/",
    ):
        self.pages = pages or {}
        self.current = elements or {}
        self.responses = responses or {}
        self.broken_selectors = set(broken_selectors)
        self.navigation_error = navigation_error
        self.snapshot_error = snapshot_error
        self._base_url = base_url
        self.navigations = []
        self.queries = []
        self.fetched = []
        self.snapshots = []

    @property
    def base_url(self):
        return self._base_url

    async def navigate(self, address, wait_until="domcontentloaded", timeout_ms=30_000, settle_ms=0):
        self.navigations.append(address)
        if self.navigation_error is not None:
            raise self.navigation_error
        if address in self.pages:
            self.current = self.pages[address]
        self._base_url = address

    async def find_all(self, selector, timeout_ms=0):
        self.queries.append(selector)
        if selector in self.broken_selectors:
            raise ValueError(f"malformed selector: {selector}")
        return list(self.current.get(selector, []))

    async def attribute(self, handle, name):
        return handle.get(name)

    async def fetch_bytes(self, url):
        self.fetched.append(url)
        return self.responses.get(url, FetchResponse(status=404, body=b""))

    async def snapshot(self, path):
        if self.snapshot_error is not None:
            raise self.snapshot_error
        Path(path).write_bytes(b"snapshot")
        self.snapshots.append(Path(path))


class ExplodingFetcher:
    """Fetcher that fails the test if it is ever used."""

    async def fetch_bytes(self, url):
        raise AssertionError(f"unexpected network fetch of {url}")


@pytest.fixture
def config(tmp_path):
    return GrabConfig(
        output_root=tmp_path / "images",
        wait_after_load=0,
        selector_timeout=0,
        cooldown=0,
        allowed_domains=("example.com",),
    )


@pytest.fixture
def clock():
    return lambda: FIXED_TIME
