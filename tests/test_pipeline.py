import asyncio
import base64
import json

import pytest

from conftest import JPEG_BYTES, FakeDocument
from profile_grabber.candidates import DEFAULT_REGISTRY, build_registry
from profile_grabber.config import GrabConfig
from profile_grabber.document import FetchResponse
from profile_grabber.errors import InvalidAddress, NavigationError
from profile_grabber.models import Failure, Success
from profile_grabber.pipeline import (
    CANCELLED_REASON,
    grab_profile_image,
    process_target,
    run_batch,
    validate_address,
)

ALICE = "https://example.com/in/alice/"
BOB = "https://example.com/in/bob/"
CAROL = "https://example.com/in/carol/"


def _profile_page(src):
    return {'img[alt*="profile photo" i]': [{"src": src, "alt": "Profile photo"}]}


def _responses(*urls):
    return {url: FetchResponse(200, JPEG_BYTES) for url in urls}


@pytest.mark.parametrize(
    "address",
    [
        "https://www.linkedin.com/in/boristai/",
        "https://uk.linkedin.com/in/someone",
        "http://linkedin.com/in/someone",
    ],
)
def test_validate_address_accepts_profiles(address):
    assert validate_address(address) == address


@pytest.mark.parametrize(
    "address",
    [
        "",
        "www.linkedin.com/in/boristai/",
        "ftp://www.linkedin.com/in/boristai/",
        "https://example.com/in/alice/",
        "https://notlinkedin.com/in/alice/",
        "https://www.linkedin.com/company/acme/",
    ],
)
def test_validate_address_rejects(address):
    with pytest.raises(InvalidAddress):
        validate_address(address)


def test_validate_address_without_domain_restriction():
    assert validate_address(ALICE, allowed_domains=()) == ALICE


def test_success_scenario(config, clock):
    registry = build_registry(selectors=['img[alt*="profile"]'])
    document = FakeDocument(
        elements={
            'img[alt*="profile"]': [
                {"src": "https://cdn.example.com/alice.jpg", "alt": "alice profile"}
            ]
        },
        responses=_responses("https://cdn.example.com/alice.jpg"),
    )
    result = asyncio.run(process_target(document, ALICE, config, registry, clock))

    assert result.succeeded
    outcome = result.outcome
    assert isinstance(outcome, Success)
    assert outcome.path == config.output_root / "alice_20240506T070809.jpg"
    assert outcome.path.read_bytes() == JPEG_BYTES
    assert outcome.source_url == "https://cdn.example.com/alice.jpg"
    assert outcome.selector_used == 'img[alt*="profile"]'
    assert outcome.byte_length == len(JPEG_BYTES)
    assert document.navigations == [ALICE]


def test_not_found_scenario_captures_diagnostics(config, clock):
    document = FakeDocument(
        elements={"img": [{"src": "https://cdn.example.com/logo.svg", "alt": "Logo"}]}
    )
    result = asyncio.run(process_target(document, ALICE, config, DEFAULT_REGISTRY, clock))

    outcome = result.outcome
    assert isinstance(outcome, Failure)
    assert list(outcome.attempted_selectors) == [d.selector for d in DEFAULT_REGISTRY]
    assert outcome.diagnostics_path == config.output_root / "alice_debug_20240506T070809.png"
    assert outcome.diagnostics_path.exists()
    assert outcome.image_inventory[0].alt == "Logo"
    assert document.fetched == []
    assert not list(config.output_root.glob("*.jpg"))


def test_not_found_without_diagnostics(config, clock):
    config.capture_diagnostics = False
    document = FakeDocument()
    result = asyncio.run(process_target(document, ALICE, config, DEFAULT_REGISTRY, clock))
    assert result.outcome.diagnostics_path is None
    assert document.snapshots == []
    assert result.outcome.attempted_selectors


def test_navigation_error_becomes_failure(config, clock):
    document = FakeDocument(navigation_error=NavigationError("Timed out loading page"))
    result = asyncio.run(process_target(document, ALICE, config, DEFAULT_REGISTRY, clock))
    assert not result.succeeded
    assert result.outcome.reason == "Timed out loading page"
    assert document.queries == []


def test_retrieval_failure_reports_selector_and_source(config, clock):
    document = FakeDocument(pages={ALICE: _profile_page("/media/alice.jpg")})
    result = asyncio.run(process_target(document, ALICE, config, DEFAULT_REGISTRY, clock))
    outcome = result.outcome
    assert isinstance(outcome, Failure)
    assert "HTTP 404" in outcome.reason
    assert outcome.selector_used == 'img[alt*="profile photo" i]'
    assert outcome.source_url == "https://example.com/media/alice.jpg"
    assert not config.output_root.exists() or not list(config.output_root.iterdir())


def test_inline_image_is_persisted_without_fetch(config, clock):
    uri = "data:image/jpeg;base64," + base64.b64encode(JPEG_BYTES).decode("ascii")
    document = FakeDocument(pages={ALICE: _profile_page(uri)})
    result = asyncio.run(process_target(document, ALICE, config, DEFAULT_REGISTRY, clock))
    assert result.succeeded
    assert result.outcome.path.read_bytes() == JPEG_BYTES
    assert document.fetched == []
    assert result.outcome.source_url.endswith("...")


def test_lazy_load_placeholder_downloads_delayed_url(config, clock):
    delayed = "https://media.licdn.com/dms/image/profile-displayphoto-shrink_200_200/alice.jpg"
    page = {
        ".top-card-layout__entity-info img": [
            {
                "src": "data:image/gif;base64,R0lGODlhAQABAAAAACw=",
                "alt": "Alice Example",
                "data-delayed-url": delayed,
            }
        ]
    }
    document = FakeDocument(pages={ALICE: page}, responses=_responses(delayed))
    result = asyncio.run(process_target(document, ALICE, config, DEFAULT_REGISTRY, clock))

    assert result.succeeded
    assert result.outcome.path.read_bytes() == JPEG_BYTES
    assert result.outcome.source_url == delayed
    assert result.outcome.selector_used == ".top-card-layout__entity-info img"
    assert document.fetched == [delayed]


def test_extra_keywords_extend_the_default_registry(config, clock):
    page = {".top-card-layout img": [{"src": "https://cdn.example.com/a.jpg", "alt": "Portrait"}]}
    document = FakeDocument(pages={ALICE: page}, responses=_responses("https://cdn.example.com/a.jpg"))
    assert not asyncio.run(process_target(document, ALICE, config, clock=clock)).succeeded

    config.extra_keywords = ("portrait",)
    document = FakeDocument(pages={ALICE: page}, responses=_responses("https://cdn.example.com/a.jpg"))
    assert asyncio.run(process_target(document, ALICE, config, clock=clock)).succeeded


def test_batch_keeps_input_order_and_isolates_failures(config, clock):
    document = FakeDocument(
        pages={
            ALICE: _profile_page("https://cdn.example.com/alice.jpg"),
            BOB: {},
            CAROL: _profile_page("https://cdn.example.com/carol.jpg"),
        },
        responses=_responses(
            "https://cdn.example.com/alice.jpg", "https://cdn.example.com/carol.jpg"
        ),
    )
    config.cooldown = 2.5
    pauses = []

    async def fake_sleep(seconds):
        pauses.append(seconds)

    report = asyncio.run(
        run_batch(document, [ALICE, BOB, CAROL], config, clock=clock, sleep=fake_sleep)
    )

    assert [result.target_id for result in report] == [ALICE, BOB, CAROL]
    assert [result.succeeded for result in report] == [True, False, True]
    assert report[1].outcome.attempted_selectors
    assert report[0].outcome.path != report[2].outcome.path
    assert pauses == [2.5, 2.5]
    assert not report.ok
    assert len(report.succeeded) == 2 and len(report.failed) == 1


def test_batch_records_invalid_addresses_without_navigating(config, clock):
    document = FakeDocument(
        pages={ALICE: _profile_page("https://cdn.example.com/alice.jpg")},
        responses=_responses("https://cdn.example.com/alice.jpg"),
    )
    report = asyncio.run(
        run_batch(document, ["https://evil.test/in/x/", ALICE], config, clock=clock)
    )
    assert not report[0].succeeded
    assert "allowed domains" in report[0].outcome.reason
    assert report[1].succeeded
    assert document.navigations == [ALICE]


def test_batch_survives_unexpected_errors(config, clock):
    document = FakeDocument(navigation_error=RuntimeError("page crashed"))
    report = asyncio.run(run_batch(document, [ALICE, BOB], config, clock=clock))
    assert len(report) == 2
    assert all("Unexpected error" in result.outcome.reason for result in report)


def test_cancellation_between_targets(config, clock):
    document = FakeDocument(
        pages={ALICE: _profile_page("https://cdn.example.com/alice.jpg")},
        responses=_responses("https://cdn.example.com/alice.jpg"),
    )
    config.cooldown = 1.0

    async def scenario():
        cancel = asyncio.Event()

        async def sleep_then_cancel(seconds):
            cancel.set()

        return await run_batch(
            document,
            [ALICE, BOB, CAROL],
            config,
            clock=clock,
            sleep=sleep_then_cancel,
            cancel=cancel,
        )

    report = asyncio.run(scenario())
    assert [result.target_id for result in report] == [ALICE, BOB, CAROL]
    assert report[0].succeeded
    assert [result.outcome.reason for result in report[1:]] == [CANCELLED_REASON] * 2
    assert document.navigations == [ALICE]


def test_report_serialises_to_json(config, clock):
    document = FakeDocument(
        pages={ALICE: _profile_page("https://cdn.example.com/alice.jpg"), BOB: {}},
        responses=_responses("https://cdn.example.com/alice.jpg"),
    )
    report = asyncio.run(run_batch(document, [ALICE, BOB], config, clock=clock))
    payload = json.loads(json.dumps(report.to_dict()))
    assert payload["total"] == 2
    assert payload["results"][0]["status"] == "succeeded"
    assert payload["results"][0]["outcome"]["path"].endswith("alice_20240506T070809.jpg")
    assert payload["results"][1]["status"] == "failed"
    assert payload["results"][1]["outcome"]["diagnostics_path"].endswith(".png")


def test_single_target_entry_rejects_invalid_address(tmp_path):
    config = GrabConfig(output_root=tmp_path)
    with pytest.raises(InvalidAddress):
        asyncio.run(grab_profile_image("https://example.com/in/alice/", config))
