"""Data models used throughout the grabber pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union


class OriginKind(str, Enum):
    """Where the bytes of a resolved image come from."""

    REMOTE = "remote"
    INLINE = "inline"


@dataclass(frozen=True)
class ImageReference:
    """Image source picked by the locator, tagged with its origin."""

    source_value: str
    origin_kind: OriginKind
    selector: str
    attribute: str = "src"


@dataclass(frozen=True)
class RetrievalResult:
    """Raw image bytes between fetch/decode and persistence."""

    data: bytes = field(repr=False)
    byte_length: int
    image_format: Optional[str] = None


@dataclass(frozen=True)
class Found:
    reference: ImageReference


@dataclass(frozen=True)
class NotFound:
    attempted_selectors: Tuple[str, ...]


ResolutionOutcome = Union[Found, NotFound]


@dataclass(frozen=True)
class ImageSummary:
    """One image element recorded for failure triage."""

    src: str
    alt: str
    class_names: str


@dataclass(frozen=True)
class DiagnosticsArtifact:
    snapshot_path: Optional[Path]
    image_inventory: Tuple[ImageSummary, ...] = ()


@dataclass(frozen=True)
class Success:
    path: Path
    source_url: str
    selector_used: str
    byte_length: int


@dataclass(frozen=True)
class Failure:
    reason: str
    attempted_selectors: Tuple[str, ...] = ()
    selector_used: Optional[str] = None
    source_url: Optional[str] = None
    diagnostics_path: Optional[Path] = None
    image_inventory: Tuple[ImageSummary, ...] = ()


@dataclass(frozen=True)
class TargetResult:
    """Outcome for a single target address."""

    target_id: str
    outcome: Union[Success, Failure]

    @property
    def succeeded(self) -> bool:
        return isinstance(self.outcome, Success)

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["status"] = "succeeded" if self.succeeded else "failed"
        return _stringify_paths(payload)


@dataclass
class BatchReport:
    """Append-only sequence of target results in processing order."""

    results: List[TargetResult] = field(default_factory=list)

    def add(self, result: TargetResult) -> None:
        self.results.append(result)

    def __iter__(self) -> Iterator[TargetResult]:
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)

    def __getitem__(self, index: int) -> TargetResult:
        return self.results[index]

    @property
    def succeeded(self) -> List[TargetResult]:
        return [result for result in self.results if result.succeeded]

    @property
    def failed(self) -> List[TargetResult]:
        return [result for result in self.results if not result.succeeded]

    @property
    def ok(self) -> bool:
        return bool(self.results) and not self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": len(self.results),
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "results": [result.to_dict() for result in self.results],
        }


def _stringify_paths(value: Any) -> Any:
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {key: _stringify_paths(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_stringify_paths(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    return value
