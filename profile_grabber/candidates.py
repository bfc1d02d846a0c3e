"""Ordered registry of selectors that may hold the profile photo.

Earlier descriptors encode stronger structural assumptions about the page
and are always tried first. Every descriptor shares the same classification
heuristic unless a caller builds a registry with its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional, Tuple

from .utils import fold

Attributes = Mapping[str, Optional[str]]
Classifier = Callable[[Attributes], bool]

# Attributes read for every element before classification. ``src`` becomes
# the reference unless it is an inline placeholder next to a lazy-load URL.
LAZY_SOURCE_ATTRIBUTES = ("data-delayed-url", "data-ghost-url")
CLASSIFY_ATTRIBUTES = ("src", "alt") + LAZY_SOURCE_ATTRIBUTES

DEFAULT_ALT_KEYWORDS = ("profile", "photo", "headshot")
LOCALE_ALT_KEYWORDS = ("foto", "perfil", "profil")
DEFAULT_PATH_FRAGMENTS = ("profile-displayphoto", "headshot")

DEFAULT_SELECTORS = (
    # Logged-in profile page, most specific first.
    "img.pv-top-card-profile-picture__image",
    ".pv-top-card-profile-picture__image",
    'img[data-ghost-classes*="profile-picture"]',
    "img.pv-top-card__photo",
    "img.profile-photo-edit__preview",
    ".profile-photo-edit__preview img",
    ".pv-top-card-profile-picture img",
    ".pv-top-card--photo img",
    '[data-control-name="identity_profile_photo"] img',
    ".presence-entity__image img",
    # Public teaser page.
    ".top-card-layout__entity-info img",
    ".profile-topcard__image img",
    'img[alt*="profile photo" i]',
    'img[alt*="headshot" i]',
    'img[src*="profile-displayphoto"]',
    'img[data-delayed-url*="profile-displayphoto"]',
    'img[data-ghost-url*="profile-displayphoto"]',
    ".top-card-layout img",
    "img.profile-photo",
    ".profile-photo img",
    ".profile-topcard img",
    # Older layouts and generic fallbacks.
    ".EntityPhoto-circle-6 img",
    ".EntityPhoto-square-3 img",
    ".pv-member-card__actor-detail img",
    "img.lazy-image",
    'img[src*="licdn.com"]',
    'img[src*="linkedin.com"]',
    ".profile img",
    ".top-card img",
)


@dataclass(frozen=True)
class KeywordSet:
    """Alt-text tokens matched case-insensitively after Unicode folding."""

    tokens: Tuple[str, ...] = DEFAULT_ALT_KEYWORDS + LOCALE_ALT_KEYWORDS

    def extend(self, extra: Iterable[str]) -> "KeywordSet":
        merged = list(self.tokens)
        for token in extra:
            token = token.strip()
            if token and fold(token) not in (fold(t) for t in merged):
                merged.append(token)
        return KeywordSet(tuple(merged))

    def matches(self, text: Optional[str]) -> bool:
        folded = fold(text)
        if not folded:
            return False
        return any(fold(token) in folded for token in self.tokens)


@dataclass(frozen=True)
class ProfilePhotoHeuristic:
    """Decide whether an element's attributes look like a genuine profile photo."""

    keywords: KeywordSet = KeywordSet()
    path_fragments: Tuple[str, ...] = DEFAULT_PATH_FRAGMENTS

    def __call__(self, attrs: Attributes) -> bool:
        for name in ("src",) + LAZY_SOURCE_ATTRIBUTES:
            value = fold(attrs.get(name))
            if value and any(fragment in value for fragment in self.path_fragments):
                return True
        return self.keywords.matches(attrs.get("alt"))


@dataclass(frozen=True)
class CandidateDescriptor:
    """One hypothesis about where the target image lives in the document."""

    selector: str
    classify: Classifier


def build_registry(
    heuristic: Optional[Classifier] = None,
    selectors: Iterable[str] = DEFAULT_SELECTORS,
) -> Tuple[CandidateDescriptor, ...]:
    """Pair each selector with ``heuristic`` keeping the given order."""
    classify = heuristic or ProfilePhotoHeuristic()
    registry = []
    seen = set()
    for selector in selectors:
        if selector in seen:
            continue
        seen.add(selector)
        registry.append(CandidateDescriptor(selector=selector, classify=classify))
    if not registry:
        raise ValueError("A candidate registry needs at least one selector")
    return tuple(registry)


def registry_with_keywords(extra_keywords: Iterable[str]) -> Tuple[CandidateDescriptor, ...]:
    """Default registry whose alt-text heuristic also accepts ``extra_keywords``."""
    extra = tuple(extra_keywords)
    if not extra:
        return DEFAULT_REGISTRY
    heuristic = ProfilePhotoHeuristic(keywords=KeywordSet().extend(extra))
    return build_registry(heuristic)


DEFAULT_REGISTRY = build_registry()
