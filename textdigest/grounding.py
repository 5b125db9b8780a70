"""Provenance marker helpers."""

from __future__ import annotations

import re

SOURCE_TAG_PATTERN = re.compile(r"\[source:[^\]]*\]", re.IGNORECASE)
_SOURCE_MARKER = re.compile(r"\[source:", re.IGNORECASE)


def has_source_tag(text: str) -> bool:
    return bool(_SOURCE_MARKER.search(text))


def strip_source_tags(text: str) -> str:
    """Remove every ``[source: ...]`` marker and collapse the leftover whitespace."""
    return " ".join(SOURCE_TAG_PATTERN.sub(" ", text).split())


def citation_confidence(items: list[str]) -> float:
    """Fraction of items carrying a source marker; zero when there are no items.

    Only the presence of the marker is checked, never whether the cited
    path or line is accurate.
    """
    if not items:
        return 0.0
    linked = sum(1 for item in items if has_source_tag(item))
    return linked / len(items)
