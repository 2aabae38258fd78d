"""Inline language-tag grammar: ``[[LANG]]``, ``[[LANG:REGION]]``, ``[[UNK]]``.

Every place that reads, rewrites or removes tags goes through this module so
parsing, case normalisation and stripping always agree on one pattern.

A tag code is exactly ``[A-Za-z]{2,3}(:[A-Za-z0-9_-]+)?``. Codes are not
checked against a real ISO 639 list. A tagged segment runs from its tag up to
the next tag or the end of the string; text before the first tag carries no
language.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

TAG_PATTERN = re.compile(r"\[\[([A-Za-z]{2,3}(?::[A-Za-z0-9_-]+)?)\]\]")

# ``[[AMB:en/fr]]`` markers contain "/", which the code grammar does not
# accept, so parse and strip leave them alone. They are removed only where no
# marker may survive (content checks, translated output).
AMBIGUOUS_PATTERN = re.compile(r"\[\[AMB:[A-Za-z]{2,3}/[A-Za-z]{2,3}\]\]", re.IGNORECASE)

_ANY_MARKER = re.compile(
    TAG_PATTERN.pattern + r"|\[\[(?i:AMB):[A-Za-z]{2,3}/[A-Za-z]{2,3}\]\]"
)


@dataclass(frozen=True)
class TaggedSegment:
    """One run of text and the (uppercased) code that governs it."""

    code: str | None
    text: str


def parse_tags(text: str) -> list[str]:
    """Return the uppercased codes found in ``text``.

    Order is first occurrence; duplicates are dropped.
    """
    if not text:
        return []
    seen: dict[str, None] = {}
    for match in TAG_PATTERN.finditer(text):
        seen.setdefault(match.group(1).upper(), None)
    return list(seen)


def standardize_tags(text: str) -> str:
    """Uppercase every tag code and ambiguous marker, nothing else."""
    if not text:
        return text
    text = TAG_PATTERN.sub(lambda m: f"[[{m.group(1).upper()}]]", text)
    return AMBIGUOUS_PATTERN.sub(lambda m: m.group(0).upper(), text)


def strip_tags(text: str) -> str:
    """Remove every tag (not the segment text) and trim the result."""
    if not text:
        return ""
    return TAG_PATTERN.sub("", text).strip()


def strip_all_markers(text: str) -> str:
    """``strip_tags`` that also removes ``[[AMB:a/b]]`` markers.

    Repeats until nothing changes: removing one marker can join the brackets
    around it into a new one (``[[[[EN]]ES]]``).
    """
    if not text:
        return ""
    while True:
        stripped = strip_tags(AMBIGUOUS_PATTERN.sub("", text))
        if stripped == text:
            return stripped
        text = stripped


def contains_tags(text: str) -> bool:
    """True when removing tags would change ``text``."""
    return bool(text) and TAG_PATTERN.search(text) is not None


def has_meaningful_content(text: str | None) -> bool:
    """Input made only of tags and whitespace carries nothing to translate."""
    return bool(text) and strip_tags(text) != ""


def split_segments(text: str) -> list[TaggedSegment]:
    """Split tagged text into ``(code, text)`` runs for highlighting.

    Leading untagged text becomes a segment with ``code=None``. A tag with no
    following content yields no segment.
    """
    if not text:
        return []

    segments: list[TaggedSegment] = []
    code: str | None = None
    cursor = 0
    for match in TAG_PATTERN.finditer(text):
        chunk = text[cursor : match.start()]
        if chunk:
            segments.append(TaggedSegment(code=code, text=chunk))
        code = match.group(1).upper()
        cursor = match.end()
    tail = text[cursor:]
    if tail:
        segments.append(TaggedSegment(code=code, text=tail))
    return segments


def untagged_runs(text: str) -> list[str]:
    """Text between markers of either kind, each run trimmed.

    Whitespace-only runs are dropped. ``"[[EN]]Hi  [[FR]]salut"`` gives
    ``["Hi", "salut"]``.
    """
    if not text:
        return []
    runs: list[str] = []
    cursor = 0
    for match in _ANY_MARKER.finditer(text):
        runs.append(text[cursor : match.start()].strip())
        cursor = match.end()
    runs.append(text[cursor:].strip())
    return [run for run in runs if run]
