"""Snapshot drift detection.

A bookmark may carry the code it pointed at when it was created. Comparing
that snapshot with the current text at the bookmark's location tells
whether the location still makes sense after edits.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from codemarks.errors import LocationParseError
from codemarks.location import parse_location

SIMILARITY_THRESHOLD = 0.5

# absolute path -> file text, or None if the file is unavailable
ContentFetcher = Callable[[str], "str | None"]


@dataclass
class Validity:
    valid: bool
    reason: str | None = None
    similarity: float | None = None


def similarity(a: str, b: str) -> float:
    """Jaccard similarity of the whitespace-separated token sets."""
    tokens_a = set(a.split())
    tokens_b = set(b.split())
    union = tokens_a | tokens_b
    if not union:
        return 1.0
    return len(tokens_a & tokens_b) / len(union)


def extract_lines(content: str, start_line: int, end_line: int) -> str | None:
    """Lines ``start_line..end_line`` (1-indexed, inclusive), or None if out of bounds."""
    lines = content.split("\n")
    if start_line < 1 or end_line > len(lines):
        return None
    return "\n".join(lines[start_line - 1:end_line])


def compare_snapshot(snapshot: str | None, location: str, content: str | None) -> Validity:
    if not snapshot:
        return Validity(True, "No snapshot to compare")
    if content is None:
        return Validity(False, "File not found")

    try:
        loc = parse_location(location)
    except LocationParseError as e:
        return Validity(False, f"Invalid location: {e}")

    current = extract_lines(content, loc.start_line, loc.end_line)
    if current is None:
        return Validity(False, "Line range out of bounds")

    if current == snapshot:
        return Validity(True, similarity=1.0)

    score = similarity(snapshot, current)
    percent = round(score * 100)
    if score < SIMILARITY_THRESHOLD:
        return Validity(False, f"Code changed significantly ({percent}% similar)", score)
    return Validity(True, f"Code slightly changed ({percent}% similar)", score)
