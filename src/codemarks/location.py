"""Location strings: ``path/to/file:45`` or ``path/to/file:78-92``.

Lines are 1-indexed. The path is everything before the *last* colon, so
Windows drive letters and other colons in the path survive parsing.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from codemarks.errors import LocationParseError


@dataclass(frozen=True)
class Location:
    """A parsed bookmark location."""

    file_path: str
    start_line: int
    end_line: int
    is_range: bool = False


def _parse_line(token: str, spec: str) -> int:
    try:
        return int(token)
    except ValueError:
        raise LocationParseError(f"Invalid line spec: {spec}") from None


def parse_location(location: str) -> Location:
    """Parse a location string into a :class:`Location`."""
    path, sep, line_spec = location.rpartition(":")
    if not sep:
        raise LocationParseError(f"Invalid location format: {location}")

    if "-" in line_spec:
        start_str, _, end_str = line_spec.partition("-")
        return Location(
            file_path=path,
            start_line=_parse_line(start_str, line_spec),
            end_line=_parse_line(end_str, line_spec),
            is_range=True,
        )

    line = _parse_line(line_spec, line_spec)
    return Location(file_path=path, start_line=line, end_line=line)


def format_location(loc: Location) -> str:
    """Inverse of :func:`parse_location`."""
    if loc.is_range and loc.start_line != loc.end_line:
        return f"{loc.file_path}:{loc.start_line}-{loc.end_line}"
    return f"{loc.file_path}:{loc.start_line}"


def adjust_location(loc: Location, edit_start_line: int, line_delta: int) -> Location:
    """Shift ``loc`` for an edit that changes the line count by ``line_delta``.

    - edit strictly after the range: unchanged
    - edit at or before the start: both bounds move (never above line 1)
    - edit inside the range: only the end moves (never above the start)
    """
    if edit_start_line > loc.end_line:
        return loc

    if edit_start_line <= loc.start_line:
        return replace(
            loc,
            start_line=max(1, loc.start_line + line_delta),
            end_line=max(1, loc.end_line + line_delta),
        )

    return replace(loc, end_line=max(loc.start_line, loc.end_line + line_delta))


def normalize_path(file_path: str, workspace_root: str | None = None) -> str:
    """Use forward slashes and make paths under ``workspace_root`` relative."""
    normalized = file_path.replace("\\", "/")
    if workspace_root:
        root = workspace_root.replace("\\", "/").rstrip("/")
        if normalized == root:
            normalized = ""
        elif normalized.startswith(root + "/"):
            normalized = normalized[len(root) + 1:]
    return normalized


def locations_overlap(a: Location, b: Location) -> bool:
    """True if both locations are in the same file and share a line."""
    if a.file_path != b.file_path:
        return False
    return not (a.end_line < b.start_line or b.end_line < a.start_line)
