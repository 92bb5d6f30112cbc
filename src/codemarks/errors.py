"""Exception types.

Routine failures (unknown ids, bad parents, cycles) are reported through
return values by the engine; these are raised only for malformed input and
for strict-mode load failures.
"""

from __future__ import annotations


class CodemarksError(Exception):
    """Base class for codemarks errors."""


class LocationParseError(CodemarksError, ValueError):
    """A location string is not ``path:line`` or ``path:start-end``."""


class StoreLoadError(CodemarksError):
    """The store file exists but could not be read or parsed."""
