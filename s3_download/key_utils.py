from __future__ import annotations
"""Key and path helpers shared by the downloader."""
from pathlib import Path

KEY_SEPARATOR = "/"


def is_directory(path: str) -> bool:
    """Return True when ``path`` ends with the key separator.

    Applies equally to remote keys (directory markers) and to the local
    destination string.
    """
    return bool(path) and path[-1] == KEY_SEPARATOR


def is_excluded(key: str, exclude: str | None) -> bool:
    """Return True when ``key`` ends with the ``exclude`` suffix.

    An empty or missing suffix excludes nothing. Matching is case-sensitive.
    """
    if not exclude:
        return False
    if len(key) < len(exclude):
        return False
    return key[len(key) - len(exclude):] == exclude


def relative_key(key: str, source: str, relative: bool) -> str:
    if relative and len(key) > len(source):
        return key[len(source):]
    return key


class UnsafeKeyError(ValueError):
    """Raised when a key would be written outside the destination directory."""

    def __init__(self, key: str):
        super().__init__(f"Key {key!r} resolves outside the destination directory")
        self.key = key


def resolve_destination(destination: str | Path, key: str, source: str, relative: bool) -> Path:
    """Return the local path ``key`` is written to under ``destination``.

    Raises:
        UnsafeKeyError: when ``..`` segments in the key climb out of ``destination``.
    """

    base = Path(destination)
    target = base / relative_key(key, source, relative).lstrip(KEY_SEPARATOR)
    if not target.resolve().is_relative_to(base.resolve()):
        raise UnsafeKeyError(key)
    return target
