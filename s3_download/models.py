from __future__ import annotations
"""Data models describing a single download run."""
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class TransferConfig:
    """Parameters for one download invocation."""

    bucket_name: str
    destination: str
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    source: str = ""
    relative: bool = False
    exclude: Optional[str] = None
    endpoint: Optional[str] = None

    @property
    def has_static_credentials(self) -> bool:
        return bool(self.access_key) and bool(self.secret_key)


@dataclass
class ObjectPage:
    """Represents a single page of a bucket listing."""

    number: int
    keys: list[str] = field(default_factory=list)
    truncated: bool = False
    continuation_token: Optional[str] = None


@dataclass
class TransferSummary:
    """Counters collected while a run progresses."""

    pages: int = 0
    downloaded: int = 0
    directories: int = 0
    excluded: int = 0
    bytes_written: int = 0
    written_paths: list[str] = field(default_factory=list)
