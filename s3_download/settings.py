from __future__ import annotations
"""Tool settings persistence helpers."""

from dataclasses import dataclass
import json
from pathlib import Path

MAX_PAGE_SIZE = 1000


@dataclass
class DownloadSettings:
    """Simple container for persistent download settings."""

    page_size: int = MAX_PAGE_SIZE
    chunk_size: int = 1024 * 1024


class SettingsStorage:
    """JSON-backed persistence for :class:`DownloadSettings`."""

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".s3_download_settings.json"
        self._path = Path(storage_path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> DownloadSettings:
        if not self._path.exists():
            return DownloadSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return DownloadSettings()
        if not isinstance(data, dict):
            return DownloadSettings()
        page_size = _positive_int(data.get("page_size"), DownloadSettings.page_size)
        if page_size > MAX_PAGE_SIZE:
            page_size = MAX_PAGE_SIZE
        chunk_size = _positive_int(data.get("chunk_size"), DownloadSettings.chunk_size)
        return DownloadSettings(page_size=page_size, chunk_size=chunk_size)

    def save(self, settings: DownloadSettings) -> None:
        payload = {
            "page_size": min(max(int(settings.page_size), 1), MAX_PAGE_SIZE),
            "chunk_size": max(int(settings.chunk_size), 1),
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError:
            # Persist best-effort; ignore filesystem issues.
            return


def _positive_int(value, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if number <= 0:
        return default
    return number
