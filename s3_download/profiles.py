from __future__ import annotations
"""Saved connection profiles: endpoint and access key on disk, secret in the OS keychain."""
from dataclasses import dataclass
import json
import logging
from pathlib import Path
from typing import Optional

import keyring
from keyring.errors import KeyringError

LOGGER = logging.getLogger(__name__)

KEYCHAIN_SERVICE = "s3-download"


@dataclass
class ConnectionProfile:
    """Represents a saved S3 connection."""

    name: str
    endpoint_url: str
    access_key: str
    secret_key: str = ""

    def public_fields(self) -> dict[str, str]:
        return {
            "name": self.name,
            "endpoint_url": self.endpoint_url,
            "access_key": self.access_key,
        }


class KeychainStore:
    """Encapsulates OS keychain access for secrets."""

    def __init__(self, service_name: str = KEYCHAIN_SERVICE):
        self._service_name = service_name

    def get_secret(self, profile_name: str) -> str:
        if not profile_name:
            return ""
        try:
            return keyring.get_password(self._service_name, profile_name) or ""
        except KeyringError:
            LOGGER.warning("Keychain unavailable; no secret loaded for profile '%s'", profile_name)
            return ""

    def set_secret(self, profile_name: str, secret_key: str) -> None:
        if not profile_name:
            return
        if not secret_key:
            self.delete_secret(profile_name)
            return
        try:
            keyring.set_password(self._service_name, profile_name, secret_key)
        except KeyringError:
            LOGGER.warning("Keychain unavailable; secret for profile '%s' not stored", profile_name)

    def delete_secret(self, profile_name: str) -> None:
        if not profile_name:
            return
        try:
            keyring.delete_password(self._service_name, profile_name)
        except KeyringError:
            # Deleting a secret that was never stored raises as well.
            return


class ProfileStorage:
    """JSON-backed store for connection profiles."""

    def __init__(self, storage_path: str | Path | None = None, keychain: KeychainStore | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".s3_download_profiles.json"
        self._path = Path(storage_path)
        self._keychain = keychain or KeychainStore()

    def load(self) -> list[ConnectionProfile]:
        """Return saved profiles, moving any plaintext secret into the keychain."""

        profiles: list[ConnectionProfile] = []
        migrated = False
        for entry in self._read_entries():
            try:
                name = entry["name"]
                endpoint_url = entry["endpoint_url"]
                access_key = entry["access_key"]
            except KeyError:
                continue
            secret_key = entry.get("secret_key", "")
            if secret_key:
                migrated = True
                self._keychain.set_secret(name, secret_key)
            else:
                secret_key = self._keychain.get_secret(name)
            profiles.append(
                ConnectionProfile(
                    name=name,
                    endpoint_url=endpoint_url,
                    access_key=access_key,
                    secret_key=secret_key,
                )
            )
        if migrated:
            LOGGER.debug("Moved plaintext secrets from %s into the keychain", self._path)
            self._write_entries([profile.public_fields() for profile in profiles])
        return profiles

    def get(self, name: str) -> Optional[ConnectionProfile]:
        for profile in self.load():
            if profile.name == name:
                return profile
        return None

    def save(self, profiles: list[ConnectionProfile]) -> None:
        existing_names = {entry.get("name") for entry in self._read_entries()}
        for profile in profiles:
            self._keychain.set_secret(profile.name, profile.secret_key)
        for name in existing_names - {profile.name for profile in profiles}:
            if isinstance(name, str) and name:
                self._keychain.delete_secret(name)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._write_entries([profile.public_fields() for profile in profiles])

    def _read_entries(self) -> list[dict]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return []
        if not isinstance(data, list):
            return []
        return [entry for entry in data if isinstance(entry, dict)]

    def _write_entries(self, data: list[dict[str, str]]) -> None:
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
