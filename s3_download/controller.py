from __future__ import annotations
"""Controller layer between the command line and :class:`S3DownloadService`."""

import logging
import os
from typing import Callable, Mapping, Optional

from .models import TransferConfig, TransferSummary
from .profiles import ConnectionProfile, ProfileStorage
from .services import ConfigurationError, S3DownloadService
from .settings import SettingsStorage

LOGGER = logging.getLogger(__name__)

ENV_ACCESS_KEY = "S3_DOWNLOAD_ACCESS_KEY"
ENV_SECRET_KEY = "S3_DOWNLOAD_SECRET_KEY"
ENV_ENDPOINT = "S3_DOWNLOAD_ENDPOINT"


class S3DownloadController:
    """Resolves invocation parameters and hands them to the download service."""

    def __init__(
        self,
        service_factory: Callable[..., S3DownloadService] | None = None,
        storage: ProfileStorage | None = None,
        settings_storage: SettingsStorage | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        self._service_factory = service_factory or S3DownloadService
        self._storage = storage or ProfileStorage()
        self._settings_storage = settings_storage or SettingsStorage()
        self._environ = environ if environ is not None else os.environ

    def list_profiles(self) -> list[ConnectionProfile]:
        return self._storage.load()

    def get_profile(self, name: str) -> ConnectionProfile:
        profile = self._storage.get(name)
        if profile is None:
            raise ConfigurationError(f"Profile '{name}' does not exist")
        return profile

    def save_profile(self, profile: ConnectionProfile) -> None:
        if not profile.name:
            raise ConfigurationError("Profile name is required")
        profiles = self._storage.load()
        for idx, existing in enumerate(profiles):
            if existing.name == profile.name:
                profiles[idx] = profile
                break
        else:
            profiles.append(profile)
        self._storage.save(profiles)

    def delete_profile(self, name: str) -> None:
        profiles = self._storage.load()
        remaining = [p for p in profiles if p.name != name]
        if len(remaining) == len(profiles):
            raise ConfigurationError(f"Profile '{name}' does not exist")
        self._storage.save(remaining)

    def build_config(
        self,
        *,
        bucket_name: str | None,
        destination: str | None,
        source: str | None = None,
        relative: bool = False,
        exclude: str | None = None,
        endpoint: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        profile_name: str | None = None,
        allow_default_credentials: bool = False,
    ) -> TransferConfig:
        """Merge explicit values, environment variables and a saved profile.

        Explicit values win over the environment, which wins over the profile.

        Raises:
            ConfigurationError: when a required parameter cannot be resolved.
        """
        if not bucket_name:
            raise ConfigurationError("Parameter 'bucket' is required")
        if not destination:
            raise ConfigurationError("Parameter 'destination' is required")

        profile: Optional[ConnectionProfile] = None
        if profile_name:
            profile = self.get_profile(profile_name)
            LOGGER.debug("Using saved profile '%s'", profile_name)

        access_key = self._pick(access_key, ENV_ACCESS_KEY, profile.access_key if profile else None)
        secret_key = self._pick(secret_key, ENV_SECRET_KEY, profile.secret_key if profile else None)
        endpoint = self._pick(endpoint, ENV_ENDPOINT, profile.endpoint_url if profile else None)

        if not allow_default_credentials:
            if not access_key:
                raise ConfigurationError("Parameter 'access-key' is required")
            if not secret_key:
                raise ConfigurationError("Parameter 'secret-key' is required")

        return TransferConfig(
            bucket_name=bucket_name,
            destination=destination,
            access_key=access_key,
            secret_key=secret_key,
            source=source or "",
            relative=relative,
            exclude=exclude or None,
            endpoint=endpoint,
        )

    def download(self, config: TransferConfig) -> TransferSummary:
        settings = self._settings_storage.load()
        service = self._service_factory(page_size=settings.page_size, chunk_size=settings.chunk_size)
        return service.run(config)

    def _pick(self, explicit: str | None, env_name: str, fallback: str | None) -> str | None:
        if explicit:
            return explicit
        from_env = self._environ.get(env_name)
        if from_env:
            return from_env
        return fallback or None
