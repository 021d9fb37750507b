from __future__ import annotations
"""Business logic for downloading objects from S3."""
import logging
from pathlib import Path
from typing import Callable, Iterator, Optional

import boto3
from boto3.exceptions import Boto3Error
from boto3.s3.transfer import TransferConfig as S3TransferConfig
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from .key_utils import UnsafeKeyError, is_directory, is_excluded, resolve_destination
from .models import ObjectPage, TransferConfig, TransferSummary

LOGGER = logging.getLogger(__name__)

MAX_PAGE_SIZE = 1000
DEFAULT_CHUNK_SIZE = 1024 * 1024
MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}


class S3DownloadError(RuntimeError):
    """Base class for every failure surfaced by a download run."""


class ConfigurationError(S3DownloadError):
    """Raised when a required parameter is missing or invalid."""


class BucketNotFoundError(S3DownloadError):
    """Raised when the target bucket does not exist."""

    def __init__(self, bucket_name: str):
        super().__init__(f"Bucket doesn't exist: {bucket_name}")
        self.bucket_name = bucket_name


class TransferError(S3DownloadError):
    """Raised when listing or downloading fails on the network or on disk."""

    def __init__(self, message: str, *, key: str | None = None):
        super().__init__(message)
        self.key = key


class S3DownloadService:
    """Downloads a prefix (or a single key) of a bucket to the local filesystem."""

    def __init__(
        self,
        client_factory: Callable[..., object] | None = None,
        *,
        page_size: int = MAX_PAGE_SIZE,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        logger: logging.Logger | None = None,
    ):
        self._client_factory = client_factory or boto3.client
        self._page_size = min(max(int(page_size), 1), MAX_PAGE_SIZE)
        # One object at a time, one attempt: a failed download ends the run.
        self._transfer_config = S3TransferConfig(
            use_threads=False,
            io_chunksize=max(int(chunk_size), 1),
            num_download_attempts=1,
        )
        self._log = logger or LOGGER

    def run(self, config: TransferConfig) -> TransferSummary:
        """Download every selected object described by ``config``.

        Raises:
            BucketNotFoundError: when the bucket does not exist.
            TransferError: on the first network, service or disk failure.
        """
        self._log.info("--- s3-download")
        self._log.info(
            "Bucket: %s, source: %s, destination: %s, relative: %s",
            config.bucket_name,
            config.source,
            config.destination,
            config.relative,
        )
        source = config.source or ""
        client = self.create_client(config)

        try:
            exists = self.bucket_exists(client, config.bucket_name)
        except (ClientError, BotoCoreError) as exc:
            raise TransferError(f"Unable to check bucket {config.bucket_name}: {exc}") from exc
        if not exists:
            raise BucketNotFoundError(config.bucket_name)

        summary = TransferSummary()
        destination = Path(config.destination)
        try:
            if is_directory(config.destination):
                destination.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise TransferError(f"Unable to create destination {destination}: {exc}") from exc

        if destination.is_dir():
            for page in self.iter_object_pages(client, config.bucket_name, source):
                summary.pages += 1
                for key in page.keys:
                    self.download_key(client, config, destination, key, summary)
        elif is_excluded(source, config.exclude):
            self._log.debug("Excluding %s", source)
            summary.excluded += 1
        else:
            self._log.debug("Downloading %s to %s", source, destination)
            self._download_to_file(client, config.bucket_name, source, destination, summary)

        self._log.info(
            "Successfully downloaded all files (%d file(s), %d folder(s), %d excluded, %d byte(s))",
            summary.downloaded,
            summary.directories,
            summary.excluded,
            summary.bytes_written,
        )
        return summary

    def create_client(self, config: TransferConfig):
        client_kwargs = {"config": Config(signature_version="s3v4")}
        if config.endpoint:
            client_kwargs["endpoint_url"] = config.endpoint
        if config.has_static_credentials:
            client_kwargs["aws_access_key_id"] = config.access_key
            client_kwargs["aws_secret_access_key"] = config.secret_key
        else:
            self._log.debug("No static credentials given; using the default credential chain")
        return self._client_factory("s3", **client_kwargs)

    def bucket_exists(self, client, bucket_name: str) -> bool:
        """Return whether ``bucket_name`` exists.

        A 403 answer means the bucket exists but is owned by someone else or
        not readable by ``head_bucket``; it is reported as existing.
        """
        try:
            client.head_bucket(Bucket=bucket_name)
        except ClientError as exc:
            error = exc.response.get("Error", {})
            code = str(error.get("Code", ""))
            if code in MISSING_BUCKET_CODES:
                return False
            if code in {"403", "AccessDenied", "Forbidden"}:
                return True
            raise
        return True

    def iter_object_pages(self, client, bucket_name: str, prefix: str = "") -> Iterator[ObjectPage]:
        """Yield listing pages lazily until the service reports no more."""

        request_token: str | None = None
        page_number = 1
        while True:
            list_params = {"Bucket": bucket_name, "MaxKeys": self._page_size}
            if prefix:
                list_params["Prefix"] = prefix
            if request_token:
                list_params["ContinuationToken"] = request_token

            try:
                response = client.list_objects_v2(**list_params)
            except (ClientError, BotoCoreError) as exc:
                raise TransferError(f"Unable to list objects in {bucket_name}: {exc}") from exc

            page = ObjectPage(
                number=page_number,
                keys=[obj["Key"] for obj in response.get("Contents", [])],
                truncated=bool(response.get("IsTruncated", False)),
                continuation_token=response.get("NextContinuationToken"),
            )
            self._log.debug("Listed page %d of %s (%d key(s))", page.number, bucket_name, len(page.keys))
            yield page

            if not page.truncated:
                break
            if not page.continuation_token:
                raise TransferError(
                    f"Listing of {bucket_name} is truncated but has no continuation token"
                )
            request_token = page.continuation_token
            page_number += 1

    def download_key(
        self,
        client,
        config: TransferConfig,
        destination: Path,
        key: str,
        summary: Optional[TransferSummary] = None,
    ) -> Optional[Path]:
        """Download one listed key below ``destination``.

        Returns the local path written or created, or None for excluded keys.
        """
        summary = summary if summary is not None else TransferSummary()
        if is_excluded(key, config.exclude):
            self._log.debug("Excluding %s", key)
            summary.excluded += 1
            return None

        self._log.debug("Downloading %s", key)
        try:
            target = resolve_destination(destination, key, config.source or "", config.relative)
        except UnsafeKeyError as exc:
            raise TransferError(str(exc), key=key) from exc
        if is_directory(key):
            try:
                target.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise TransferError(f"Unable to create directory {target}: {exc}", key=key) from exc
            summary.directories += 1
            return target

        self._download_to_file(client, config.bucket_name, key, target, summary)
        return target

    def _download_to_file(
        self,
        client,
        bucket_name: str,
        key: str,
        target: Path,
        summary: TransferSummary,
    ) -> None:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise TransferError(f"Unable to create directory {target.parent}: {exc}", key=key) from exc

        transferred = 0

        def _callback(bytes_amount: int) -> None:
            nonlocal transferred
            transferred += bytes_amount

        # The managed transfer writes to a temporary file and renames it on
        # success, so a failed download leaves any previous copy in place.
        try:
            client.download_file(
                bucket_name,
                key,
                str(target),
                Callback=_callback,
                Config=self._transfer_config,
            )
        except (ClientError, BotoCoreError, Boto3Error) as exc:
            raise TransferError(f"Unable to download {key} from S3: {exc}", key=key) from exc
        except OSError as exc:
            raise TransferError(f"Unable to write {key} to {target}: {exc}", key=key) from exc

        summary.downloaded += 1
        summary.bytes_written += transferred
        summary.written_paths.append(str(target))
        self._log.debug("Wrote %s (%d byte(s))", target, transferred)
