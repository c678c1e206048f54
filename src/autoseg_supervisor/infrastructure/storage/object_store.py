"""
Object storage backends.

``s3://bucket/key`` goes through boto3, ``file://`` and plain paths through
the local filesystem, and ``http(s)://`` (presigned input URLs) through
requests for fetching only.
"""

import shutil
from pathlib import Path
from typing import Dict, Optional

import boto3
import requests
from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.exceptions import BotoCoreError, ClientError

from autoseg_supervisor.domain.exceptions import StorageError
from autoseg_supervisor.domain.models import ObjectLocation
from autoseg_supervisor.shared.logging import get_logger

logger = get_logger(__name__)

MISSING_OBJECT_CODES = ("404", "NoSuchKey", "NotFound")


class S3ObjectStore:
    """
    S3 object storage using boto3.
    Implements IObjectStore protocol for ``s3://`` locations.
    """

    def __init__(
        self,
        client=None,
        endpoint_url: Optional[str] = None,
        region: Optional[str] = None,
    ):
        """
        Initialize S3 store.

        Args:
            client: Pre-built boto3 S3 client (created lazily when None)
            endpoint_url: Optional S3-compatible endpoint
            region: Optional region name
        """
        self.endpoint_url = endpoint_url
        self.region = region
        self._client = client
        self._logger = get_logger(__name__)

        self._transfer_config = TransferConfig(
            multipart_threshold=50 * 1024 * 1024,  # 50MB
            multipart_chunksize=50 * 1024 * 1024,
            max_concurrency=4,
            use_threads=True
        )

    @property
    def client(self):
        if self._client is None:
            kwargs = {}
            if self.endpoint_url:
                kwargs["endpoint_url"] = self.endpoint_url
            if self.region:
                kwargs["region_name"] = self.region
            self._client = boto3.client("s3", **kwargs)
        return self._client

    def fetch(self, location: ObjectLocation, destination: Path) -> Path:
        """Download s3://bucket/key to destination."""
        self._logger.info(f"Downloading {location} -> {destination}")
        destination.parent.mkdir(parents=True, exist_ok=True)

        try:
            self.client.download_file(location.bucket, location.key, str(destination))
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Download of {location} failed: {e}") from e

        self._logger.info(f"Download completed: {destination}")
        return destination

    def put(self, source: Path, location: ObjectLocation) -> None:
        """Upload a local file to s3://bucket/key."""
        if not source.exists():
            raise StorageError(f"File not found: {source}")

        file_size = source.stat().st_size
        self._logger.info(f"Uploading {source} ({file_size} bytes) -> {location}")

        try:
            self.client.upload_file(
                str(source),
                location.bucket,
                location.key,
                Config=self._transfer_config
            )
        except (ClientError, BotoCoreError, S3UploadFailedError) as e:
            raise StorageError(f"Upload to {location} failed: {e}") from e

        self._logger.info(f"Upload completed: {location}")

    def exists(self, location: ObjectLocation) -> bool:
        """Check if object exists."""
        try:
            self.client.head_object(Bucket=location.bucket, Key=location.key)
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in MISSING_OBJECT_CODES:
                return False
            raise StorageError(f"Existence check of {location} failed: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Existence check of {location} failed: {e}") from e


class LocalObjectStore:
    """Object storage on the local filesystem, for ``file://`` locations."""

    def __init__(self):
        self._logger = get_logger(__name__)

    def fetch(self, location: ObjectLocation, destination: Path) -> Path:
        source = location.local_path
        if not source.is_file():
            raise StorageError(f"File not found: {source}")
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, destination)
        except OSError as e:
            raise StorageError(f"Failed to copy {source} to {destination}: {e}") from e
        self._logger.info(f"Copied {source} to {destination}")
        return destination

    def put(self, source: Path, location: ObjectLocation) -> None:
        target = location.local_path
        if not source.exists():
            raise StorageError(f"File not found: {source}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
        except OSError as e:
            raise StorageError(f"Failed to copy {source} to {target}: {e}") from e
        self._logger.info(f"Copied {source} to {target}")

    def exists(self, location: ObjectLocation) -> bool:
        return location.local_path.is_file()


class HttpObjectStore:
    """Fetch-only store for http(s) URLs such as presigned input links."""

    def __init__(self, timeout: int = 600, chunk_size: int = 1024 * 1024):
        """
        Initialize HTTP store.

        Args:
            timeout: Request timeout in seconds
            chunk_size: Download chunk size in bytes
        """
        self.timeout = timeout
        self.chunk_size = chunk_size
        self._logger = get_logger(__name__)

    def fetch(self, location: ObjectLocation, destination: Path) -> Path:
        # Presigned query strings are never logged, and requests puts the
        # full URL into its exception messages.
        self._logger.info(f"Downloading {location} -> {destination}")
        destination.parent.mkdir(parents=True, exist_ok=True)

        try:
            with requests.get(location.uri, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                downloaded = 0
                with open(destination, "wb") as f:
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        if chunk:
                            f.write(chunk)
                            downloaded += len(chunk)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "unknown"
            raise StorageError(f"HTTP download of {location} failed with status {status}") from e
        except requests.RequestException as e:
            raise StorageError(f"HTTP download of {location} failed: {type(e).__name__}") from e
        except OSError as e:
            raise StorageError(f"HTTP download of {location} failed: {e}") from e

        self._logger.info(f"Downloaded {downloaded} bytes to {destination}")
        return destination

    def put(self, source: Path, location: ObjectLocation) -> None:
        raise StorageError(f"Uploading to {location.scheme} locations is not supported")

    def exists(self, location: ObjectLocation) -> bool:
        raise StorageError(f"Existence checks on {location.scheme} locations are not supported")


class ObjectStore:
    """Routes each location to the backend for its scheme."""

    def __init__(
        self,
        s3: Optional[S3ObjectStore] = None,
        local: Optional[LocalObjectStore] = None,
        http: Optional[HttpObjectStore] = None,
    ):
        http = http or HttpObjectStore()
        self._backends: Dict[str, object] = {
            "s3": s3 or S3ObjectStore(),
            "file": local or LocalObjectStore(),
            "http": http,
            "https": http,
        }

    def _backend(self, location: ObjectLocation):
        try:
            return self._backends[location.scheme]
        except KeyError:
            raise StorageError(f"No storage backend for scheme '{location.scheme}'") from None

    def fetch(self, location: ObjectLocation, destination: Path) -> Path:
        return self._backend(location).fetch(location, destination)

    def put(self, source: Path, location: ObjectLocation) -> None:
        self._backend(location).put(source, location)

    def exists(self, location: ObjectLocation) -> bool:
        return self._backend(location).exists(location)
