"""Blob storage adapters for inspection photos.

One backend is selected from STORAGE_TYPE (local | s3 | azure | custom) and
shared by the whole process through get_storage_backend().
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import boto3
import httpx
from azure.core.exceptions import AzureError
from azure.storage.blob import BlobServiceClient, ContentSettings
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import Settings, settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Backend misconfigured or upload/delete failed."""

    pass


@dataclass(frozen=True)
class UploadResult:
    url: str
    file_name: str
    file_id: str
    size: int
    original_size: int | None = None


def _join_key(*parts: str | None) -> str:
    return "/".join(part.strip("/") for part in parts if part and part.strip("/"))


class StorageBackend(ABC):
    """upload(bytes, file_name, folder, mime_type) -> UploadResult"""

    name = "base"

    def __init__(self, config: Settings):
        self.base_path = config.STORAGE_PATH
        self.base_url = config.STORAGE_BASE_URL.rstrip("/")

    def object_key(self, file_name: str, folder: str | None = None) -> str:
        return _join_key(self.base_path, folder, file_name)

    @abstractmethod
    def upload(
        self,
        data: bytes,
        file_name: str,
        folder: str | None = None,
        mime_type: str = "image/jpeg",
    ) -> UploadResult:
        ...

    @abstractmethod
    def delete(self, file_id: str) -> None:
        ...

    @abstractmethod
    def public_url(self, file_id: str) -> str:
        ...


class LocalStorageBackend(StorageBackend):
    """Writes files under LOCAL_STORAGE_PATH; served back through GET /uploads/files."""

    name = "local"

    def __init__(self, config: Settings):
        super().__init__(config)
        self.root = Path(config.LOCAL_STORAGE_PATH).resolve()

    def _resolve(self, file_id: str) -> Path:
        path = (self.root / file_id).resolve()
        if not path.is_relative_to(self.root):
            raise StorageError(f"Path escapes storage root: {file_id}")
        return path

    def upload(self, data, file_name, folder=None, mime_type="image/jpeg"):
        key = self.object_key(file_name, folder)
        path = self._resolve(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e
        return UploadResult(url=self.public_url(key), file_name=file_name, file_id=key, size=len(data))

    def delete(self, file_id):
        path = self._resolve(file_id)
        path.unlink(missing_ok=True)

    def local_path(self, file_id: str) -> Path | None:
        """Return the stored file for a key, or None when it does not exist."""
        path = self._resolve(file_id)
        return path if path.is_file() else None

    def public_url(self, file_id):
        if self.base_url:
            return f"{self.base_url}/{file_id}"
        return f"/uploads/files/{file_id}"


class S3StorageBackend(StorageBackend):
    """S3 or any S3-compatible endpoint (MinIO, R2) with path-style addressing."""

    name = "s3"

    def __init__(self, config: Settings, client: BaseClient | None = None):
        super().__init__(config)
        if not (config.STORAGE_BUCKET and config.STORAGE_ACCESS_KEY and config.STORAGE_SECRET_KEY):
            raise StorageError(
                "Incomplete S3 configuration. Set STORAGE_BUCKET, STORAGE_ACCESS_KEY, STORAGE_SECRET_KEY"
            )
        self.bucket = config.STORAGE_BUCKET
        self.region = config.STORAGE_REGION or "us-east-1"
        self.endpoint = config.STORAGE_ENDPOINT.rstrip("/") or None
        self.client = client or boto3.client(
            "s3",
            region_name=self.region,
            aws_access_key_id=config.STORAGE_ACCESS_KEY,
            aws_secret_access_key=config.STORAGE_SECRET_KEY,
            endpoint_url=self.endpoint,
            config=Config(s3={"addressing_style": "path"}),
        )

    def upload(self, data, file_name, folder=None, mime_type="image/jpeg"):
        key = self.object_key(file_name, folder)
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=mime_type)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"S3 upload failed for {key}: {e}") from e
        return UploadResult(url=self.public_url(key), file_name=file_name, file_id=key, size=len(data))

    def delete(self, file_id):
        try:
            self.client.delete_object(Bucket=self.bucket, Key=file_id)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"S3 delete failed for {file_id}: {e}") from e

    def public_url(self, file_id):
        if self.base_url:
            return f"{self.base_url}/{file_id}"
        if self.endpoint:
            return f"{self.endpoint}/{self.bucket}/{file_id}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{file_id}"


class AzureBlobStorageBackend(StorageBackend):
    """Azure Blob Storage; STORAGE_ACCESS_KEY holds the connection string."""

    name = "azure"
    DEFAULT_CONTAINER = "inspecoes"

    def __init__(self, config: Settings, service_client: BlobServiceClient | None = None):
        super().__init__(config)
        if not config.STORAGE_ACCESS_KEY and service_client is None:
            raise StorageError("Azure storage requires STORAGE_ACCESS_KEY (connection string)")
        self.container = config.STORAGE_BUCKET or self.DEFAULT_CONTAINER
        self.service_client = service_client or BlobServiceClient.from_connection_string(
            config.STORAGE_ACCESS_KEY
        )

    def upload(self, data, file_name, folder=None, mime_type="image/jpeg"):
        key = self.object_key(file_name, folder)
        blob_client = self.service_client.get_blob_client(container=self.container, blob=key)
        try:
            blob_client.upload_blob(
                data,
                overwrite=True,
                content_settings=ContentSettings(content_type=mime_type),
            )
        except AzureError as e:
            raise StorageError(f"Azure upload failed for {key}: {e}") from e
        url = f"{self.base_url}/{key}" if self.base_url else blob_client.url
        return UploadResult(url=url, file_name=file_name, file_id=key, size=len(data))

    def delete(self, file_id):
        blob_client = self.service_client.get_blob_client(container=self.container, blob=file_id)
        try:
            blob_client.delete_blob()
        except AzureError as e:
            raise StorageError(f"Azure delete failed for {file_id}: {e}") from e

    def public_url(self, file_id):
        if self.base_url:
            return f"{self.base_url}/{file_id}"
        return self.service_client.get_blob_client(container=self.container, blob=file_id).url


class CustomHttpStorageBackend(StorageBackend):
    """
    Self-hosted file service exposing:

    POST {endpoint}/upload (multipart: file, folder, basePath) -> {url, id}
    DELETE {endpoint}/delete/{id}
    """

    name = "custom"

    def __init__(self, config: Settings, client: httpx.Client | None = None):
        super().__init__(config)
        if not config.STORAGE_ENDPOINT:
            raise StorageError("STORAGE_ENDPOINT is required for custom storage")
        self.endpoint = config.STORAGE_ENDPOINT.rstrip("/")
        headers = {}
        if config.STORAGE_ACCESS_KEY:
            headers["Authorization"] = f"Bearer {config.STORAGE_ACCESS_KEY}"
        self.client = client or httpx.Client(headers=headers, timeout=30.0)

    def upload(self, data, file_name, folder=None, mime_type="image/jpeg"):
        form = {}
        if folder:
            form["folder"] = folder
        if self.base_path:
            form["basePath"] = self.base_path
        try:
            response = self.client.post(
                f"{self.endpoint}/upload",
                files={"file": (file_name, data, mime_type)},
                data=form,
            )
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise StorageError(f"Custom storage upload failed: {e}") from e

        url = body.get("url") or body.get("publicUrl") or body.get("path")
        if not url:
            raise StorageError("Custom storage response did not include a URL")
        file_id = str(body.get("id") or body.get("fileId") or file_name)
        return UploadResult(url=url, file_name=file_name, file_id=file_id, size=len(data))

    def delete(self, file_id):
        try:
            response = self.client.delete(f"{self.endpoint}/delete/{file_id}")
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise StorageError(f"Custom storage delete failed: {e}") from e

    def public_url(self, file_id):
        if self.base_url:
            return f"{self.base_url}/{file_id}"
        return f"{self.endpoint}/file/{file_id}"


BACKENDS: dict[str, type[StorageBackend]] = {
    "local": LocalStorageBackend,
    "s3": S3StorageBackend,
    "azure": AzureBlobStorageBackend,
    "custom": CustomHttpStorageBackend,
}


def create_storage_backend(config: Settings) -> StorageBackend:
    """Build the backend named by STORAGE_TYPE, falling back to local."""
    storage_type = (config.STORAGE_TYPE or "local").strip().lower()
    backend_cls = BACKENDS.get(storage_type)
    if backend_cls is None:
        logger.warning(f"Unknown STORAGE_TYPE '{storage_type}', using local storage")
        backend_cls = LocalStorageBackend
    return backend_cls(config)


@lru_cache
def get_storage_backend() -> StorageBackend:
    """Process-wide storage backend (FastAPI dependency)."""
    backend = create_storage_backend(settings)
    logger.info(f"Storage backend initialized: {backend.name}")
    return backend
