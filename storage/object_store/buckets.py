"""
Blob storage operations for versioned document backups.

Operations:
  - Download an object by key (body + metadata)
  - Read object attributes without the body (head)
  - Upload with a small string-valued metadata map
  - Delete by key
  - List objects under a key prefix, metadata included

Classes:
  - ObjectStore: Abstract interface consumed by the backup core
  - StoredObject: One object as reported by the store
  - InMemoryObjectStore: Process-local store (development/testing)
  - AzureBlobStore: Azure Blob Storage implementation

Missing keys are reported as None (get/head) or ignored (delete). Every other
backend failure is raised as StoreIOError.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Union
from urllib.parse import quote, unquote

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient, ContentSettings
from loguru import logger

from backups.exceptions import StoreIOError

DEFAULT_CONTENT_TYPE = "application/json"


@dataclass
class StoredObject:
    """An object as reported by the store. `body` is None for head/list results."""
    key: str
    size: int
    uploaded: datetime
    metadata: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None

    def text(self) -> str:
        if self.body is None:
            raise ValueError(f"Object {self.key} was fetched without its body")
        return self.body.decode("utf-8", errors="replace")


class ObjectStore(ABC):
    """Narrow key-value blob store interface."""

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Backend identifier for logs and health checks."""

    @abstractmethod
    def get(self, key: str) -> Optional[StoredObject]:
        """Fetch body and metadata, or None if the key does not exist."""

    @abstractmethod
    def head(self, key: str) -> Optional[StoredObject]:
        """Fetch metadata only, or None if the key does not exist."""

    @abstractmethod
    def put(
        self,
        key: str,
        data: Union[bytes, str],
        metadata: Optional[Dict[str, str]] = None,
        content_type: str = DEFAULT_CONTENT_TYPE
    ) -> StoredObject:
        """Create or overwrite an object."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete an object. Deleting a missing key is not an error."""

    @abstractmethod
    def list(self, prefix: str = "") -> List[StoredObject]:
        """List objects whose key starts with `prefix`, metadata included."""


def _to_bytes(data: Union[bytes, str]) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return data


class InMemoryObjectStore(ObjectStore):
    """
    In-memory object store (MVP version).

    WARNING: single-instance only and data is lost on restart.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._objects: Dict[str, StoredObject] = {}
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.lock = threading.Lock()

    @property
    def backend_name(self) -> str:
        return "memory"

    def get(self, key: str) -> Optional[StoredObject]:
        with self.lock:
            obj = self._objects.get(key)
            if obj is None:
                return None
            return StoredObject(
                key=obj.key,
                size=obj.size,
                uploaded=obj.uploaded,
                metadata=dict(obj.metadata),
                body=obj.body
            )

    def head(self, key: str) -> Optional[StoredObject]:
        with self.lock:
            obj = self._objects.get(key)
            if obj is None:
                return None
            return StoredObject(obj.key, obj.size, obj.uploaded, dict(obj.metadata))

    def put(
        self,
        key: str,
        data: Union[bytes, str],
        metadata: Optional[Dict[str, str]] = None,
        content_type: str = DEFAULT_CONTENT_TYPE
    ) -> StoredObject:
        body = _to_bytes(data)
        obj = StoredObject(
            key=key,
            size=len(body),
            uploaded=self._clock(),
            metadata=dict(metadata or {}),
            body=body
        )
        with self.lock:
            self._objects[key] = obj
        return StoredObject(obj.key, obj.size, obj.uploaded, dict(obj.metadata))

    def delete(self, key: str) -> None:
        with self.lock:
            self._objects.pop(key, None)

    def list(self, prefix: str = "") -> List[StoredObject]:
        with self.lock:
            return [
                StoredObject(obj.key, obj.size, obj.uploaded, dict(obj.metadata))
                for key, obj in sorted(self._objects.items())
                if key.startswith(prefix)
            ]

    def keys(self) -> List[str]:
        with self.lock:
            return sorted(self._objects)


# Azure metadata travels as HTTP headers, so values must be ASCII.
def _encode_metadata(metadata: Dict[str, str]) -> Dict[str, str]:
    return {k: quote(str(v), safe="") for k, v in metadata.items()}


def _decode_metadata(metadata: Optional[Dict[str, str]]) -> Dict[str, str]:
    return {k: unquote(v) for k, v in (metadata or {}).items()}


class AzureBlobStore(ObjectStore):
    """Azure Blob Storage backend (one container holds every revision)."""

    def __init__(self, connection_string: str, container_name: str):
        if not connection_string:
            raise ValueError("AZURE_STORAGE_CONNECTION_STRING not configured")

        self.container_name = container_name
        self._service = BlobServiceClient.from_connection_string(connection_string)
        self._container = self._service.get_container_client(container_name)
        logger.info(f"✓ Azure Blob Storage client initialized (container={container_name})")

    @property
    def backend_name(self) -> str:
        return "azure"

    def get(self, key: str) -> Optional[StoredObject]:
        try:
            downloader = self._container.get_blob_client(key).download_blob()
            body = downloader.readall()
        except ResourceNotFoundError:
            return None
        except AzureError as e:
            logger.error(f"[STORE] get {key} failed: {e}")
            raise StoreIOError("get", key, e) from e

        props = downloader.properties
        return StoredObject(
            key=key,
            size=props.size,
            uploaded=props.last_modified,
            metadata=_decode_metadata(props.metadata),
            body=body
        )

    def head(self, key: str) -> Optional[StoredObject]:
        try:
            props = self._container.get_blob_client(key).get_blob_properties()
        except ResourceNotFoundError:
            return None
        except AzureError as e:
            logger.error(f"[STORE] head {key} failed: {e}")
            raise StoreIOError("head", key, e) from e

        return StoredObject(key, props.size, props.last_modified, _decode_metadata(props.metadata))

    def put(
        self,
        key: str,
        data: Union[bytes, str],
        metadata: Optional[Dict[str, str]] = None,
        content_type: str = DEFAULT_CONTENT_TYPE
    ) -> StoredObject:
        body = _to_bytes(data)
        try:
            result = self._container.get_blob_client(key).upload_blob(
                body,
                overwrite=True,
                metadata=_encode_metadata(metadata or {}),
                content_settings=ContentSettings(content_type=content_type)
            )
        except AzureError as e:
            logger.error(f"[STORE] put {key} failed: {e}")
            raise StoreIOError("put", key, e) from e

        uploaded = result.get("last_modified") or datetime.now(timezone.utc)
        return StoredObject(key, len(body), uploaded, dict(metadata or {}))

    def delete(self, key: str) -> None:
        try:
            self._container.get_blob_client(key).delete_blob()
        except ResourceNotFoundError:
            logger.debug(f"[STORE] delete {key}: already absent")
        except AzureError as e:
            logger.error(f"[STORE] delete {key} failed: {e}")
            raise StoreIOError("delete", key, e) from e

    def list(self, prefix: str = "") -> List[StoredObject]:
        try:
            return [
                StoredObject(
                    key=props.name,
                    size=props.size,
                    uploaded=props.last_modified,
                    metadata=_decode_metadata(props.metadata)
                )
                for props in self._container.list_blobs(
                    name_starts_with=prefix,
                    include=["metadata"]
                )
            ]
        except AzureError as e:
            logger.error(f"[STORE] list {prefix!r} failed: {e}")
            raise StoreIOError("list", prefix, e) from e


def build_object_store(config) -> ObjectStore:
    """Create the store selected by `config.store_backend`."""
    backend = config.store_backend.lower()

    if backend == "azure":
        return AzureBlobStore(
            connection_string=config.azure_connection_string,
            container_name=config.container_name
        )
    if backend == "memory":
        logger.warning("⚠️  Using in-memory object store (development mode)")
        return InMemoryObjectStore()

    raise ValueError(f"Unknown BACKUP_STORE backend: {config.store_backend}")
