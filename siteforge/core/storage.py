"""Object storage backends.

Keys follow ``users/{owner_id}/{project_id}/{relative_path}``. Existing keys
are overwritten on redeploy; there is no versioning.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Protocol

import boto3
from botocore.exceptions import ClientError

from siteforge.config import Settings
from siteforge.core.exceptions import ConfigurationError, ObjectNotFoundError
from siteforge.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DOCUMENT = "index.html"
MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}


def object_key(owner_id: str, project_id: str, relative_path: str = "") -> str:
    """Build the deployment-scoped key for ``relative_path``."""
    relative_path = relative_path.strip("/") or DEFAULT_DOCUMENT
    return f"users/{owner_id}/{project_id}/{relative_path}"


@dataclass(frozen=True)
class StoredObject:
    """An object as held by the store."""

    key: str
    body: bytes
    content_type: str


class ObjectStore(Protocol):
    """Put/get capability over an object store."""

    async def put(self, key: str, body: bytes, content_type: str) -> None: ...

    async def get(self, key: str) -> StoredObject:
        """Fetch ``key``; raises ``ObjectNotFoundError`` when absent."""
        ...


class S3ObjectStore:
    """Object store backed by S3 or an S3-compatible endpoint."""

    def __init__(
        self,
        bucket: str,
        region: str | None = None,
        endpoint_url: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        client: Any = None,
    ):
        if not bucket:
            raise ConfigurationError("S3 bucket name is required")

        if client is None:
            kwargs: dict[str, Any] = {}
            if region:
                kwargs["region_name"] = region
            if endpoint_url:
                kwargs["endpoint_url"] = endpoint_url
            if access_key_id and secret_access_key:
                kwargs["aws_access_key_id"] = access_key_id
                kwargs["aws_secret_access_key"] = secret_access_key
            client = boto3.client("s3", **kwargs)

        self._s3 = client
        self._bucket = bucket

    async def put(self, key: str, body: bytes, content_type: str) -> None:
        await asyncio.to_thread(
            self._s3.put_object,
            Bucket=self._bucket,
            Key=key,
            Body=body,
            ContentType=content_type,
        )
        logger.debug("storage.put", bucket=self._bucket, key=key, size=len(body))

    async def get(self, key: str) -> StoredObject:
        try:
            response = await asyncio.to_thread(
                self._s3.get_object, Bucket=self._bucket, Key=key
            )
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in MISSING_KEY_CODES:
                raise ObjectNotFoundError(key) from e
            raise

        body = await asyncio.to_thread(response["Body"].read)
        return StoredObject(
            key=key,
            body=body,
            content_type=response.get("ContentType", ""),
        )


class InMemoryObjectStore:
    """Process-local store for development and tests."""

    def __init__(self):
        self.objects: dict[str, StoredObject] = {}

    async def put(self, key: str, body: bytes, content_type: str) -> None:
        self.objects[key] = StoredObject(key=key, body=bytes(body), content_type=content_type)

    async def get(self, key: str) -> StoredObject:
        try:
            return self.objects[key]
        except KeyError:
            raise ObjectNotFoundError(key) from None

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(key for key in self.objects if key.startswith(prefix))


def build_object_store(settings: Settings) -> ObjectStore:
    """Create the configured store, failing fast on missing configuration."""
    if settings.storage_backend == "memory":
        logger.warning("storage.in_memory", reason="objects are lost on restart")
        return InMemoryObjectStore()

    if not settings.s3_bucket_name:
        raise ConfigurationError(
            "S3_BUCKET_NAME must be set when STORAGE_BACKEND is 's3'",
            {"setting": "s3_bucket_name"},
        )
    return S3ObjectStore(
        bucket=settings.s3_bucket_name,
        region=settings.aws_region,
        endpoint_url=settings.s3_endpoint_url,
        access_key_id=settings.aws_access_key_id,
        secret_access_key=settings.aws_secret_access_key,
    )
