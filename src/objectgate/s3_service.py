"""
Asynchronous S3 Client Service

This module provides an async-first S3/MinIO client that uses aioboto3 for
non-blocking S3 operations on a versioned bucket. The client is designed to be
used as an application singleton via dependency injection.

Every call is wrapped in ``translate_storage_errors`` so callers only ever see
``objectgate.errors`` exceptions.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack
from datetime import datetime
from typing import TYPE_CHECKING, Any

import aioboto3
from botocore.config import Config
from pydantic import BaseModel

from objectgate.config import S3Settings
from objectgate.errors import StorageError, translate_storage_errors

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

# Version id S3 reports for objects written while versioning was off; never stored
NULL_VERSION = "null"
STREAM_CHUNK_SIZE = 64 * 1024


class PutResult(BaseModel):
    version_token: str
    e_tag: str | None = None


class BlobHead(BaseModel):
    content_length: int
    e_tag: str | None = None
    version_token: str | None = None
    last_modified: datetime | None = None


class BlobObject:
    """An opened object download.

    ``stream`` yields the body in chunks and releases the underlying S3
    connection once drained or closed.
    """

    def __init__(self, stream: AsyncIterator[bytes], content_length: int | None, e_tag: str | None):
        self.stream = stream
        self.content_length = content_length
        self.e_tag = e_tag

    async def read(self) -> bytes:
        return b"".join([chunk async for chunk in self.stream])


class AsyncS3Client:
    """Asynchronous S3 Client

    This client maintains a shared aioboto3.Session that is created once and
    reused for all operations. Individual S3 clients are created per operation
    using context managers to ensure proper resource cleanup.
    """

    def __init__(self, settings: S3Settings | None = None):
        self.settings = settings or S3Settings()
        self._session: aioboto3.Session | None = None
        self._endpoint_url = self.settings.endpoint_url
        self._config = Config(
            signature_version=self.settings.signature_version,
            max_pool_connections=100,
            retries={"max_attempts": 3, "mode": "standard"},
            connect_timeout=self.settings.connect_timeout,
            read_timeout=self.settings.read_timeout,
            s3={"addressing_style": "path"},
        )
        logger.info(f"AsyncS3Client initialized: endpoint={self._endpoint_url}, bucket={self.settings.bucket}, region={self.settings.region}")

    @property
    def bucket(self) -> str:
        return self.settings.bucket

    @property
    def session(self) -> aioboto3.Session:
        """Get or create the shared aioboto3 session."""
        if self._session is None:
            self._session = aioboto3.Session(
                aws_access_key_id=self.settings.access_key,
                aws_secret_access_key=self.settings.secret_key,
                region_name=self.settings.region,
            )
        return self._session

    def _get_s3_client(self) -> "S3Client":
        """Get configured S3 client context manager.

        Usage: async with self._get_s3_client() as s3:
        """
        return self.session.client("s3", endpoint_url=self._endpoint_url, config=self._config)

    def _object_params(self, key: str, version_token: str | None) -> dict[str, Any]:
        params: dict[str, Any] = {"Bucket": self.bucket, "Key": key}
        if version_token:
            params["VersionId"] = version_token
        return params

    async def ensure_bucket(self) -> None:
        """Create the bucket if it is missing, switch versioning on and verify it stuck.

        Raises:
            StorageError: versioning could not be enabled. Every row needs its own
                version id, so the gateway refuses to run on an unversioned bucket.
        """
        async with self._get_s3_client() as s3:
            s3: "S3Client"
            with translate_storage_errors("create_bucket", self.bucket):
                existing = await s3.list_buckets()
                names = {b["Name"] for b in existing.get("Buckets", [])}
                if self.bucket not in names:
                    await s3.create_bucket(Bucket=self.bucket)
                    logger.info(f"Created bucket {self.bucket}")
            with translate_storage_errors("put_bucket_versioning", self.bucket):
                await s3.put_bucket_versioning(Bucket=self.bucket, VersioningConfiguration={"Status": "Enabled"})
                versioning = await s3.get_bucket_versioning(Bucket=self.bucket)

        status = versioning.get("Status")
        if status != "Enabled":
            raise StorageError(detail=f"bucket {self.bucket} versioning is {status or 'off'}")
        logger.info(f"Bucket {self.bucket} is versioned")

    async def put_object(self, key: str, data: bytes, content_type: str | None = None) -> PutResult:
        """Upload ``data`` under ``key`` and return the version the store assigned to it.

        An upload that comes back without a real version id (versioning switched
        off behind the gateway's back) is removed again and reported as a
        ``StorageError``.
        """
        params: dict[str, Any] = {"Bucket": self.bucket, "Key": key, "Body": data}
        if content_type:
            params["ContentType"] = content_type

        with translate_storage_errors("put_object", key):
            async with self._get_s3_client() as s3:
                s3: "S3Client"
                response = await s3.put_object(**params)
                version_token = response.get("VersionId")
                if version_token in (None, "", NULL_VERSION):
                    await s3.delete_object(Bucket=self.bucket, Key=key)
                    raise StorageError(detail=f"put_object: bucket {self.bucket} returned no version id for {key}")

        logger.info(f"Successfully uploaded object: {key} version={version_token}")
        return PutResult(version_token=version_token, e_tag=response.get("ETag"))

    async def open_object(self, key: str, version_token: str | None = None) -> BlobObject:
        """Start downloading one object version.

        Not-found and timeout errors surface here, before any byte is streamed.
        The S3 client stays open until the returned stream is exhausted or closed.
        """
        stack = AsyncExitStack()
        try:
            with translate_storage_errors("get_object", key):
                s3 = await stack.enter_async_context(self._get_s3_client())
                response = await s3.get_object(**self._object_params(key, version_token))
        except BaseException:
            await stack.aclose()
            raise

        body = response["Body"]

        async def stream() -> AsyncIterator[bytes]:
            try:
                with translate_storage_errors("stream object", key):
                    async for chunk in body.iter_chunks(STREAM_CHUNK_SIZE):
                        yield chunk
            finally:
                body.close()
                await stack.aclose()

        return BlobObject(stream(), response.get("ContentLength"), response.get("ETag"))

    async def head_object(self, key: str, version_token: str | None = None) -> BlobHead:
        with translate_storage_errors("head_object", key):
            async with self._get_s3_client() as s3:
                s3: "S3Client"
                response = await s3.head_object(**self._object_params(key, version_token))
        return BlobHead(
            content_length=response.get("ContentLength", 0),
            e_tag=response.get("ETag"),
            version_token=response.get("VersionId"),
            last_modified=response.get("LastModified"),
        )

    async def delete_object(self, key: str, version_token: str | None = None) -> None:
        """Permanently delete one object version."""
        with translate_storage_errors("delete_object", key):
            async with self._get_s3_client() as s3:
                s3: "S3Client"
                await s3.delete_object(**self._object_params(key, version_token))
        logger.info(f"Successfully deleted object: {key} version={version_token}")

    async def close(self) -> None:
        """Close the session and clean up resources."""
        if self._session is not None:
            logger.info("Closing AsyncS3Client session")
            self._session = None
