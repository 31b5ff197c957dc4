"""
Versioned object operations over the blob store and the metadata store.

Ordering rules that keep the two stores consistent:

* PUT writes the blob first and only then records it, in one transaction that
  demotes the previous latest row and inserts the new one. A failed transaction
  leaves an orphaned blob behind, never a row without content.
* DELETE removes the blob first and the row second. A crash in between leaves
  a dangling row, which reads as "not found" and is removed by the next DELETE.
* Deleting the latest version promotes nothing; the path has no latest
  version until the next PUT.
"""

import logging
import mimetypes
import uuid
from collections.abc import Awaitable

from objectgate.errors import BadRequestError, GatewayError, NotFoundError
from objectgate.logger import logger as event_logger
from objectgate.models.file import uuid7
from objectgate.repositories.file_repository import FileRepository
from objectgate.repositories.user_repository import UserRepository
from objectgate.s3_service import AsyncS3Client, BlobHead, BlobObject
from objectgate.schemas.object import FileVersion, PutOutcome

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def file_name_from_path(file_path: str) -> str:
    return file_path.rsplit("/", 1)[-1]


def validate_file_path(file_path: str) -> str:
    """Reject paths that cannot name a file: empty, or ending in a slash."""
    if not file_path or not file_path.strip("/"):
        raise BadRequestError("Object path must not be empty")
    if not file_name_from_path(file_path):
        raise BadRequestError("Object path must end with a file name")
    return file_path


def guess_content_type(file_path: str) -> str:
    content_type, _ = mimetypes.guess_type(file_path)
    return content_type or DEFAULT_CONTENT_TYPE


class ObjectService:
    def __init__(self, users: UserRepository, files: FileRepository, blobs: AsyncS3Client):
        self.users = users
        self.files = files
        self.blobs = blobs

    def resolve(self, user_id: uuid.UUID, file_path: str, version_token: str | None = None) -> FileVersion:
        """Pick the row for an explicit version token, or the latest row when none is given."""
        if version_token is not None:
            row = self.files.find_version(user_id, file_path, version_token)
        else:
            row = self.files.find_latest(user_id, file_path)
        if row is None:
            raise NotFoundError("File not found")
        return row

    async def put(self, user_id: uuid.UUID, file_path: str, data: bytes, content_type: str | None = None) -> PutOutcome:
        file_path = validate_file_path(file_path)
        content_type = content_type or guess_content_type(file_path)
        file_name = file_name_from_path(file_path)

        if self.users.ensure_user(user_id):
            event_logger.log_event("user_provisioned", user_id=user_id)

        file_key = uuid7()
        put_result = await self.blobs.put_object(str(file_key), data, content_type=content_type)

        try:
            row = self.files.rotate_latest(
                user_id=user_id,
                file_path=file_path,
                file_name=file_name,
                file_key=file_key,
                content_type=content_type,
                content_size=len(data),
                version_token=put_result.version_token,
            )
        except BaseException as e:
            # Blob is written but unreferenced; left for out-of-band reconciliation
            event_logger.log_event(
                "orphaned_blob",
                level=logging.WARNING,
                user_id=user_id,
                file_path=file_path,
                file_key=file_key,
                version=put_result.version_token,
                reason=e.kind if isinstance(e, GatewayError) else type(e).__name__,
            )
            raise

        event_logger.log_event(
            "object_put",
            user_id=user_id,
            file_path=file_path,
            file_key=row.file_key,
            version=row.version_token,
            size=row.content_size,
        )
        return PutOutcome(file_key=row.file_key, version_token=row.version_token)

    async def read(self, user_id: uuid.UUID, file_path: str, version_token: str | None = None) -> tuple[FileVersion, BlobObject]:
        row = self.resolve(user_id, file_path, version_token)
        blob = await self._with_dangling_check(row, self.blobs.open_object(row.blob_key, row.version_token))
        return row, blob

    async def head(self, user_id: uuid.UUID, file_path: str, version_token: str | None = None) -> tuple[FileVersion, BlobHead]:
        row = self.resolve(user_id, file_path, version_token)
        blob_head = await self._with_dangling_check(row, self.blobs.head_object(row.blob_key, row.version_token))
        return row, blob_head

    async def delete(self, user_id: uuid.UUID, file_path: str, version_token: str | None = None) -> FileVersion:
        row = self.resolve(user_id, file_path, version_token)

        try:
            await self.blobs.delete_object(row.blob_key, row.version_token)
        except NotFoundError:
            # Content is already gone; dropping the row below heals the reference
            logger.warning("Blob %s@%s was already missing while deleting %s", row.blob_key, row.version_token, row.file_path)

        if not self.files.delete_version(row.id):
            logger.info("Row %s was removed concurrently", row.id)

        event_logger.log_event(
            "object_deleted",
            user_id=user_id,
            file_path=file_path,
            file_key=row.file_key,
            version=row.version_token,
            was_latest=row.is_latest,
        )
        return row

    async def _with_dangling_check(self, row: FileVersion, pending: Awaitable):
        try:
            return await pending
        except NotFoundError as e:
            logger.warning("Dangling reference: %s@%s for %s has no blob", row.blob_key, row.version_token, row.file_path)
            raise NotFoundError("File not found") from e
