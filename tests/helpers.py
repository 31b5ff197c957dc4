import hashlib
import itertools
import uuid

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from objectgate.errors import NotFoundError
from objectgate.models.file import File
from objectgate.s3_service import BlobHead, BlobObject, PutResult


def count_latest(session: Session, user_id: uuid.UUID, file_path: str) -> int:
    """Rows currently flagged latest for (user, path); must never exceed one."""
    stmt = select(func.count()).select_from(File).where(File.user_id == user_id, File.file_path == file_path, File.is_latest.is_(True))
    return int(session.execute(stmt).scalar_one())


class FakeBlobStore:
    """In-memory stand-in for AsyncS3Client on a versioned bucket."""

    def __init__(self):
        self.objects: dict[tuple[str, str], tuple[bytes, str | None]] = {}
        self.deleted: list[tuple[str, str | None]] = []
        self.put_error: Exception | None = None
        self.bucket_error: Exception | None = None
        self.closed = False
        self._counter = itertools.count(1)

    async def ensure_bucket(self) -> None:
        if self.bucket_error is not None:
            raise self.bucket_error

    async def close(self) -> None:
        self.closed = True

    async def put_object(self, key: str, data: bytes, content_type: str | None = None) -> PutResult:
        if self.put_error is not None:
            raise self.put_error
        version = f"v{next(self._counter)}-{uuid.uuid4().hex[:8]}"
        self.objects[(key, version)] = (bytes(data), content_type)
        return PutResult(version_token=version, e_tag=f'"{hashlib.md5(data).hexdigest()}"')

    async def open_object(self, key: str, version_token: str | None = None) -> BlobObject:
        data = self._lookup(key, version_token)

        async def stream():
            yield data

        return BlobObject(stream(), len(data), None)

    async def head_object(self, key: str, version_token: str | None = None) -> BlobHead:
        data = self._lookup(key, version_token)
        return BlobHead(content_length=len(data), version_token=version_token)

    async def delete_object(self, key: str, version_token: str | None = None) -> None:
        self._lookup(key, version_token)
        del self.objects[(key, version_token)]
        self.deleted.append((key, version_token))

    def remove(self, key: str, version_token: str) -> None:
        """Drop a blob behind the gateway's back."""
        del self.objects[(key, version_token)]

    def _lookup(self, key: str, version_token: str | None) -> bytes:
        try:
            return self.objects[(key, version_token)][0]
        except KeyError:
            raise NotFoundError("Object not found", detail=f"key={key} version={version_token}") from None
