import logging
import uuid

from sqlalchemy import delete, select, text, update

from objectgate.errors import translate_database_errors
from objectgate.models.file import File
from objectgate.repositories.base_repository import BaseRepository
from objectgate.schemas.object import FileVersion

logger = logging.getLogger(__name__)


class FileRepository(BaseRepository):
    def find_latest(self, user_id: uuid.UUID, file_path: str) -> FileVersion | None:
        stmt = select(File).where(File.user_id == user_id, File.file_path == file_path, File.is_latest.is_(True))
        return self._one_or_none(stmt, "find latest version")

    def find_version(self, user_id: uuid.UUID, file_path: str, version_token: str) -> FileVersion | None:
        stmt = select(File).where(File.user_id == user_id, File.file_path == file_path, File.version_token == version_token)
        return self._one_or_none(stmt, "find version")

    def rotate_latest(
        self,
        *,
        user_id: uuid.UUID,
        file_path: str,
        file_name: str,
        file_key: uuid.UUID,
        content_type: str,
        content_size: int,
        version_token: str,
    ) -> FileVersion:
        """Demote the current latest row for (user, path) and insert the new latest row, atomically."""
        with translate_database_errors("rotate latest version"), self.unit_of_work():
            self._lock_path(user_id, file_path)

            demote = (
                update(File)
                .where(File.user_id == user_id, File.file_path == file_path, File.is_latest.is_(True))
                .values(is_latest=False)
                .execution_options(synchronize_session=False)
            )
            demoted = self.db.execute(demote).rowcount
            if demoted:
                logger.debug("Demoted %d previous latest row(s) for %s:%s", demoted, user_id, file_path)

            row = File(
                file_key=file_key,
                user_id=user_id,
                file_name=file_name,
                file_path=file_path,
                content_type=content_type,
                content_size=content_size,
                version_token=version_token,
                is_latest=True,
            )
            self.db.add(row)
            self.db.flush()
            return FileVersion.model_validate(row)

    def delete_version(self, file_id: uuid.UUID) -> bool:
        """Delete one version row. Returns False if it was already gone."""
        with translate_database_errors("delete version"), self.unit_of_work():
            result = self.db.execute(delete(File).where(File.id == file_id).execution_options(synchronize_session=False))
            return bool(result.rowcount)

    def _lock_path(self, user_id: uuid.UUID, file_path: str) -> None:
        """Serialize writers of one (user, path) for the rest of the transaction."""
        if self.db.get_bind().dialect.name != "postgresql":
            return
        self.db.execute(
            text("SELECT pg_advisory_xact_lock(hashtextextended(:lock_key, 0))"),
            {"lock_key": f"{user_id}:{file_path}"},
        )

    def _one_or_none(self, stmt, operation: str) -> FileVersion | None:
        with translate_database_errors(operation):
            row = self.db.execute(stmt).scalar_one_or_none()
            return FileVersion.model_validate(row) if row is not None else None
