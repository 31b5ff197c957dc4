import os
import time
import uuid
from datetime import UTC, datetime

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Index, String, Uuid, text, true
from sqlalchemy.orm import mapped_column, relationship

from objectgate.db import Base


def uuid7() -> uuid.UUID:
    """Time-ordered UUID (version 7 layout): 48-bit unix millis followed by random bits."""
    unix_ms = time.time_ns() // 1_000_000
    rand = int.from_bytes(os.urandom(10), "big")
    value = (unix_ms & 0xFFFF_FFFF_FFFF) << 80
    value |= 0x7 << 76  # version
    value |= (rand >> 68) << 64  # rand_a, 12 bits
    value |= 0b10 << 62  # variant
    value |= rand & 0x3FFF_FFFF_FFFF_FFFF  # rand_b, 62 bits
    return uuid.UUID(int=value)


class File(Base):
    """One row per stored version of a logical path."""

    __tablename__ = "files"

    id = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Blob store object key, fresh for every version
    file_key = mapped_column(Uuid(as_uuid=True), nullable=False, default=uuid7, index=True)
    user_id = mapped_column(Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    file_name = mapped_column(String, nullable=False)
    file_path = mapped_column(String, nullable=False, index=True)
    content_type = mapped_column(String, nullable=False)
    content_size = mapped_column(BigInteger, nullable=False)
    # Blob store version id of file_key at write time; distinct per row on a versioned bucket
    version_token = mapped_column("version", String, nullable=False)
    is_latest = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    added_at = mapped_column(DateTime, default=lambda: datetime.now(UTC), nullable=False, index=True)

    user = relationship("User", back_populates="files")

    __table_args__ = (
        Index("ix_files_user_id_is_latest", "user_id", "is_latest"),
        Index("ix_files_user_path_version", "user_id", "file_path", "version"),
        # At most one latest row per (user, path)
        Index(
            "uq_files_user_path_latest",
            "user_id",
            "file_path",
            unique=True,
            postgresql_where=text("is_latest"),
            sqlite_where=text("is_latest"),
        ),
    )
