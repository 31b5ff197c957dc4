from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, Uuid
from sqlalchemy.orm import mapped_column, relationship

from objectgate.db import Base


class User(Base):
    __tablename__ = "users"

    # External identity, supplied by the caller
    user_id = mapped_column(Uuid(as_uuid=True), primary_key=True, nullable=False)
    # Maintained by triggers on the files table, see models/accounting.py
    total_space_used = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    updated_at = mapped_column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    last_auto_sync_at = mapped_column(DateTime, nullable=True)

    files = relationship("File", back_populates="user", passive_deletes=True)
