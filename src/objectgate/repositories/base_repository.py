from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy.orm import Session


class BaseRepository:
    """Base repository class with common database session functionality."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def unit_of_work(self) -> Generator[Session]:
        """Scoped transaction: commits on normal exit, rolls back on any exception (cancellation included)."""
        if self.db.in_transaction():
            # close the implicit transaction left open by earlier reads
            self.db.commit()
        with self.db.begin():
            yield self.db
