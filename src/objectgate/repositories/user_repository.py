import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from objectgate.errors import translate_database_errors
from objectgate.models.user import User
from objectgate.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository):
    def get_user_by_id(self, user_id: uuid.UUID) -> User | None:
        with translate_database_errors("load user"):
            stmt = select(User).where(User.user_id == user_id)
            return self.db.execute(stmt).scalar_one_or_none()

    def ensure_user(self, user_id: uuid.UUID) -> bool:
        """Create the user row on first sight. Returns True when a row was inserted."""
        if self.get_user_by_id(user_id) is not None:
            return False

        with translate_database_errors("provision user"):
            self.db.add(User(user_id=user_id, total_space_used=0))
            try:
                self.db.commit()
            except IntegrityError:
                # another request provisioned the same user first
                self.db.rollback()
                logger.info("User %s was provisioned concurrently", user_id)
                return False
        return True
