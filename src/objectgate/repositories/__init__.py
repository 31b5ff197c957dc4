# Repositories package

from .base_repository import BaseRepository
from .file_repository import FileRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "FileRepository",
    "UserRepository",
]
