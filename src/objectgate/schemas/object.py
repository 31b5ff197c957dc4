from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class FileVersion(BaseModel):
    """Immutable snapshot of one ``files`` row, detached from the session."""

    id: UUID
    file_key: UUID
    user_id: UUID
    file_name: str
    file_path: str
    content_type: str
    content_size: int
    version_token: str
    is_latest: bool
    added_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)

    @property
    def blob_key(self) -> str:
        return str(self.file_key)

    @property
    def etag(self) -> str:
        """Cache validator derived from the version token."""
        return f'"{self.version_token}"'


class PutOutcome(BaseModel):
    file_key: UUID
    version_token: str


class ObjectCreatedResponse(BaseModel):
    message: str = "New object created successfully"
    file_path: str
    file_key: str
    version: str


class ObjectDeletedResponse(BaseModel):
    message: str = "Object deleted successfully"
    file_path: str
    version: str


class ErrorResponse(BaseModel):
    error: str
