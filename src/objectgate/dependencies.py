"""
Dependency Injection

The AsyncS3Client is initialized once during application startup and shared
across all requests. Identity and version selector headers are parsed here so
route handlers receive validated values.
"""

import logging
import uuid
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from objectgate.db import get_db
from objectgate.errors import BadRequestError
from objectgate.object_service import ObjectService
from objectgate.repositories.file_repository import FileRepository
from objectgate.repositories.user_repository import UserRepository
from objectgate.s3_service import AsyncS3Client

logger = logging.getLogger(__name__)

USER_ID_HEADER = "x-user-id"
VERSION_ID_HEADER = "x-version-id"

# Global instance of the S3 client (initialized during app startup)
_s3_client_instance: AsyncS3Client | None = None


async def get_s3_client() -> AsyncGenerator[AsyncS3Client]:
    """Dependency injection function for AsyncS3Client.

    Used with FastAPI's Depends() to inject the S3 client into route handlers.
    """
    global _s3_client_instance
    if _s3_client_instance is None:
        raise RuntimeError("S3 client not initialized. Make sure the application lifespan is properly configured.")
    yield _s3_client_instance


def set_s3_client_instance(client: AsyncS3Client | None) -> None:
    """Set the global S3 client instance. Called from the application lifespan."""
    global _s3_client_instance
    _s3_client_instance = client
    logger.info("S3 client instance set globally")


def get_s3_client_instance() -> AsyncS3Client:
    """Get the global S3 client instance without using dependency injection.

    Raises:
        RuntimeError: If the client is not initialized
    """
    if _s3_client_instance is None:
        raise RuntimeError("S3 client not initialized. Make sure the application lifespan is properly configured.")
    return _s3_client_instance


def get_user_id(x_user_id: Annotated[str | None, Header(alias=USER_ID_HEADER)] = None) -> uuid.UUID:
    """Caller identity; must be a well-formed UUID."""
    if not x_user_id:
        raise BadRequestError(f"Missing or invalid {USER_ID_HEADER} header")
    try:
        return uuid.UUID(x_user_id.strip())
    except ValueError as e:
        raise BadRequestError(f"Missing or invalid {USER_ID_HEADER} header") from e


def get_version_token(x_version_id: Annotated[str | None, Header(alias=VERSION_ID_HEADER)] = None) -> str | None:
    """Optional version selector. Absent means "latest"; present but blank is rejected."""
    if x_version_id is None:
        return None
    token = x_version_id.strip()
    if not token:
        raise BadRequestError(f"Invalid {VERSION_ID_HEADER} header")
    return token


def get_object_service(db: Session = Depends(get_db), s3_client: AsyncS3Client = Depends(get_s3_client)) -> ObjectService:
    return ObjectService(UserRepository(db), FileRepository(db), s3_client)
