import logging
import uuid
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import StreamingResponse

from objectgate.dependencies import VERSION_ID_HEADER, get_object_service, get_user_id, get_version_token
from objectgate.object_service import ObjectService, validate_file_path
from objectgate.schemas.object import ErrorResponse, FileVersion, ObjectCreatedResponse, ObjectDeletedResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/objects",
    tags=["objects"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        408: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


def content_disposition(file_name: str) -> str:
    """``attachment`` disposition; non latin-1 names also get an RFC 5987 ``filename*``."""
    escaped = file_name.replace("\\", "\\\\").replace('"', '\\"')
    try:
        escaped.encode("latin-1")
    except UnicodeEncodeError:
        fallback = escaped.encode("ascii", "replace").decode("ascii").replace("?", "_")
        return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name)}"
    return f'attachment; filename="{escaped}"'


def transfer_headers(row: FileVersion) -> dict[str, str]:
    return {
        "content-type": row.content_type,
        "content-length": str(row.content_size),
        "content-disposition": content_disposition(row.file_name),
        VERSION_ID_HEADER: row.version_token,
        "etag": row.etag,
    }


@router.head("/{file_path:path}")
async def head_object(
    file_path: str,
    user_id: uuid.UUID = Depends(get_user_id),
    version_token: str | None = Depends(get_version_token),
    service: ObjectService = Depends(get_object_service),
) -> Response:
    file_path = validate_file_path(file_path)
    logger.info("HEAD request for user %s, key %s:%s", user_id, file_path, version_token)

    row, _ = await service.head(user_id, file_path, version_token)
    return Response(status_code=status.HTTP_200_OK, headers=transfer_headers(row))


@router.get("/{file_path:path}", response_class=StreamingResponse)
async def get_object(
    file_path: str,
    user_id: uuid.UUID = Depends(get_user_id),
    version_token: str | None = Depends(get_version_token),
    service: ObjectService = Depends(get_object_service),
) -> StreamingResponse:
    file_path = validate_file_path(file_path)
    logger.info("GET request for user %s, key %s:%s", user_id, file_path, version_token)

    row, blob = await service.read(user_id, file_path, version_token)
    return StreamingResponse(blob.stream, status_code=status.HTTP_200_OK, headers=transfer_headers(row))


@router.put("/{file_path:path}", status_code=status.HTTP_201_CREATED, response_model=ObjectCreatedResponse)
async def put_object(
    file_path: str,
    request: Request,
    user_id: uuid.UUID = Depends(get_user_id),
    service: ObjectService = Depends(get_object_service),
) -> ObjectCreatedResponse:
    file_path = validate_file_path(file_path)
    data = await request.body()
    content_type = request.headers.get("content-type") or None
    logger.info("PUT request from user %s for key %s (%d bytes)", user_id, file_path, len(data))

    outcome = await service.put(user_id, file_path, data, content_type=content_type)
    return ObjectCreatedResponse(file_path=file_path, file_key=str(outcome.file_key), version=outcome.version_token)


@router.delete("/{file_path:path}", response_model=ObjectDeletedResponse)
async def delete_object(
    file_path: str,
    user_id: uuid.UUID = Depends(get_user_id),
    version_token: str | None = Depends(get_version_token),
    service: ObjectService = Depends(get_object_service),
) -> ObjectDeletedResponse:
    file_path = validate_file_path(file_path)
    logger.info("DELETE request for user %s, key %s:%s", user_id, file_path, version_token)

    row = await service.delete(user_id, file_path, version_token)
    return ObjectDeletedResponse(file_path=file_path, version=row.version_token)
