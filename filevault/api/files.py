"""
@file: files.py
@description:
Provides the FileVault HTTP endpoints. All storage work is delegated to the
FileService held on app.state.

Routes:
- POST /upload : store a multipart "file" field (READ_WRITE_SELF)
- GET /list : list the caller's files, or all files from READ_WRITE_ALL up
- GET /{file_id} : download a file (no authentication)
- DELETE /{file_id} : delete a file (READ_WRITE_SELF, owner unless READ_WRITE_ALL)

@dependencies:
- FastAPI APIRouter for route definitions.
- filevault.core.auth for the bearer-key guard.
- filevault.schemas.files for the response envelopes.

@notes:
- Endpoints are plain functions, so each request runs on its own threadpool worker
  and blocks on catalog and disk I/O there. Upload is the exception: it reads the
  form itself after authentication and hands the storage work to the threadpool.
- Errors are raised as FileVaultError subclasses and rendered by the handlers in
  filevault.core.exceptions.
"""

from urllib.parse import quote

from fastapi import APIRouter, Depends, Request, Response, status
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile as StarletteUploadFile

from filevault.core.auth import require_role
from filevault.core.exceptions import BadRequest, PayloadTooLarge
from filevault.core.logger import setup_logger
from filevault.schemas.files import (
    Identity,
    ListResponse,
    MessageResponse,
    Role,
    UploadResponse,
)
from filevault.services.file_service import FileService

# Create a component-specific logger
logger = setup_logger("filevault.api.files")

router = APIRouter()


def get_file_service(request: Request) -> FileService:
    return request.app.state.file_service


def content_disposition(filename: str) -> str:
    """
    Build an attachment Content-Disposition header for the given filename.

    Names that are not plain ASCII also get an RFC 5987 ``filename*`` parameter.
    """
    safe = filename.replace("\\", "\\\\").replace('"', '\\"')
    try:
        safe.encode("ascii")
    except UnicodeEncodeError:
        fallback = safe.encode("ascii", "replace").decode("ascii")
        return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"
    return f'attachment; filename="{safe}"'


def check_declared_size(request: Request, max_bytes: int) -> None:
    """
    Reject a request body whose Content-Length exceeds max_bytes before it is read.

    Chunked bodies without a Content-Length are bounded again by the blob store
    while they are written.
    """
    content_length = request.headers.get("content-length")
    if content_length is None:
        return
    try:
        declared = int(content_length)
    except ValueError:
        raise BadRequest("Invalid Content-Length header")
    if declared > max_bytes:
        logger.warning(f"Upload of {declared} bytes rejected: limit is {max_bytes} bytes")
        raise PayloadTooLarge()


@router.post(
    "/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Files"],
)
async def upload_file(
    request: Request,
    identity: Identity = Depends(require_role(Role.READ_WRITE_SELF)),
    service: FileService = Depends(get_file_service),
) -> UploadResponse:
    """
    POST /upload

    Stores the multipart field "file" under a freshly allocated id.

    The caller is authenticated before the body is looked at; only then is the
    declared size checked and the form parsed.

    Raises:
        Unauthenticated / Unauthorized (401)
        BadRequest(400): If the size is over the cap, the form is malformed or has no file field
        StorageUnavailable (500)

    Example Response:
    {
      "message": "File uploaded successfully",
      "id": "aZ3kP0qW"
    }
    """
    check_declared_size(request, service.max_upload_bytes)

    try:
        form = await request.form()
    except Exception as e:
        logger.warning(f"Upload by {identity.username} rejected: unreadable form ({e})")
        raise BadRequest("Invalid multipart form data") from e

    try:
        upload = form.get("file")
        if not isinstance(upload, StarletteUploadFile) or not upload.filename:
            logger.warning(f"Upload by {identity.username} rejected: missing file field")
            raise BadRequest("Missing file in request")

        record = await run_in_threadpool(service.upload, identity, upload.filename, upload.file)
    finally:
        await form.close()

    return UploadResponse(message="File uploaded successfully", id=record.id)


@router.get("/list", response_model=ListResponse, tags=["Files"])
def list_files(
    identity: Identity = Depends(require_role(Role.READ_WRITE_SELF)),
    service: FileService = Depends(get_file_service),
) -> ListResponse:
    """
    GET /list

    Returns the caller's own files, or every file for READ_WRITE_ALL and above.

    Example Response:
    {
      "message": "Files fetched successfully",
      "files": [
        {"id": "aZ3kP0qW", "name": "report.pdf", "uploadedAt": "2026-10-19T09:12:44Z", "creator": "Master"}
      ]
    }
    """
    files = service.list_files(identity)
    logger.debug(f"User {identity.username} listed {len(files)} files")
    return ListResponse(message="Files fetched successfully", files=files)


@router.get(
    "/{file_id}",
    response_class=Response,
    responses={200: {"content": {"application/octet-stream": {}}}},
    tags=["Files"],
)
def download_file(
    file_id: str,
    service: FileService = Depends(get_file_service),
) -> Response:
    """
    GET /{file_id}

    Returns the file bytes as an attachment named after the original upload.
    """
    record, data = service.download(file_id)
    return Response(
        content=data,
        media_type="application/octet-stream",
        headers={"Content-Disposition": content_disposition(record.name)},
    )


@router.delete("/{file_id}", response_model=MessageResponse, tags=["Files"])
def delete_file(
    file_id: str,
    identity: Identity = Depends(require_role(Role.READ_WRITE_SELF)),
    service: FileService = Depends(get_file_service),
) -> MessageResponse:
    """
    DELETE /{file_id}

    Deletes the file if the caller owns it or holds READ_WRITE_ALL.
    """
    service.delete(identity, file_id)
    return MessageResponse(message="File deleted successfully")
