"""Chunked upload API routes."""

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import PlainTextResponse

from common.logging_config import get_logger
from uploader.orchestrator import UploadOrchestrator
from uploader.schemas.common import ErrorResponse
from uploader.schemas.upload import (
    CompleteRequest,
    CompleteResponse,
    SessionRequest,
    SessionResponse
)
from uploader.session_registry import UploadMetadata

logger = get_logger(__name__)

router = APIRouter(
    tags=["Uploads"],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)


def get_orchestrator(request: Request) -> UploadOrchestrator:
    """Resolve the orchestrator built by the application factory."""
    return request.app.state.orchestrator


@router.post("/upload-session", response_model=SessionResponse)
async def upload_session(
    body: SessionRequest,
    orchestrator: UploadOrchestrator = Depends(get_orchestrator)
):
    """
    Register a multi-file upload session.

    Body (JSON):
        - sessionId: Client generated session id
        - email, phone, dataOrigin: Submitter details
        - totalFiles: Number of files that will be finalized

    Raises:
        - 400: Malformed body
    """
    await orchestrator.open_session(
        body.session_id,
        body.total_files,
        UploadMetadata(email=body.email, phone=body.phone, data_origin=body.data_origin)
    )

    return SessionResponse(
        message="Upload session registered successfully",
        session_id=body.session_id,
    )


@router.post("/upload-chunk", response_class=PlainTextResponse)
async def upload_chunk(
    data_file: UploadFile = File(..., alias="dataFile"),
    upload_id: str = Form(..., alias="uploadId"),
    chunk_index: str = Form(..., alias="chunkIndex"),
    orchestrator: UploadOrchestrator = Depends(get_orchestrator)
):
    """
    Store one chunk of a file.

    Parameters (multipart/form-data):
        - dataFile: Chunk bytes (at most 10 MiB)
        - uploadId: Upload id shared by all chunks of one file
        - chunkIndex: Position of the chunk, starting at 0

    Raises:
        - 400: Malformed form, oversized chunk, invalid id or index
        - 500: Chunk could not be written
    """
    try:
        await orchestrator.store_chunk(
            upload_id,
            chunk_index,
            data_file.file,
            size=data_file.size
        )
    finally:
        await data_file.close()

    return PlainTextResponse("Chunk uploaded successfully")


@router.post("/upload-complete", response_model=CompleteResponse)
async def upload_complete(
    body: CompleteRequest,
    orchestrator: UploadOrchestrator = Depends(get_orchestrator)
):
    """
    Assemble an upload and relay it to remote storage.

    Body (JSON):
        - uploadId, fileName: Which chunks to assemble and the target name
        - email, phone, dataOrigin: Submitter details
        - sessionId (optional): Session the file belongs to
        - totalFiles (optional): Informational, the session holds the count

    Raises:
        - 400: Malformed body or invalid id
        - 500: Chunk read or backend failure
    """
    if body.session_id and body.total_files is not None:
        logger.debug(f"Finalizing {body.file_name} for session {body.session_id} of {body.total_files} files")

    result = await orchestrator.finalize(
        body.upload_id,
        body.file_name,
        UploadMetadata(email=body.email, phone=body.phone, data_origin=body.data_origin),
        session_id=body.session_id,
    )

    return CompleteResponse(
        message="File uploaded successfully!",
        folder_name=result.folder_name,
        file_name=result.file_name,
    )
