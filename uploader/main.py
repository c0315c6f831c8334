"""Entry point for the upload relay service."""

import time
import uuid
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from common.logging_config import setup_logging
from uploader.chunk_store import ChunkStore
from uploader.config import UPLOADER_HOST, UPLOADER_PORT, Settings
from uploader.exceptions import (
    ClientInputError,
    ConfigurationError,
    RemoteBackendError,
    StorageIOError,
    UploaderException
)
from uploader.orchestrator import RemoteStorage, UploadOrchestrator
from uploader.routes import form_router, upload_router
from uploader.session_registry import SessionRegistry
from uploader.webdav_client import WebDAVClient

logger = setup_logging('uploader')


async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(
        f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
    )

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


async def validation_error_handler(request: Request, exc: RequestValidationError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"Malformed request body: {exc.errors()} [request_id={request_id}] path={request.url.path}"
    )
    if request.url.path == "/upload-chunk":
        message = "Could not parse form. Chunk might be too large."
    else:
        message = "Invalid JSON body."
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": message}
    )


async def client_input_handler(request: Request, exc: ClientInputError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"Client input error: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": str(exc)}
    )


async def storage_io_handler(request: Request, exc: StorageIOError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Storage I/O error: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": str(exc)}
    )


async def remote_backend_handler(request: Request, exc: RemoteBackendError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Remote backend error: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Failed to upload to remote storage."}
    )


async def uploader_exception_handler(request: Request, exc: UploaderException):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Uploader exception: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error."}
    )


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[RemoteStorage] = None
) -> FastAPI:
    """
    Build the application and its collaborators.

    Args:
        settings: Settings to use; read from the environment when omitted
        storage: Remote storage client; a WebDAVClient when omitted

    Returns:
        Configured FastAPI application

    Raises:
        ConfigurationError: If mandatory settings are missing
    """
    if settings is None:
        settings = Settings.from_env()

    chunk_store = ChunkStore(settings.upload_temp_dir)
    chunk_store.ensure_root()

    if storage is None:
        storage = WebDAVClient(settings)

    orchestrator = UploadOrchestrator(
        chunk_store=chunk_store,
        storage=storage,
        registry=SessionRegistry()
    )

    app = FastAPI(
        title="Chunked Upload Relay",
        description="Reassembles chunked browser uploads and relays them to WebDAV storage",
        version="1.0.0"
    )
    app.state.settings = settings
    app.state.orchestrator = orchestrator

    app.middleware("http")(log_requests)

    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(ClientInputError, client_input_handler)
    app.add_exception_handler(StorageIOError, storage_io_handler)
    app.add_exception_handler(RemoteBackendError, remote_backend_handler)
    app.add_exception_handler(UploaderException, uploader_exception_handler)

    @app.on_event("shutdown")
    async def shutdown_event():
        """
        Close the remote storage client on application shutdown.
        """
        logger.info("Upload relay shutting down...")
        close = getattr(storage, "close", None)
        if close is not None:
            await close()

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint for container healthchecks.
        """
        return {"status": "healthy", "service": "uploader"}

    app.include_router(form_router)
    app.include_router(upload_router)

    logger.info(f"Temporary chunk directory: {settings.upload_temp_dir}")
    logger.info(f"Uploading to remote storage at: {settings.nextcloud_url}")

    return app


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    try:
        Settings.from_env()
    except ConfigurationError as e:
        logger.critical(f"FATAL: {e}")
        raise SystemExit(1)

    uvicorn.run(
        "uploader.main:create_app",
        factory=True,
        host=UPLOADER_HOST,
        port=UPLOADER_PORT
    )


if __name__ == "__main__":
    main()
