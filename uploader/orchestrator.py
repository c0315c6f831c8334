"""Upload orchestration: sessions, chunk intake and the finalize pipeline."""

import asyncio
from dataclasses import dataclass
from typing import BinaryIO, Optional, Protocol, Union

from common.constants import DESCRIPTION_FILENAME, MAX_CHUNK_SIZE_BYTES
from common.logging_config import get_logger
from uploader.chunk_assembler import ChunkAssembler
from uploader.chunk_store import ChunkStore
from uploader.description import build_description
from uploader.exceptions import ChunkTooLargeError, InvalidSessionError, StorageIOError
from uploader.session_registry import SessionRegistry, UploadMetadata, UploadSession
from uploader.utils import build_folder_name, normalize_component

logger = get_logger(__name__)


class RemoteStorage(Protocol):
    """Operations the orchestrator needs from the storage backend."""

    async def ensure_folder(self, folder: str) -> None: ...

    async def put_file(self, folder: str, filename: str, content, size: Optional[int] = None) -> None: ...

    async def file_exists(self, folder: str, filename: str) -> bool: ...


@dataclass(frozen=True)
class FinalizeResult:
    """Outcome of a successful finalize call."""
    folder_name: str
    file_name: str
    description_uploaded: bool


class UploadOrchestrator:
    """Coordinates chunk storage, assembly, remote upload and session tracking."""

    def __init__(
        self,
        chunk_store: ChunkStore,
        storage: RemoteStorage,
        registry: SessionRegistry,
        assembler: Optional[ChunkAssembler] = None,
        max_chunk_size: int = MAX_CHUNK_SIZE_BYTES
    ):
        self.chunk_store = chunk_store
        self.storage = storage
        self.registry = registry
        self.assembler = assembler or ChunkAssembler(chunk_store)
        self.max_chunk_size = max_chunk_size

    async def open_session(
        self,
        session_id: str,
        total_files: int,
        metadata: UploadMetadata
    ) -> UploadSession:
        """
        Register a multi-file submission.

        Raises:
            InvalidSessionError: If the id is empty or total_files < 1
        """
        if not session_id:
            raise InvalidSessionError("Session ID is required.")
        if total_files < 1:
            raise InvalidSessionError("totalFiles must be at least 1.")

        return await self.registry.register(session_id, total_files, metadata)

    async def store_chunk(
        self,
        upload_id: str,
        chunk_index: Union[str, int],
        source: BinaryIO,
        size: Optional[int] = None
    ) -> None:
        """
        Persist one chunk in the scratch area.

        Raises:
            ChunkTooLargeError: If the chunk is over the size cap
            InvalidIdentifierError: If the upload id is unsafe
            InvalidChunkIndexError: If the index is malformed
            StorageIOError: If the write fails
        """
        if size is not None and size > self.max_chunk_size:
            raise ChunkTooLargeError("Could not parse form. Chunk might be too large.")

        await asyncio.to_thread(self.chunk_store.store_chunk, upload_id, chunk_index, source)

    async def finalize(
        self,
        upload_id: str,
        file_name: str,
        metadata: UploadMetadata,
        session_id: Optional[str] = None
    ) -> FinalizeResult:
        """
        Assemble an upload, store it remotely and write the description
        note when the submission is complete.

        Args:
            upload_id: Upload id the chunks were stored under
            file_name: Original file name
            metadata: Submitter details used for the folder name and note
            session_id: Session the file belongs to, if any

        Returns:
            FinalizeResult with the remote folder and file name

        Raises:
            ClientInputError: If the upload id or file name is unsafe, or a
                stored chunk index is malformed
            StorageIOError: If the chunks cannot be read
            RemoteBackendError: If any backend call fails
        """
        clean_upload_id = normalize_component(upload_id)

        with self.chunk_store.scratch_area(clean_upload_id):
            final_filename = normalize_component(file_name, label="file name")
            folder_name = build_folder_name(metadata.email, metadata.phone)

            await self.storage.ensure_folder(folder_name)

            async with self.assembler.assemble(clean_upload_id) as stream:
                try:
                    await self.storage.put_file(
                        folder_name, final_filename, stream, size=stream.size
                    )
                except OSError as e:
                    logger.error(f"Could not read chunks of upload {clean_upload_id}: {e}")
                    raise StorageIOError("Error processing chunks.") from e

        logger.info(f"Uploaded {final_filename} to folder {folder_name}")

        if session_id:
            should_write = await self.registry.record_completion(session_id)
        else:
            should_write = True

        if not should_write:
            logger.info(
                f"Skipped description file upload for session {session_id} (not all files complete)"
            )
            return FinalizeResult(folder_name, final_filename, description_uploaded=False)

        uploaded = await self._upload_description(folder_name, file_name, metadata)
        return FinalizeResult(folder_name, final_filename, description_uploaded=uploaded)

    async def _upload_description(
        self,
        folder_name: str,
        file_name: str,
        metadata: UploadMetadata
    ) -> bool:
        if await self.storage.file_exists(folder_name, DESCRIPTION_FILENAME):
            logger.info(f"Description file already exists in folder {folder_name}, skipping upload")
            return False

        content = build_description(
            file_name, metadata.email, metadata.phone, metadata.data_origin
        )
        await self.storage.put_file(folder_name, DESCRIPTION_FILENAME, content)
        logger.info(f"Uploaded description file to folder {folder_name}")
        return True
