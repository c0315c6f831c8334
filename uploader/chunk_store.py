"""Manages chunk files in the local scratch area: write, list and purge."""

import shutil
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, List, Union

from common.constants import STREAM_PIECE_SIZE_BYTES
from common.logging_config import get_logger
from uploader.exceptions import (
    ChunksNotFoundError,
    InvalidChunkIndexError,
    InvalidIdentifierError,
    StorageIOError
)
from uploader.utils import normalize_component

logger = get_logger(__name__)


def parse_chunk_index(value: Union[str, int]) -> int:
    """
    Parse a chunk index sent by a client or read back from disk.

    Args:
        value: Decimal string or integer

    Returns:
        Non-negative integer index

    Raises:
        InvalidChunkIndexError: If the value is not a non-negative integer
    """
    if isinstance(value, int) and not isinstance(value, bool):
        index = value
    elif isinstance(value, str) and value.isascii() and value.isdigit():
        index = int(value)
    else:
        raise InvalidChunkIndexError(f"Invalid chunk index: {value!r}")

    if index < 0:
        raise InvalidChunkIndexError(f"Invalid chunk index: {value!r}")
    return index


@dataclass(frozen=True)
class StoredChunk:
    """One chunk blob on disk."""
    upload_id: str
    index: int
    path: Path

    @property
    def size(self) -> int:
        return self.path.stat().st_size


class ChunkStore:
    """Per-upload scratch directories holding one file per chunk index."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def ensure_root(self) -> None:
        """Ensure the scratch root exists."""
        self.root.mkdir(parents=True, exist_ok=True)

    def chunk_dir(self, upload_id: str) -> Path:
        """
        Get the scratch directory for an upload.

        Raises:
            InvalidIdentifierError: If the upload id is unsafe
        """
        return self.root / normalize_component(upload_id)

    def store_chunk(self, upload_id: str, chunk_index: Union[str, int], source: BinaryIO) -> Path:
        """
        Write one chunk to disk.

        Args:
            upload_id: Client supplied upload id
            chunk_index: Index of the chunk within its file
            source: Readable binary file object with the chunk data

        Returns:
            Path of the written chunk file

        Raises:
            InvalidIdentifierError: If the upload id is unsafe
            InvalidChunkIndexError: If the index is malformed
            StorageIOError: If the write fails
        """
        directory = self.chunk_dir(upload_id)
        index = parse_chunk_index(chunk_index)
        chunk_path = directory / str(index)

        try:
            directory.mkdir(parents=True, exist_ok=True)
            with open(chunk_path, 'wb') as dst:
                shutil.copyfileobj(source, dst, STREAM_PIECE_SIZE_BYTES)
        except OSError as e:
            logger.error(f"Could not save chunk file {chunk_path}: {e}")
            raise StorageIOError("Server error saving chunk file.") from e

        logger.debug(f"Stored chunk {index} for upload {directory.name}")
        return chunk_path

    def list_chunks(self, upload_id: str) -> List[StoredChunk]:
        """
        List every stored chunk for an upload, ordered by numeric index.

        Raises:
            InvalidIdentifierError: If the upload id is unsafe
            ChunksNotFoundError: If no scratch area exists
            InvalidChunkIndexError: If a stored file name is not an index
            StorageIOError: If the directory cannot be read
        """
        directory = self.chunk_dir(upload_id)

        try:
            entries = [entry for entry in directory.iterdir() if entry.is_file()]
        except FileNotFoundError as e:
            raise ChunksNotFoundError("Could not find chunks on server.") from e
        except OSError as e:
            logger.error(f"Could not read chunk directory {directory}: {e}")
            raise StorageIOError("Could not read chunks on server.") from e

        chunks = [
            StoredChunk(upload_id=directory.name, index=parse_chunk_index(entry.name), path=entry)
            for entry in entries
        ]
        chunks.sort(key=lambda chunk: chunk.index)
        return chunks

    def purge(self, upload_id: str) -> None:
        """
        Remove the scratch area for an upload. Failures are logged only.
        """
        try:
            directory = self.chunk_dir(upload_id)
        except InvalidIdentifierError:
            return

        try:
            shutil.rmtree(directory)
        except FileNotFoundError:
            return
        except OSError as e:
            logger.warning(f"Could not remove chunk directory {directory}: {e}")
            return
        logger.debug(f"Purged chunk directory {directory}")

    @contextmanager
    def scratch_area(self, upload_id: str) -> Iterator[Path]:
        """
        Scope that purges the upload's scratch area on exit.

        Yields:
            Path of the scratch directory (may not exist yet)
        """
        directory = self.chunk_dir(upload_id)
        try:
            yield directory
        finally:
            self.purge(upload_id)
