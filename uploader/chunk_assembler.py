"""Reassembles stored chunks into one ordered byte stream."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, List

from common.constants import STREAM_PIECE_SIZE_BYTES
from common.logging_config import get_logger
from uploader.chunk_store import ChunkStore, StoredChunk

logger = get_logger(__name__)


class AssembledStream:
    """
    Lazy concatenation of chunk files in index order.

    Only one chunk file is open at a time and it is read in fixed-size
    pieces. The stream can be consumed once.
    """

    def __init__(self, chunks: List[StoredChunk], piece_size: int = STREAM_PIECE_SIZE_BYTES):
        self.chunks = chunks
        self.piece_size = piece_size
        self.size = sum(chunk.size for chunk in chunks)
        self._consumed = False

    @property
    def indices(self) -> List[int]:
        return [chunk.index for chunk in self.chunks]

    def __aiter__(self) -> AsyncIterator[bytes]:
        if self._consumed:
            raise RuntimeError("Assembled stream has already been consumed")
        self._consumed = True
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        for chunk in self.chunks:
            with open(chunk.path, 'rb') as f:
                while True:
                    piece = await asyncio.to_thread(f.read, self.piece_size)
                    if not piece:
                        break
                    yield piece

    async def read_all(self) -> bytes:
        """Collect the whole stream into memory. Intended for small files."""
        pieces = []
        async for piece in self:
            pieces.append(piece)
        return b"".join(pieces)


class ChunkAssembler:
    """Turns the chunk set of one upload id into an AssembledStream."""

    def __init__(self, chunk_store: ChunkStore, piece_size: int = STREAM_PIECE_SIZE_BYTES):
        self.chunk_store = chunk_store
        self.piece_size = piece_size

    @asynccontextmanager
    async def assemble(self, upload_id: str) -> AsyncIterator[AssembledStream]:
        """
        Open the assembled stream for an upload.

        The scratch area is purged when the scope exits, whether the
        assembly or its consumer succeeded or failed.

        Args:
            upload_id: Client supplied upload id

        Yields:
            AssembledStream over all chunks in ascending index order

        Raises:
            InvalidIdentifierError: If the upload id is unsafe
            ChunksNotFoundError: If no chunks were stored
            InvalidChunkIndexError: If a stored chunk has a malformed index
        """
        try:
            stream = await asyncio.to_thread(self._open_stream, upload_id)
            logger.info(
                f"Assembling upload {upload_id}: {len(stream.chunks)} chunks, {stream.size} bytes"
            )
            yield stream
        finally:
            await asyncio.to_thread(self.chunk_store.purge, upload_id)

    def _open_stream(self, upload_id: str) -> AssembledStream:
        chunks = self.chunk_store.list_chunks(upload_id)
        return AssembledStream(chunks, piece_size=self.piece_size)
