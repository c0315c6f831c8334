"""Registry tracking multi-file upload sessions and their completion."""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Optional

from common.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class UploadMetadata:
    """Submitter details shared by every file of a submission."""
    email: str = ""
    phone: str = ""
    data_origin: str = ""


@dataclass
class UploadSession:
    """One logical submission of several files."""
    session_id: str
    expected_count: int
    metadata: UploadMetadata = field(default_factory=UploadMetadata)
    completed_count: int = 0
    closed: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)


class SessionRegistry:
    """
    In-memory map of active upload sessions.

    The registry lock only guards the shape of the map (insert, lookup,
    remove). Counter updates happen under the owning session's lock, taken
    after the registry lock has been released, so the two are never held
    together.
    """

    def __init__(self):
        self.lock = asyncio.Lock()
        self._sessions: Dict[str, UploadSession] = {}

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> Optional[UploadSession]:
        return self._sessions.get(session_id)

    async def register(
        self,
        session_id: str,
        expected_count: int,
        metadata: Optional[UploadMetadata] = None
    ) -> UploadSession:
        """
        Register a session, replacing any previous one with the same id.

        Args:
            session_id: Client chosen session id
            expected_count: Number of files the submission will finalize
            metadata: Submitter details

        Returns:
            The new session
        """
        session = UploadSession(
            session_id=session_id,
            expected_count=expected_count,
            metadata=metadata or UploadMetadata()
        )
        async with self.lock:
            replaced = self._sessions.get(session_id)
            self._sessions[session_id] = session

        if replaced is not None:
            logger.warning(f"Session {session_id} registered again, previous state discarded")
        logger.info(f"Registered upload session {session_id} with {expected_count} files")
        return session

    async def record_completion(self, session_id: str) -> bool:
        """
        Count one finalized file for a session.

        Returns:
            True when the caller must write the session's description note:
            either this call completed the session (which is then removed),
            or the session is unknown or already finished.
        """
        async with self.lock:
            session = self._sessions.get(session_id)

        if session is None:
            logger.warning(f"Session {session_id} not found, treating as single file upload")
            return True

        async with session.lock:
            if session.closed:
                logger.warning(f"Session {session_id} already completed, treating as single file upload")
                return True

            session.completed_count += 1
            logger.info(
                f"Session {session_id}: {session.completed_count}/{session.expected_count} files completed"
            )
            if session.completed_count < session.expected_count:
                return False
            session.closed = True

        async with self.lock:
            # A re-registration may have replaced the entry meanwhile
            if self._sessions.get(session_id) is session:
                del self._sessions[session_id]

        logger.info(f"All files completed for session {session_id}")
        return True
