"""Shared pytest fixtures for all tests."""

from typing import Dict, List, Optional, Set, Tuple

import pytest

from uploader.chunk_store import ChunkStore
from uploader.config import Settings
from uploader.exceptions import RemoteBackendError
from uploader.session_registry import SessionRegistry


class FakeStorage:
    """In-memory stand-in for the WebDAV client."""

    def __init__(self):
        self.folders: Set[str] = set()
        self.files: Dict[str, bytes] = {}
        self.calls: List[Tuple[str, str]] = []
        self.fail_ensure_folder = False
        self.fail_put_for: Set[str] = set()
        self.closed = False

    async def ensure_folder(self, folder: str) -> None:
        self.calls.append(("ensure_folder", folder))
        if self.fail_ensure_folder:
            raise RemoteBackendError("MKCOL returned 500")
        self.folders.add(folder)

    async def put_file(self, folder: str, filename: str, content, size: Optional[int] = None) -> None:
        self.calls.append(("put_file", f"{folder}/{filename}"))
        if isinstance(content, str):
            data = content.encode("utf-8")
        elif isinstance(content, bytes):
            data = content
        else:
            data = b"".join([piece async for piece in content])

        if filename in self.fail_put_for:
            raise RemoteBackendError("PUT returned 507")
        if size is not None:
            assert size == len(data)
        self.files[f"{folder}/{filename}"] = data

    async def file_exists(self, folder: str, filename: str) -> bool:
        self.calls.append(("file_exists", f"{folder}/{filename}"))
        return f"{folder}/{filename}" in self.files

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def scratch_dir(tmp_path):
    """
    Scratch root that does not exist yet.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to the scratch directory
    """
    return tmp_path / 'scratch'


@pytest.fixture
def chunk_store(scratch_dir):
    """ChunkStore rooted in a temporary directory."""
    return ChunkStore(scratch_dir)


@pytest.fixture
def settings(scratch_dir):
    """Settings pointing at a fake backend and a temporary scratch root."""
    return Settings(
        nextcloud_url='https://cloud.example.org',
        nextcloud_user='alice',
        nextcloud_app_password='app-secret',
        nextcloud_upload_dir='Public Uploads',
        upload_temp_dir=str(scratch_dir),
    )


@pytest.fixture
def fake_storage():
    """Fresh in-memory storage backend."""
    return FakeStorage()


@pytest.fixture
def registry():
    """Fresh session registry."""
    return SessionRegistry()


@pytest.fixture
def fixed_time(monkeypatch):
    """
    Pin the folder name timestamp.

    Returns:
        The pinned Unix timestamp
    """
    timestamp = 1700000000
    monkeypatch.setattr('uploader.utils.get_unix_timestamp', lambda: timestamp)
    return timestamp
