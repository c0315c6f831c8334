"""HTTP client for the WebDAV storage backend (folder create, upload, probe)."""

from typing import AsyncIterable, Optional, Union
from urllib.parse import quote

import httpx

from common.constants import (
    EXISTS_TIMEOUT_SECONDS,
    FOLDER_TIMEOUT_SECONDS,
    UPLOAD_TIMEOUT_SECONDS,
    WEBDAV_FILES_PATH
)
from common.logging_config import get_logger
from uploader.config import Settings
from uploader.exceptions import RemoteBackendError

logger = get_logger(__name__)

Content = Union[bytes, str, AsyncIterable[bytes]]


def _escape(segment: str) -> str:
    return quote(segment, safe="")


def build_root_url(settings: Settings) -> str:
    """
    Build the WebDAV URL of the configured upload directory.

    Every path segment is percent-escaped on its own.

    Returns:
        URL such as ``https://cloud.example.org/remote.php/dav/files/alice/Uploads``
    """
    segments = [_escape(settings.nextcloud_user)]
    segments.extend(
        _escape(part) for part in settings.nextcloud_upload_dir.split("/") if part
    )
    return "/".join([settings.nextcloud_url.rstrip("/"), WEBDAV_FILES_PATH, *segments])


class WebDAVClient:
    """Async WebDAV client bound to one remote upload directory."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize WebDAV client.

        Args:
            settings: Remote URL, credentials and upload directory
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.root_url = build_root_url(settings)
        self.session = httpx.AsyncClient(
            auth=(settings.nextcloud_user, settings.nextcloud_app_password),
            transport=transport
        )
        logger.info(f"Initialized WebDAVClient [root_url={self.root_url}]")

    def url_for(self, folder: str, filename: Optional[str] = None) -> str:
        url = f"{self.root_url}/{_escape(folder)}"
        if filename is not None:
            url = f"{url}/{_escape(filename)}"
        return url

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.session.aclose()

    async def ensure_folder(self, folder: str) -> None:
        """
        Create a folder, treating "already exists" as success.

        Raises:
            RemoteBackendError: On any other status or a transport failure
        """
        url = self.url_for(folder)
        try:
            response = await self.session.request("MKCOL", url, timeout=FOLDER_TIMEOUT_SECONDS)
        except httpx.HTTPError as e:
            logger.error(f"MKCOL {url} failed: {type(e).__name__}: {e}")
            raise RemoteBackendError(f"Folder creation request failed: {e}") from e

        # 405 means the collection already exists
        if response.status_code not in (201, 405):
            raise self._bad_response("MKCOL", url, response)

        logger.info(f"Folder ready: {folder} status={response.status_code}")

    async def put_file(
        self,
        folder: str,
        filename: str,
        content: Content,
        size: Optional[int] = None
    ) -> None:
        """
        Upload a file into a folder, streaming the content.

        Args:
            folder: Destination folder beneath the upload directory
            filename: Destination file name
            content: Bytes, text or an async iterable of byte pieces
            size: Total size in bytes, sent as Content-Length when known

        Raises:
            RemoteBackendError: On a non-success status or a transport failure
        """
        url = self.url_for(folder, filename)
        if isinstance(content, str):
            content = content.encode("utf-8")

        headers = {}
        if size is not None:
            headers["Content-Length"] = str(size)

        try:
            response = await self.session.put(
                url,
                content=content,
                headers=headers,
                timeout=UPLOAD_TIMEOUT_SECONDS
            )
        except httpx.HTTPError as e:
            logger.error(f"PUT {url} failed: {type(e).__name__}: {e}")
            raise RemoteBackendError(f"Upload request failed: {e}") from e

        if response.status_code not in (201, 204):
            raise self._bad_response("PUT", url, response)

        logger.info(f"Uploaded {folder}/{filename} status={response.status_code}")

    async def file_exists(self, folder: str, filename: str) -> bool:
        """
        Probe whether a file exists.

        Transport errors and non-200 statuses count as "does not exist".
        """
        url = self.url_for(folder, filename)
        try:
            response = await self.session.head(url, timeout=EXISTS_TIMEOUT_SECONDS)
        except httpx.HTTPError as e:
            logger.warning(f"HEAD {url} failed, assuming file is absent: {type(e).__name__}: {e}")
            return False

        return response.status_code == 200

    def _bad_response(self, method: str, url: str, response: httpx.Response) -> RemoteBackendError:
        logger.error(
            f"Bad response from backend: {method} {url} "
            f"status={response.status_code} body={response.text[:500]!r}"
        )
        return RemoteBackendError(
            f"Bad response from backend: {method} returned {response.status_code}"
        )
