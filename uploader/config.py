"""Configuration settings for the upload relay."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from common.constants import DEFAULT_UPLOAD_TEMP_DIR
from uploader.exceptions import ConfigurationError


UPLOADER_HOST = os.environ.get("UPLOADER_HOST", "0.0.0.0")

UPLOADER_PORT = int(os.environ.get("UPLOADER_PORT", "8080"))


@dataclass(frozen=True)
class Settings:
    """Remote backend credentials and local scratch location."""
    nextcloud_url: str
    nextcloud_user: str
    nextcloud_app_password: str
    nextcloud_upload_dir: str = ""
    upload_temp_dir: str = DEFAULT_UPLOAD_TEMP_DIR

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Load settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Settings instance

        Raises:
            ConfigurationError: If NC_URL, NC_USER or NC_APP_PASSWORD is unset
        """
        if environ is None:
            environ = os.environ

        url = environ.get("NC_URL", "")
        user = environ.get("NC_USER", "")
        password = environ.get("NC_APP_PASSWORD", "")

        if not url or not user or not password:
            raise ConfigurationError(
                "Environment variables NC_URL, NC_USER, and NC_APP_PASSWORD must be set."
            )

        return cls(
            nextcloud_url=url.rstrip("/"),
            nextcloud_user=user,
            nextcloud_app_password=password,
            nextcloud_upload_dir=environ.get("NC_FOLDER", ""),
            upload_temp_dir=environ.get("UPLOAD_TEMP_DIR", DEFAULT_UPLOAD_TEMP_DIR),
        )
