"""Utility helper functions for the upload relay."""

import posixpath
import re
import time
from datetime import datetime, timezone
from typing import Optional

from uploader.exceptions import InvalidIdentifierError

_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:")

_PHONE_REPLACEMENTS = (
    (" ", ""),
    ("-", ""),
    ("(", ""),
    (")", ""),
    ("+", "plus"),
)


def normalize_component(value: Optional[str], label: str = "upload ID") -> str:
    """
    Reduce an untrusted value to a single safe path component.

    Absolute paths and values containing a ``..`` segment are rejected
    outright; anything else is reduced to its last segment.

    Args:
        value: Client supplied identifier, file name or folder name
        label: Human readable name used in the error message

    Returns:
        Normalized component, safe to join under a root directory or URL

    Raises:
        InvalidIdentifierError: If the value is empty, absolute, or traverses
    """
    if not value or "\x00" in value:
        raise InvalidIdentifierError(f"Invalid {label}.")

    unified = value.replace("\\", "/")
    if unified.startswith("/") or _DRIVE_PREFIX.match(unified):
        raise InvalidIdentifierError(f"Invalid {label}.")

    if ".." in unified.split("/"):
        raise InvalidIdentifierError(f"Invalid {label}.")

    component = posixpath.basename(posixpath.normpath(unified))
    if component in ("", ".", ".."):
        raise InvalidIdentifierError(f"Invalid {label}.")

    return component


def sanitize_email(email: str) -> str:
    """Make an email address usable inside a folder name."""
    return email.replace("@", "_at_").replace(".", "_")


def sanitize_phone(phone: str) -> str:
    """Strip formatting characters from a phone number."""
    for old, new in _PHONE_REPLACEMENTS:
        phone = phone.replace(old, new)
    return phone


def build_folder_name(email: str, phone: str, timestamp: Optional[int] = None) -> str:
    """
    Build the destination folder name for one finalized upload.

    Args:
        email: Submitter email (component skipped when empty)
        phone: Submitter phone (component skipped when empty)
        timestamp: Unix seconds, defaults to now

    Returns:
        Folder name such as ``1700000000-jane_at_example_com-plus34600111222``

    Raises:
        InvalidIdentifierError: If the result is not a safe path component
    """
    if timestamp is None:
        timestamp = get_unix_timestamp()

    components = [str(timestamp)]
    if email:
        components.append(sanitize_email(email))
    if phone:
        components.append(sanitize_phone(phone))

    folder_name = "-".join(components).replace("/", "_").replace("\\", "_")
    return normalize_component(folder_name, label="folder name")


def get_unix_timestamp() -> int:
    """Current time as whole Unix seconds."""
    return int(time.time())


def get_utc_timestamp() -> str:
    """
    Get current UTC time in RFC 3339 format.

    Returns:
        Timestamp such as ``2024-05-01T12:30:00Z``
    """
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
