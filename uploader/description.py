"""Builds the metadata note stored next to uploaded files."""

from typing import Optional

from uploader.utils import get_utc_timestamp


def build_description(
    filename: str,
    email: str,
    phone: str,
    data_origin: str,
    timestamp: Optional[str] = None
) -> str:
    """
    Render the description note for a finalized upload.

    Args:
        filename: Original file name as sent by the client
        email: Submitter email
        phone: Submitter phone; the line is omitted when empty
        data_origin: Free-text description of the data
        timestamp: RFC 3339 UTC timestamp, defaults to now

    Returns:
        Note text
    """
    if timestamp is None:
        timestamp = get_utc_timestamp()

    lines = [
        "--- UPLOAD INFORMATION ---",
        f"Timestamp (UTC): {timestamp}",
        f"Original Filename: {filename}",
        f"Email: {email}",
    ]
    if phone:
        lines.append(f"Teléfono: {phone}")

    lines.extend([
        "",
        "--- DESCRIPCIÓN ---",
        data_origin,
        "",
        "--- FIN ---",
    ])
    return "\n".join(lines) + "\n"
