"""Pydantic schemas for API requests and responses."""

from uploader.schemas.upload import (
    SessionRequest,
    SessionResponse,
    CompleteRequest,
    CompleteResponse
)
from uploader.schemas.common import ErrorResponse

__all__ = [
    "SessionRequest",
    "SessionResponse",
    "CompleteRequest",
    "CompleteResponse",
    "ErrorResponse"
]
