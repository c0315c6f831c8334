"""Pydantic schemas for the upload endpoints."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class SessionRequest(BaseModel):
    """Request model for registering a multi-file session."""
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId", min_length=1)
    email: str = ""
    phone: str = ""
    data_origin: str = Field("", alias="dataOrigin")
    total_files: int = Field(..., alias="totalFiles", ge=1)


class SessionResponse(BaseModel):
    """Response model for session registration."""
    model_config = ConfigDict(populate_by_name=True)

    message: str
    session_id: str = Field(..., alias="sessionId")


class CompleteRequest(BaseModel):
    """Request model for finalizing one chunked upload."""
    model_config = ConfigDict(populate_by_name=True)

    upload_id: str = Field(..., alias="uploadId")
    file_name: str = Field(..., alias="fileName")
    email: str = ""
    phone: str = ""
    data_origin: str = Field("", alias="dataOrigin")
    session_id: Optional[str] = Field(None, alias="sessionId")
    total_files: Optional[int] = Field(None, alias="totalFiles")


class CompleteResponse(BaseModel):
    """Response model for a finalized upload."""
    model_config = ConfigDict(populate_by_name=True)

    message: str
    folder_name: str = Field(..., alias="folderName")
    file_name: str = Field(..., alias="fileName")
