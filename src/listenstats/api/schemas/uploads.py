"""API schemas for uploads and archives."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ImportedFileSchema(BaseModel):
    name: str = Field(..., description="Stored file name (<epoch-millis>-<original>)")
    entries: int = Field(..., description="Number of plays imported from the file")


class UploadResponse(BaseModel):
    message: str
    files: list[ImportedFileSchema]


class ArchiveSchema(BaseModel):
    """One uploaded file record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    file_path: str
    original_filename: str | None = None
    entry_count: int
    upload_date: datetime


class ArchivesResponse(BaseModel):
    archives: list[ArchiveSchema]
