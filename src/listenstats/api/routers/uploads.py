"""Upload and archive endpoints."""

# Hey future me - files are read fully into memory before validation. At the limits
# (10 files x 50 MB) that is 500 MB worst case, acceptable for a personal instance.
# The multipart field name is "files", same as the frontend's FormData.

from fastapi import APIRouter, Depends, File, UploadFile

from listenstats.api.dependencies import (
    get_current_user_id,
    get_import_service,
    get_stats_service,
)
from listenstats.api.schemas.uploads import (
    ArchiveSchema,
    ArchivesResponse,
    ImportedFileSchema,
    UploadResponse,
)
from listenstats.application.services import ImportService, StatsService, UploadedFile

router = APIRouter()


@router.post("/upload", response_model=UploadResponse)
async def upload_files(
    files: list[UploadFile] | None = File(default=None),
    user_id: int = Depends(get_current_user_id),
    import_service: ImportService = Depends(get_import_service),
) -> UploadResponse:
    """Import Spotify streaming-history JSON files."""
    uploaded: list[UploadedFile] = []
    for upload in files or []:
        uploaded.append(
            UploadedFile(filename=upload.filename or "", content=await upload.read())
        )
        await upload.close()

    imported = await import_service.import_files(user_id, uploaded)
    return UploadResponse(
        message="Files processed successfully",
        files=[ImportedFileSchema(name=f.name, entries=f.entries) for f in imported],
    )


@router.get("/archives", response_model=ArchivesResponse)
async def list_archives(
    user_id: int = Depends(get_current_user_id),
    stats_service: StatsService = Depends(get_stats_service),
) -> ArchivesResponse:
    """Uploaded files of the current user, newest first."""
    archives = await stats_service.list_archives(user_id)
    return ArchivesResponse(
        archives=[ArchiveSchema.model_validate(archive) for archive in archives]
    )
