"""Destructive data management endpoints."""

from fastapi import APIRouter, Depends

from listenstats.api.dependencies import get_current_user_id, get_data_cleanup_service
from listenstats.api.schemas.stats import ClearDataResponse
from listenstats.application.services import DataCleanupService

router = APIRouter()


@router.delete("/clear-data", response_model=ClearDataResponse)
async def clear_data(
    user_id: int = Depends(get_current_user_id),
    cleanup_service: DataCleanupService = Depends(get_data_cleanup_service),
) -> ClearDataResponse:
    """Delete all plays and uploads of the current user."""
    result = await cleanup_service.clear_user_data(user_id)
    return ClearDataResponse(
        message="All data cleared successfully",
        deleted_plays=result.deleted_plays,
        deleted_archives=result.deleted_archives,
        duplicates_removed=result.duplicates_removed,
    )
