from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from fileforge.models.user import User
from fileforge.repositories.base import HistoryFilters
from fileforge.routers.common import history_page
from fileforge.routers.deps import get_current_user, get_history_service, get_retention_service
from fileforge.schemas.history import CleanupResponse, HistoryDetailRead, HistoryPage
from fileforge.services.history import HistoryService
from fileforge.services.retention import DEFAULT_RETENTION_DAYS, RetentionService

router = APIRouter(prefix="/history", tags=["history"])


@router.get("", response_model=HistoryPage)
def list_history(
    limit: int = Query(default=50, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    operation_type: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    service: HistoryService = Depends(get_history_service),
    current_user: User = Depends(get_current_user),
) -> HistoryPage:
    filters = HistoryFilters(
        user_id=current_user.id,
        operation_type=operation_type,
        status=status_filter,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    return history_page(service, filters)


@router.delete("/cleanup", response_model=CleanupResponse)
def cleanup(
    days: int = Query(default=DEFAULT_RETENTION_DAYS, ge=0),
    service: RetentionService = Depends(get_retention_service),
    current_user: User = Depends(get_current_user),
) -> CleanupResponse:
    deleted = service.cleanup(days=days, user_id=current_user.id)
    return CleanupResponse(
        message=f"Cleaned up {deleted} old files",
        deleted_files=deleted,
        cleanup_days=days,
    )


@router.get("/stats/overview")
def stats_overview(
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    service: HistoryService = Depends(get_history_service),
    current_user: User = Depends(get_current_user),
) -> dict:
    return service.stats(user_id=current_user.id, start_date=start_date, end_date=end_date)


@router.get("/stats/{operation_type}")
def stats_for_operation(
    operation_type: str,
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    service: HistoryService = Depends(get_history_service),
    current_user: User = Depends(get_current_user),
) -> dict:
    return service.stats(
        user_id=current_user.id,
        operation_type=operation_type,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/{history_id}", response_model=HistoryDetailRead)
def get_history(
    history_id: str,
    service: HistoryService = Depends(get_history_service),
    current_user: User = Depends(get_current_user),
) -> HistoryDetailRead:
    return service.get_history(history_id, user_id=current_user.id)


@router.delete("/{history_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_history(
    history_id: str,
    service: HistoryService = Depends(get_history_service),
    current_user: User = Depends(get_current_user),
) -> None:
    service.delete_history(history_id, user_id=current_user.id)
    return None
