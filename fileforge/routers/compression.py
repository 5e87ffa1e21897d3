from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from fileforge.models.common import OperationType
from fileforge.models.user import User
from fileforge.routers.common import history_page, scoped_filters, submit_uploads
from fileforge.routers.deps import get_dispatcher, get_history_service, get_optional_user, get_status_service
from fileforge.schemas.history import HistoryPage
from fileforge.schemas.job import DispatchResponse, JobStatusRead
from fileforge.services.dispatcher import OperationDispatcher
from fileforge.services.history import HistoryService
from fileforge.services.status import StatusService

router = APIRouter(prefix="/compression", tags=["compression"])

LEVELS = [
    {
        "value": "light",
        "label": "Light",
        "description": "Minimal compression, fast processing",
        "savings": "10-20%",
        "quality": "Excellent",
        "speed": "Fast",
    },
    {
        "value": "medium",
        "label": "Medium",
        "description": "Balanced compression and quality",
        "savings": "30-50%",
        "quality": "Very Good",
        "speed": "Medium",
    },
    {
        "value": "high",
        "label": "High",
        "description": "Maximum compression, smaller files",
        "savings": "50-70%",
        "quality": "Good",
        "speed": "Slow",
    },
    {
        "value": "extreme",
        "label": "Extreme",
        "description": "Ultra compression, may affect quality",
        "savings": "70-90%",
        "quality": "Acceptable",
        "speed": "Very Slow",
    },
]


@router.post("/compress", response_model=DispatchResponse, status_code=status.HTTP_202_ACCEPTED)
async def compress(
    files: list[UploadFile] | None = File(default=None),
    level: str | None = Form(default=None),
    preserve_quality: bool | None = Form(default=None),
    remove_metadata: bool | None = Form(default=None),
    dispatcher: OperationDispatcher = Depends(get_dispatcher),
    current_user: User | None = Depends(get_optional_user),
) -> DispatchResponse:
    options = {"level": level, "preserve_quality": preserve_quality, "remove_metadata": remove_metadata}
    return await submit_uploads(OperationType.COMPRESSION, files, options, current_user, dispatcher)


@router.get("/status/{job_id}", response_model=JobStatusRead)
def compression_status(
    job_id: str,
    service: StatusService = Depends(get_status_service),
    current_user: User | None = Depends(get_optional_user),
) -> JobStatusRead:
    user_id = current_user.id if current_user else None
    return service.get_job_status(job_id, user_id=user_id, operation_type=OperationType.COMPRESSION)


@router.get("/levels")
def levels() -> list[dict]:
    return LEVELS


@router.get("/history", response_model=HistoryPage)
def compression_history(
    limit: int = Query(default=20, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    service: HistoryService = Depends(get_history_service),
    current_user: User | None = Depends(get_optional_user),
) -> HistoryPage:
    filters = scoped_filters(current_user, operation_type=OperationType.COMPRESSION, limit=limit, offset=offset)
    return history_page(service, filters)


@router.get("/stats")
def compression_stats(
    service: HistoryService = Depends(get_history_service),
    current_user: User | None = Depends(get_optional_user),
) -> dict:
    return service.stats(
        user_id=current_user.id if current_user else None,
        operation_type=OperationType.COMPRESSION,
        unowned_only=current_user is None,
    )
