from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from fileforge.models.common import OperationType
from fileforge.models.user import User
from fileforge.routers.common import history_page, scoped_filters, submit_uploads
from fileforge.routers.deps import get_current_user, get_dispatcher, get_history_service, get_status_service
from fileforge.schemas.history import HistoryPage
from fileforge.schemas.job import DispatchResponse, JobStatusRead
from fileforge.schemas.operations import SUPPORTED_FORMATS
from fileforge.services.dispatcher import OperationDispatcher
from fileforge.services.history import HistoryService
from fileforge.services.status import StatusService

router = APIRouter(prefix="/conversion", tags=["conversion"])

FORMAT_DESCRIPTIONS = {
    "images": "Image file formats",
    "videos": "Video file formats",
    "audio": "Audio file formats",
    "documents": "Document file formats",
}


@router.post("/convert", response_model=DispatchResponse, status_code=status.HTTP_202_ACCEPTED)
async def convert(
    files: list[UploadFile] | None = File(default=None),
    target_format: str | None = Form(default=None),
    dispatcher: OperationDispatcher = Depends(get_dispatcher),
    current_user: User = Depends(get_current_user),
) -> DispatchResponse:
    return await submit_uploads(
        OperationType.CONVERSION, files, {"target_format": target_format}, current_user, dispatcher
    )


@router.get("/status/{job_id}", response_model=JobStatusRead)
def conversion_status(
    job_id: str,
    service: StatusService = Depends(get_status_service),
    current_user: User = Depends(get_current_user),
) -> JobStatusRead:
    return service.get_job_status(job_id, user_id=current_user.id, operation_type=OperationType.CONVERSION)


@router.get("/formats")
def formats(current_user: User = Depends(get_current_user)) -> dict:
    return {
        group: {"formats": list(values), "description": FORMAT_DESCRIPTIONS[group]}
        for group, values in SUPPORTED_FORMATS.items()
    }


@router.get("/history", response_model=HistoryPage)
def conversion_history(
    limit: int = Query(default=20, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    service: HistoryService = Depends(get_history_service),
    current_user: User = Depends(get_current_user),
) -> HistoryPage:
    filters = scoped_filters(current_user, operation_type=OperationType.CONVERSION, limit=limit, offset=offset)
    return history_page(service, filters)
