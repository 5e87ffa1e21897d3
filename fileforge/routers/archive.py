from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from fileforge.models.common import OperationType
from fileforge.models.user import User
from fileforge.routers.common import submit_uploads
from fileforge.routers.deps import get_dispatcher, get_optional_user, get_status_service
from fileforge.schemas.job import DispatchResponse, JobStatusRead
from fileforge.services.dispatcher import OperationDispatcher
from fileforge.services.status import StatusService

router = APIRouter(prefix="/archive", tags=["archive"])


@router.post("/extract", response_model=DispatchResponse, status_code=status.HTTP_202_ACCEPTED)
async def extract_archive(
    files: list[UploadFile] | None = File(default=None),
    overwrite_existing: bool | None = Form(default=None),
    extract_path: str | None = Form(default=None),
    dispatcher: OperationDispatcher = Depends(get_dispatcher),
    current_user: User | None = Depends(get_optional_user),
) -> DispatchResponse:
    options = {"overwrite_existing": overwrite_existing, "extract_path": extract_path}
    return await submit_uploads(OperationType.ARCHIVE_EXTRACTION, files, options, current_user, dispatcher)


@router.get("/status/{job_id}", response_model=JobStatusRead)
def archive_status(
    job_id: str,
    service: StatusService = Depends(get_status_service),
    current_user: User | None = Depends(get_optional_user),
) -> JobStatusRead:
    user_id = current_user.id if current_user else None
    return service.get_job_status(job_id, user_id=user_id, operation_type=OperationType.ARCHIVE_EXTRACTION)
