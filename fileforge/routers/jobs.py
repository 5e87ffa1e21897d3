from fastapi import APIRouter, Depends

from fileforge.models.user import User
from fileforge.routers.deps import get_optional_user, get_status_service
from fileforge.schemas.job import BatchStatusRead, JobStatusRead
from fileforge.services.status import StatusService

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("/batch/{batch_id}", response_model=BatchStatusRead)
def get_batch(
    batch_id: str,
    service: StatusService = Depends(get_status_service),
    current_user: User | None = Depends(get_optional_user),
) -> BatchStatusRead:
    return service.get_batch_status(batch_id, user_id=current_user.id if current_user else None)


@router.get("/{job_id}", response_model=JobStatusRead)
def get_job(
    job_id: str,
    service: StatusService = Depends(get_status_service),
    current_user: User | None = Depends(get_optional_user),
) -> JobStatusRead:
    return service.get_job_status(job_id, user_id=current_user.id if current_user else None)
