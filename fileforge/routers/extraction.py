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

router = APIRouter(prefix="/extraction", tags=["extraction"])

MODES = [
    {
        "value": "auto",
        "label": "Auto Detect",
        "description": "Automatically detect text extraction method",
        "supported_types": ["All file types"],
    },
    {
        "value": "ocr",
        "label": "OCR Only",
        "description": "Use Optical Character Recognition",
        "supported_types": ["Images", "Scanned documents", "PDFs"],
    },
    {
        "value": "native",
        "label": "Native Text",
        "description": "Extract from text-based documents",
        "supported_types": ["PDFs", "Word documents", "Text files"],
    },
    {
        "value": "hybrid",
        "label": "Hybrid",
        "description": "Combine OCR and native extraction",
        "supported_types": ["All file types"],
    },
]

LANGUAGES = [
    {"value": "auto", "label": "Auto Detect"},
    {"value": "en", "label": "English"},
    {"value": "es", "label": "Spanish"},
    {"value": "fr", "label": "French"},
    {"value": "de", "label": "German"},
    {"value": "zh", "label": "Chinese"},
    {"value": "ja", "label": "Japanese"},
    {"value": "ko", "label": "Korean"},
    {"value": "ru", "label": "Russian"},
    {"value": "ar", "label": "Arabic"},
    {"value": "hi", "label": "Hindi"},
]


@router.post("/extract", response_model=DispatchResponse, status_code=status.HTTP_202_ACCEPTED)
async def extract(
    files: list[UploadFile] | None = File(default=None),
    mode: str | None = Form(default=None),
    include_metadata: bool | None = Form(default=None),
    language: str | None = Form(default=None),
    output_format: str | None = Form(default=None),
    dispatcher: OperationDispatcher = Depends(get_dispatcher),
    current_user: User | None = Depends(get_optional_user),
) -> DispatchResponse:
    options = {
        "mode": mode,
        "include_metadata": include_metadata,
        "language": language,
        "output_format": output_format,
    }
    return await submit_uploads(OperationType.EXTRACTION, files, options, current_user, dispatcher)


@router.get("/status/{job_id}", response_model=JobStatusRead)
def extraction_status(
    job_id: str,
    service: StatusService = Depends(get_status_service),
    current_user: User | None = Depends(get_optional_user),
) -> JobStatusRead:
    user_id = current_user.id if current_user else None
    return service.get_job_status(job_id, user_id=user_id, operation_type=OperationType.EXTRACTION)


@router.get("/modes")
def modes() -> list[dict]:
    return MODES


@router.get("/languages")
def languages() -> list[dict]:
    return LANGUAGES


@router.get("/history", response_model=HistoryPage)
def extraction_history(
    limit: int = Query(default=20, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    service: HistoryService = Depends(get_history_service),
    current_user: User | None = Depends(get_optional_user),
) -> HistoryPage:
    filters = scoped_filters(current_user, operation_type=OperationType.EXTRACTION, limit=limit, offset=offset)
    return history_page(service, filters)


@router.get("/stats")
def extraction_stats(
    service: HistoryService = Depends(get_history_service),
    current_user: User | None = Depends(get_optional_user),
) -> dict:
    return service.stats(
        user_id=current_user.id if current_user else None,
        operation_type=OperationType.EXTRACTION,
        unowned_only=current_user is None,
    )
