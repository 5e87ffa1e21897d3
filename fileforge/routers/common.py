"""Request plumbing shared by the four operation routers."""

from typing import Any

from fastapi import UploadFile

from fileforge.core.errors import FileForgeError
from fileforge.models.user import User
from fileforge.repositories.base import HistoryFilters
from fileforge.schemas.history import HistoryPage
from fileforge.schemas.job import DispatchedJobRead, DispatchResponse
from fileforge.services.dispatcher import OperationDispatcher
from fileforge.services.history import HistoryService
from fileforge.services.runner import OPERATION_LABELS
from fileforge.services.storage import delete_backing_files, save_upload_files


async def submit_uploads(
    operation_type: str,
    files: list[UploadFile] | None,
    raw_options: dict[str, Any],
    current_user: User | None,
    dispatcher: OperationDispatcher,
) -> DispatchResponse:
    saved = await save_upload_files(files or [])
    try:
        result = dispatcher.submit(
            operation_type, saved, raw_options, user_id=current_user.id if current_user else None
        )
    except FileForgeError:
        delete_backing_files(*(item.stored_path for item in saved))
        raise
    label = OPERATION_LABELS[operation_type]
    return DispatchResponse(
        message=f"{len(result.jobs)} file(s) uploaded. {label} started.",
        batch_id=result.batch_id,
        total_files=len(result.jobs),
        options=result.options.model_dump(exclude={"operation"}),
        jobs=[
            DispatchedJobRead(
                job_id=job.job_id,
                file_history_id=job.file_history_id,
                original_filename=job.original_filename,
            )
            for job in result.jobs
        ],
    )


def history_page(service: HistoryService, filters: HistoryFilters) -> HistoryPage:
    return HistoryPage(
        history=service.list_history(filters),
        total=service.count_history(filters),
        limit=filters.limit,
        offset=filters.offset,
        filters={
            "operation_type": filters.operation_type,
            "status": filters.status,
            "start_date": filters.start_date.isoformat() if filters.start_date else None,
            "end_date": filters.end_date.isoformat() if filters.end_date else None,
        },
    )


def scoped_filters(current_user: User | None, **fields: Any) -> HistoryFilters:
    """Signed-in callers see their own records; anonymous callers see unowned ones."""
    if current_user is not None:
        return HistoryFilters(user_id=current_user.id, **fields)
    return HistoryFilters(unowned_only=True, **fields)
