from fastapi import BackgroundTasks, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from fileforge.core.errors import AuthenticationError
from fileforge.core.security import token_subject
from fileforge.db.session import get_db
from fileforge.models.user import User
from fileforge.repositories import JobRepository, get_repository
from fileforge.services.dispatcher import OperationDispatcher
from fileforge.services.history import HistoryService
from fileforge.services.retention import RetentionService
from fileforge.services.status import StatusService
from fileforge.workers.tasks import batch_launcher

bearer_scheme = HTTPBearer(auto_error=False)


def _user_from_token(db: Session, token: str) -> User | None:
    try:
        user_id = token_subject(token)
    except ValueError:
        return None
    return db.scalar(select(User).where(User.id == user_id))


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise AuthenticationError("Access token required")
    user = _user_from_token(db, credentials.credentials)
    if user is None:
        raise AuthenticationError("Invalid or expired token")
    return user


def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User | None:
    if credentials is None:
        return None
    return _user_from_token(db, credentials.credentials)


def get_job_repository() -> JobRepository:
    return get_repository()


def get_dispatcher(
    background_tasks: BackgroundTasks,
    repository: JobRepository = Depends(get_job_repository),
) -> OperationDispatcher:
    return OperationDispatcher(repository, batch_launcher(background_tasks))


def get_status_service(repository: JobRepository = Depends(get_job_repository)) -> StatusService:
    return StatusService(repository)


def get_history_service(repository: JobRepository = Depends(get_job_repository)) -> HistoryService:
    return HistoryService(repository)


def get_retention_service(repository: JobRepository = Depends(get_job_repository)) -> RetentionService:
    return RetentionService(repository)
