from functools import lru_cache

from fileforge.repositories.base import HistoryFilters, JobRepository
from fileforge.repositories.memory import InMemoryJobRepository
from fileforge.repositories.sql import SqlAlchemyJobRepository


@lru_cache(maxsize=1)
def get_repository() -> JobRepository:
    from fileforge.db.session import SessionLocal

    return SqlAlchemyJobRepository(SessionLocal)


__all__ = ["HistoryFilters", "JobRepository", "InMemoryJobRepository", "SqlAlchemyJobRepository", "get_repository"]
