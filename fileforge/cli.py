import json
from typing import Optional

import typer
import uvicorn

from fileforge.core.config import get_settings
from fileforge.core.errors import FileForgeError
from fileforge.core.logging import configure_logging
from fileforge.repositories import HistoryFilters, get_repository
from fileforge.services.history import HistoryService
from fileforge.services.retention import RetentionService
from fileforge.services.status import StatusService

app = typer.Typer(add_completion=False, help="FileForge CLI")


def _echo_json(payload) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _prepare_store() -> None:
    if get_settings().auto_create_tables:
        from fileforge.db.base import Base
        from fileforge.db.session import engine
        from fileforge.models import FileHistory, FileMetadata, ProcessingJob, User  # noqa: F401

        Base.metadata.create_all(bind=engine)


@app.callback()
def _root() -> None:
    configure_logging()


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind host"),
    port: int = typer.Option(8000, help="Bind port"),
    reload: bool = typer.Option(False, help="Auto-reload on changes (dev)"),
) -> None:
    uvicorn.run("fileforge.main:app", host=host, port=port, reload=reload)


@app.command()
def cleanup(
    days: int = typer.Option(7, "--days", min=0, help="Remove completed records older than this many days"),
    user_id: Optional[str] = typer.Option(None, "--user-id", help="Only clean up this user's records"),
) -> None:
    """Delete old completed records together with their files."""
    _prepare_store()
    deleted = RetentionService(get_repository()).cleanup(days=days, user_id=user_id)
    typer.echo(f"Cleaned up {deleted} old files")


@app.command()
def status(job_id: str = typer.Argument(..., help="Job id returned at submission")) -> None:
    _prepare_store()
    try:
        job_status = StatusService(get_repository()).get_job_status(job_id)
    except FileForgeError as exc:
        typer.echo(exc.message, err=True)
        raise typer.Exit(code=1) from exc
    _echo_json(job_status.model_dump())


@app.command()
def history(
    operation_type: Optional[str] = typer.Option(None, "--operation-type"),
    status_filter: Optional[str] = typer.Option(None, "--status"),
    limit: int = typer.Option(20, "--limit", min=1),
) -> None:
    _prepare_store()
    filters = HistoryFilters(operation_type=operation_type, status=status_filter, limit=limit)
    try:
        rows = HistoryService(get_repository()).list_history(filters)
    except FileForgeError as exc:
        typer.echo(exc.message, err=True)
        raise typer.Exit(code=1) from exc
    _echo_json([row.model_dump() for row in rows])


if __name__ == "__main__":
    app()
