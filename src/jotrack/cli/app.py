from __future__ import annotations

import json

import typer
import uvicorn

from jotrack.api.app import create_app
from jotrack.config import get_settings
from jotrack.core.attachments import AttachmentService
from jotrack.db.init import init_database
from jotrack.db.models import Job
from jotrack.db.repositories import Repository
from jotrack.db.search import rebuild_search_index
from jotrack.db.seed import seed_sample_jobs
from jotrack.db.session import SessionLocal, engine
from jotrack.errors import JoTrackError
from jotrack.logging_config import configure_logging

app = typer.Typer(help="JoTrack CLI")
jobs_app = typer.Typer(help="Job tracking commands")

app.add_typer(jobs_app, name="jobs")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def job_summary(job: Job) -> dict[str, object]:
    return {
        "id": job.id,
        "title": job.title,
        "company": job.company,
        "status": job.status,
        "updated_at": job.updated_at.isoformat() if job.updated_at else None,
    }


def fail(exc: JoTrackError) -> None:
    typer.echo(json.dumps({"ok": False, "error": str(exc)}, indent=2), err=True)
    raise typer.Exit(code=1)


@app.callback()
def main(
    log_level: str | None = typer.Option(None, "--log-level", help="Override LOG_LEVEL for this command"),
) -> None:
    configure_logging(log_level)


@app.command("init")
def init_cmd(seed: bool = typer.Option(False, "--seed", help="Insert sample jobs into an empty database")) -> None:
    """Initialize database, search index and data directories."""
    result = init_database(seed=seed)
    typer.echo(json.dumps({"ok": True, **result}, indent=2))


@app.command("seed")
def seed_cmd() -> None:
    """Insert sample jobs into an empty database."""
    ensure_initialized()
    with SessionLocal() as db:
        inserted = seed_sample_jobs(db)
    typer.echo(json.dumps({"seeded_jobs": inserted}, indent=2))


@app.command("reindex")
def reindex_cmd() -> None:
    """Rebuild the full-text search index from the jobs table."""
    ensure_initialized()
    typer.echo(json.dumps({"indexed": rebuild_search_index(engine)}, indent=2))


@app.command("purge-trash")
def purge_trash_cmd() -> None:
    """Permanently delete jobs whose trash retention has expired."""
    ensure_initialized()
    with SessionLocal() as db:
        purged = AttachmentService(Repository(db)).purge_expired_jobs()
    typer.echo(json.dumps({"purged": purged}, indent=2))


@jobs_app.command("add")
def jobs_add(
    title: str = typer.Option(..., "--title"),
    company: str = typer.Option(..., "--company"),
    status: str = typer.Option("ON_RADAR", "--status"),
    notes: str = typer.Option("", "--notes"),
    url: str = typer.Option("", "--url"),
) -> None:
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        try:
            job = repo.create_job(title=title, company=company, status=status, notes=notes, posting_url=url)
        except JoTrackError as exc:
            fail(exc)
        typer.echo(json.dumps(job_summary(job), indent=2))


@jobs_app.command("list")
def jobs_list(
    limit: int = typer.Option(20, "--limit"),
    status: list[str] = typer.Option([], "--status"),
) -> None:
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        try:
            jobs = repo.list_jobs(statuses=status or None, limit=limit)
        except JoTrackError as exc:
            fail(exc)
        typer.echo(json.dumps([job_summary(job) for job in jobs], indent=2))


@jobs_app.command("search")
def jobs_search(
    query: str = typer.Argument(...),
    limit: int = typer.Option(20, "--limit"),
) -> None:
    ensure_initialized()
    with SessionLocal() as db:
        jobs = Repository(db).search_jobs(query, limit=limit)
        typer.echo(json.dumps([job_summary(job) for job in jobs], indent=2))


@jobs_app.command("status")
def jobs_status(
    job_id: int = typer.Option(..., "--job-id"),
    status: str = typer.Option(..., "--status"),
) -> None:
    ensure_initialized()
    with SessionLocal() as db:
        try:
            job = Repository(db).update_job_status(job_id, status)
        except JoTrackError as exc:
            fail(exc)
        typer.echo(json.dumps(job_summary(job), indent=2))


@jobs_app.command("history")
def jobs_history(job_id: int = typer.Option(..., "--job-id")) -> None:
    ensure_initialized()
    with SessionLocal() as db:
        rows = Repository(db).get_status_history(job_id)
        typer.echo(
            json.dumps(
                [{"status": row.status, "changed_at": row.changed_at.isoformat()} for row in rows],
                indent=2,
            )
        )


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    ensure_initialized()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(
        app_instance,
        host=host or settings.app_host,
        port=port or settings.app_port,
        log_level=settings.log_level.lower(),
    )
