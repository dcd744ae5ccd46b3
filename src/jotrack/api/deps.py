from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from jotrack.core.analysis import AnalysisService
from jotrack.core.attachments import AttachmentService
from jotrack.core.coach_service import CoachService
from jotrack.db.repositories import Repository
from jotrack.db.session import get_db_session
from jotrack.errors import JoTrackError, RateLimitedError


def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


def get_repository(db: Session = Depends(get_db)) -> Repository:
    return Repository(db)


def get_attachment_service(repo: Repository = Depends(get_repository)) -> AttachmentService:
    return AttachmentService(repo)


def get_analysis_service(repo: Repository = Depends(get_repository)) -> AnalysisService:
    return AnalysisService(repo)


def get_coach_service(analysis: AnalysisService = Depends(get_analysis_service)) -> CoachService:
    return CoachService(analysis.repo, analysis)


def http_error(exc: JoTrackError) -> HTTPException:
    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after_sec)}
    return HTTPException(status_code=exc.status_code, detail=str(exc), headers=headers)
