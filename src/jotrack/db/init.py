from __future__ import annotations

from pathlib import Path

from jotrack.config import get_settings
from jotrack.db.base import Base
from jotrack.db.session import SessionLocal, engine
from jotrack.db import models  # noqa: F401
from jotrack.db import search
from jotrack.db.seed import seed_sample_jobs


def ensure_data_directories() -> None:
    settings = get_settings()
    paths: list[Path] = [
        settings.data_dir,
        settings.attachments_dir,
    ]
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def init_database(seed: bool = False) -> dict[str, int]:
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)
    # covers databases whose jobs table predates the search triggers
    search.ensure_search_index(engine)

    inserted = 0
    if seed:
        with SessionLocal() as session:
            inserted = seed_sample_jobs(session)
    return {"seeded_jobs": inserted}
