from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from jotrack.db.models import Job
from jotrack.db.repositories import Repository

SAMPLE_JOBS: list[dict[str, object]] = [
    {
        "title": "Senior Backend Engineer",
        "company": "Northwind Labs",
        "location": "Remote",
        "notes": "Python, FastAPI and Postgres. Referral from a former teammate.",
        "statuses": ["ON_RADAR", "APPLIED", "PHONE_SCREEN"],
    },
    {
        "title": "Staff Data Engineer",
        "company": "Lumen Analytics",
        "location": "New York, NY",
        "notes": "Spark and Airflow heavy. Ask about on-call rotation.",
        "statuses": ["ON_RADAR", "APPLIED"],
    },
    {
        "title": "Platform Engineer",
        "company": "Copperline",
        "location": "Austin, TX",
        "notes": "Kubernetes and Terraform. Two onsite rounds scheduled.",
        "statuses": ["ON_RADAR", "APPLIED", "PHONE_SCREEN", "ONSITE"],
    },
    {
        "title": "Engineering Manager",
        "company": "Fernhill Health",
        "location": "Hybrid - Boston, MA",
        "notes": "",
        "statuses": ["ON_RADAR"],
    },
    {
        "title": "Machine Learning Engineer",
        "company": "Quartz Robotics",
        "location": "San Francisco, CA",
        "notes": "PyTorch, model serving. Rejected after final round; ask for feedback.",
        "statuses": ["ON_RADAR", "APPLIED", "PHONE_SCREEN", "ONSITE", "REJECTED"],
    },
]


def seed_sample_jobs(session: Session) -> int:
    """Insert the sample jobs once; a database that already has jobs is left alone."""
    existing = session.scalar(select(func.count(Job.id))) or 0
    if existing:
        return 0

    repo = Repository(session)
    inserted = 0
    for sample in SAMPLE_JOBS:
        statuses = list(sample["statuses"])
        job = repo.create_job(
            title=str(sample["title"]),
            company=str(sample["company"]),
            location=str(sample["location"]),
            notes=str(sample["notes"]),
            status=statuses[0],
        )
        for status in statuses[1:]:
            repo.update_job_status(job.id, status)
        inserted += 1
    return inserted
