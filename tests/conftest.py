from __future__ import annotations

import copy
import os
import shutil
import tempfile
from pathlib import Path

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="jotrack-tests-"))
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_ROOT / 'jotrack-test.db'}"
os.environ["DATA_DIR"] = str(_TEST_ROOT)
os.environ["ATTACHMENTS_DIR"] = str(_TEST_ROOT / "attachments")
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["TAVILY_API_KEY"] = ""

import pytest  # noqa: E402
from fastapi import Depends  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from jotrack.api.app import create_app  # noqa: E402
from jotrack.api.deps import get_analysis_service, get_repository  # noqa: E402
from jotrack.config import get_settings  # noqa: E402
from jotrack.core.analysis import AnalysisService  # noqa: E402
from jotrack.core.rate_limit import RateLimiter, get_ai_rate_limiter  # noqa: E402
from jotrack.db import search  # noqa: E402,F401
from jotrack.db.base import Base  # noqa: E402
from jotrack.db.repositories import Repository  # noqa: E402
from jotrack.db.session import SessionLocal, engine  # noqa: E402
from jotrack.llm.router import JSONResult  # noqa: E402
from jotrack.types import SearchResult  # noqa: E402

FAKE_RESULTS: dict[str, dict] = {
    "match_score": {
        "overall_score": 72,
        "summary": "Strong backend match with a platform gap.",
        "top_strengths": ["Python services", "SQL"],
        "top_gaps": ["Kubernetes in production"],
        "matched_skills": ["python", "sql"],
        "missing_skills": ["kubernetes"],
    },
    "company_research": {
        "company": "Acme",
        "overview": "Acme builds logistics software.",
        "industry": "Logistics",
        "size": "500-1000",
        "culture": ["Remote friendly"],
        "recent_news": ["Series C"],
        "talking_points": ["Routing engine rewrite"],
    },
    "interview_questions": {
        "questions": [
            {"question": "Tell me about a system you scaled.", "category": "technical", "why_asked": "Scale"},
        ]
    },
    "cover_letter": {"cover_letter": "Dear Acme team,\n\nI build reliable services.", "highlights": ["Python"]},
    "people_analysis": {"summary": "Engineering lead focused on platform work.", "conversation_starters": []},
    "notes_summary": {"summary": "Recruiter call went well.", "action_items": ["Send portfolio"]},
    "coach_discovery": {
        "questions": [
            {
                "id": "q1",
                "category": "tools",
                "question": "Have you operated Kubernetes clusters?",
                "gap_addressed": "kubernetes",
            },
            {"id": "q2", "category": "impact", "question": "What latency wins have you shipped?"},
        ],
        "estimated_minutes": 10,
    },
    "coach_profile": {
        "extracted_skills": ["kubernetes"],
        "achievements": ["Cut p99 latency by 40%"],
        "profile_summary": "Backend engineer with platform experience.",
    },
    "coach_score": {"before_score": 62, "after_score": 81, "improvements": ["Kubernetes"], "remaining_gaps": []},
    "coach_resume": {
        "resume_markdown": "# Jane Doe\n\n## Experience\n- Ran Kubernetes clusters with Python tooling",
        "changes": ["Added platform work"],
        "keywords_added": ["kubernetes"],
    },
    "coach_cover_letter": {"cover_letter": "Dear Acme team,\n\nI run platforms.", "highlights": []},
    "coach_interview_prep": {
        "questions": [{"question": "Why Acme?", "category": "motivation", "why_asked": "", "talk_track": "..."}],
        "core_stories": ["Latency project"],
        "questions_to_ask": ["How is on-call shared?"],
    },
    "interview_score_answer": {
        "overall": 62.4,
        "category": "developing",
        "subscores": {
            "structure": 80,
            "specificity": 40,
            "outcome": 55,
            "role": 70,
            "company": 60,
            "persona": 75,
            "risks": 40,
        },
        "strengths": ["Clear context"],
        "improvements": ["Quantify the result"],
        "follow_up_questions": ["How big was the team?"],
    },
    "interview_suggest_answer": {
        "draft": "I led the billing API rewrite and cut p99 latency by 40%.",
        "rationale": ["Added a measurable outcome"],
    },
    "interview_core_stories": {
        "core_stories": [
            {"id": "story1", "title": "Billing API scale-up", "summary": "Rewrite under load", "question_keys": []},
        ],
        "story_mapping": {},
        "recommended_practice_order": ["story1"],
    },
}


class FakeRouter:
    """Stands in for AIRouter; records every provider call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.results = copy.deepcopy(FAKE_RESULTS)

    def complete_json(self, *, capability: str, prompt: str, provider: str | None = None) -> JSONResult:
        self.calls.append((capability, prompt))
        return JSONResult(data=copy.deepcopy(self.results[capability]), provider="fake", model="fake-1")

    def test_connection(self) -> dict:
        return {"claude": {"configured": True, "ok": True, "error": ""}}

    def capabilities_called(self) -> list[str]:
        return [capability for capability, _ in self.calls]


class FakeTavily:
    configured = True

    def __init__(self) -> None:
        self.queries: list[str] = []

    def search(self, query: str, max_results: int | None = None, depth: str = "advanced") -> list[SearchResult]:
        self.queries.append(query)
        return [SearchResult(title="Acme news", url="https://news.example.com/acme", content="Acme raised", score=0.9)]


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    shutil.rmtree(get_settings().attachments_dir, ignore_errors=True)
    get_ai_rate_limiter().reset()
    yield


@pytest.fixture
def db_session():
    with SessionLocal() as session:
        yield session


@pytest.fixture
def repo(db_session) -> Repository:
    return Repository(db_session)


@pytest.fixture
def fake_router() -> FakeRouter:
    return FakeRouter()


@pytest.fixture
def fake_tavily() -> FakeTavily:
    return FakeTavily()


@pytest.fixture
def ai_limiter() -> RateLimiter:
    return RateLimiter(max_calls=50, window_sec=300)


@pytest.fixture
def analysis(repo, fake_router, fake_tavily, ai_limiter) -> AnalysisService:
    return AnalysisService(repo, router=fake_router, tavily=fake_tavily, limiter=ai_limiter)


@pytest.fixture
def client(fake_router, fake_tavily, ai_limiter) -> TestClient:
    app = create_app()

    def analysis_override(repo: Repository = Depends(get_repository)) -> AnalysisService:
        return AnalysisService(repo, router=fake_router, tavily=fake_tavily, limiter=ai_limiter)

    app.dependency_overrides[get_analysis_service] = analysis_override
    return TestClient(app)


def upload(client: TestClient, job_id: int, name: str, content: bytes, kind: str, content_type: str = "text/plain"):
    return client.post(
        f"/api/jobs/{job_id}/attachments",
        files={"file": (name, content, content_type)},
        data={"kind": kind},
    )


@pytest.fixture
def upload_file(client):
    def _upload(job_id: int, name: str, content: bytes, kind: str, content_type: str = "text/plain"):
        return upload(client, job_id, name, content, kind, content_type)

    return _upload


@pytest.fixture
def job_with_documents(client) -> int:
    job = client.post("/api/jobs", json={"title": "Backend Engineer", "company": "Acme"}).json()
    upload(client, job["id"], "resume.txt", b"Jane Doe. Python, SQL, Docker and REST APIs.", "resume")
    upload(client, job["id"], "jd.txt", b"We need Python, SQL and Kubernetes experience.", "jd")
    return job["id"]
