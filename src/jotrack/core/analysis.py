"""AI-backed job analyses with a persistent result cache.

Every capability funnels through :meth:`AnalysisService.run`, which keys
results by a fingerprint of the capability, the prompt version and the
prompt inputs. A cache hit returns the stored run without touching the
provider or the rate limiter.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from jotrack.config import Settings, get_settings
from jotrack.core.attachments import AttachmentService
from jotrack.core.fingerprint import ai_fingerprint, artifacts_fingerprint
from jotrack.core.rate_limit import RateLimiter, get_ai_rate_limiter
from jotrack.core.skill_match import local_skill_match
from jotrack.db.models import AIRun, Job
from jotrack.db.repositories import Repository, validate_rel_type
from jotrack.errors import AIProviderError, InvalidRequestError, NotFoundError
from jotrack.llm import prompts
from jotrack.llm.router import AIRouter
from jotrack.search.tavily import TavilyClient, format_sources
from jotrack.types import (
    AnswerScore,
    CompanyResearch,
    CoreStorySet,
    InterviewQuestionSet,
    MatchScore,
    SearchResult,
    SkillMatch,
    SuggestedAnswer,
)

logger = logging.getLogger(__name__)

MAX_PROMPT_TEXT = 20000
INTERVIEW_PERSONAS = ("recruiter", "hiring_manager", "peer")

PROMPTS: dict[str, str] = {
    "match_score": prompts.MATCH_SCORE_PROMPT,
    "company_research": prompts.COMPANY_RESEARCH_PROMPT,
    "interview_questions": prompts.INTERVIEW_QUESTIONS_PROMPT,
    "cover_letter": prompts.COVER_LETTER_PROMPT,
    "people_analysis": prompts.PEOPLE_ANALYSIS_PROMPT,
    "notes_summary": prompts.NOTES_SUMMARY_PROMPT,
    "coach_discovery": prompts.COACH_DISCOVERY_PROMPT,
    "coach_profile": prompts.COACH_PROFILE_PROMPT,
    "coach_score": prompts.COACH_SCORE_PROMPT,
    "coach_resume": prompts.COACH_RESUME_PROMPT,
    "coach_cover_letter": prompts.COACH_COVER_LETTER_PROMPT,
    "coach_interview_prep": prompts.COACH_INTERVIEW_PREP_PROMPT,
    "interview_score_answer": prompts.INTERVIEW_SCORE_ANSWER_PROMPT,
    "interview_suggest_answer": prompts.INTERVIEW_SUGGEST_ANSWER_PROMPT,
    "interview_core_stories": prompts.INTERVIEW_CORE_STORIES_PROMPT,
}

SHAPES: dict[str, type[BaseModel]] = {
    "match_score": MatchScore,
    "company_research": CompanyResearch,
    "interview_questions": InterviewQuestionSet,
    "interview_score_answer": AnswerScore,
    "interview_suggest_answer": SuggestedAnswer,
    "interview_core_stories": CoreStorySet,
}

# (extra prompt variables, extra result fields); never part of the cache key
Enricher = Callable[[], tuple[dict[str, Any], dict[str, Any]]]


@dataclass(slots=True)
class AnalysisResult:
    run: AIRun
    cached: bool

    @property
    def data(self) -> dict[str, Any]:
        return dict(self.run.result_json or {})

    def as_dict(self) -> dict[str, Any]:
        return run_to_dict(self.run) | {"cached": self.cached}


def run_to_dict(run: AIRun) -> dict[str, Any]:
    return {
        "id": run.id,
        "job_id": run.job_id,
        "capability": run.capability,
        "provider": run.provider,
        "model": run.model,
        "fingerprint": run.fingerprint,
        "prompt_version": run.prompt_version,
        "label": run.label,
        "is_active": run.is_active,
        "is_pinned": run.is_pinned,
        "created_at": run.created_at.isoformat() if run.created_at else None,
        "result": run.result_json,
    }


def clip(text: str) -> str:
    return (text or "")[:MAX_PROMPT_TEXT]


class AnalysisService:
    def __init__(
        self,
        repo: Repository,
        *,
        settings: Settings | None = None,
        router: AIRouter | None = None,
        tavily: TavilyClient | None = None,
        limiter: RateLimiter | None = None,
        attachments: AttachmentService | None = None,
    ):
        self.repo = repo
        self.settings = settings or get_settings()
        self.router = router or AIRouter(self.settings)
        self.tavily = tavily or TavilyClient(self.settings)
        self.limiter = limiter or get_ai_rate_limiter()
        self.attachments = attachments or AttachmentService(repo, self.settings)

    def run(
        self,
        job_id: int,
        capability: str,
        inputs: dict[str, Any],
        *,
        force: bool = False,
        enrich: Enricher | None = None,
        rate_key: str = "ai",
    ) -> AnalysisResult:
        if capability not in PROMPTS:
            raise InvalidRequestError(f"unknown AI capability '{capability}'")
        self.repo.require_job(job_id)

        fingerprint = ai_fingerprint(capability, inputs, prompts.PROMPT_VERSION)
        if not force:
            cached = self.repo.find_ai_run(job_id, capability, fingerprint)
            if cached is not None:
                logger.info("AI cache hit job=%s capability=%s", job_id, capability)
                # the run matching the current inputs becomes the active one again
                if not cached.is_active:
                    cached = self.repo.set_active_ai_run(cached.id)
                return AnalysisResult(run=cached, cached=True)

        self.limiter.check(rate_key)

        variables = dict(inputs)
        extra_result: dict[str, Any] = {}
        if enrich is not None:
            extra_vars, extra_result = enrich()
            variables.update(extra_vars)

        prompt = PROMPTS[capability].format(**variables)
        result = self.router.complete_json(capability=capability, prompt=prompt)
        data = self._shape(capability, result.data | extra_result)

        run = self.repo.create_ai_run(
            job_id=job_id,
            capability=capability,
            fingerprint=fingerprint,
            result_json=data,
            provider=result.provider,
            model=result.model,
            prompt_version=prompts.PROMPT_VERSION,
        )
        pruned = self.repo.prune_ai_runs(job_id, capability, self.settings.ai_runs_keep)
        logger.info(
            "AI run stored job=%s capability=%s provider=%s pruned=%s",
            job_id,
            capability,
            result.provider,
            pruned,
        )
        return AnalysisResult(run=run, cached=False)

    @staticmethod
    def _shape(capability: str, data: dict[str, Any]) -> dict[str, Any]:
        shape = SHAPES.get(capability)
        if shape is None:
            return data
        try:
            return shape.model_validate(data).model_dump()
        except ValidationError as exc:
            logger.warning("AI output failed validation capability=%s: %s", capability, exc)
            raise AIProviderError(f"AI response for {capability} was malformed") from exc

    # Inputs

    def job_texts(self, job_id: int) -> tuple[str, str]:
        """Active (job description, resume) text for a job."""
        return (
            clip(self.attachments.active_text(job_id, "jd")),
            clip(self.attachments.active_text(job_id, "resume")),
        )

    def require_texts(self, job_id: int) -> tuple[str, str]:
        jd_text, resume_text = self.job_texts(job_id)
        if not jd_text or not resume_text:
            raise InvalidRequestError("upload an active resume and job description first")
        return jd_text, resume_text

    def _web_sources(self, query: str) -> list[SearchResult]:
        if not self.tavily.configured:
            logger.info("Tavily not configured; continuing without web sources")
            return []
        return self.tavily.search(query)

    # Capabilities

    def analyze_match_score(self, job_id: int, *, force: bool = False) -> AnalysisResult:
        job = self.repo.require_job(job_id)
        jd_text, resume_text = self.require_texts(job_id)
        result = self.run(
            job_id,
            "match_score",
            {"title": job.title, "company": job.company, "jd_text": jd_text, "resume_text": resume_text},
            force=force,
        )
        self.repo.mark_job_analysis(job_id, fingerprint=self.calculate_job_fingerprint(job_id))
        return result

    def analyze_company(self, job_id: int, *, force: bool = False) -> AnalysisResult:
        job = self.repo.require_job(job_id)

        def enrich() -> tuple[dict[str, Any], dict[str, Any]]:
            sources = self._web_sources(f"{job.company} company overview culture recent news")
            return (
                {"sources": format_sources(sources)},
                {"sources": [source.model_dump() for source in sources]},
            )

        return self.run(
            job_id,
            "company_research",
            {"company": job.company, "title": job.title},
            force=force,
            enrich=enrich,
        )

    def generate_interview_questions(
        self,
        job_id: int,
        *,
        persona: str = "hiring_manager",
        force: bool = False,
    ) -> AnalysisResult:
        if persona not in INTERVIEW_PERSONAS:
            raise InvalidRequestError(f"unknown persona '{persona}'; expected one of {list(INTERVIEW_PERSONAS)}")
        job = self.repo.require_job(job_id)
        jd_text, _ = self.job_texts(job_id)

        def enrich() -> tuple[dict[str, Any], dict[str, Any]]:
            sources = self._web_sources(f"{job.company} {job.title} interview questions")
            return (
                {"sources": format_sources(sources)},
                {"sources": [source.model_dump() for source in sources]},
            )

        return self.run(
            job_id,
            "interview_questions",
            {"title": job.title, "company": job.company, "jd_text": jd_text, "persona": persona},
            force=force,
            enrich=enrich,
        )

    def draft_cover_letter(self, job_id: int, *, guidance: str = "", force: bool = False) -> AnalysisResult:
        job = self.repo.require_job(job_id)
        jd_text, resume_text = self.require_texts(job_id)
        return self.run(
            job_id,
            "cover_letter",
            {
                "title": job.title,
                "company": job.company,
                "jd_text": jd_text,
                "resume_text": resume_text,
                "guidance": guidance.strip() or "none",
            },
            force=force,
        )

    def analyze_person(self, job_id: int, person_id: int, *, force: bool = False) -> AnalysisResult:
        job = self.repo.require_job(job_id)
        link = self.repo.get_person_link(job_id, person_id)
        if link is None:
            raise NotFoundError(f"person {person_id} is not linked to job {job_id}")
        person = self.repo.require_person(person_id)
        if not person.raw_text.strip():
            raise InvalidRequestError("person has no profile text to analyze")
        _, resume_text = self.job_texts(job_id)

        result = self.run(
            job_id,
            "people_analysis",
            {
                "person_id": person.id,
                "name": person.name,
                "person_title": person.title,
                "raw_text": clip(person.raw_text),
                "rel_type": validate_rel_type(link.rel_type),
                "resume_text": resume_text,
                "title": job.title,
                "company": job.company,
            },
            force=force,
        )
        self.repo.mark_person_optimized(person_id, result.data)
        return result

    def summarize_notes(self, job_id: int, *, force: bool = False) -> AnalysisResult:
        job = self.repo.require_job(job_id)
        if not job.notes.strip():
            raise InvalidRequestError("job has no notes to summarize")
        return self.run(
            job_id,
            "notes_summary",
            {"title": job.title, "company": job.company, "status": job.status, "notes": clip(job.notes)},
            force=force,
        )

    def match_skills_local(self, job_id: int) -> SkillMatch:
        self.repo.require_job(job_id)
        jd_text, resume_text = self.job_texts(job_id)
        return local_skill_match(jd_text, resume_text)

    # Staleness

    def calculate_job_fingerprint(self, job_id: int) -> str:
        parts = [f"{item.kind}:{item.content_hash}" for item in self.repo.active_attachments(job_id)]
        return artifacts_fingerprint(parts)

    def check_staleness(self, job_id: int) -> dict[str, Any]:
        job = self.repo.require_job(job_id)
        current = self.calculate_job_fingerprint(job_id)
        if job.last_full_analysis_at is None or not job.analysis_fingerprint:
            state = "never_analyzed"
        elif job.analysis_fingerprint == current:
            state = "fresh"
        else:
            state = "stale"
        return {"state": state, "fingerprint": current, "analyzed_fingerprint": job.analysis_fingerprint}

    def analysis_data(self, job_id: int) -> dict[str, Any]:
        job: Job = self.repo.require_job(job_id)
        active: dict[str, Any] = {}
        for capability in PROMPTS:
            run = self.repo.active_ai_run(job_id, capability)
            if run is not None:
                active[capability] = run_to_dict(run)
        return {
            "job_id": job.id,
            "staleness": self.check_staleness(job_id),
            "last_full_analysis_at": job.last_full_analysis_at.isoformat() if job.last_full_analysis_at else None,
            "active_runs": active,
            "recent_runs": [run_to_dict(run) for run in self.repo.list_ai_runs(job_id)],
        }
