from __future__ import annotations

import copy
import logging
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from jotrack.core.analysis import INTERVIEW_PERSONAS, AnalysisResult, AnalysisService, clip
from jotrack.core.coach import STAGE_COACH_STATUS, CoachWizard
from jotrack.core.fingerprint import canonical_json
from jotrack.core.interview_practice import (
    answer_status,
    collect_talk_tracks,
    follow_up_prompts,
    question_key,
    weakest_dimensions,
    word_count,
)
from jotrack.db.models import CoachState
from jotrack.db.repositories import Repository
from jotrack.errors import AIProviderError, InvalidRequestError, NotFoundError, StageLockedError
from jotrack.types import DiscoveryQuestion

logger = logging.getLogger(__name__)

MIN_TALK_TRACKS = 3


class CoachService:
    """Coach Mode: each stage runs only when unlocked and completes once its result is saved."""

    def __init__(self, repo: Repository, analysis: AnalysisService | None = None):
        self.repo = repo
        self.analysis = analysis or AnalysisService(repo)

    def _load(self, job_id: int) -> tuple[CoachState | None, CoachWizard]:
        self.repo.require_job(job_id)
        state = self.repo.get_coach_state(job_id)
        completed = state.completed_stages_json if state is not None else []
        return state, CoachWizard.from_completed(completed or [])

    def _data(self, job_id: int) -> dict[str, Any]:
        state = self.repo.get_coach_state(job_id)
        return dict(state.data_json or {}) if state is not None else {}

    def get_state(self, job_id: int) -> dict[str, Any]:
        state, wizard = self._load(job_id)
        job = self.repo.require_job(job_id)
        return {
            "job_id": job_id,
            "coach_status": job.coach_status,
            "data": dict(state.data_json or {}) if state else {},
            "interview_coach": dict(state.interview_coach_json or {}) if state else {},
            "completed": list(wizard.completed),
            "unlocked": wizard.unlocked_stages(),
            "current_stage": wizard.current_stage(),
            "updated_at": state.updated_at.isoformat() if state and state.updated_at else None,
        }

    def save(
        self,
        job_id: int,
        *,
        data: dict[str, Any] | None = None,
        interview_coach: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        self.repo.require_job(job_id)
        if data is None and interview_coach is None:
            raise InvalidRequestError("nothing to save; send data or interview_coach")
        self.repo.upsert_coach_state(job_id, data=data, interview_coach=interview_coach)
        return self.get_state(job_id)

    def reset(self, job_id: int) -> None:
        self.repo.require_job(job_id)
        self.repo.delete_coach_state(job_id)
        self.repo.set_coach_progress(job_id, coach_status="not_started")
        logger.info("Coach state reset job=%s", job_id)

    def _complete(
        self,
        job_id: int,
        stage: str,
        *,
        data_updates: dict[str, Any] | None = None,
        interview_updates: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        state, wizard = self._load(job_id)
        completed = wizard.complete(stage)

        data = dict(state.data_json or {}) if state else {}
        data.update(data_updates or {})
        interview = None
        if interview_updates is not None:
            interview = dict(state.interview_coach_json or {}) if state else {}
            interview.update(interview_updates)

        self.repo.upsert_coach_state(job_id, data=data, interview_coach=interview, completed_stages=completed)
        self.repo.set_coach_progress(job_id, coach_status=STAGE_COACH_STATUS[stage])
        logger.info("Coach stage completed job=%s stage=%s", job_id, stage)
        return self.get_state(job_id)

    def _gate(self, job_id: int, stage: str) -> None:
        _, wizard = self._load(job_id)
        wizard.require_unlocked(stage)

    def _stage_result(self, state: dict[str, Any], result: AnalysisResult) -> dict[str, Any]:
        return state | {"run": {"id": result.run.id, "cached": result.cached}}

    # Stages

    def _gaps(self, job_id: int) -> list[str]:
        run = self.repo.active_ai_run(job_id, "match_score")
        if run is not None:
            data = run.result_json or {}
            return [*data.get("top_gaps", []), *[f"Missing skill: {s}" for s in data.get("missing_skills", [])]]
        return [f"Missing skill: {skill}" for skill in self.analysis.match_skills_local(job_id).missing]

    def generate_discovery(self, job_id: int, *, force: bool = False) -> dict[str, Any]:
        self._gate(job_id, "discovery")
        jd_text, resume_text = self.analysis.require_texts(job_id)
        gaps = self._gaps(job_id)

        result = self.analysis.run(
            job_id,
            "coach_discovery",
            {
                "jd_text": jd_text,
                "resume_text": resume_text,
                "gaps": "\n".join(f"- {gap}" for gap in gaps) or "- none identified",
            },
            force=force,
        )

        questions: list[dict[str, Any]] = []
        for index, raw in enumerate(result.data.get("questions") or [], start=1):
            if isinstance(raw, dict):
                raw = {"id": f"q{index}", **raw}
            try:
                questions.append(DiscoveryQuestion.model_validate(raw).model_dump())
            except ValidationError:
                continue
        if not questions:
            raise AIProviderError("AI returned no usable discovery questions")

        discovery = {"questions": questions, "estimated_minutes": result.data.get("estimated_minutes")}
        return self._complete(job_id, "discovery", data_updates={"discovery": self._stage_result(discovery, result)})

    def analyze_profile(self, job_id: int, responses: dict[str, str], *, force: bool = False) -> dict[str, Any]:
        self._gate(job_id, "profile")
        questions = self._data(job_id).get("discovery", {}).get("questions", [])
        answered = [
            f"Q: {q['question']}\nA: {str(responses[q['id']]).strip()}"
            for q in questions
            if str(responses.get(q["id"], "")).strip()
        ]
        if not answered:
            raise InvalidRequestError("answer at least one discovery question")
        _, resume_text = self.analysis.require_texts(job_id)

        result = self.analysis.run(
            job_id,
            "coach_profile",
            {"responses": "\n\n".join(answered), "resume_text": resume_text},
            force=force,
        )
        return self._complete(
            job_id,
            "profile",
            data_updates={"responses": dict(responses), "profile": self._stage_result(result.data, result)},
        )

    def _profile_json(self, job_id: int) -> str:
        profile = dict(self._data(job_id).get("profile") or {})
        profile.pop("run", None)
        return canonical_json(profile)

    def recalculate_score(self, job_id: int, *, force: bool = False) -> dict[str, Any]:
        self._gate(job_id, "score")
        jd_text, resume_text = self.analysis.require_texts(job_id)
        result = self.analysis.run(
            job_id,
            "coach_score",
            {"jd_text": jd_text, "resume_text": resume_text, "profile": self._profile_json(job_id)},
            force=force,
        )
        return self._complete(job_id, "score", data_updates={"score": self._stage_result(result.data, result)})

    def generate_resume(self, job_id: int, *, force: bool = False) -> dict[str, Any]:
        self._gate(job_id, "resume")
        jd_text, resume_text = self.analysis.require_texts(job_id)
        result = self.analysis.run(
            job_id,
            "coach_resume",
            {"jd_text": jd_text, "resume_text": resume_text, "profile": self._profile_json(job_id)},
            force=force,
        )
        markdown = str(result.data.get("resume_markdown") or "").strip()
        if not markdown:
            raise AIProviderError("AI returned an empty resume")

        item = self.analysis.attachments.add_text_attachment(job_id, f"coach-resume-{job_id}.md", markdown, "resume")
        resume = self._stage_result(result.data, result) | {"attachment_version": item.version}
        return self._complete(job_id, "resume", data_updates={"resume": resume})

    def generate_cover_letter(self, job_id: int, *, force: bool = False) -> dict[str, Any]:
        self._gate(job_id, "cover_letter")
        job = self.repo.require_job(job_id)
        jd_text, _ = self.analysis.job_texts(job_id)
        resume_markdown = str(self._data(job_id).get("resume", {}).get("resume_markdown") or "")

        result = self.analysis.run(
            job_id,
            "coach_cover_letter",
            {
                "title": job.title,
                "company": job.company,
                "jd_text": jd_text,
                "resume_markdown": clip(resume_markdown),
            },
            force=force,
        )
        letter = str(result.data.get("cover_letter") or "").strip()
        if not letter:
            raise AIProviderError("AI returned an empty cover letter")

        item = self.analysis.attachments.add_text_attachment(
            job_id, f"coach-cover-letter-{job_id}.md", letter, "cover_letter"
        )
        cover = self._stage_result(result.data, result) | {"attachment_version": item.version}
        return self._complete(job_id, "cover_letter", data_updates={"cover_letter": cover})

    def mark_applied(self, job_id: int, resume_version: int | None = None) -> dict[str, Any]:
        self._gate(job_id, "ready")
        if resume_version is None:
            resume_version = self._data(job_id).get("resume", {}).get("attachment_version")
        if resume_version is None:
            raise InvalidRequestError("resume_version is required")

        item = self.repo.get_attachment_version(job_id, "resume", int(resume_version))
        if item is None or item.deleted_at is not None:
            raise NotFoundError(f"resume version {resume_version} not found")

        self.repo.update_job_status(job_id, "APPLIED")
        self.repo.set_coach_progress(job_id, coach_status="applied", applied_resume_version=item.version)
        applied = {"resume_version": item.version, "applied_at": datetime.now(UTC).isoformat()}
        return self._complete(job_id, "ready", data_updates={"applied": applied})

    def generate_interview_prep(
        self,
        job_id: int,
        persona: str = "recruiter",
        *,
        force: bool = False,
    ) -> dict[str, Any]:
        if persona not in INTERVIEW_PERSONAS:
            raise InvalidRequestError(f"unknown persona '{persona}'; expected one of {list(INTERVIEW_PERSONAS)}")
        self._gate(job_id, "interview_prep")
        job = self.repo.require_job(job_id)
        jd_text, resume_text = self.analysis.job_texts(job_id)

        if job.applied_resume_version is not None:
            applied = self.repo.get_attachment_version(job_id, "resume", job.applied_resume_version)
            resume_text = clip(self.analysis.attachments.read_attachment_text(applied)) or resume_text

        research = self.repo.active_ai_run(job_id, "company_research")
        result = self.analysis.run(
            job_id,
            "coach_interview_prep",
            {
                "persona": persona,
                "title": job.title,
                "company": job.company,
                "jd_text": jd_text,
                "resume_text": resume_text,
                "company_research": canonical_json(research.result_json) if research else "none",
            },
            force=force,
        )
        return self._complete(
            job_id,
            "interview_prep",
            interview_updates={persona: self._stage_result(result.data, result)},
        )

    # Interview practice

    def _practice_state(self, job_id: int, persona: str) -> dict[str, Any]:
        if persona not in INTERVIEW_PERSONAS:
            raise InvalidRequestError(f"unknown persona '{persona}'; expected one of {list(INTERVIEW_PERSONAS)}")
        state, wizard = self._load(job_id)
        interview = copy.deepcopy(state.interview_coach_json or {}) if state else {}
        if not wizard.is_completed("interview_prep") or persona not in interview:
            raise StageLockedError(f"interview_practice:{persona}", "interview_prep")
        return interview

    def _practice_entry(self, interview: dict[str, Any], persona: str, question: str) -> tuple[str, dict[str, Any]]:
        question = question.strip()
        if not question:
            raise InvalidRequestError("question is required")
        key = question_key(question)
        entries = interview.setdefault("answers", {}).setdefault(persona, {})
        entry = entries.setdefault(key, {"question": question, "iterations": [], "status": "draft"})
        return key, entry

    def _save_interview(self, job_id: int, interview: dict[str, Any]) -> None:
        self.repo.upsert_coach_state(job_id, interview_coach=interview)

    def score_answer(
        self,
        job_id: int,
        persona: str,
        question: str,
        answer: str,
        *,
        force: bool = False,
    ) -> dict[str, Any]:
        interview = self._practice_state(job_id, persona)
        answer = answer.strip()
        if not answer:
            raise InvalidRequestError("answer is required")
        key, entry = self._practice_entry(interview, persona, question)
        jd_text, _ = self.analysis.job_texts(job_id)

        result = self.analysis.run(
            job_id,
            "interview_score_answer",
            {"persona": persona, "question": entry["question"], "answer": answer, "jd_text": jd_text[:2000]},
            force=force,
        )
        score = result.data

        iterations = entry["iterations"]
        # rescoring an unchanged answer hits the cache and adds no iteration
        if not (iterations and iterations[-1]["run_id"] == result.run.id):
            iterations.append(
                {
                    "iteration": len(iterations) + 1,
                    "answer": answer,
                    "word_count": word_count(answer),
                    "score": score,
                    "run_id": result.run.id,
                    "scored_at": datetime.now(UTC).isoformat(),
                }
            )
        entry["status"] = answer_status(score.get("overall", 0))
        self._save_interview(job_id, interview)
        logger.info(
            "Practice answer scored job=%s persona=%s question=%s overall=%s",
            job_id,
            persona,
            key,
            score.get("overall"),
        )
        return {"persona": persona, "question_key": key, "cached": result.cached, "score": score, "entry": entry}

    def suggest_follow_up(self, job_id: int, persona: str, question: str) -> dict[str, Any]:
        interview = self._practice_state(job_id, persona)
        key, entry = self._practice_entry(interview, persona, question)
        if not entry["iterations"]:
            raise InvalidRequestError("score an answer to this question first")

        latest = entry["iterations"][-1]["score"]
        subscores = latest.get("subscores") or {}
        return {
            "persona": persona,
            "question_key": key,
            "targeted_dimensions": weakest_dimensions(subscores),
            "prompts": follow_up_prompts(subscores, latest.get("follow_up_questions") or []),
        }

    def suggest_answer(
        self,
        job_id: int,
        persona: str,
        question: str,
        answer: str,
        *,
        force: bool = False,
    ) -> dict[str, Any]:
        interview = self._practice_state(job_id, persona)
        answer = answer.strip()
        if not answer:
            raise InvalidRequestError("answer is required")
        key, entry = self._practice_entry(interview, persona, question)
        targets = []
        if entry["iterations"]:
            targets = weakest_dimensions(entry["iterations"][-1]["score"].get("subscores") or {})
        jd_text, _ = self.analysis.job_texts(job_id)

        result = self.analysis.run(
            job_id,
            "interview_suggest_answer",
            {
                "persona": persona,
                "question": entry["question"],
                "answer": answer,
                "targets": ", ".join(targets) or "overall clarity",
                "jd_text": jd_text[:2000],
            },
            force=force,
        )
        entry["talk_track"] = result.data | {"run_id": result.run.id, "targets": targets}
        self._save_interview(job_id, interview)
        return {"persona": persona, "question_key": key, "cached": result.cached, "talk_track": entry["talk_track"]}

    def extract_core_stories(self, job_id: int, *, target_count: int = 3, force: bool = False) -> dict[str, Any]:
        state, wizard = self._load(job_id)
        if not wizard.is_completed("interview_prep"):
            raise StageLockedError("core_stories", "interview_prep")
        interview = copy.deepcopy(state.interview_coach_json or {}) if state else {}

        tracks = collect_talk_tracks(interview.get("answers") or {})
        if len(tracks) < MIN_TALK_TRACKS:
            raise InvalidRequestError(
                f"need at least {MIN_TALK_TRACKS} talk tracks to extract core stories; have {len(tracks)}"
            )

        result = self.analysis.run(
            job_id,
            "interview_core_stories",
            {"talk_tracks": canonical_json(tracks), "target_count": max(1, min(target_count, 5))},
            force=force,
        )
        interview["core_stories"] = result.data | {
            "run_id": result.run.id,
            "talk_tracks_analyzed": len(tracks),
            "extracted_at": datetime.now(UTC).isoformat(),
        }
        self._save_interview(job_id, interview)
        logger.info("Core stories extracted job=%s stories=%s", job_id, len(result.data.get("core_stories", [])))
        return {"cached": result.cached, "core_stories": interview["core_stories"]}
