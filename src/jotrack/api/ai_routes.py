from __future__ import annotations

from fastapi import APIRouter, Depends

from jotrack.api.deps import get_analysis_service, get_coach_service, get_repository
from jotrack.api.schemas import (
    AnalyzeRequest,
    CoachInterviewPrepRequest,
    CoachMarkAppliedRequest,
    CoachProfileRequest,
    CoachSaveRequest,
    CoreStoriesRequest,
    CoverLetterRequest,
    InterviewQuestionsRequest,
    PracticeAnswerRequest,
    PracticeQuestionRequest,
    RunLabelRequest,
    RunPinRequest,
)
from jotrack.core.analysis import AnalysisService, run_to_dict
from jotrack.core.coach_service import CoachService
from jotrack.db.repositories import Repository

router = APIRouter(prefix="/api", tags=["ai"])


@router.post("/jobs/{job_id}/analyze-match-score")
def analyze_match_score(
    job_id: int,
    payload: AnalyzeRequest | None = None,
    service: AnalysisService = Depends(get_analysis_service),
) -> dict:
    force = payload.force if payload else False
    return service.analyze_match_score(job_id, force=force).as_dict()


@router.post("/jobs/{job_id}/analyze-company")
def analyze_company(
    job_id: int,
    payload: AnalyzeRequest | None = None,
    service: AnalysisService = Depends(get_analysis_service),
) -> dict:
    force = payload.force if payload else False
    return service.analyze_company(job_id, force=force).as_dict()


@router.post("/jobs/{job_id}/summarize-notes")
def summarize_notes(
    job_id: int,
    payload: AnalyzeRequest | None = None,
    service: AnalysisService = Depends(get_analysis_service),
) -> dict:
    force = payload.force if payload else False
    return service.summarize_notes(job_id, force=force).as_dict()


@router.post("/jobs/{job_id}/match-skills-local")
def match_skills_local(job_id: int, service: AnalysisService = Depends(get_analysis_service)) -> dict:
    return service.match_skills_local(job_id).model_dump()


@router.post("/jobs/{job_id}/interview-questions/generate")
def generate_interview_questions(
    job_id: int,
    payload: InterviewQuestionsRequest | None = None,
    service: AnalysisService = Depends(get_analysis_service),
) -> dict:
    payload = payload or InterviewQuestionsRequest()
    return service.generate_interview_questions(job_id, persona=payload.persona, force=payload.force).as_dict()


@router.post("/jobs/{job_id}/people/{person_id}/analyze")
def analyze_person(
    job_id: int,
    person_id: int,
    payload: AnalyzeRequest | None = None,
    service: AnalysisService = Depends(get_analysis_service),
) -> dict:
    force = payload.force if payload else False
    return service.analyze_person(job_id, person_id, force=force).as_dict()


@router.post("/jobs/{job_id}/cover-letter")
def draft_cover_letter(
    job_id: int,
    payload: CoverLetterRequest | None = None,
    service: AnalysisService = Depends(get_analysis_service),
) -> dict:
    payload = payload or CoverLetterRequest()
    return service.draft_cover_letter(job_id, guidance=payload.guidance, force=payload.force).as_dict()


@router.get("/jobs/{job_id}/analysis-data")
def analysis_data(job_id: int, service: AnalysisService = Depends(get_analysis_service)) -> dict:
    return service.analysis_data(job_id)


@router.get("/ai/test-connection")
def test_connection(service: AnalysisService = Depends(get_analysis_service)) -> dict:
    report = service.router.test_connection()
    return {"providers": report, "ok": any(entry["ok"] for entry in report.values())}


@router.post("/ai/runs/{run_id}/pin")
def pin_run(
    run_id: int,
    payload: RunPinRequest | None = None,
    repo: Repository = Depends(get_repository),
) -> dict:
    pinned = payload.pinned if payload else True
    return run_to_dict(repo.set_ai_run_pinned(run_id, pinned))


@router.post("/ai/runs/{run_id}/activate")
def activate_run(run_id: int, repo: Repository = Depends(get_repository)) -> dict:
    return run_to_dict(repo.set_active_ai_run(run_id))


@router.post("/ai/runs/{run_id}/label")
def label_run(run_id: int, payload: RunLabelRequest, repo: Repository = Depends(get_repository)) -> dict:
    return run_to_dict(repo.label_ai_run(run_id, payload.label))


# Coach Mode


@router.get("/coach/{job_id}")
def get_coach_state(job_id: int, service: CoachService = Depends(get_coach_service)) -> dict:
    return service.get_state(job_id)


@router.delete("/coach/{job_id}")
def reset_coach(job_id: int, service: CoachService = Depends(get_coach_service)) -> dict:
    service.reset(job_id)
    return service.get_state(job_id)


@router.post("/coach/{job_id}/save")
def save_coach_state(
    job_id: int,
    payload: CoachSaveRequest,
    service: CoachService = Depends(get_coach_service),
) -> dict:
    return service.save(job_id, data=payload.data, interview_coach=payload.interview_coach)


@router.post("/coach/{job_id}/discovery")
def coach_discovery(
    job_id: int,
    payload: AnalyzeRequest | None = None,
    service: CoachService = Depends(get_coach_service),
) -> dict:
    return service.generate_discovery(job_id, force=payload.force if payload else False)


@router.post("/coach/{job_id}/profile")
def coach_profile(
    job_id: int,
    payload: CoachProfileRequest,
    service: CoachService = Depends(get_coach_service),
) -> dict:
    return service.analyze_profile(job_id, payload.responses, force=payload.force)


@router.post("/coach/{job_id}/score")
def coach_score(
    job_id: int,
    payload: AnalyzeRequest | None = None,
    service: CoachService = Depends(get_coach_service),
) -> dict:
    return service.recalculate_score(job_id, force=payload.force if payload else False)


@router.post("/coach/{job_id}/resume")
def coach_resume(
    job_id: int,
    payload: AnalyzeRequest | None = None,
    service: CoachService = Depends(get_coach_service),
) -> dict:
    return service.generate_resume(job_id, force=payload.force if payload else False)


@router.post("/coach/{job_id}/cover-letter")
def coach_cover_letter(
    job_id: int,
    payload: AnalyzeRequest | None = None,
    service: CoachService = Depends(get_coach_service),
) -> dict:
    return service.generate_cover_letter(job_id, force=payload.force if payload else False)


@router.post("/coach/{job_id}/mark-applied")
def coach_mark_applied(
    job_id: int,
    payload: CoachMarkAppliedRequest | None = None,
    service: CoachService = Depends(get_coach_service),
) -> dict:
    return service.mark_applied(job_id, payload.resume_version if payload else None)


@router.post("/coach/{job_id}/interview-prep")
def coach_interview_prep(
    job_id: int,
    payload: CoachInterviewPrepRequest | None = None,
    service: CoachService = Depends(get_coach_service),
) -> dict:
    payload = payload or CoachInterviewPrepRequest()
    return service.generate_interview_prep(job_id, payload.persona, force=payload.force)


@router.post("/coach/{job_id}/interview/score-answer")
def coach_score_answer(
    job_id: int,
    payload: PracticeAnswerRequest,
    service: CoachService = Depends(get_coach_service),
) -> dict:
    return service.score_answer(job_id, payload.persona, payload.question, payload.answer, force=payload.force)


@router.post("/coach/{job_id}/interview/suggest-follow-up")
def coach_suggest_follow_up(
    job_id: int,
    payload: PracticeQuestionRequest,
    service: CoachService = Depends(get_coach_service),
) -> dict:
    return service.suggest_follow_up(job_id, payload.persona, payload.question)


@router.post("/coach/{job_id}/interview/suggest-answer")
def coach_suggest_answer(
    job_id: int,
    payload: PracticeAnswerRequest,
    service: CoachService = Depends(get_coach_service),
) -> dict:
    return service.suggest_answer(job_id, payload.persona, payload.question, payload.answer, force=payload.force)


@router.post("/coach/{job_id}/interview/core-stories")
def coach_core_stories(
    job_id: int,
    payload: CoreStoriesRequest | None = None,
    service: CoachService = Depends(get_coach_service),
) -> dict:
    payload = payload or CoreStoriesRequest()
    return service.extract_core_stories(job_id, target_count=payload.target_count, force=payload.force)
