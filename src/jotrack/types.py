from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

AttachmentKind = Literal["resume", "jd", "cover_letter", "other"]
RelType = Literal["recruiter", "hiring_manager", "peer", "interviewer", "other"]
InterviewPersona = Literal["recruiter", "hiring_manager", "peer"]

ATTACHMENT_KINDS: tuple[str, ...] = ("resume", "jd", "cover_letter", "other")
REL_TYPES: tuple[str, ...] = ("recruiter", "hiring_manager", "peer", "interviewer", "other")


def clamp_percent(value: Any) -> Any:
    """Round numeric scores into 0-100; anything else is left for field validation to reject."""
    try:
        score = round(float(value))
    except (TypeError, ValueError, OverflowError):
        return value
    return max(0, min(100, score))


class ModelResponse(BaseModel):
    content: str
    provider: str = ""
    model: str = ""
    raw: dict[str, Any] = Field(default_factory=dict)


class SearchResult(BaseModel):
    title: str = ""
    url: str = ""
    content: str = ""
    score: float = 0.0


class MatchScore(BaseModel):
    overall_score: int = 0
    summary: str = ""
    top_strengths: list[str] = Field(default_factory=list)
    top_gaps: list[str] = Field(default_factory=list)
    matched_skills: list[str] = Field(default_factory=list)
    missing_skills: list[str] = Field(default_factory=list)

    @field_validator("overall_score", mode="before")
    @classmethod
    def clamp_score(cls, value: Any) -> Any:
        return clamp_percent(value)


class CompanyResearch(BaseModel):
    company: str = ""
    overview: str = ""
    industry: str = ""
    size: str = ""
    culture: list[str] = Field(default_factory=list)
    recent_news: list[str] = Field(default_factory=list)
    talking_points: list[str] = Field(default_factory=list)
    sources: list[SearchResult] = Field(default_factory=list)


class InterviewQuestion(BaseModel):
    question: str
    category: str = "general"
    why_asked: str = ""
    source_url: str = ""


class InterviewQuestionSet(BaseModel):
    questions: list[InterviewQuestion] = Field(default_factory=list)
    sources: list[SearchResult] = Field(default_factory=list)


class DiscoveryQuestion(BaseModel):
    id: str
    category: str = "general"
    question: str
    gap_addressed: str = ""


class SkillMatch(BaseModel):
    score: int = 0
    matched: list[str] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)
    extra: list[str] = Field(default_factory=list)


class AnswerScore(BaseModel):
    overall: int = 0
    category: str = ""
    subscores: dict[str, int] = Field(default_factory=dict)
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    follow_up_questions: list[str] = Field(default_factory=list)

    @field_validator("overall", mode="before")
    @classmethod
    def clamp_overall(cls, value: Any) -> Any:
        return clamp_percent(value)

    @field_validator("subscores", mode="before")
    @classmethod
    def clamp_subscores(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        return {str(name): clamp_percent(score) for name, score in value.items()}


class SuggestedAnswer(BaseModel):
    draft: str
    rationale: list[str] = Field(default_factory=list)


class CoreStory(BaseModel):
    id: str
    title: str
    summary: str = ""
    question_keys: list[str] = Field(default_factory=list)


class CoreStorySet(BaseModel):
    core_stories: list[CoreStory] = Field(default_factory=list)
    story_mapping: dict[str, str] = Field(default_factory=dict)
    recommended_practice_order: list[str] = Field(default_factory=list)
