from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from jotrack.types import AttachmentKind, InterviewPersona, RelType


class JobCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    company: str = Field(min_length=1, max_length=255)
    status: str = "ON_RADAR"
    notes: str = ""
    posting_url: str = ""
    location: str = ""


class JobUpdateRequest(BaseModel):
    title: str | None = Field(default=None, max_length=255)
    company: str | None = Field(default=None, max_length=255)
    notes: str | None = None
    posting_url: str | None = None
    location: str | None = None


class StatusUpdateRequest(BaseModel):
    status: str


class BulkStatusRequest(BaseModel):
    job_ids: list[int] = Field(min_length=1, max_length=500)
    status: str


class JobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    company: str
    status: str
    posting_url: str
    location: str
    notes: str
    created_at: datetime
    updated_at: datetime
    applied_at: datetime | None = None
    archived_at: datetime | None = None
    deleted_at: datetime | None = None
    permanent_delete_at: datetime | None = None
    analysis_state: str
    coach_status: str
    applied_resume_version: int | None = None


class JobListResponse(BaseModel):
    items: list[JobResponse]
    total: int
    limit: int
    offset: int


class StatusHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: str
    changed_at: datetime


class FetchPostingRequest(BaseModel):
    url: str | None = None


class AttachmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    job_id: int
    kind: str
    version: int
    filename: str
    size: int
    is_active: bool
    created_at: datetime
    deleted_at: datetime | None = None


class MakeActiveRequest(BaseModel):
    kind: AttachmentKind
    version: int = Field(ge=1)


class PersonFields(BaseModel):
    title: str | None = None
    linkedin_url: str | None = None
    raw_text: str | None = None
    recruiter_type: str | None = None
    search_firm_name: str | None = None


class PersonCreateRequest(PersonFields):
    name: str = Field(min_length=1, max_length=255)
    rel_type: RelType = "other"


class PersonUpdateRequest(PersonFields):
    name: str | None = Field(default=None, max_length=255)


class LinkPersonRequest(BaseModel):
    rel_type: RelType = "other"


class PersonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    title: str
    linkedin_url: str
    raw_text: str
    summary_json: dict[str, Any]
    is_optimized: bool
    optimized_at: datetime | None = None
    recruiter_type: str
    search_firm_name: str


class LinkedPersonResponse(PersonResponse):
    rel_type: str


class AnalyzeRequest(BaseModel):
    force: bool = False


class InterviewQuestionsRequest(AnalyzeRequest):
    persona: InterviewPersona = "hiring_manager"


class CoverLetterRequest(AnalyzeRequest):
    guidance: str = ""


class RunLabelRequest(BaseModel):
    label: str = Field(max_length=120)


class RunPinRequest(BaseModel):
    pinned: bool = True


class CoachSaveRequest(BaseModel):
    data: dict[str, Any] | None = None
    interview_coach: dict[str, Any] | None = None


class CoachProfileRequest(AnalyzeRequest):
    responses: dict[str, str]


class CoachMarkAppliedRequest(BaseModel):
    resume_version: int | None = Field(default=None, ge=1)


class CoachInterviewPrepRequest(AnalyzeRequest):
    persona: InterviewPersona = "recruiter"


class PracticeQuestionRequest(BaseModel):
    persona: InterviewPersona = "recruiter"
    question: str = Field(min_length=1)


class PracticeAnswerRequest(PracticeQuestionRequest, AnalyzeRequest):
    answer: str = Field(min_length=1)


class CoreStoriesRequest(AnalyzeRequest):
    target_count: int = Field(default=3, ge=1, le=5)
