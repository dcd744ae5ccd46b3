from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from jotrack.errors import InvalidRequestError, StageLockedError

STAGES: tuple[str, ...] = (
    "discovery",
    "profile",
    "score",
    "resume",
    "cover_letter",
    "ready",
    "interview_prep",
)

# Job.coach_status written when each stage completes.
STAGE_COACH_STATUS: dict[str, str] = {
    "discovery": "profile-building",
    "profile": "scoring",
    "score": "resume-building",
    "resume": "cover-letter",
    "cover_letter": "ready-to-apply",
    "ready": "applied",
    "interview_prep": "interview-prep",
}


@dataclass(slots=True)
class CoachWizard:
    """Linear phase gate: a stage opens once the stage before it has completed."""

    completed: list[str] = field(default_factory=list)

    @classmethod
    def from_completed(cls, completed: Iterable[str]) -> "CoachWizard":
        known = [stage for stage in STAGES if stage in set(completed)]
        return cls(completed=known)

    @staticmethod
    def prerequisite(stage: str) -> str | None:
        if stage not in STAGES:
            raise InvalidRequestError(f"unknown coach stage '{stage}'")
        index = STAGES.index(stage)
        return STAGES[index - 1] if index > 0 else None

    def is_completed(self, stage: str) -> bool:
        return stage in self.completed

    def is_unlocked(self, stage: str) -> bool:
        required = self.prerequisite(stage)
        return required is None or required in self.completed

    def unlocked_stages(self) -> list[str]:
        return [stage for stage in STAGES if self.is_unlocked(stage)]

    def current_stage(self) -> str | None:
        for stage in STAGES:
            if stage not in self.completed and self.is_unlocked(stage):
                return stage
        return None

    def require_unlocked(self, stage: str) -> None:
        required = self.prerequisite(stage)
        if required is not None and required not in self.completed:
            raise StageLockedError(stage, required)

    def complete(self, stage: str) -> list[str]:
        self.require_unlocked(stage)
        if stage not in self.completed:
            self.completed = [s for s in STAGES if s in set(self.completed) | {stage}]
        return list(self.completed)
