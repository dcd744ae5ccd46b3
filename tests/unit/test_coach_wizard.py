from __future__ import annotations

import pytest

from jotrack.core.coach import STAGES, CoachWizard
from jotrack.errors import InvalidRequestError, StageLockedError


def test_only_first_stage_is_unlocked_initially() -> None:
    wizard = CoachWizard()

    assert wizard.unlocked_stages() == ["discovery"]
    assert wizard.current_stage() == "discovery"
    assert wizard.is_unlocked("discovery")
    assert not wizard.is_unlocked("profile")


def test_completing_a_stage_unlocks_the_next_one_only() -> None:
    wizard = CoachWizard()
    wizard.complete("discovery")

    assert wizard.is_unlocked("profile")
    assert not wizard.is_unlocked("score")
    assert wizard.current_stage() == "profile"


def test_locked_stage_raises_with_missing_prerequisite() -> None:
    wizard = CoachWizard.from_completed(["discovery"])

    with pytest.raises(StageLockedError) as excinfo:
        wizard.require_unlocked("resume")

    assert excinfo.value.stage == "resume"
    assert excinfo.value.missing == "score"
    assert excinfo.value.status_code == 409


def test_complete_is_idempotent_and_keeps_stage_order() -> None:
    wizard = CoachWizard()
    for stage in STAGES[:3]:
        wizard.complete(stage)

    assert wizard.complete("profile") == ["discovery", "profile", "score"]
    assert wizard.completed == ["discovery", "profile", "score"]


def test_complete_rejects_locked_stage() -> None:
    wizard = CoachWizard()

    with pytest.raises(StageLockedError):
        wizard.complete("cover_letter")
    assert wizard.completed == []


def test_from_completed_drops_unknown_names_and_reorders() -> None:
    wizard = CoachWizard.from_completed(["profile", "bogus", "discovery"])

    assert wizard.completed == ["discovery", "profile"]


def test_all_stages_done_has_no_current_stage() -> None:
    wizard = CoachWizard.from_completed(STAGES)

    assert wizard.current_stage() is None
    assert wizard.unlocked_stages() == list(STAGES)


def test_unknown_stage_is_invalid() -> None:
    with pytest.raises(InvalidRequestError):
        CoachWizard().is_unlocked("negotiation")
