from __future__ import annotations

from dataclasses import dataclass, field

from jotrack.errors import InvalidRequestError

STATUSES: tuple[str, ...] = ("ON_RADAR", "APPLIED", "PHONE_SCREEN", "ONSITE", "OFFER", "REJECTED")
DEFAULT_STATUS = "ON_RADAR"

STATUS_LABELS: dict[str, str] = {
    "ON_RADAR": "On Radar",
    "APPLIED": "Applied",
    "PHONE_SCREEN": "Phone Screen",
    "ONSITE": "Onsite",
    "OFFER": "Offer",
    "REJECTED": "Rejected",
}


@dataclass(slots=True, frozen=True)
class JourneyStep:
    status: str
    label: str
    description: str
    allows_multiple_interviewers: bool
    journey_phases: tuple[str, ...] = field(default_factory=tuple)


JOURNEY: dict[str, JourneyStep] = {
    "ON_RADAR": JourneyStep(
        "ON_RADAR",
        STATUS_LABELS["ON_RADAR"],
        "Prepping to apply",
        False,
        ("Research company", "Prepare materials", "Review JD"),
    ),
    "APPLIED": JourneyStep(
        "APPLIED",
        STATUS_LABELS["APPLIED"],
        "ATS wait / recruiter reach-out",
        False,
        ("Application submitted", "Waiting for response"),
    ),
    "PHONE_SCREEN": JourneyStep(
        "PHONE_SCREEN",
        STATUS_LABELS["PHONE_SCREEN"],
        "Recruiter scheduled, prep, call, debrief",
        True,
        ("Recruiter scheduled", "Prep for phone screen", "Phone call", "Debrief and follow-up"),
    ),
    "ONSITE": JourneyStep(
        "ONSITE",
        STATUS_LABELS["ONSITE"],
        "Prep for interviews, then N interviews",
        True,
        ("Prep for next interview", "Interview 1", "Interview 2", "Interview N...", "Final debrief"),
    ),
    "OFFER": JourneyStep(
        "OFFER",
        STATUS_LABELS["OFFER"],
        "Accepted / negotiation prep",
        False,
        ("Offer received", "Negotiation preparation", "Decision making"),
    ),
    "REJECTED": JourneyStep(
        "REJECTED",
        STATUS_LABELS["REJECTED"],
        "Post-mortem, lessons learned",
        False,
        ("Rejection received", "Post-mortem analysis", "Lessons learned"),
    ),
}

_LABEL_LOOKUP = {label.lower(): code for code, label in STATUS_LABELS.items()}


def normalize_status(value: str) -> str:
    """Accept a status code or its label, in any case."""
    candidate = " ".join((value or "").strip().split())
    code = candidate.upper().replace(" ", "_")
    if code in STATUSES:
        return code
    by_label = _LABEL_LOOKUP.get(candidate.lower())
    if by_label:
        return by_label
    raise InvalidRequestError(f"unknown status '{value}'; expected one of {list(STATUSES)}")


def journey_step(status: str) -> JourneyStep:
    return JOURNEY[normalize_status(status)]


def allows_multiple_interviewers(status: str) -> bool:
    return journey_step(status).allows_multiple_interviewers
