from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from jotrack.core.fingerprint import hash_text

# Ties between equally weak dimensions resolve in this order.
DIMENSION_PRIORITY: tuple[str, ...] = (
    "risks",
    "specificity",
    "outcome",
    "role",
    "company",
    "structure",
    "persona",
)

FOLLOW_UP_PROMPTS: dict[str, str] = {
    "risks": "What went wrong or could have gone wrong, and how did you handle it?",
    "specificity": "Which concrete tools, numbers or names would make this example verifiable?",
    "outcome": "What measurable result came out of this, and how did you know it worked?",
    "role": "What exactly did you own here, as opposed to the wider team?",
    "company": "How does this experience map to what this company is trying to do right now?",
    "structure": "Can you retell it as situation, task, action and result in under two minutes?",
    "persona": "What would this interviewer care about most in this story, and did you lead with it?",
}

MAX_FOLLOW_UPS = 3


def question_key(question: str) -> str:
    """Stable short key for a practice question, insensitive to case and spacing."""
    return hash_text(" ".join(question.lower().split()))[:12]


def word_count(text: str) -> int:
    return len(text.split())


def answer_status(overall: int) -> str:
    if overall >= 75:
        return "ready-for-talk-track"
    if overall >= 50:
        return "improving"
    return "needs-work"


def weakest_dimensions(subscores: Mapping[str, Any], limit: int = 2) -> list[str]:
    known = {name: score for name, score in subscores.items() if name in FOLLOW_UP_PROMPTS}
    ranked = sorted(known, key=lambda name: (known[name], DIMENSION_PRIORITY.index(name)))
    return ranked[:limit]


def follow_up_prompts(subscores: Mapping[str, Any], suggested: Iterable[str] = ()) -> list[dict[str, Any]]:
    prompts = [
        {"text": FOLLOW_UP_PROMPTS[name], "targets": [name], "source": f"low_{name}"}
        for name in weakest_dimensions(subscores)
    ]
    seen = {prompt["text"] for prompt in prompts}
    for text in suggested:
        text = str(text).strip()
        if len(prompts) >= MAX_FOLLOW_UPS:
            break
        if text and text not in seen:
            prompts.append({"text": text, "targets": [], "source": "ai"})
            seen.add(text)
    return prompts[:MAX_FOLLOW_UPS]


def collect_talk_tracks(answers: Mapping[str, Any]) -> list[dict[str, str]]:
    """Flatten persona -> question -> entry into the talk tracks that exist so far."""
    tracks: list[dict[str, str]] = []
    for persona, entries in sorted(answers.items()):
        for key, entry in sorted((entries or {}).items()):
            draft = ((entry or {}).get("talk_track") or {}).get("draft")
            if draft:
                tracks.append(
                    {"persona": persona, "question_key": key, "question": entry["question"], "talk_track": draft}
                )
    return tracks
