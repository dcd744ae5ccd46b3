from __future__ import annotations

import hashlib
import json
from typing import Any


def canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=True, default=str)


def hash_text(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def ai_fingerprint(capability: str, inputs: dict[str, Any], prompt_version: str = "v1") -> str:
    """Cache key for an AI call: identical capability, prompt version and inputs hash the same."""
    return hash_text(
        canonical_json({"capability": capability, "prompt_version": prompt_version, "inputs": inputs})
    )


def artifacts_fingerprint(parts: list[str]) -> str:
    return hash_text("|".join(sorted(parts)))
