from __future__ import annotations

import re

from jotrack.types import SkillMatch

# Provider-free matcher used before (or instead of) a paid match-score call.
KNOWN_SKILLS: tuple[str, ...] = (
    "python",
    "java",
    "javascript",
    "typescript",
    "go",
    "rust",
    "c++",
    "c#",
    "ruby",
    "kotlin",
    "swift",
    "sql",
    "postgresql",
    "mysql",
    "sqlite",
    "mongodb",
    "redis",
    "react",
    "next.js",
    "node.js",
    "vue",
    "angular",
    "django",
    "flask",
    "fastapi",
    "spring",
    "graphql",
    "rest",
    "aws",
    "gcp",
    "azure",
    "docker",
    "kubernetes",
    "terraform",
    "ci/cd",
    "git",
    "linux",
    "kafka",
    "spark",
    "airflow",
    "pandas",
    "machine learning",
    "deep learning",
    "pytorch",
    "tensorflow",
    "llm",
    "nlp",
    "data analysis",
    "tableau",
    "excel",
    "agile",
    "scrum",
    "product management",
    "leadership",
    "communication",
    "mentoring",
    "stakeholder management",
    "system design",
    "microservices",
    "security",
    "testing",
)


def _contains(text: str, skill: str) -> bool:
    pattern = r"(?<![\w+#.])" + re.escape(skill) + r"(?![\w+#])"
    return re.search(pattern, text) is not None


def find_skills(text: str) -> list[str]:
    lowered = (text or "").lower()
    return [skill for skill in KNOWN_SKILLS if _contains(lowered, skill)]


def local_skill_match(jd_text: str, resume_text: str) -> SkillMatch:
    required = find_skills(jd_text)
    offered = set(find_skills(resume_text))

    matched = [skill for skill in required if skill in offered]
    missing = [skill for skill in required if skill not in offered]
    extra = sorted(offered - set(required))
    score = round(100 * len(matched) / len(required)) if required else 0
    return SkillMatch(score=score, matched=matched, missing=missing, extra=extra)
