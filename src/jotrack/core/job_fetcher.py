from __future__ import annotations

import logging

import requests

from jotrack.core.text_extract import html_to_text

logger = logging.getLogger(__name__)


USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
MAX_POSTING_CHARS = 60000


def fetch_job_text(url: str, timeout_sec: int = 30) -> str:
    """Download a job posting and reduce it to visible text; '' on any failure."""
    try:
        response = requests.get(url, timeout=timeout_sec, headers={"User-Agent": USER_AGENT})
        response.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("Failed to fetch job posting %s: %s", url, exc)
        return ""

    content_type = response.headers.get("Content-Type", "")
    if "html" not in content_type and content_type.startswith(("application/", "image/")):
        logger.warning("Job posting %s is not HTML (%s)", url, content_type)
        return ""

    return html_to_text(response.text)[:MAX_POSTING_CHARS]
