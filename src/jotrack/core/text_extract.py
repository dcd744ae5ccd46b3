from __future__ import annotations

import logging
import re
from io import BytesIO

import pdfplumber
from bs4 import BeautifulSoup
from docx import Document

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = {"txt", "md"}
HTML_EXTENSIONS = {"html", "htm"}


def normalize_text(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t]{2,}", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def html_to_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.extract()
    lines = [line.strip() for line in soup.get_text("\n").splitlines() if line.strip()]
    return "\n".join(lines)


def rtf_to_text(rtf: str) -> str:
    text = re.sub(r"\\par[d]?", "\n", rtf)
    text = re.sub(r"\\'[0-9a-fA-F]{2}", "", text)
    text = re.sub(r"\\[a-zA-Z]+-?\d* ?", "", text)
    return text.replace("{", "").replace("}", "")


def extract_text(content: bytes, ext: str) -> str:
    """Best-effort text for AI prompts; unsupported formats give ''."""
    ext = ext.lower().lstrip(".")
    try:
        if ext in TEXT_EXTENSIONS:
            return normalize_text(content.decode("utf-8", errors="ignore"))
        if ext in HTML_EXTENSIONS:
            return normalize_text(html_to_text(content.decode("utf-8", errors="ignore")))
        if ext == "rtf":
            return normalize_text(rtf_to_text(content.decode("utf-8", errors="ignore")))
        if ext == "pdf":
            with pdfplumber.open(BytesIO(content)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
            return normalize_text("\n\n".join(pages))
        if ext == "docx":
            doc = Document(BytesIO(content))
            return normalize_text("\n".join(p.text for p in doc.paragraphs))
    except Exception as exc:
        logger.warning("Text extraction failed ext=%s: %s", ext, exc)
        return ""
    return ""
