from __future__ import annotations

from io import BytesIO

from docx import Document

from jotrack.core.text_extract import extract_text, html_to_text


def test_plain_text_is_normalised() -> None:
    assert extract_text(b"Line one\r\n\r\n\r\n\r\nLine   two  ", "txt") == "Line one\n\nLine two"


def test_html_drops_scripts_and_styles() -> None:
    html = "<html><head><style>p{}</style><script>var x=1;</script></head><body><h1>Staff Engineer</h1><p>Python</p></body></html>"

    assert html_to_text(html) == "Staff Engineer\nPython"
    assert extract_text(html.encode(), ".HTML") == "Staff Engineer\nPython"


def test_rtf_control_words_are_removed() -> None:
    text = extract_text(rb"{\rtf1\ansi {\b Jane Doe}\par Python engineer}", "rtf")

    assert "Jane Doe" in text
    assert "Python engineer" in text
    assert "\\" not in text


def test_docx_paragraphs_are_read() -> None:
    document = Document()
    document.add_paragraph("Jane Doe")
    document.add_paragraph("Kubernetes and Python")
    buffer = BytesIO()
    document.save(buffer)

    assert extract_text(buffer.getvalue(), "docx") == "Jane Doe\nKubernetes and Python"


def test_unsupported_and_corrupt_inputs_yield_empty_text() -> None:
    assert extract_text(b"\x89PNG", "png") == ""
    assert extract_text(b"not a pdf", "pdf") == ""
