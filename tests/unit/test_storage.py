from __future__ import annotations

from pathlib import Path

import pytest

from jotrack.config import Settings
from jotrack.core.storage import AttachmentStore, file_extension, sanitize_filename
from jotrack.errors import AttachmentRejectedError


@pytest.fixture
def store(tmp_path: Path) -> AttachmentStore:
    settings = Settings(attachments_dir=tmp_path / "files", max_attachment_bytes=32)
    return AttachmentStore(settings)


def test_sanitize_filename_strips_paths_and_unsafe_characters() -> None:
    assert sanitize_filename("../../etc/passwd") == "passwd"
    assert sanitize_filename("My Résumé*2024?.pdf") == "My R_sum_2024_.pdf"
    assert sanitize_filename("") == "upload"


def test_file_extension_falls_back_to_content_type() -> None:
    assert file_extension("CV.PDF") == "pdf"
    assert file_extension("blob", "application/pdf") == "pdf"
    assert file_extension("blob", "text/plain; charset=utf-8") == "txt"
    assert file_extension("blob") == ""


def test_validate_rejects_type_size_and_empty(store: AttachmentStore) -> None:
    with pytest.raises(AttachmentRejectedError) as unsupported:
        store.validate("payload.exe", b"MZ")
    assert unsupported.value.status_code == 415

    with pytest.raises(AttachmentRejectedError) as too_large:
        store.validate("resume.txt", b"x" * 33)
    assert too_large.value.status_code == 413

    with pytest.raises(AttachmentRejectedError) as empty:
        store.validate("resume.txt", b"")
    assert empty.value.status_code == 400

    assert store.validate("resume.txt", b"x" * 32) == "txt"


def test_write_never_overwrites_existing_files(store: AttachmentStore) -> None:
    first = store.write(7, "resume.txt", b"one", "txt")
    second = store.write(7, "resume.txt", b"two", "txt")
    third = store.write(7, "resume", b"three", "txt")

    assert first == ("resume.txt", "7/resume.txt")
    assert second == ("resume(1).txt", "7/resume(1).txt")
    assert third == ("resume(2).txt", "7/resume(2).txt")
    assert store.read(first[1]) == b"one"
    assert store.read(second[1]) == b"two"


def test_remove_and_remove_job_dir(store: AttachmentStore) -> None:
    _, path = store.write(3, "notes.md", b"# hi", "md")
    store.remove(path)
    store.remove(path)
    assert not store.resolve(path).exists()

    store.write(3, "notes.md", b"# again", "md")
    store.remove_job_dir(3)
    assert not (store.root / "3").exists()
