"""Tests for filename cleaning and the file record type."""

import pytest

from file_uploader.core.files.exceptions import InvalidInputError
from file_uploader.core.files.records import FileRecord, clean_filename
from file_uploader.storage.models import FileModel


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("report.pdf", "report.pdf"),
        ("a/b/c.txt", "c.txt"),
        ("../../etc/passwd", "passwd"),
        ("/absolute/path/image.png", "image.png"),
        ("C:\\Users\\me\\notes.txt", "notes.txt"),
        ("..\\..\\boot.ini", "boot.ini"),
        ("dir/sub/", "sub"),
        ("name with spaces.txt", "name with spaces.txt"),
        ("archive.tar.gz", "archive.tar.gz"),
    ],
)
def test_clean_filename(raw, expected):
    assert clean_filename(raw) == expected


@pytest.mark.parametrize("raw", ["a/b/c.txt", "../../etc/passwd", "plain.txt"])
def test_clean_filename_is_idempotent(raw):
    once = clean_filename(raw)
    assert clean_filename(once) == once
    assert "/" not in once and "\\" not in once


@pytest.mark.parametrize("raw", [None, "", "/", "..", "a/..", "./"])
def test_clean_filename_rejects_unusable_names(raw):
    with pytest.raises(InvalidInputError):
        clean_filename(raw)


def test_file_record_from_model():
    model = FileModel(id="file-1", name="a.txt", type="text/plain", data=b"hello")

    record = FileRecord.from_model(model)

    assert record.id == "file-1"
    assert record.name == "a.txt"
    assert record.type == "text/plain"
    assert record.data == b"hello"
    assert record.size == 5
