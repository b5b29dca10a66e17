import os

import pytest

from classroom.core.errors import InvalidInput, StorageError
from classroom.services.file_storage import FileStorage
from tests.conftest import make_file


def test_upload_writes_object_under_unique_key(storage):
    first = storage.upload(make_file("My Homework.pdf"))
    second = storage.upload(make_file("My Homework.pdf"))

    assert first != second
    assert first.startswith("/uploads/")
    assert first.endswith("-My_Homework.pdf")
    with open(os.path.join(storage.upload_dir, storage.key_for(first)), "rb") as f:
        assert f.read() == b"%PDF-1.4 assignment"


def test_delete_removes_object(storage):
    url = storage.upload(make_file())

    assert storage.delete(url) is True
    assert os.listdir(storage.upload_dir) == []
    assert storage.delete(url) is False


@pytest.mark.parametrize("url", ["https://elsewhere.example.com/a.pdf", "/uploads/../secret.txt", "/uploads/"])
def test_delete_rejects_foreign_urls(storage, url):
    with pytest.raises(StorageError):
        storage.delete(url)


def test_validate_checks_extension_and_size(tmp_path):
    storage = FileStorage(upload_dir=str(tmp_path), allowed_extensions={".pdf"}, max_upload_size=8)

    storage.validate(make_file("ok.PDF", b"1234"))
    with pytest.raises(InvalidInput):
        storage.validate(make_file("notes.txt", b"1234"))
    with pytest.raises(InvalidInput):
        storage.validate(make_file("big.pdf", b"123456789"))
