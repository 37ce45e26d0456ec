"""
Evidence storage tests.

Verifies:
- Name sanitizing and the store_<store>_<agent>_<stamp>_<original> layout
- Files are written under the configured root and never overwritten
- Unwritable roots surface as EvidenceStorageError
"""

import os

import pytest

from fieldvisits.services import evidence_service
from fieldvisits.services.evidence_service import (
    EvidenceStorageError,
    build_photo_filename,
    discard_visit_photo,
    sanitize_name,
    save_visit_photo,
)


class TestSanitizeName:

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Main Street Market", "Main_Street_Market"),
            ("  Ana   María  ", "Ana_María"),
            ("tab\tand\nnewline", "tab_and_newline"),
            ("plain", "plain"),
            ("Abarrotes 24/7", "Abarrotes_24_7"),
            ("back\\slash", "back_slash"),
            ("nul\x00byte", "nul_byte"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_sanitize(self, raw, expected):
        assert sanitize_name(raw) == expected


class TestBuildPhotoFilename:

    def test_layout(self):
        name = build_photo_filename("Ana Agent", " Main  Store ", "photo.jpg", 1700000000123)
        assert name == "store_Main_Store_Ana_Agent_1700000000123_photo.jpg"

    def test_original_name_cannot_escape_root(self):
        name = build_photo_filename("Ana", "Shop", "../../etc/passwd", 1)
        assert "/" not in name
        assert ".." not in name
        assert name.startswith("store_Shop_Ana_1_")

    def test_missing_original_name(self):
        assert build_photo_filename("Ana", "Shop", None, 7) == "store_Shop_Ana_7_photo"

    def test_slash_in_names_stays_one_component(self):
        name = build_photo_filename("a/b", "Abarrotes 24/7", "shelf.jpg", 5)
        assert name == "store_Abarrotes_24_7_a_b_5_shelf.jpg"
        assert os.sep not in name


class TestSaveVisitPhoto:

    def test_writes_bytes_under_root(self, tmp_path):
        path = save_visit_photo("Ana Agent", "Main Store", b"\x89PNG-data", "shelf.png", str(tmp_path))
        assert os.path.dirname(path) == str(tmp_path)
        assert os.path.basename(path).startswith("store_Main_Store_Ana_Agent_")
        assert path.endswith("_shelf.png")
        with open(path, "rb") as fh:
            assert fh.read() == b"\x89PNG-data"

    def test_creates_missing_root(self, tmp_path):
        root = tmp_path / "nested" / "uploads"
        path = save_visit_photo("Ana", "Shop", b"x", "a.jpg", str(root))
        assert os.path.exists(path)

    def test_same_stamp_does_not_overwrite(self, tmp_path, monkeypatch):
        stamps = [42, 42]
        monkeypatch.setattr(evidence_service.time, "time_ns", lambda: stamps.pop(0) if stamps else 43)

        first = save_visit_photo("Ana", "Shop", b"first", "a.jpg", str(tmp_path))
        second = save_visit_photo("Ana", "Shop", b"second", "a.jpg", str(tmp_path))

        assert first != second
        assert "_42_" in first
        assert "_43_" in second
        with open(first, "rb") as fh:
            assert fh.read() == b"first"

    def test_slash_in_store_name_writes_directly_under_root(self, tmp_path):
        path = save_visit_photo("Ana", "Abarrotes 24/7", b"x", "a.jpg", str(tmp_path))
        assert os.path.dirname(path) == str(tmp_path)
        assert os.path.exists(path)

    def test_unwritable_root(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_bytes(b"")
        with pytest.raises(EvidenceStorageError):
            save_visit_photo("Ana", "Shop", b"x", "a.jpg", str(blocker / "sub"))


class TestDiscardVisitPhoto:

    def test_removes_file(self, tmp_path):
        path = save_visit_photo("Ana", "Shop", b"x", "a.jpg", str(tmp_path))
        assert discard_visit_photo(path) is True
        assert not os.path.exists(path)

    def test_missing_file(self, tmp_path):
        assert discard_visit_photo(str(tmp_path / "gone.jpg")) is False
        assert discard_visit_photo(None) is False
