"""Tests for AttachmentStore."""

from pathlib import Path

import pytest

from bibpull.item import AttachmentKind
from bibpull.storage import AttachmentStore


class TestAttachmentStoreInit:
    """Test AttachmentStore initialization."""

    def test_create_missing_dir_auto(self, tmp_path: Path):
        new_dir = tmp_path / "out" / "nested"
        store = AttachmentStore(new_dir)
        assert new_dir.is_dir()
        # Use resolve() to handle symlinks (e.g., /var -> /private/var on macOS)
        assert store.base_dir == new_dir.resolve()

    def test_create_missing_dir_raises(self, tmp_path: Path):
        with pytest.raises(ValueError, match="does not exist"):
            AttachmentStore(tmp_path / "nonexistent", create_if_missing=False)

    def test_path_is_file_raises(self, tmp_path: Path):
        file_path = tmp_path / "file.txt"
        file_path.write_text("test")
        with pytest.raises(ValueError, match="not a directory"):
            AttachmentStore(file_path)


class TestAttachmentStoreSave:
    """Test save() and naming."""

    def test_save_names_file_by_key_and_kind(self, tmp_path: Path):
        store = AttachmentStore(tmp_path)
        path = store.save("10.1000_abc", AttachmentKind.PDF, b"%PDF-1.4")

        assert path == tmp_path.resolve() / "10.1000_abc.pdf"
        assert path.read_bytes() == b"%PDF-1.4"
        assert store.exists("10.1000_abc", AttachmentKind.PDF)
        assert not store.exists("10.1000_abc", AttachmentKind.HTML)

    def test_save_overwrites(self, tmp_path: Path):
        store = AttachmentStore(tmp_path)
        store.save("key", AttachmentKind.HTML, b"old")
        path = store.save("key", AttachmentKind.HTML, b"new")

        assert path.read_bytes() == b"new"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["key.html"]

    def test_unsafe_key_stays_inside_base_dir(self, tmp_path: Path):
        store = AttachmentStore(tmp_path / "out")
        path = store.save("../../etc/passwd", AttachmentKind.HTML, b"x")

        assert path.parent == store.base_dir
        assert "/" not in path.name

    def test_no_partial_files_left_behind(self, tmp_path: Path):
        store = AttachmentStore(tmp_path)
        store.save("a", AttachmentKind.PDF, b"%PDF")

        assert sorted(p.name for p in tmp_path.iterdir()) == ["a.pdf"]
