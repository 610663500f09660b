import errno
import os
import shutil

import pytest

from filebox.core.errors import (
    CrossDeviceError,
    InvalidParameterError,
    PathNotFoundError,
    TypeMismatchError,
)


@pytest.fixture
def tree(tmp_path):
    """src/ with two files at the top and one in a subfolder."""
    src = tmp_path / "src"
    (src / "sub").mkdir(parents=True)
    (src / "a.txt").write_bytes(b"a" * 10)
    (src / "b.txt").write_bytes(b"b" * 20)
    (src / "sub" / "c.txt").write_bytes(b"c" * 30)
    return src


class TestListDirectory:
    """Disk directory listings."""

    def test_list_directory(self, filesystem, tree):
        listing = filesystem.list_directory(tree)

        assert listing.total_items == 3
        assert sorted(e.name for e in listing.files) == ["a.txt", "b.txt"]
        assert [e.name for e in listing.directories] == ["sub"]
        sizes = {e.name: e.size for e in listing.files}
        assert sizes == {"a.txt": 10, "b.txt": 20}

    def test_unstatable_entries_are_skipped(self, filesystem, tree, monkeypatch):
        """A locked entry is left out of the entries but still counted"""
        original = filesystem.stat_entry

        def flaky_stat_entry(path):
            if str(path).endswith("b.txt"):
                raise PermissionError(errno.EACCES, "Access is denied", str(path))
            return original(path)

        monkeypatch.setattr(filesystem, "stat_entry", flaky_stat_entry)

        listing = filesystem.list_directory(tree)

        assert listing.total_items == 3
        assert sorted(e.name for e in listing.entries) == ["a.txt", "sub"]

    def test_missing_directory(self, filesystem, tmp_path):
        with pytest.raises(PathNotFoundError):
            filesystem.list_directory(tmp_path / "missing")

    def test_file_is_not_a_directory(self, filesystem, tree):
        with pytest.raises(TypeMismatchError):
            filesystem.list_directory(tree / "a.txt")

    def test_list_drives(self, filesystem):
        drives = filesystem.list_drives()

        assert drives
        assert {"letter", "path", "label"} <= set(drives[0])


class TestCopy:
    """Single file and recursive copies."""

    def test_copy_file_creates_parent(self, filesystem, tree, tmp_path):
        target = tmp_path / "deep" / "er" / "a.txt"

        size = filesystem.copy_file(tree / "a.txt", target)

        assert size == 10
        assert target.read_bytes() == b"a" * 10

    def test_copy_tree(self, filesystem, tree, tmp_path):
        report = filesystem.copy_tree(tree, tmp_path / "dst")

        assert report.processed == 3
        assert report.skipped_count == 0
        assert (tmp_path / "dst" / "sub" / "c.txt").read_bytes() == b"c" * 30

    def test_copy_tree_skips_failing_entries(self, filesystem, tree, tmp_path, monkeypatch):
        """A file that cannot be copied is skipped and the rest is still copied"""
        original = shutil.copy2

        def failing_copy(src, dst, *args, **kwargs):
            if os.path.basename(src) == "b.txt":
                raise PermissionError(errno.EACCES, "Access is denied", str(src))
            return original(src, dst, *args, **kwargs)

        monkeypatch.setattr(shutil, "copy2", failing_copy)

        report = filesystem.copy_tree(tree, tmp_path / "dst")

        assert report.processed == 2
        assert report.skipped_count == 1
        assert report.skipped[0][0].endswith("b.txt")
        assert (tmp_path / "dst" / "a.txt").exists()
        assert (tmp_path / "dst" / "sub" / "c.txt").exists()
        assert not (tmp_path / "dst" / "b.txt").exists()

    def test_copy_file_onto_directory(self, filesystem, tree, tmp_path):
        target = tmp_path / "existing"
        target.mkdir()

        with pytest.raises(TypeMismatchError):
            filesystem.copy_file(tree / "a.txt", target)

        assert list(target.iterdir()) == []

    def test_copy_tree_into_itself(self, filesystem, tree):
        with pytest.raises(InvalidParameterError):
            filesystem.copy_tree(tree, tree / "sub" / "backup")

        assert not (tree / "sub" / "backup").exists()

    def test_copy_tree_onto_itself(self, filesystem, tree):
        with pytest.raises(InvalidParameterError):
            filesystem.copy_tree(tree, tree)

    def test_copy_tree_to_sibling_with_shared_prefix(self, filesystem, tree):
        report = filesystem.copy_tree(tree, tree.parent / "src_copy")

        assert report.processed == 3


class TestDelete:
    """Recursive deletes."""

    def test_delete_tree(self, filesystem, tree):
        report = filesystem.delete_tree(tree)

        assert report.processed == 3
        assert not tree.exists()

    def test_delete_tree_skips_locked_files(self, filesystem, tree, monkeypatch):
        original = filesystem.delete_file

        def locked_delete(path):
            if str(path).endswith("c.txt"):
                raise PermissionError(errno.EACCES, "File is locked", str(path))
            return original(path)

        monkeypatch.setattr(filesystem, "delete_file", locked_delete)

        report = filesystem.delete_tree(tree)

        # c.txt stays, so sub/ and the root stay too
        assert report.processed == 2
        assert report.skipped_count == 3
        assert (tree / "sub" / "c.txt").exists()
        assert not (tree / "a.txt").exists()


class TestRename:
    """Native rename."""

    def test_rename(self, filesystem, tree, tmp_path):
        filesystem.rename(tree / "a.txt", tmp_path / "moved.txt")

        assert (tmp_path / "moved.txt").exists()
        assert not (tree / "a.txt").exists()

    def test_cross_device_rename(self, filesystem, tree, tmp_path, monkeypatch):
        def exdev(src, dst):
            raise OSError(errno.EXDEV, "Invalid cross-device link")

        monkeypatch.setattr(os, "rename", exdev)

        with pytest.raises(CrossDeviceError):
            filesystem.rename(tree / "a.txt", tmp_path / "moved.txt")

    def test_other_rename_errors_propagate(self, filesystem, tmp_path):
        with pytest.raises(FileNotFoundError):
            filesystem.rename(tmp_path / "ghost.txt", tmp_path / "moved.txt")
