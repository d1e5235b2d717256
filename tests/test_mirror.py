import os

import pytest

from claude_mem_setup.errors import FilesystemError
from claude_mem_setup.util.mirror import mirror_tree


def _tree(root):
    return sorted(str(p.relative_to(root)) for p in root.rglob("*"))


@pytest.fixture
def src(tmp_path):
    s = tmp_path / "src"
    (s / "lib").mkdir(parents=True)
    (s / "lib" / "a.js").write_text("a")
    (s / "README.md").write_text("readme")
    (s / ".git").mkdir()
    (s / ".git" / "config").write_text("[core]")
    return s


def test_mirror_copies_tree_without_git(src, tmp_path):
    dest = tmp_path / "dest"

    stats = mirror_tree(src, dest)

    assert _tree(dest) == ["README.md", "lib", "lib/a.js"]
    assert stats.copied == 2
    assert (dest / "lib" / "a.js").read_text() == "a"


def test_mirror_removes_stale_entries(src, tmp_path):
    dest = tmp_path / "dest"
    mirror_tree(src, dest)
    (dest / "stale.txt").write_text("old")
    (dest / "old_dir" / "nested").mkdir(parents=True)
    (dest / "old_dir" / "nested" / "x").write_text("x")

    stats = mirror_tree(src, dest)

    assert not (dest / "stale.txt").exists()
    assert not (dest / "old_dir").exists()
    assert stats.removed == 2


def test_mirror_removes_file_deleted_from_source(src, tmp_path):
    dest = tmp_path / "dest"
    mirror_tree(src, dest)
    (src / "lib" / "a.js").unlink()

    mirror_tree(src, dest)

    assert not (dest / "lib" / "a.js").exists()
    assert (dest / "lib").is_dir()


def test_mirror_leaves_excluded_destination_entries(src, tmp_path):
    dest = tmp_path / "dest"
    (dest / ".git").mkdir(parents=True)
    (dest / ".git" / "keep").write_text("mine")

    mirror_tree(src, dest)

    assert (dest / ".git" / "keep").read_text() == "mine"
    assert not (dest / ".git" / "config").exists()


def test_mirror_replaces_type_mismatch(src, tmp_path):
    dest = tmp_path / "dest"
    (dest / "README.md").mkdir(parents=True)

    mirror_tree(src, dest)

    assert (dest / "README.md").is_file()


def test_mirror_second_run_copies_nothing(src, tmp_path):
    dest = tmp_path / "dest"
    mirror_tree(src, dest)
    before = {p: p.stat().st_mtime_ns for p in dest.rglob("*")}

    stats = mirror_tree(src, dest)

    assert stats.copied == 0 and stats.removed == 0
    assert {p: p.stat().st_mtime_ns for p in dest.rglob("*")} == before


def test_mirror_updates_changed_file(src, tmp_path):
    dest = tmp_path / "dest"
    mirror_tree(src, dest)
    (src / "README.md").write_text("a much longer readme")

    mirror_tree(src, dest)

    assert (dest / "README.md").read_text() == "a much longer readme"


def test_mirror_recreates_symlinks(src, tmp_path):
    os.symlink("lib/a.js", src / "link.js")
    dest = tmp_path / "dest"

    stats = mirror_tree(src, dest)

    assert (dest / "link.js").is_symlink()
    assert os.readlink(dest / "link.js") == "lib/a.js"
    assert stats.linked == 1


def test_mirror_refuses_nested_destination(src):
    with pytest.raises(FilesystemError, match="own subtree"):
        mirror_tree(src, src / "out")


def test_mirror_missing_source(tmp_path):
    with pytest.raises(FilesystemError, match="not a directory"):
        mirror_tree(tmp_path / "nope", tmp_path / "dest")
