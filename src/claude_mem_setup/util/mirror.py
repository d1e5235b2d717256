from __future__ import annotations

"""Directory mirroring (rsync -a --delete --exclude=<name> semantics).

CONTRACT
- Inputs: source directory, destination directory, excluded entry names
- Outputs (required):
  - MirrorStats(copied, removed, linked)
- Invariants:
  - After mirror_tree(), dest contains exactly the non-excluded entries of src
  - Entries whose name is excluded are skipped at any depth, on both sides;
    excluded entries already in dest are left untouched
  - Files with identical size and mtime are not rewritten; copies keep mtime
  - Symlinks are recreated as symlinks, never followed
- Failure:
  - Raises FilesystemError if src is missing or dest is nested inside src
  - Raises OSError on copy/remove failures
"""

import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from ..errors import FilesystemError

DEFAULT_EXCLUDES = frozenset({".git"})


@dataclass
class MirrorStats:
    copied: int = 0
    removed: int = 0
    linked: int = 0


def _kind(entry: os.DirEntry) -> str:
    if entry.is_symlink():
        return "link"
    if entry.is_dir(follow_symlinks=False):
        return "dir"
    return "file"


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def _unchanged(src: os.DirEntry, dest: Path) -> bool:
    try:
        d = dest.stat()
    except FileNotFoundError:
        return False
    s = src.stat(follow_symlinks=False)
    return s.st_size == d.st_size and int(s.st_mtime) == int(d.st_mtime)


def _scan(path: Path, excludes: frozenset[str]) -> dict[str, os.DirEntry]:
    with os.scandir(path) as it:
        return {e.name: e for e in it if e.name not in excludes}


def _sync_dir(src: Path, dest: Path, excludes: frozenset[str], stats: MirrorStats) -> None:
    dest.mkdir(exist_ok=True)
    src_entries = _scan(src, excludes)

    for name, entry in _scan(dest, excludes).items():
        s = src_entries.get(name)
        if s is None or _kind(s) != _kind(entry):
            _remove(Path(entry.path))
            stats.removed += 1

    for name, s in sorted(src_entries.items()):
        target = dest / name
        kind = _kind(s)
        if kind == "dir":
            _sync_dir(Path(s.path), target, excludes, stats)
        elif kind == "link":
            link = os.readlink(s.path)
            if target.is_symlink():
                if os.readlink(target) == link:
                    continue
                target.unlink()
            os.symlink(link, target)
            stats.linked += 1
        elif not _unchanged(s, target):
            shutil.copy2(s.path, target, follow_symlinks=False)
            stats.copied += 1


def mirror_tree(src: Path, dest: Path, excludes: frozenset[str] = DEFAULT_EXCLUDES) -> MirrorStats:
    if not src.is_dir():
        raise FilesystemError(f"Mirror source is not a directory: {src}")
    src_abs = src.resolve()
    dest_abs = dest.resolve(strict=False)
    if dest_abs == src_abs or src_abs in dest_abs.parents:
        raise FilesystemError(f"Refusing to mirror {src} into its own subtree: {dest}")
    dest.parent.mkdir(parents=True, exist_ok=True)
    stats = MirrorStats()
    _sync_dir(src, dest, excludes, stats)
    return stats
