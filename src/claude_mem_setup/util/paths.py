from __future__ import annotations

"""Path utilities.

CONTRACT
- Inputs: paths, text payloads
- Outputs:
  - ensure_dir() creates a directory tree, reporting whether it was created
  - atomic_write_text() replaces a file via temp-file + rename
  - is_safe_segment() accepts single path segments only
- Invariants:
  - atomic_write_text never leaves a partially written target; the temp file
    lives in the target's directory so os.replace stays on one filesystem
- Failure:
  - Raises OSError on permission issues
"""

import os
import re
import tempfile
from pathlib import Path

_SAFE_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.+-]*$")


def ensure_dir(path: Path) -> bool:
    """mkdir -p; returns True if the directory did not exist before."""
    if path.is_dir():
        return False
    path.mkdir(parents=True, exist_ok=True)
    return True


def atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def is_safe_segment(name: str) -> bool:
    return bool(_SAFE_SEGMENT_RE.match(name))
