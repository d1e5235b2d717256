from __future__ import annotations

"""Shell command execution.

CONTRACT
- Inputs: Command (str or argv list), cwd, environment overrides, timeout
- Outputs (required):
  - CmdResult(returncode, stdout_path, stderr_path)
  - spawn_detached(): running Popen in its own session
- Invariants:
  - Writes stdout/stderr to specified files
  - Respects timeout_s (returncode 124 if exceeded)
  - Detached children are never waited on here
- Failure:
  - run_cmd returns CmdResult with exit code (does NOT raise on non-zero exit)
  - spawn_detached raises OSError if the executable cannot be started
"""

import os
import signal
import subprocess
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path


def which(cmd: str, path: str | None = None) -> str | None:
    search = os.environ.get("PATH", "") if path is None else path
    for p in search.split(os.pathsep):
        if not p:
            continue
        candidate = Path(p) / cmd
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)
    return None


@dataclass(frozen=True)
class CmdResult:
    cmd: str
    returncode: int
    stdout_path: Path
    stderr_path: Path
    elapsed_s: float
    stdout_bytes: int
    stderr_bytes: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def stdout_text(self) -> str:
        return self.stdout_path.read_text(encoding="utf-8", errors="replace")

    def stderr_tail(self, lines: int = 20) -> str:
        if not self.stderr_path.exists():
            return ""
        text = self.stderr_path.read_text(encoding="utf-8", errors="replace")
        return "\n".join(text.strip().splitlines()[-lines:])


def _temp_log(prefix: str) -> Path:
    tf = tempfile.NamedTemporaryFile(delete=False, prefix=prefix)
    tf.close()
    return Path(tf.name)


def run_cmd(
    cmd: str | list[str],
    cwd: Path,
    stdout_path: Path | None = None,
    stderr_path: Path | None = None,
    env: dict[str, str] | None = None,
    timeout_s: float | None = None,
) -> CmdResult:
    """Run a command and store stdout/stderr to files.

    CONTRACT:
    - Accepts cmd as str (run with shell=True) or list[str] (run with shell=False).
    - `env` entries override os.environ; PATH in `env` is also used to resolve argv[0].
    - Always writes stdout/stderr files (creates temp if not provided).
    - Never raises for non-zero exit; caller inspects return code.
    """
    if stdout_path is None:
        stdout_path = _temp_log("cmem_stdout_")
    if stderr_path is None:
        stderr_path = _temp_log("cmem_stderr_")
    stdout_path.parent.mkdir(parents=True, exist_ok=True)
    stderr_path.parent.mkdir(parents=True, exist_ok=True)

    use_shell = isinstance(cmd, str)

    start_t = time.time()
    with (
        stdout_path.open("w", encoding="utf-8") as out_f,
        stderr_path.open("w", encoding="utf-8") as err_f,
    ):
        try:
            p = subprocess.run(
                cmd,
                cwd=str(cwd),
                shell=use_shell,
                env=(os.environ | env) if env else None,
                stdin=subprocess.DEVNULL,
                stdout=out_f,
                stderr=err_f,
                timeout=timeout_s,
                text=True,
            )
            rc = p.returncode
        except subprocess.TimeoutExpired:
            rc = 124
            err_f.write("\nTimeout expired.\n")
        except OSError as e:
            rc = 127 if isinstance(e, FileNotFoundError) else 1
            err_f.write(f"\nException: {e}\n")
    end_t = time.time()

    return CmdResult(
        cmd=cmd if use_shell else " ".join(cmd),
        returncode=rc,
        stdout_path=stdout_path,
        stderr_path=stderr_path,
        elapsed_s=end_t - start_t,
        stdout_bytes=stdout_path.stat().st_size if stdout_path.exists() else 0,
        stderr_bytes=stderr_path.stat().st_size if stderr_path.exists() else 0,
    )


def spawn_detached(
    cmd: list[str],
    cwd: Path,
    log_path: Path,
    env: dict[str, str] | None = None,
) -> subprocess.Popen:
    """Start `cmd` in a new session so it outlives this process.

    stdout and stderr are appended to `log_path`; stdin is closed.
    """
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("ab") as log_f:
        return subprocess.Popen(
            cmd,
            cwd=str(cwd),
            env=(os.environ | env) if env else None,
            stdin=subprocess.DEVNULL,
            stdout=log_f,
            stderr=subprocess.STDOUT,
            start_new_session=True,
            close_fds=True,
        )


def terminate_group(proc: subprocess.Popen, wait_s: float = 2.0) -> None:
    """SIGTERM the child's process group, then SIGKILL if it lingers."""
    if proc.poll() is not None:
        return
    try:
        os.killpg(proc.pid, signal.SIGTERM)
    except ProcessLookupError:
        return
    except PermissionError:
        proc.terminate()
    try:
        proc.wait(timeout=wait_s)
    except subprocess.TimeoutExpired:
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            return
        proc.wait(timeout=wait_s)
