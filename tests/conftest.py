import stat
from pathlib import Path

import pytest

from claude_mem_setup.config import SetupConfig
from claude_mem_setup.context import ExecContext
from claude_mem_setup.util.shell import CmdResult


def make_executable(directory: Path, name: str, body: str = "exit 0") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    p = directory / name
    p.write_text(f"#!/bin/sh\n{body}\n")
    p.chmod(p.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return p


@pytest.fixture
def home(tmp_path, monkeypatch):
    h = tmp_path / "home"
    h.mkdir()
    monkeypatch.setenv("HOME", str(h))
    return h


@pytest.fixture
def source_tree(tmp_path):
    src = tmp_path / "claude-mem"
    (src / "plugin" / ".claude-plugin").mkdir(parents=True)
    (src / "plugin" / ".claude-plugin" / "plugin.json").write_text('{"name": "claude-mem", "version": "6.5.0"}')
    (src / "plugin" / "scripts").mkdir()
    (src / "plugin" / "scripts" / "worker-service.cjs").write_text("// worker\n")
    (src / ".claude-plugin").mkdir()
    (src / ".claude-plugin" / "marketplace.json").write_text('{"name": "thedotmack"}')
    (src / "package.json").write_text('{"name": "claude-mem"}')
    (src / ".git").mkdir()
    (src / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    return src


@pytest.fixture
def cfg(home, source_tree):
    return SetupConfig(home=home, source_dir=source_tree, prewarm=False, start_service=False)


@pytest.fixture
def bin_dir(tmp_path):
    d = tmp_path / "bin"
    d.mkdir()
    return d


@pytest.fixture
def ctx(home, bin_dir):
    """Context whose PATH is only the fake bin dir."""
    return ExecContext(home=home, base_path=str(bin_dir))


class FakeRunner:
    """Stands in for run_cmd in the build step; fails the first call whose log label is `fail_on`."""

    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.calls = []

    def __call__(self, cmd, cwd, stdout_path=None, stderr_path=None, env=None, timeout_s=None):
        label = Path(stdout_path).name.split(".")[0]
        self.calls.append((label, list(cmd), Path(cwd)))
        stdout_path.parent.mkdir(parents=True, exist_ok=True)
        stdout_path.write_text("")
        rc = 1 if label == self.fail_on else 0
        stderr_path.write_text("npm ERR! something broke\n" if rc else "")
        return CmdResult(" ".join(cmd), rc, stdout_path, stderr_path, 0.0, 0, 0)
