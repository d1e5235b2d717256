"""Shell profile PATH configuration.

CONTRACT
- Inputs: profile paths (~/.bashrc, ~/.profile, ~/.zshrc)
- Outputs:
  - PATH line appended to existing profiles lacking the marker
- Invariants:
  - Append-only; a profile containing the marker is left byte-identical
  - Missing profiles are never created
- Failure:
  - Unwritable profile -> warning; never fatal
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from ..config import PATH_LINE, PATH_MARKER, SetupConfig
from ..context import ExecContext
from .base import Policy, StepResult


def profile_configured(profile: Path, marker: str = PATH_MARKER) -> bool:
    return marker in profile.read_text(encoding="utf-8", errors="ignore")


def append_path_line(profile: Path, line: str = PATH_LINE) -> None:
    with profile.open("rb") as f:
        f.seek(0, 2)
        needs_newline = f.tell() > 0
        if needs_newline:
            f.seek(-1, 2)
            needs_newline = f.read(1) != b"\n"
    with profile.open("a", encoding="utf-8") as f:
        f.write(("\n" if needs_newline else "") + line + "\n")


@dataclass
class EnvironmentConfigurator:
    name: str = "shell-path"
    policy: Policy = Policy.ADVISORY

    def run(self, cfg: SetupConfig, ctx: ExecContext) -> StepResult:
        existing = [p for p in cfg.profiles if p.is_file()]
        if not existing:
            return StepResult.skipped("No shell profiles found; add ~/.bun/bin and ~/.local/bin to PATH manually")

        updated: list[str] = []
        failed: list[str] = []
        for profile in existing:
            try:
                if profile_configured(profile):
                    continue
                append_path_line(profile)
                updated.append(profile.name)
            except OSError as exc:
                logger.warning(f"Could not update {profile}: {exc}")
                failed.append(profile.name)

        if failed:
            return StepResult.warning(f"Could not update {', '.join(failed)}")
        if updated:
            return StepResult.ok(f"PATH added to {', '.join(updated)}")
        return StepResult.satisfied("PATH already configured")
