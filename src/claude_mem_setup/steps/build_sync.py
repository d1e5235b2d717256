"""Plugin build and marketplace sync.

CONTRACT
- Inputs: project source tree (package.json, plugin/.claude-plugin/plugin.json)
- Outputs (required):
  - Marketplace tree mirroring the source tree
  - cache/<vendor>/<plugin>/<version>/ mirroring source/plugin
  - logs/install/{deps,build,marketplace-deps}.{stdout,stderr}.log
- Invariants:
  - Sub-steps run in order: install deps -> build -> mirror -> deployed deps
  - Nothing is mirrored unless install and build succeeded
  - Mirrors delete stale destination entries; `.git` is never copied
- Failure:
  - failed(BuildFailure) on command errors or unreadable version
  - failed(FilesystemError) on mirror errors
  - Root marketplace.json copy failure -> warning only
"""

from __future__ import annotations

import json
import shutil
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from ..config import SetupConfig
from ..context import ExecContext
from ..errors import BuildFailure, FilesystemError, SetupError
from ..util.mirror import mirror_tree
from ..util.paths import is_safe_segment
from ..util.shell import run_cmd
from .base import Policy, StepResult

PLUGIN_SUBDIR = "plugin"
PLUGIN_MANIFEST = Path("plugin") / ".claude-plugin" / "plugin.json"
MARKETPLACE_MANIFEST = Path(".claude-plugin") / "marketplace.json"


def read_plugin_version(source_dir: Path) -> str:
    manifest = source_dir / PLUGIN_MANIFEST
    try:
        data = json.loads(manifest.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise BuildFailure(f"Build produced no manifest at {manifest}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise BuildFailure(f"Cannot read {manifest}: {exc}") from exc
    version = data.get("version") if isinstance(data, dict) else None
    if not isinstance(version, str) or not is_safe_segment(version):
        raise BuildFailure(f"Invalid version {version!r} in {manifest}")
    return version


@dataclass
class BuildSyncPipeline:
    name: str = "build-sync"
    policy: Policy = Policy.FATAL

    def _run(self, cfg: SetupConfig, ctx: ExecContext, label: str, argv: tuple[str, ...], cwd: Path) -> None:
        logger.debug(f"[{label}] {' '.join(argv)} (cwd={cwd})")
        res = run_cmd(
            cmd=list(argv),
            cwd=cwd,
            stdout_path=cfg.command_logs_dir / f"{label}.stdout.log",
            stderr_path=cfg.command_logs_dir / f"{label}.stderr.log",
            env=ctx.env(),
            timeout_s=cfg.command_timeout_s,
        )
        if res.returncode != 0:
            detail = res.stderr_tail() or f"see {res.stderr_path}"
            raise BuildFailure(f"`{res.cmd}` failed in {cwd} (exit {res.returncode}): {detail}")

    def sync(self, cfg: SetupConfig, version: str) -> list[str]:
        """Mirror both trees; returns advisory notes."""
        notes: list[str] = []
        try:
            live = mirror_tree(cfg.source_dir, cfg.marketplace_dir)
            cached = mirror_tree(cfg.source_dir / PLUGIN_SUBDIR, cfg.cache_root / version)
        except OSError as exc:
            raise FilesystemError(f"Sync failed: {exc}") from exc
        logger.debug(f"marketplace sync: {live}; cache sync: {cached}")

        nested = cfg.marketplace_dir / MARKETPLACE_MANIFEST
        if nested.is_file():
            try:
                shutil.copy2(nested, cfg.marketplace_dir / MARKETPLACE_MANIFEST.name)
            except OSError as exc:
                logger.warning(f"Could not copy {nested} to marketplace root: {exc}")
                notes.append(f"marketplace.json not copied to root: {exc}")
        return notes

    def run(self, cfg: SetupConfig, ctx: ExecContext) -> StepResult:
        try:
            self._run(cfg, ctx, "deps", cfg.install_command, cfg.source_dir)
            self._run(cfg, ctx, "build", cfg.build_command, cfg.source_dir)
            version = read_plugin_version(cfg.source_dir)
            notes = self.sync(cfg, version)
            self._run(cfg, ctx, "marketplace-deps", cfg.install_command, cfg.marketplace_dir)
        except SetupError as exc:
            return StepResult.failed(exc)

        if notes:
            return StepResult.warning(f"Plugin synced (v{version}); " + "; ".join(notes))
        return StepResult.ok(f"Plugin synced (v{version})")
