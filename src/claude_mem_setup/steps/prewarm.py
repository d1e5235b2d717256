"""Vector database pre-warm.

CONTRACT
- Inputs: uvx (resolved through the context), ~/.claude-mem/vector-db
- Outputs:
  - One-time Chroma model/asset downloads cached on disk
  - logs/prewarm.log
- Invariants:
  - The child runs in its own session, capped by `timeout <lifetime>` when available
  - The child is terminated after the grace period whether or not it finished
- Failure:
  - Best effort only: missing uvx, spawn errors, non-zero early exit -> warning
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass

from loguru import logger

from ..config import SetupConfig
from ..context import ExecContext
from ..errors import PrewarmFailure
from ..util.shell import spawn_detached, terminate_group
from .base import Policy, StepResult


def prewarm_command(cfg: SetupConfig, ctx: ExecContext) -> list[str]:
    argv = [
        ctx.resolve("uvx") or "uvx",
        "--python",
        cfg.prewarm_python,
        "chroma-mcp",
        "--client-type",
        "persistent",
        "--data-dir",
        str(cfg.vector_db_dir),
    ]
    if ctx.which("timeout"):
        argv = ["timeout", str(cfg.prewarm_timeout_s), *argv]
    return argv


@dataclass
class PrewarmJob:
    name: str = "prewarm"
    policy: Policy = Policy.ADVISORY

    def run(self, cfg: SetupConfig, ctx: ExecContext) -> StepResult:
        if not cfg.prewarm:
            return StepResult.skipped("Pre-warm disabled")
        if not ctx.resolve("uvx"):
            err = PrewarmFailure("uvx not found; Chroma models will download on first use")
            return StepResult.warning(str(err), error=err)

        log_path = cfg.logs_dir / "prewarm.log"
        try:
            proc = spawn_detached(prewarm_command(cfg, ctx), cwd=cfg.data_dir, log_path=log_path, env=ctx.env())
        except OSError as exc:
            err = PrewarmFailure(f"Could not start pre-warm: {exc}")
            return StepResult.warning(str(err), error=err)

        try:
            rc = proc.wait(timeout=cfg.prewarm_grace_s)
        except subprocess.TimeoutExpired:
            rc = None
        finally:
            terminate_group(proc)

        if rc is None:
            logger.debug(f"Pre-warm still running after {cfg.prewarm_grace_s}s; terminated")
            return StepResult.ok("Chroma models cached")
        if rc != 0:
            err = PrewarmFailure(f"Pre-warm exited with {rc}; see {log_path}")
            return StepResult.warning(str(err), error=err)
        return StepResult.ok("Chroma models cached")
