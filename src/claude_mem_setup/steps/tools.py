"""Tool dependency step.

CONTRACT
- Inputs: SetupConfig, ExecContext, one ToolDependency
- Outputs (required):
  - StepResult with the detected version in its message
  - logs/install/tool-<name>.{stdout,stderr}.log when an install runs
- Invariants:
  - Present tool -> `already-satisfied`, nothing executed but the version probe
  - After an install, the returned context carries the tool's PATH segment
  - os.environ is never modified
- Failure:
  - Install error or tool still unresolvable -> failed(MissingTool)
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from ..config import SetupConfig, ToolDependency
from ..context import ExecContext
from ..errors import MissingTool
from ..util.shell import run_cmd
from .base import Policy, StepResult


def probe_version(tool: ToolDependency, ctx: ExecContext, cfg: SetupConfig) -> str:
    res = run_cmd(
        cmd=list(tool.version_args),
        cwd=ctx.home,
        stdout_path=cfg.command_logs_dir / f"tool-{tool.name}.version.log",
        stderr_path=cfg.command_logs_dir / f"tool-{tool.name}.version.err.log",
        env=ctx.env(),
        timeout_s=15,
    )
    if res.returncode != 0:
        return "unknown"
    lines = res.stdout_text().strip().splitlines()
    return lines[0].strip() if lines else "unknown"


@dataclass
class ToolEnsurer:
    tool: ToolDependency
    policy: Policy = Policy.FATAL

    @property
    def name(self) -> str:
        return f"tool:{self.tool.name}"

    def run(self, cfg: SetupConfig, ctx: ExecContext) -> StepResult:
        found = ctx.which(self.tool.command)
        if found:
            version = probe_version(self.tool, ctx, cfg)
            return StepResult.satisfied(
                f"{self.tool.name} already installed: {version}",
                context=ctx.with_tool(self.tool.command, found),
            )

        logger.info(f"Installing {self.tool.name} via: {self.tool.install_script}")
        res = run_cmd(
            cmd=self.tool.install_script,
            cwd=ctx.home,
            stdout_path=cfg.command_logs_dir / f"tool-{self.tool.name}.stdout.log",
            stderr_path=cfg.command_logs_dir / f"tool-{self.tool.name}.stderr.log",
            env=ctx.env(),
            timeout_s=cfg.command_timeout_s,
        )
        if res.returncode != 0:
            detail = res.stderr_tail() or f"see {res.stderr_path}"
            return StepResult.failed(
                MissingTool(f"{self.tool.name} install failed (exit {res.returncode}): {detail}")
            )

        ctx = ctx.with_segment(self.tool.segment_path(ctx.home))
        found = ctx.which(self.tool.command)
        if not found:
            return StepResult.failed(
                MissingTool(
                    f"{self.tool.name} installed but `{self.tool.command}` is not in "
                    f"{self.tool.segment_path(ctx.home)}"
                )
            )
        version = probe_version(self.tool, ctx, cfg)
        return StepResult.ok(
            f"{self.tool.name} installed: {version}",
            context=ctx.with_tool(self.tool.command, found),
        )
