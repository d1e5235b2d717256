from __future__ import annotations

"""Installer orchestrator.

CONTRACT
- Inputs: SetupConfig (paths, commands, timeouts), optional step sequence
- Outputs (required):
  - InstallationReport (state, ordered step entries, verify error count, guidance)
  - logs/install-events.jsonl
- Invariants:
  - Steps run strictly in ordinal order, one at a time
  - A `failed` fatal step aborts the run: no later step runs or is reported
  - The ExecContext returned by a step is what every later step receives
  - Guidance is attached only when the run completes
- Failure:
  - Exceptions escaping a step become failed(SetupError) for that step;
    KeyboardInterrupt propagates with no rollback
"""

from dataclasses import dataclass, field
from typing import Callable, Sequence

from loguru import logger

from .config import SetupConfig
from .context import ExecContext
from .errors import FilesystemError, SetupError
from .schemas import InstallationReport, ReportEntry, RunState
from .steps.base import InstallationStep, Outcome, Policy, Step, StepResult
from .steps.build_sync import BuildSyncPipeline
from .steps.directories import DirectoryProvisioner
from .steps.environment import EnvironmentConfigurator
from .steps.prewarm import PrewarmJob
from .steps.registry import RegistryMerger
from .steps.service import ServiceLauncher
from .steps.tools import ToolEnsurer
from .steps.verify import Verifier
from .util.events import EventLog

# (step, None) when a step starts; (step, result) when it finishes
Observer = Callable[[InstallationStep, StepResult | None], None]


def default_steps(cfg: SetupConfig) -> list[InstallationStep]:
    pipeline: list[Step] = [ToolEnsurer(tool) for tool in cfg.tools]
    pipeline += [
        EnvironmentConfigurator(),
        DirectoryProvisioner(),
        BuildSyncPipeline(),
        RegistryMerger(),
        PrewarmJob(),
        ServiceLauncher(),
        Verifier(),
    ]
    return [InstallationStep.of(i, s) for i, s in enumerate(pipeline, start=1)]


def post_install_guidance(cfg: SetupConfig) -> list[str]:
    return [
        "Restart your terminal (or: source ~/.bashrc)",
        f"Run: claude /plugin install {cfg.vendor}/{cfg.plugin}",
        "Restart Claude Code",
        f"Web viewer: {cfg.web_url}",
    ]


def _wrap_unexpected(exc: Exception) -> SetupError:
    if isinstance(exc, SetupError):
        return exc
    if isinstance(exc, OSError):
        return FilesystemError(str(exc))
    return SetupError(f"{exc.__class__.__name__}: {exc}")


@dataclass
class Orchestrator:
    cfg: SetupConfig
    steps: Sequence[InstallationStep] | None = None
    observer: Observer | None = None
    events: EventLog | None = None
    state: RunState = field(default=RunState.PENDING, init=False)

    def __post_init__(self) -> None:
        if self.steps is None:
            self.steps = default_steps(self.cfg)
        self.steps = sorted(self.steps, key=lambda s: s.ordinal)
        if self.events is None:
            self.events = EventLog(self.cfg.logs_dir / "install-events.jsonl")

    def _notify(self, step: InstallationStep, result: StepResult | None) -> None:
        if self.observer is not None:
            self.observer(step, result)

    def _run_step(self, step: InstallationStep, ctx: ExecContext) -> StepResult:
        try:
            return step.run(self.cfg, ctx)
        except Exception as exc:
            logger.exception(f"Step {step.name} raised")
            return StepResult.failed(_wrap_unexpected(exc))

    def run(self, ctx: ExecContext | None = None) -> InstallationReport:
        ctx = ctx or ExecContext.from_env(self.cfg.home)
        report = InstallationReport()
        self.state = RunState.RUNNING
        self.events.emit("install", "start", source=str(self.cfg.source_dir))

        for step in self.steps:
            self._notify(step, None)
            self.events.emit(step.name, "run", ordinal=step.ordinal)
            result = self._run_step(step, ctx)
            if result.context is not None:
                ctx = result.context

            report.entries.append(
                ReportEntry(
                    step=step.name,
                    ordinal=step.ordinal,
                    policy=step.policy.value,
                    outcome=result.outcome.value,
                    message=result.message,
                )
            )
            report.verify_errors += result.error_count
            self.events.emit(step.name, result.outcome.value, message=result.message)
            self._notify(step, result)

            if result.outcome == Outcome.FAILED and step.policy == Policy.FATAL:
                self.state = report.state = RunState.ABORTED
                report.aborted_step = step.name
                report.abort_error = result.message
                logger.error(f"Aborted at {step.name}: {result.message}")
                self.events.emit("install", "aborted", failed_step=step.name, error=result.message)
                return report
            if result.outcome in (Outcome.WARNING, Outcome.FAILED):
                logger.warning(f"{step.name}: {result.message}")

        self.state = report.state = RunState.COMPLETED
        report.guidance = post_install_guidance(self.cfg)
        self.events.emit("install", "completed", verify_errors=report.verify_errors)
        return report


def run_install(cfg: SetupConfig, observer: Observer | None = None) -> InstallationReport:
    return Orchestrator(cfg, observer=observer).run()
