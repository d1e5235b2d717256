from __future__ import annotations

"""Step protocol and result types.

CONTRACT
- Inputs: SetupConfig, ExecContext
- Outputs:
  - run(): StepResult (never raises for expected failures)
- Invariants:
  - Every step is idempotent: re-running against its own end state yields
    `already-satisfied` (or `ok` for steps that always rebuild)
  - Failures are typed SetupError instances carried in the result
- Failure:
  - `failed` outcome on a fatal step aborts the orchestrator
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from ..config import SetupConfig
from ..context import ExecContext
from ..errors import SetupError


class Outcome(str, Enum):
    OK = "ok"
    ALREADY_SATISFIED = "already-satisfied"
    SKIPPED = "skipped"
    WARNING = "warning"
    FAILED = "failed"


class Policy(str, Enum):
    FATAL = "fatal"
    ADVISORY = "advisory"


@dataclass(frozen=True)
class StepResult:
    outcome: Outcome
    message: str = ""
    error: SetupError | None = None
    context: ExecContext | None = None  # replaces the running context when set
    error_count: int = 0

    @classmethod
    def ok(cls, message: str = "", **kw) -> StepResult:
        return cls(Outcome.OK, message, **kw)

    @classmethod
    def satisfied(cls, message: str = "", **kw) -> StepResult:
        return cls(Outcome.ALREADY_SATISFIED, message, **kw)

    @classmethod
    def skipped(cls, message: str = "") -> StepResult:
        return cls(Outcome.SKIPPED, message)

    @classmethod
    def warning(cls, message: str, error: SetupError | None = None, **kw) -> StepResult:
        return cls(Outcome.WARNING, message, error=error, **kw)

    @classmethod
    def failed(cls, error: SetupError, **kw) -> StepResult:
        return cls(Outcome.FAILED, str(error), error=error, **kw)


class Step(Protocol):
    name: str
    policy: Policy

    def run(self, cfg: SetupConfig, ctx: ExecContext) -> StepResult: ...


StepFn = Callable[[SetupConfig, ExecContext], StepResult]


@dataclass(frozen=True)
class InstallationStep:
    name: str
    ordinal: int
    policy: Policy
    run: StepFn

    @classmethod
    def of(cls, ordinal: int, step: Step) -> InstallationStep:
        return cls(name=step.name, ordinal=ordinal, policy=step.policy, run=step.run)
