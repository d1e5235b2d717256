"""Final verification step.

Re-checks the end state through doctor_report(); the error count it returns
decides the installer's exit status.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from ..config import SetupConfig
from ..context import ExecContext
from ..doctor import doctor_report
from .base import Outcome, Policy, StepResult


@dataclass
class Verifier:
    name: str = "verify"
    policy: Policy = Policy.ADVISORY

    def run(self, cfg: SetupConfig, ctx: ExecContext) -> StepResult:
        report = doctor_report(cfg, ctx)
        for item in report.items:
            if item.status != "OK":
                logger.info(f"verify {item.name}: {item.status} {item.details}")
        if report.ok:
            return StepResult.ok("Installation verified")
        failing = ", ".join(i.details for i in report.items if i.status == "FAIL")
        return StepResult(Outcome.FAILED, f"{report.errors} errors found: {failing}", error_count=report.errors)
