from __future__ import annotations

"""Persisted and reported shapes.

CONTRACT
- Inputs: Pydantic models
- Outputs:
  - RegistryEntry serialises to the known_marketplaces.json value shape
    ({source: {source, path}, installLocation, lastUpdated})
  - InstallationReport is the ordered step ledger of one run
- Invariants:
  - Registry entries dump with camelCase aliases
  - InstallationReport.succeeded is False iff a fatal step failed
- Failure:
  - Raises ValidationError on schema mismatch
"""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class MarketplaceSource(BaseModel):
    source: Literal["directory"] = "directory"
    path: str


class RegistryEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: MarketplaceSource
    install_location: str = Field(alias="installLocation")
    last_updated: str = Field(alias="lastUpdated")

    @classmethod
    def for_directory(cls, path: str, now: datetime) -> RegistryEntry:
        return cls(
            source=MarketplaceSource(path=path),
            install_location=path,
            last_updated=now.isoformat(timespec="seconds"),
        )

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True)


class RunState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class ReportEntry(BaseModel):
    step: str
    ordinal: int
    policy: Literal["fatal", "advisory"]
    outcome: Literal["ok", "already-satisfied", "skipped", "warning", "failed"]
    message: str = ""


class InstallationReport(BaseModel):
    state: RunState = RunState.PENDING
    entries: list[ReportEntry] = Field(default_factory=list)
    aborted_step: str | None = None
    abort_error: str | None = None
    verify_errors: int = 0
    guidance: list[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not any(e.policy == "fatal" and e.outcome == "failed" for e in self.entries)

    @property
    def exit_code(self) -> int:
        if self.state == RunState.ABORTED:
            return 1
        return 1 if self.verify_errors else 0

    def outcomes(self) -> dict[str, str]:
        return {e.step: e.outcome for e in self.entries}

    def warnings(self) -> list[ReportEntry]:
        return [e for e in self.entries if e.outcome in ("warning", "failed")]
