from __future__ import annotations

"""Explicit execution context threaded between steps.

CONTRACT
- Inputs: home directory, the invoking PATH
- Outputs:
  - ExecContext with the effective PATH and resolved tool locations
- Invariants:
  - Immutable; with_segment()/with_tool() return new contexts
  - Never reads or writes os.environ after construction
  - Prepended segments take precedence over the inherited PATH
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from .util.shell import which


@dataclass(frozen=True)
class ExecContext:
    home: Path
    base_path: str
    segments: tuple[str, ...] = ()
    tools: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, home: Path) -> ExecContext:
        return cls(home=home, base_path=os.environ.get("PATH", ""))

    @property
    def path(self) -> str:
        parts = [*self.segments]
        if self.base_path:
            parts.append(self.base_path)
        return os.pathsep.join(parts)

    def with_segment(self, segment: Path | str) -> ExecContext:
        seg = str(segment)
        if seg in self.segments:
            return self
        return replace(self, segments=(seg, *self.segments))

    def with_tool(self, name: str, location: str) -> ExecContext:
        return replace(self, tools={**self.tools, name: location})

    def which(self, cmd: str) -> str | None:
        return which(cmd, path=self.path)

    def resolve(self, cmd: str) -> str | None:
        """Location recorded by an earlier step, else a PATH lookup."""
        return self.tools.get(cmd) or self.which(cmd)

    def env(self) -> dict[str, str]:
        """Environment overrides for external commands (merged onto os.environ by run_cmd)."""
        return {"PATH": self.path, "HOME": str(self.home)}
