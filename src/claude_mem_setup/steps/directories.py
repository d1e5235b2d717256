"""Directory layout provisioning.

CONTRACT
- Inputs: SetupConfig.layout()
- Outputs:
  - plugins/cache/<vendor>/<plugin>, plugins/marketplaces/<vendor>,
    ~/.claude-mem/logs, ~/.claude-mem/vector-db
- Invariants:
  - Existing directories (and their contents) are untouched; nothing is deleted
- Failure:
  - failed(FilesystemError) when a path cannot be created
"""

from __future__ import annotations

from dataclasses import dataclass

from ..config import SetupConfig
from ..context import ExecContext
from ..errors import FilesystemError
from ..util.paths import ensure_dir
from .base import Policy, StepResult


@dataclass
class DirectoryProvisioner:
    name: str = "directories"
    policy: Policy = Policy.FATAL

    def run(self, cfg: SetupConfig, ctx: ExecContext) -> StepResult:
        created = []
        for path in cfg.layout():
            try:
                if ensure_dir(path):
                    created.append(path)
            except OSError as exc:
                return StepResult.failed(FilesystemError(f"Cannot create {path}: {exc}"))
        if not created:
            return StepResult.satisfied("Directories already present")
        return StepResult.ok(f"Created {len(created)} directories")
