"""Marketplace registration.

CONTRACT
- Inputs: registry path (known_marketplaces.json), marketplace id, marketplace dir
- Outputs (required):
  - Registry JSON object containing the marketplace id
- Invariants:
  - Missing file is initialised with `{}` before merging
  - Unrelated keys are preserved; the object is never replaced wholesale
  - An existing key is left as is (lastUpdated is NOT refreshed)
  - Every write is temp-file + rename, so the file is valid JSON at all times
- Failure:
  - Unreadable/malformed registry or write error -> warning(RegistryWriteError);
    a malformed file is never overwritten
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from loguru import logger

from ..config import SetupConfig
from ..context import ExecContext
from ..errors import RegistryWriteError
from ..schemas import RegistryEntry
from ..util.paths import atomic_write_text
from .base import Policy, StepResult


def _now() -> datetime:
    return datetime.now().astimezone()


def _dump(data: dict[str, Any]) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def read_registry(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise RegistryWriteError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise RegistryWriteError(f"{path} must contain a JSON object, found {type(data).__name__}")
    return data


def merge_entry(path: Path, key: str, entry: RegistryEntry) -> bool:
    """Add `key` to the registry at `path`. Returns False if it was already present."""
    if not path.exists():
        atomic_write_text(path, _dump({}))
    data = read_registry(path)
    if key in data:
        return False
    data[key] = entry.to_json()
    atomic_write_text(path, _dump(data))
    return True


@dataclass
class RegistryMerger:
    name: str = "registry"
    policy: Policy = Policy.ADVISORY
    now: Callable[[], datetime] = field(default=_now)

    def run(self, cfg: SetupConfig, ctx: ExecContext) -> StepResult:
        path = cfg.registry_path
        entry = RegistryEntry.for_directory(str(cfg.marketplace_dir), self.now())
        try:
            added = merge_entry(path, cfg.marketplace_id, entry)
        except (RegistryWriteError, OSError) as exc:
            err = exc if isinstance(exc, RegistryWriteError) else RegistryWriteError(str(exc))
            logger.warning(f"Marketplace registration failed: {err}")
            return StepResult.warning(
                f"{err} - manually add {cfg.marketplace_id!r} to {path}", error=err
            )
        if not added:
            return StepResult.satisfied("Marketplace already registered")
        return StepResult.ok(f"Marketplace {cfg.marketplace_id!r} registered in {path}")
