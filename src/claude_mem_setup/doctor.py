from __future__ import annotations

"""Installation health checks.

CONTRACT
- Inputs: SetupConfig, ExecContext (PATH to check tools against)
- Outputs (required):
  - DoctorReport (ok=bool, errors=int, items=[(name, status, details)])
- Invariants:
  - Checks: bun and uvx on PATH, plugin tree in the marketplace, database file,
    registry entry
  - Independent of any earlier step result; read-only
  - A missing database is INFO only (created on first use)
- Failure:
  - Returns DoctorReport with ok=False when a FAIL item is present
"""

import json
from dataclasses import dataclass

from .config import SetupConfig
from .context import ExecContext


@dataclass(frozen=True)
class DoctorItem:
    name: str
    status: str
    details: str


@dataclass(frozen=True)
class DoctorReport:
    items: list[DoctorItem]

    @property
    def errors(self) -> int:
        return sum(1 for i in self.items if i.status == "FAIL")

    @property
    def ok(self) -> bool:
        return self.errors == 0


def _registry_item(cfg: SetupConfig) -> DoctorItem:
    path = cfg.registry_path
    if not path.exists():
        return DoctorItem("marketplace", "WARN", f"{path} missing")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        return DoctorItem("marketplace", "WARN", f"Unreadable registry: {e}")
    if isinstance(data, dict) and cfg.marketplace_id in data:
        return DoctorItem("marketplace", "OK", f"{cfg.marketplace_id} registered")
    return DoctorItem("marketplace", "WARN", f"{cfg.marketplace_id} not registered in {path}")


def doctor_report(cfg: SetupConfig, ctx: ExecContext) -> DoctorReport:
    items: list[DoctorItem] = []

    # Critical: tools
    for tool in cfg.tools:
        found = ctx.which(tool.command)
        if found:
            items.append(DoctorItem(tool.command, "OK", found))
        else:
            items.append(DoctorItem(tool.command, "FAIL", f"{tool.command} not in PATH"))

    # Critical: synced plugin
    plugin_dir = cfg.marketplace_dir / "plugin"
    if plugin_dir.is_dir():
        items.append(DoctorItem("plugin", "OK", str(plugin_dir)))
    else:
        items.append(DoctorItem("plugin", "FAIL", f"Plugin not synced ({plugin_dir} missing)"))

    items.append(_registry_item(cfg))

    if cfg.db_path.exists():
        items.append(DoctorItem("database", "OK", str(cfg.db_path)))
    else:
        items.append(DoctorItem("database", "INFO", "Database not yet created (will be on first use)"))

    return DoctorReport(items=items)
