from __future__ import annotations

"""Install event log.

CONTRACT
- Inputs: step name, action and arbitrary fields
- Outputs:
  - Appends one JSON line per event to the configured log path
- Invariants:
  - Adds `ts` (ISO-8601, seconds) automatically
  - Every event of one invocation carries the same `session`
- Failure:
  - Never raises; an unwritable log is reported once through loguru
"""

import json
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from loguru import logger


def _session_id() -> str:
    return f"{datetime.now().strftime('%Y%m%d-%H%M%S')}-{os.getpid()}"


@dataclass
class EventLog:
    path: Path
    session: str = field(default_factory=_session_id)
    _broken: bool = field(default=False, repr=False)

    def emit(self, step: str, action: str, **fields: Any) -> None:
        event = {
            "ts": datetime.now().astimezone().isoformat(timespec="seconds"),
            "session": self.session,
            "step": step,
            "action": action,
            **fields,
        }
        if self._broken:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(event, ensure_ascii=False, default=str) + "\n")
        except OSError as exc:
            self._broken = True
            logger.warning(f"Event log {self.path} not writable: {exc}")
