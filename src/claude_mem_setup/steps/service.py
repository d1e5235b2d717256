"""Worker service launch and health polling.

CONTRACT
- Inputs: bun on the context PATH, worker script in the marketplace tree
- Outputs:
  - Detached worker process (never joined; outlives the installer)
  - logs/worker-launch.log
- Invariants:
  - Healthy iff GET <health_url> returns a JSON object with status == "ok"
  - Polls until the deadline, sleeping interval * backoff^n (capped) between probes
- Failure:
  - Never fatal: missing bun/script, spawn error or no "ok" before the
    deadline -> warning(ServiceUnreachable) pointing at the logs dir
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

import requests
from loguru import logger

from ..config import SetupConfig
from ..context import ExecContext
from ..errors import ServiceUnreachable
from ..util.shell import spawn_detached
from .base import Policy, StepResult


@dataclass(frozen=True)
class HealthProbe:
    ok: bool
    detail: str


def probe_health(url: str, timeout_s: float = 2.0) -> HealthProbe:
    try:
        resp = requests.get(url, timeout=timeout_s)
    except requests.RequestException as exc:
        return HealthProbe(False, f"unreachable: {exc.__class__.__name__}")
    try:
        body = resp.json()
    except ValueError:
        return HealthProbe(False, f"http {resp.status_code}: non-JSON body")
    status = body.get("status") if isinstance(body, dict) else None
    if status == "ok":
        return HealthProbe(True, "ok")
    return HealthProbe(False, f"http {resp.status_code}: status={status!r}")


def wait_for_health(
    url: str,
    *,
    interval_s: float,
    deadline_s: float,
    backoff: float = 1.0,
    max_interval_s: float = 2.0,
    request_timeout_s: float = 2.0,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> HealthProbe:
    """Probe until the first "ok" or until `deadline_s` has elapsed (at least one probe)."""
    end = clock() + deadline_s
    delay = interval_s
    attempts = 0
    while True:
        attempts += 1
        # request timeout never exceeds the time left (0.1s floor)
        budget = min(request_timeout_s, max(end - clock(), 0.1))
        last = probe_health(url, timeout_s=budget)
        if last.ok:
            return last
        remaining = end - clock()
        if remaining <= 0:
            return HealthProbe(False, f"{last.detail} after {attempts} attempts")
        sleep(min(delay, remaining))
        delay = min(delay * backoff, max_interval_s)


@dataclass
class ServiceLauncher:
    name: str = "worker"
    policy: Policy = Policy.ADVISORY
    clock: Callable[[], float] = field(default=time.monotonic)
    sleep: Callable[[float], None] = field(default=time.sleep)

    def _warn(self, cfg: SetupConfig, reason: str) -> StepResult:
        err = ServiceUnreachable(f"Worker may not have started ({reason}) - check logs at {cfg.logs_dir}/")
        return StepResult.warning(str(err), error=err)

    def run(self, cfg: SetupConfig, ctx: ExecContext) -> StepResult:
        if not cfg.start_service:
            return StepResult.skipped("Worker start disabled")
        bun = ctx.resolve("bun")
        if not bun:
            return self._warn(cfg, "bun not found")
        if not cfg.worker_script.is_file():
            return self._warn(cfg, f"missing {cfg.worker_script}")

        try:
            proc = spawn_detached(
                [bun, str(cfg.worker_script), "start"],
                cwd=cfg.marketplace_dir,
                log_path=cfg.logs_dir / "worker-launch.log",
                env=ctx.env(),
            )
        except OSError as exc:
            return self._warn(cfg, f"spawn failed: {exc}")
        logger.debug(f"Worker launcher pid {proc.pid}; polling {cfg.health_url}")

        probe = wait_for_health(
            cfg.health_url,
            interval_s=cfg.health_interval_s,
            deadline_s=cfg.health_deadline_s,
            backoff=cfg.health_backoff,
            max_interval_s=cfg.health_max_interval_s,
            request_timeout_s=cfg.health_request_timeout_s,
            clock=self.clock,
            sleep=self.sleep,
        )
        if not probe.ok:
            return self._warn(cfg, probe.detail)
        return StepResult.ok(f"Worker running on port {cfg.port}")
