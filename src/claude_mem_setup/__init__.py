"""claude_mem_setup package.

Idempotent local installer for the claude-mem plugin:

    import claude_mem_setup

    result = claude_mem_setup.install("/path/to/claude-mem")
    if result["exit_code"] != 0:
        ...
"""

from pathlib import Path
from typing import Optional

__version__ = "0.1.0"

from .config import SetupConfig, ToolDependency, load_config  # noqa: E402
from .orchestrator import Orchestrator, run_install  # noqa: E402


def install(
    source: str | Path | None = None,
    *,
    config_file: Optional[str | Path] = None,
    prewarm: Optional[bool] = None,
    start_service: Optional[bool] = None,
) -> dict:
    """Run the full installer. Returns a structured summary.

    Args:
        source: Plugin project root (default: current directory)
        config_file: Optional YAML overrides file
        prewarm: Pre-warm the vector database (None: config file or default)
        start_service: Start the worker service (None: config file or default)

    Returns:
        dict with keys: status, exit_code, steps, verify_errors, error
    """
    flags = {
        k: v for k, v in (("prewarm", prewarm), ("start_service", start_service)) if v is not None
    }
    cfg = load_config(
        source_dir=Path(source) if source else None,
        config_file=Path(config_file) if config_file else None,
        **flags,
    )
    report = run_install(cfg)
    return {
        "status": report.state.value,
        "exit_code": report.exit_code,
        "steps": report.outcomes(),
        "verify_errors": report.verify_errors,
        "error": report.abort_error,
    }


__all__ = [
    "install",
    "load_config",
    "run_install",
    "Orchestrator",
    "SetupConfig",
    "ToolDependency",
    "__version__",
]
