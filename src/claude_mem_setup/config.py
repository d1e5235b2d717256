from __future__ import annotations

"""Configuration models.

CONTRACT
- Inputs: HOME / PATH environment, project source tree, optional YAML overrides file
- Outputs (required):
  - Validated SetupConfig with every persisted path derived from `home`
- Invariants:
  - All persisted paths live under `home` (~/.claude/plugins, ~/.claude-mem)
  - Defaults reproduce the reference installer (bun + uv, port 37777)
- Failure:
  - Raises ValueError on invalid overrides schema
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml


@dataclass(frozen=True)
class ToolDependency:
    name: str
    command: str
    version_args: tuple[str, ...]
    install_script: str
    path_segment: str  # relative to home

    def segment_path(self, home: Path) -> Path:
        return home / self.path_segment


DEFAULT_TOOLS: tuple[ToolDependency, ...] = (
    ToolDependency(
        name="bun",
        command="bun",
        version_args=("bun", "--version"),
        install_script="curl -fsSL https://bun.sh/install | bash",
        path_segment=".bun/bin",
    ),
    ToolDependency(
        name="uv",
        command="uvx",
        version_args=("uv", "--version"),
        install_script="curl -LsSf https://astral.sh/uv/install.sh | sh",
        path_segment=".local/bin",
    ),
)

PROFILE_NAMES = (".bashrc", ".profile", ".zshrc")
PATH_MARKER = ".bun/bin"
PATH_LINE = 'export PATH="$HOME/.bun/bin:$HOME/.local/bin:$PATH"'


@dataclass(frozen=True)
class SetupConfig:
    home: Path
    source_dir: Path
    vendor: str = "thedotmack"
    plugin: str = "claude-mem"
    marketplace_id: str = "thedotmack"
    host: str = "127.0.0.1"
    port: int = 37777
    tools: tuple[ToolDependency, ...] = DEFAULT_TOOLS
    install_command: tuple[str, ...] = ("npm", "install", "--silent")
    build_command: tuple[str, ...] = ("npm", "run", "build", "--silent")
    command_timeout_s: int = 900
    prewarm: bool = True
    prewarm_python: str = "3.13"
    prewarm_grace_s: float = 10.0
    prewarm_timeout_s: int = 30
    start_service: bool = True
    health_interval_s: float = 0.5
    health_backoff: float = 1.0
    health_max_interval_s: float = 2.0
    health_deadline_s: float = 15.0
    health_request_timeout_s: float = 2.0

    # ~/.claude/plugins
    @property
    def plugins_dir(self) -> Path:
        return self.home / ".claude" / "plugins"

    @property
    def marketplace_dir(self) -> Path:
        return self.plugins_dir / "marketplaces" / self.vendor

    @property
    def cache_root(self) -> Path:
        return self.plugins_dir / "cache" / self.vendor / self.plugin

    @property
    def registry_path(self) -> Path:
        return self.plugins_dir / "known_marketplaces.json"

    # ~/.claude-mem
    @property
    def data_dir(self) -> Path:
        return self.home / ".claude-mem"

    @property
    def logs_dir(self) -> Path:
        return self.data_dir / "logs"

    @property
    def vector_db_dir(self) -> Path:
        return self.data_dir / "vector-db"

    @property
    def db_path(self) -> Path:
        return self.data_dir / "claude-mem.db"

    @property
    def command_logs_dir(self) -> Path:
        return self.logs_dir / "install"

    @property
    def profiles(self) -> list[Path]:
        return [self.home / name for name in PROFILE_NAMES]

    @property
    def worker_script(self) -> Path:
        return self.marketplace_dir / "plugin" / "scripts" / "worker-service.cjs"

    @property
    def health_url(self) -> str:
        return f"http://{self.host}:{self.port}/api/health"

    @property
    def web_url(self) -> str:
        return f"http://localhost:{self.port}"

    def layout(self) -> list[Path]:
        return [self.cache_root, self.marketplace_dir, self.logs_dir, self.vector_db_dir]


def home_from_env() -> Path:
    home = os.environ.get("HOME")
    return Path(home) if home else Path.home()


OVERRIDES_SCHEMA = {
    "type": "object",
    "properties": {
        "vendor": {"type": "string", "pattern": "^[A-Za-z0-9][A-Za-z0-9_.-]*$"},
        "plugin": {"type": "string", "pattern": "^[A-Za-z0-9][A-Za-z0-9_.-]*$"},
        "marketplace_id": {"type": "string", "minLength": 1},
        "host": {"type": "string"},
        "port": {"type": "integer", "minimum": 1, "maximum": 65535},
        "install_command": {"type": "array", "items": {"type": "string"}, "minItems": 1},
        "build_command": {"type": "array", "items": {"type": "string"}, "minItems": 1},
        "command_timeout_s": {"type": "integer", "minimum": 1},
        "prewarm": {"type": "boolean"},
        "prewarm_python": {"type": "string"},
        "prewarm_grace_s": {"type": "number", "minimum": 0},
        "prewarm_timeout_s": {"type": "integer", "minimum": 1},
        "start_service": {"type": "boolean"},
        "health": {
            "type": "object",
            "properties": {
                "interval_s": {"type": "number", "exclusiveMinimum": 0},
                "backoff": {"type": "number", "minimum": 1},
                "max_interval_s": {"type": "number", "exclusiveMinimum": 0},
                "deadline_s": {"type": "number", "minimum": 0},
                "request_timeout_s": {"type": "number", "exclusiveMinimum": 0},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}

_TUPLE_KEYS = ("install_command", "build_command")


def load_overrides(path: Path, base: SetupConfig) -> SetupConfig:
    import jsonschema  # lazy import

    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    try:
        jsonschema.validate(instance=data, schema=OVERRIDES_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ValueError(f"Invalid installer config {path}: {e.message}") from e

    changes: dict[str, Any] = {}
    for key, value in data.items():
        if key == "health":
            continue
        changes[key] = tuple(value) if key in _TUPLE_KEYS else value
    for key, value in (data.get("health") or {}).items():
        changes[f"health_{key}"] = value
    return replace(base, **changes)


def load_config(
    source_dir: Path | None = None,
    config_file: Path | None = None,
    **flags: Any,
) -> SetupConfig:
    cfg = SetupConfig(home=home_from_env(), source_dir=(source_dir or Path.cwd()).resolve())
    if config_file is not None:
        cfg = load_overrides(config_file, cfg)
    if flags:
        cfg = replace(cfg, **flags)
    return cfg
