import json
import shutil
from pathlib import Path
from unittest.mock import patch

import pytest

from claude_mem_setup.errors import BuildFailure, FilesystemError
from claude_mem_setup.steps.base import Outcome
from claude_mem_setup.steps.build_sync import BuildSyncPipeline, read_plugin_version
from conftest import FakeRunner


def _run(cfg, ctx, runner):
    with patch("claude_mem_setup.steps.build_sync.run_cmd", side_effect=runner):
        return BuildSyncPipeline().run(cfg, ctx)


def test_full_pipeline_order_and_sync(cfg, ctx):
    runner = FakeRunner()

    res = _run(cfg, ctx, runner)

    assert res.outcome == Outcome.OK
    assert "v6.5.0" in res.message
    assert [c[0] for c in runner.calls] == ["deps", "build", "marketplace-deps"]
    assert runner.calls[0][1] == ["npm", "install", "--silent"]
    assert runner.calls[1][1] == ["npm", "run", "build", "--silent"]
    assert runner.calls[0][2] == cfg.source_dir
    assert runner.calls[2][2] == cfg.marketplace_dir

    live = cfg.marketplace_dir
    assert (live / "package.json").exists()
    assert (live / "plugin" / "scripts" / "worker-service.cjs").exists()
    assert not (live / ".git").exists()
    assert json.loads((live / "marketplace.json").read_text()) == {"name": "thedotmack"}

    cache = cfg.cache_root / "6.5.0"
    assert (cache / ".claude-plugin" / "plugin.json").exists()
    assert (cache / "scripts" / "worker-service.cjs").exists()


def test_stale_files_removed_from_both_trees(cfg, ctx):
    (cfg.marketplace_dir / "old").mkdir(parents=True)
    (cfg.marketplace_dir / "old" / "removed.js").write_text("stale")
    (cfg.cache_root / "6.5.0").mkdir(parents=True)
    (cfg.cache_root / "6.5.0" / "leftover.txt").write_text("stale")

    _run(cfg, ctx, FakeRunner())

    assert not (cfg.marketplace_dir / "old").exists()
    assert not (cfg.cache_root / "6.5.0" / "leftover.txt").exists()


def test_build_failure_is_fatal_and_nothing_synced(cfg, ctx):
    runner = FakeRunner(fail_on="build")

    res = _run(cfg, ctx, runner)

    assert res.outcome == Outcome.FAILED
    assert isinstance(res.error, BuildFailure)
    assert "npm ERR! something broke" in res.message
    assert [c[0] for c in runner.calls] == ["deps", "build"]
    assert not cfg.marketplace_dir.exists()
    assert not cfg.cache_root.exists()


def test_dependency_install_failure_stops_before_build(cfg, ctx):
    runner = FakeRunner(fail_on="deps")

    res = _run(cfg, ctx, runner)

    assert res.outcome == Outcome.FAILED
    assert [c[0] for c in runner.calls] == ["deps"]


def test_marketplace_deps_failure_is_fatal(cfg, ctx):
    res = _run(cfg, ctx, FakeRunner(fail_on="marketplace-deps"))

    assert res.outcome == Outcome.FAILED
    assert isinstance(res.error, BuildFailure)


def test_missing_marketplace_manifest_is_fine(cfg, ctx):
    (cfg.source_dir / ".claude-plugin" / "marketplace.json").unlink()

    res = _run(cfg, ctx, FakeRunner())

    assert res.outcome == Outcome.OK
    assert not (cfg.marketplace_dir / "marketplace.json").exists()


def test_root_manifest_copy_failure_is_warning(cfg, ctx):
    real_copy = shutil.copy2

    def flaky_copy(src, dst, **kwargs):
        if Path(dst) == cfg.marketplace_dir / "marketplace.json":
            raise PermissionError("denied")
        return real_copy(src, dst, **kwargs)

    with patch.object(shutil, "copy2", side_effect=flaky_copy):
        res = _run(cfg, ctx, FakeRunner())

    assert res.outcome == Outcome.WARNING
    assert "marketplace.json not copied" in res.message
    assert (cfg.cache_root / "6.5.0" / "scripts" / "worker-service.cjs").exists()


def test_mirror_error_is_filesystem_failure(cfg, ctx):
    with patch("claude_mem_setup.steps.build_sync.mirror_tree", side_effect=OSError("disk full")):
        res = _run(cfg, ctx, FakeRunner())

    assert res.outcome == Outcome.FAILED
    assert isinstance(res.error, FilesystemError)


def test_read_plugin_version(source_tree):
    assert read_plugin_version(source_tree) == "6.5.0"


@pytest.mark.parametrize("content", ['{"name": "x"}', '{"version": "../../etc"}', "not json", '["6.5.0"]'])
def test_read_plugin_version_rejects_bad_manifest(source_tree, content):
    (source_tree / "plugin" / ".claude-plugin" / "plugin.json").write_text(content)

    with pytest.raises(BuildFailure):
        read_plugin_version(source_tree)


def test_read_plugin_version_missing_manifest(tmp_path):
    with pytest.raises(BuildFailure, match="no manifest"):
        read_plugin_version(tmp_path)
