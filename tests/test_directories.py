from claude_mem_setup.steps.base import Outcome
from claude_mem_setup.steps.directories import DirectoryProvisioner


def test_creates_layout(cfg, ctx):
    res = DirectoryProvisioner().run(cfg, ctx)

    assert res.outcome == Outcome.OK
    for path in (
        cfg.home / ".claude" / "plugins" / "cache" / "thedotmack" / "claude-mem",
        cfg.home / ".claude" / "plugins" / "marketplaces" / "thedotmack",
        cfg.home / ".claude-mem" / "logs",
        cfg.home / ".claude-mem" / "vector-db",
    ):
        assert path.is_dir()


def test_existing_layout_is_untouched(cfg, ctx):
    DirectoryProvisioner().run(cfg, ctx)
    keep = cfg.vector_db_dir / "chroma.sqlite3"
    keep.write_text("data")

    res = DirectoryProvisioner().run(cfg, ctx)

    assert res.outcome == Outcome.ALREADY_SATISFIED
    assert keep.read_text() == "data"


def test_file_in_the_way_is_fatal_failure(cfg, ctx):
    cfg.data_dir.mkdir(parents=True)
    (cfg.data_dir / "logs").write_text("oops")

    res = DirectoryProvisioner().run(cfg, ctx)

    assert res.outcome == Outcome.FAILED
    assert "Cannot create" in res.message
    assert res.error.__class__.__name__ == "FilesystemError"
