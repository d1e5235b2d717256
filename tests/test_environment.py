from claude_mem_setup.config import PATH_LINE
from claude_mem_setup.steps.base import Outcome
from claude_mem_setup.steps.environment import EnvironmentConfigurator


def test_appends_line_to_existing_profiles_only(cfg, ctx, home):
    (home / ".bashrc").write_text("alias ll='ls -l'\n")

    res = EnvironmentConfigurator().run(cfg, ctx)

    assert res.outcome == Outcome.OK
    assert (home / ".bashrc").read_text() == f"alias ll='ls -l'\n{PATH_LINE}\n"
    assert not (home / ".zshrc").exists()
    assert not (home / ".profile").exists()


def test_adds_newline_when_profile_lacks_trailing_newline(cfg, ctx, home):
    (home / ".profile").write_text("umask 022")

    EnvironmentConfigurator().run(cfg, ctx)

    assert (home / ".profile").read_text() == f"umask 022\n{PATH_LINE}\n"


def test_marker_present_leaves_profile_byte_identical(cfg, ctx, home):
    content = b'PATH=$PATH:~/.bun/bin   # hand-written, odd format\n'
    (home / ".zshrc").write_bytes(content)

    res = EnvironmentConfigurator().run(cfg, ctx)

    assert res.outcome == Outcome.ALREADY_SATISFIED
    assert (home / ".zshrc").read_bytes() == content


def test_second_run_is_noop(cfg, ctx, home):
    (home / ".bashrc").write_text("")
    EnvironmentConfigurator().run(cfg, ctx)
    first = (home / ".bashrc").read_bytes()

    res = EnvironmentConfigurator().run(cfg, ctx)

    assert res.outcome == Outcome.ALREADY_SATISFIED
    assert (home / ".bashrc").read_bytes() == first
    assert first == f"{PATH_LINE}\n".encode()


def test_no_profiles_is_skipped(cfg, ctx):
    res = EnvironmentConfigurator().run(cfg, ctx)

    assert res.outcome == Outcome.SKIPPED


def test_unwritable_profile_is_warning(cfg, ctx, home):
    profile = home / ".bashrc"
    profile.write_text("# rc\n")
    profile.chmod(0o444)
    try:
        res = EnvironmentConfigurator().run(cfg, ctx)
    finally:
        profile.chmod(0o644)

    # root can write read-only files; either way the step must not fail
    assert res.outcome in (Outcome.WARNING, Outcome.OK)
