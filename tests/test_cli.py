from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from grit import core
from grit.core import CommandOutcome, CommandRunner, Config, ConfigStore, app

runner = CliRunner()


@pytest.fixture
def git_calls(monkeypatch):
    """Replace the git process with a fake that records (args, cwd)."""
    calls = []

    def fake_run(self, args, cwd):
        calls.append((list(args), Path(cwd)))
        return CommandOutcome(1 if "fail" in args else 0, f"ran {' '.join(args)}\n")

    monkeypatch.setattr(CommandRunner, "run", fake_run)
    return calls


@pytest.fixture
def populated(workspace, make_checkout):
    """Workspace with a reachable ``A`` and a missing ``B``."""
    make_checkout(workspace, "a")
    store = ConfigStore(workspace)
    store.config_file.write_text(
        yaml.safe_dump(
            {
                "root": str(workspace),
                "repositories": [{"name": "A", "path": "a"}, {"name": "B", "path": "b"}],
                "ignore_root": True,
            }
        )
    )
    return workspace


def _invoke(workspace, *args, **kwargs):
    return runner.invoke(app, ["-C", str(workspace), *args], **kwargs)


def test_init_creates_workspace(tmp_path):
    result = _invoke(tmp_path, "init")

    assert result.exit_code == 0
    assert (tmp_path / ".grit" / "config.yml").exists()
    assert (tmp_path / ".grit" / "history.log").read_text() == ""


def test_unknown_verb_runs_in_every_repository(populated, git_calls):
    result = _invoke(populated, "status")

    assert result.exit_code == 0
    assert git_calls == [(["status"], populated / "a")]
    assert "# A -- git status" in result.output
    assert "ran status" in result.output
    assert "# B -- git status" in result.output
    assert "Can't find repository" in result.output
    assert result.output.index("# A") < result.output.index("# B")


def test_git_options_are_passed_through(populated, git_calls):
    result = _invoke(populated, "log", "--oneline", "-n3")

    assert result.exit_code == 0
    assert git_calls == [(["log", "--oneline", "-n3"], populated / "a")]


def test_all_command_exits_zero_when_git_fails(populated, git_calls):
    result = _invoke(populated, "all", "fail")

    assert result.exit_code == 0
    assert "ran fail" in result.output


def test_all_without_command_fails(populated, git_calls):
    result = _invoke(populated, "all")

    assert result.exit_code == 1
    assert git_calls == []


def test_missing_config_exits_non_zero(tmp_path, git_calls):
    result = _invoke(tmp_path, "status")

    assert result.exit_code == 1
    assert "grit init" in result.output
    assert git_calls == []


def test_corrupt_config_exits_non_zero(workspace, git_calls):
    ConfigStore(workspace).config_file.write_text("root: [unclosed\n")

    result = _invoke(workspace, "status")

    assert result.exit_code == 1
    assert git_calls == []


def test_on_runs_in_one_repository(populated, git_calls):
    result = _invoke(populated, "on", "A", "status", "-s")

    assert result.exit_code == 0
    assert git_calls == [(["status", "-s"], populated / "a")]
    assert "# A -- git status -s" in result.output


def test_double_dash_reaches_git(populated, git_calls):
    result = _invoke(populated, "checkout", "--", "file.txt")

    assert result.exit_code == 0
    assert git_calls == [(["checkout", "--", "file.txt"], populated / "a")]


def test_all_keeps_double_dash(populated, git_calls):
    result = _invoke(populated, "all", "diff", "--stat", "--", "src")

    assert result.exit_code == 0
    assert git_calls == [(["diff", "--stat", "--", "src"], populated / "a")]


def test_on_keeps_double_dash(populated, git_calls):
    result = _invoke(populated, "on", "A", "log", "--", "x.py")

    assert result.exit_code == 0
    assert git_calls == [(["log", "--", "x.py"], populated / "a")]


def test_on_unknown_repository(populated, git_calls):
    result = _invoke(populated, "on", "C", "status")

    assert result.exit_code == 1
    assert "Can't find repository: C" in result.output
    assert git_calls == []


def test_on_unreachable_repository(populated, git_calls):
    result = _invoke(populated, "on", "B", "status")

    assert result.exit_code == 1
    assert "Can't find repository: B" in result.output
    assert git_calls == []


class SpyDispatcher(core.Dispatcher):
    pool_sizes: list = []

    def __init__(self, runner=None, max_workers=core.DEFAULT_MAX_WORKERS):
        super().__init__(runner, max_workers)
        SpyDispatcher.pool_sizes.append(max_workers)


@pytest.fixture
def pool_sizes(monkeypatch):
    SpyDispatcher.pool_sizes = []
    monkeypatch.setattr(core, "Dispatcher", SpyDispatcher)
    return SpyDispatcher.pool_sizes


def test_worker_pool_defaults_to_eight(populated, git_calls, pool_sizes):
    _invoke(populated, "status")

    assert pool_sizes == [8]


def test_worker_pool_from_environment(populated, git_calls, pool_sizes):
    _invoke(populated, "status", env={"GRIT_MAX_WORKERS": "3"})

    assert pool_sizes == [3]


def test_sequential_uses_one_worker(populated, git_calls, pool_sizes):
    _invoke(populated, "--sequential", "status", env={"GRIT_MAX_WORKERS": "3"})

    assert pool_sizes == [1]


def test_invalid_worker_count_is_rejected(populated, git_calls):
    result = _invoke(populated, "status", env={"GRIT_MAX_WORKERS": "0"})

    assert result.exit_code != 0
    assert git_calls == []


def test_history_records_invocations_except_init(tmp_path, git_calls):
    _invoke(tmp_path, "init")
    _invoke(tmp_path, "status")

    history = (tmp_path / ".grit" / "history.log").read_text().splitlines()

    assert len(history) == 1
    assert history[0].endswith("status")


def test_add_and_remove_repository(workspace, make_checkout):
    make_checkout(workspace, "web")
    store = ConfigStore(workspace)

    added = _invoke(workspace, "add-repository", "web")
    assert added.exit_code == 0
    assert [r.name for r in store.load().repositories] == ["web"]

    duplicate = _invoke(workspace, "add-repo", "web")
    assert duplicate.exit_code == 1

    removed = _invoke(workspace, "rm-repo", "web")
    assert removed.exit_code == 0
    assert store.load().repositories == ()


def test_add_all_and_clean_config(workspace, make_checkout):
    make_checkout(workspace, "one")
    two = make_checkout(workspace, "two")
    store = ConfigStore(workspace)

    assert _invoke(workspace, "add-all").exit_code == 0
    assert [r.name for r in store.load().repositories] == ["one", "two"]

    (two / ".git").rmdir()
    assert _invoke(workspace, "clean-config").exit_code == 0
    assert [r.name for r in store.load().repositories] == ["one"]


def test_add_all_with_unreadable_root_exits_non_zero(workspace):
    store = ConfigStore(workspace)
    store.save(Config(root=str(workspace / "gone")))

    result = _invoke(workspace, "add-all")

    assert result.exit_code == 1
    assert "Could not read workspace root" in result.output


def test_convert_config(workspace):
    store = ConfigStore(workspace)
    store.config_file.write_text(f":root: {workspace}\n:repositories: []\n:ignore_root: true\n")

    assert _invoke(workspace, "status").exit_code == 1
    assert _invoke(workspace, "convert-config").exit_code == 0
    assert store.load().root == str(workspace)


def test_config_command_shows_repositories(populated):
    result = _invoke(populated, "config")

    assert result.exit_code == 0
    assert "A" in result.output
    assert "Total: 2" in result.output


def test_destroy_requires_confirmation(workspace):
    declined = _invoke(workspace, "destroy", input="n\n")
    assert declined.exit_code != 0
    assert (workspace / ".grit").exists()

    confirmed = _invoke(workspace, "destroy", "--yes")
    assert confirmed.exit_code == 0
    assert not (workspace / ".grit").exists()


def test_reset_restores_empty_config(populated):
    assert _invoke(populated, "reset", "--yes").exit_code == 0
    assert ConfigStore(populated).load().repositories == ()


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert result.output.startswith("grit ")
