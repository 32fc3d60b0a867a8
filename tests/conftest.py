from pathlib import Path

import pytest

from grit.core import initialize_workspace


@pytest.fixture(autouse=True)
def _no_worker_override(monkeypatch):
    monkeypatch.delenv("GRIT_MAX_WORKERS", raising=False)


@pytest.fixture
def make_checkout():
    """Create a directory that looks like a git checkout."""

    def _make(base: Path, name: str) -> Path:
        path = base / name
        (path / ".git").mkdir(parents=True)
        return path

    return _make


@pytest.fixture
def workspace(tmp_path):
    """An initialized grit workspace with no repositories."""
    root = tmp_path / "workspace"
    root.mkdir()
    initialize_workspace(root)
    return root.resolve()
