"""grit: Run git commands across a workspace of independent repositories."""

# Guard against deleted CWD (e.g. workspace removed by another process).
# rich crashes on import if os.getcwd() fails, so recover before any imports.
import os

try:
    os.getcwd()
except (OSError, PermissionError):
    os.chdir(os.path.expanduser("~"))

from ._version import __version__
from .core import (
    CommandOutcome,
    CommandRunner,
    Config,
    ConfigCorruptError,
    ConfigError,
    ConfigMissingError,
    ConfigStore,
    Dispatcher,
    ExecutionResult,
    ExecutionState,
    GritError,
    HistoryLog,
    LegacyConfigError,
    RepositoryNotFoundError,
    RepositoryRecord,
    RepositoryUnreachableError,
    SpawnError,
    add_all_repositories,
    add_repository,
    app,
    clean_config,
    convert_legacy_config,
    destroy_workspace,
    initialize_workspace,
    remove_repository,
)
from .formatters import OutputFormatter, render, render_block

__all__ = [
    # Version
    "__version__",
    # CLI
    "app",
    # Models
    "CommandOutcome",
    "Config",
    "ExecutionResult",
    "ExecutionState",
    "RepositoryRecord",
    # Errors
    "ConfigCorruptError",
    "ConfigError",
    "ConfigMissingError",
    "GritError",
    "LegacyConfigError",
    "RepositoryNotFoundError",
    "RepositoryUnreachableError",
    "SpawnError",
    # Operations
    "CommandRunner",
    "ConfigStore",
    "Dispatcher",
    "HistoryLog",
    # Functions
    "add_all_repositories",
    "add_repository",
    "clean_config",
    "convert_legacy_config",
    "destroy_workspace",
    "initialize_workspace",
    "remove_repository",
    # Formatters
    "OutputFormatter",
    "render",
    "render_block",
]
