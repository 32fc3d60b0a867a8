"""
grit: Treat a directory of independent git checkouts as one workspace.

Keeps an ordered list of repositories in .grit/config.yml and proxies git
commands to all of them (or to a single one), collecting the output of each
run into bordered blocks in configuration order.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import stat
import subprocess
import tempfile
from collections.abc import Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Any, NoReturn

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from typer.core import TyperCommand, TyperGroup

from ._version import __version__
from .formatters import OutputFormatter

LOG = logging.getLogger(__name__)

WORKSPACE_DIR = ".grit"
CONFIG_FILE = "config.yml"
HISTORY_FILE = "history.log"
GIT_EXECUTABLE = "git"
GIT_MARKER = ".git"
ROOT_REPOSITORY_NAME = "Root"
DEFAULT_MAX_WORKERS = 8
MAX_WORKERS_ENV = "GRIT_MAX_WORKERS"

# =============================================================================
# Errors
# =============================================================================


class GritError(Exception):
    """Base class for all grit specific errors."""


class ConfigError(GritError):
    """Raised when the workspace configuration cannot be read or written."""


class ConfigMissingError(ConfigError):
    """Raised when the workspace has no configuration file."""


class ConfigCorruptError(ConfigError):
    """Raised when the configuration file does not match the expected schema."""


class LegacyConfigError(ConfigCorruptError):
    """Raised when the configuration still uses the legacy ``:key:`` format."""


class SpawnError(GritError):
    """Raised when the git binary cannot be launched at all."""


class RepositoryNotFoundError(GritError):
    """Raised when no repository with the requested name is configured."""


class RepositoryUnreachableError(GritError):
    """Raised when the only target of a command is missing on disk."""


class DuplicateRepositoryError(GritError):
    """Raised when a repository name is already registered."""


class NotACheckoutError(GritError):
    """Raised when a path does not contain a git checkout."""


# =============================================================================
# Domain Models
# =============================================================================


def is_checkout(path: Path) -> bool:
    """Check whether ``path`` is a directory holding a git marker."""
    return path.is_dir() and (path / GIT_MARKER).exists()


@dataclass(frozen=True)
class RepositoryRecord:
    """A named reference to a directory expected to hold a git checkout."""

    name: str
    path: str

    def to_dict(self) -> dict:
        return {"name": self.name, "path": self.path}


@dataclass(frozen=True)
class Config:
    """Snapshot of a workspace configuration.

    ``repositories`` holds only the persisted records. When ``include_root``
    is set, ``targets`` additionally places a synthetic ``Root`` record for
    the workspace root in front of them.
    """

    root: str
    repositories: tuple[RepositoryRecord, ...] = ()
    include_root: bool = False

    def __post_init__(self):
        object.__setattr__(self, "repositories", tuple(self.repositories))

    @property
    def targets(self) -> tuple[RepositoryRecord, ...]:
        """Records commands are dispatched to, in report order."""
        if self.include_root:
            return (RepositoryRecord(ROOT_REPOSITORY_NAME, self.root), *self.repositories)
        return self.repositories

    def find(self, name: str) -> RepositoryRecord | None:
        """Find a dispatch target by exact name."""
        for record in self.targets:
            if record.name == name:
                return record
        return None

    def resolve_path(self, record: RepositoryRecord) -> Path:
        """Resolve a record path; relative paths are taken from the root."""
        path = Path(record.path).expanduser()
        if path.is_absolute():
            return path
        return Path(self.root) / path

    def to_dict(self) -> dict:
        """Convert to the persisted mapping (never includes ``Root``)."""
        return {
            "root": self.root,
            "repositories": [r.to_dict() for r in self.repositories],
            "ignore_root": not self.include_root,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Config:
        """Build a config from a parsed document, validating the schema."""
        if not isinstance(data, dict):
            raise ConfigCorruptError("configuration must be a mapping")
        if any(isinstance(key, str) and key.startswith(":") for key in data):
            raise LegacyConfigError(
                "Could not load config. It uses the legacy format; "
                "run 'grit convert-config' to migrate it"
            )

        root = data.get("root")
        if not isinstance(root, str) or not root:
            raise ConfigCorruptError("'root' must be a non-empty string")

        entries = data.get("repositories") or []
        if not isinstance(entries, list):
            raise ConfigCorruptError("'repositories' must be a list")

        ignore_root = data.get("ignore_root")
        if ignore_root is not None and not isinstance(ignore_root, bool):
            raise ConfigCorruptError("'ignore_root' must be true or false")
        include_root = not ignore_root

        records: list[RepositoryRecord] = []
        seen: set[str] = set()
        for position, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise ConfigCorruptError(f"repository #{position} must be a mapping")
            name, path = entry.get("name"), entry.get("path")
            if not isinstance(name, str) or not isinstance(path, str):
                raise ConfigCorruptError(
                    f"repository #{position} needs string 'name' and 'path' fields"
                )
            if name == ROOT_REPOSITORY_NAME and include_root:
                raise ConfigCorruptError(
                    f"repository name {name!r} is reserved while the workspace root is included"
                )
            if name in seen:
                raise ConfigCorruptError(f"repository name {name!r} is listed twice")
            seen.add(name)
            records.append(RepositoryRecord(name=name, path=path))

        return cls(root=root, repositories=tuple(records), include_root=include_root)


class ExecutionState(StrEnum):
    """Terminal state of one repository in a dispatch."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED_TO_START = "failed_to_start"


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of running one command line against one repository."""

    repository_name: str
    path: Path
    command_line: str
    exit_status: int | None = None
    combined_output: str = ""
    reachable: bool = True
    spawn_error: str = ""

    @property
    def state(self) -> ExecutionState:
        if not self.reachable:
            return ExecutionState.SKIPPED
        if self.spawn_error:
            return ExecutionState.FAILED_TO_START
        return ExecutionState.COMPLETED

    @property
    def succeeded(self) -> bool:
        return self.state == ExecutionState.COMPLETED and self.exit_status == 0


# =============================================================================
# Config Store
# =============================================================================


class ConfigStore:
    """Read and write the configuration file of one workspace."""

    def __init__(self, workspace: Path):
        self.workspace = Path(workspace)

    @property
    def config_dir(self) -> Path:
        return self.workspace / WORKSPACE_DIR

    @property
    def config_file(self) -> Path:
        return self.config_dir / CONFIG_FILE

    @property
    def history_file(self) -> Path:
        return self.config_dir / HISTORY_FILE

    def exists(self) -> bool:
        return self.config_file.exists()

    def read_document(self) -> Any:
        """Parse the YAML document without schema validation."""
        try:
            with open(self.config_file, encoding="utf-8") as f:
                return yaml.safe_load(f)
        except FileNotFoundError as exc:
            raise ConfigMissingError(f"No configuration found at {self.config_file}") from exc
        except yaml.YAMLError as exc:
            raise ConfigCorruptError(f"Could not parse {self.config_file}: {exc}") from exc
        except OSError as exc:
            raise ConfigError(f"Could not read {self.config_file}: {exc}") from exc

    def load(self) -> Config:
        """Load and validate the workspace configuration."""
        config = Config.from_dict(self.read_document())
        LOG.debug("Loaded %d repositories from %s", len(config.repositories), self.config_file)
        return config

    def _file_mode(self) -> int:
        """Permission bits for a saved config: the current file's, else umask based."""
        try:
            return stat.S_IMODE(os.stat(self.config_file).st_mode)
        except FileNotFoundError:
            umask = os.umask(0)
            os.umask(umask)
            return 0o666 & ~umask

    def save(self, config: Config) -> None:
        """Replace the configuration file atomically."""
        text = yaml.safe_dump(config.to_dict(), sort_keys=False, default_flow_style=False)
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                dir=self.config_dir,
                prefix=".config-",
                suffix=".tmp",
                encoding="utf-8",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(text)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.chmod(tmp_name, self._file_mode())
            os.replace(tmp_name, self.config_file)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise ConfigError(f"Could not write {self.config_file}: {exc}") from exc
        LOG.debug("Saved %d repositories to %s", len(config.repositories), self.config_file)


def _strip_legacy_keys(value: Any) -> Any:
    """Drop the leading colon the legacy format put on every key."""
    if isinstance(value, dict):
        return {
            (k[1:] if isinstance(k, str) and k.startswith(":") else k): _strip_legacy_keys(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_strip_legacy_keys(v) for v in value]
    return value


def convert_legacy_config(store: ConfigStore) -> Config:
    """Rewrite a legacy ``:key:`` configuration in the canonical format."""
    config = Config.from_dict(_strip_legacy_keys(store.read_document()))
    store.save(config)
    return config


# =============================================================================
# History Log
# =============================================================================


class HistoryLog:
    """Append-only record of grit invocations in a workspace."""

    def __init__(self, path: Path):
        self.path = path

    def append(self, argv: Sequence[str]) -> None:
        stamp = datetime.now().strftime("[%Y-%m-%d %H:%M:%S]")
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(f"{stamp} grit {' '.join(argv)}\n")

    def read(self) -> str:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""

    def clear(self) -> None:
        self.path.write_text("", encoding="utf-8")


# =============================================================================
# Workspace Bootstrap
# =============================================================================


def initialize_workspace(location: Path) -> ConfigStore:
    """Create .grit/, its config and history log; existing files are kept."""
    location = Path(location).resolve()
    if not location.is_dir():
        raise GritError(f"Directory doesn't exist: {location}")

    store = ConfigStore(location)
    store.config_dir.mkdir(exist_ok=True)
    if not store.exists():
        store.save(Config(root=str(location)))
    if not store.history_file.exists():
        store.history_file.write_text("", encoding="utf-8")
    return store


def destroy_workspace(location: Path) -> bool:
    """Remove the .grit directory. Returns False when there was none."""
    config_dir = ConfigStore(location).config_dir
    if not config_dir.is_dir():
        return False
    shutil.rmtree(config_dir)
    return True


# =============================================================================
# Config Operations
# =============================================================================


def add_repository(config: Config, name: str, path: str | None = None) -> Config:
    """Register a checkout; the path defaults to the name."""
    record = RepositoryRecord(name=name, path=path or name)
    if config.find(name) is not None:
        raise DuplicateRepositoryError(f"A repository named {name!r} is already registered")
    if not is_checkout(config.resolve_path(record)):
        raise NotACheckoutError(
            f"The provided path {record.path} does not include a git repository"
        )
    return replace(config, repositories=(*config.repositories, record))


def add_all_repositories(config: Config) -> tuple[Config, list[RepositoryRecord]]:
    """Register every checkout directly under the workspace root."""
    known = {record.name for record in config.targets}
    added = []
    try:
        entries = sorted(Path(config.root).iterdir(), key=lambda p: p.name)
    except OSError as exc:
        raise GritError(f"Could not read workspace root {config.root}: {exc}") from exc
    for entry in entries:
        if entry.name == WORKSPACE_DIR or entry.name in known or not is_checkout(entry):
            continue
        added.append(RepositoryRecord(name=entry.name, path=entry.name))
    return replace(config, repositories=(*config.repositories, *added)), added


def remove_repository(config: Config, name: str) -> Config:
    """Unregister a repository by exact name."""
    remaining = tuple(r for r in config.repositories if r.name != name)
    if len(remaining) == len(config.repositories):
        raise RepositoryNotFoundError(f"Could not find repository: {name}")
    return replace(config, repositories=remaining)


def clean_config(config: Config) -> tuple[Config, list[RepositoryRecord]]:
    """Drop records whose checkout no longer exists."""
    kept, removed = [], []
    for record in config.repositories:
        if is_checkout(config.resolve_path(record)):
            kept.append(record)
        else:
            removed.append(record)
    return replace(config, repositories=tuple(kept)), removed


# =============================================================================
# Command Runner
# =============================================================================


@dataclass(frozen=True)
class CommandOutcome:
    """Exit status and output of one finished process.

    ``combined_output`` is standard output followed by standard error.
    """

    exit_status: int
    combined_output: str


class CommandRunner:
    """Run the git binary inside a repository working directory."""

    def __init__(self, executable: str = GIT_EXECUTABLE):
        self.executable = executable

    def run(self, args: Sequence[str], cwd: Path) -> CommandOutcome:
        """Run ``executable *args`` in ``cwd``; non-zero exits are not errors."""
        cwd = Path(cwd)
        if not cwd.is_dir():
            raise SpawnError(f"working directory does not exist: {cwd}")

        cmd = [self.executable, *args]
        LOG.debug("Running %s in %s", shlex.join(cmd), cwd)
        try:
            completed = subprocess.run(
                cmd,
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                errors="replace",
                check=False,
            )
        except OSError as exc:
            raise SpawnError(f"failed to execute {self.executable}: {exc}") from exc

        if completed.returncode != 0:
            LOG.debug("%s exited with %d in %s", self.executable, completed.returncode, cwd)
        return CommandOutcome(
            exit_status=completed.returncode,
            combined_output=completed.stdout + completed.stderr,
        )


# =============================================================================
# Dispatcher
# =============================================================================


class Dispatcher:
    """Run one command line against the repositories of a config."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be a positive integer, got {max_workers}")
        self.runner = runner or CommandRunner()
        self.max_workers = max_workers

    def _command_line(self, args: Sequence[str]) -> str:
        return shlex.join([self.runner.executable, *args])

    def _skipped(self, record: RepositoryRecord, path: Path, command_line: str) -> ExecutionResult:
        LOG.info("Skipping %s: no checkout at %s", record.name, path)
        return ExecutionResult(
            repository_name=record.name,
            path=path,
            command_line=command_line,
            reachable=False,
        )

    def _run(
        self,
        record: RepositoryRecord,
        path: Path,
        args: Sequence[str],
        command_line: str,
    ) -> ExecutionResult:
        outcome = self.runner.run(args, path)
        return ExecutionResult(
            repository_name=record.name,
            path=path,
            command_line=command_line,
            exit_status=outcome.exit_status,
            combined_output=outcome.combined_output,
        )

    def _run_recording_failure(
        self,
        record: RepositoryRecord,
        path: Path,
        args: Sequence[str],
        command_line: str,
    ) -> ExecutionResult:
        try:
            return self._run(record, path, args, command_line)
        except SpawnError as e:
            LOG.warning("Could not run command in %s: %s", record.name, e)
            return ExecutionResult(
                repository_name=record.name,
                path=path,
                command_line=command_line,
                spawn_error=str(e),
            )

    @staticmethod
    def _ready_until(results: list[ExecutionResult | None], start: int) -> int:
        end = start
        while end < len(results) and results[end] is not None:
            end += 1
        return end

    def iter_dispatch_all(self, config: Config, args: Sequence[str]) -> Iterator[ExecutionResult]:
        """Run on every target, yielding results in config order.

        A result is yielded as soon as it and every result before it are
        known, so output streams while slower repositories are still running.
        """
        args = list(args)
        command_line = self._command_line(args)
        targets = config.targets
        results: list[ExecutionResult | None] = [None] * len(targets)
        emitted = 0

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {}
            for index, record in enumerate(targets):
                path = config.resolve_path(record)
                if is_checkout(path):
                    future = executor.submit(
                        self._run_recording_failure, record, path, args, command_line
                    )
                    futures[future] = index
                else:
                    results[index] = self._skipped(record, path, command_line)
            LOG.debug(
                "Dispatched %d of %d repositories to %d workers",
                len(futures),
                len(targets),
                self.max_workers,
            )

            ready = self._ready_until(results, emitted)
            yield from results[emitted:ready]
            emitted = ready

            for future in as_completed(futures):
                results[futures[future]] = future.result()
                ready = self._ready_until(results, emitted)
                yield from results[emitted:ready]
                emitted = ready

    def dispatch_all(self, config: Config, args: Sequence[str]) -> list[ExecutionResult]:
        """Run on every target and return the results in config order."""
        return list(self.iter_dispatch_all(config, args))

    def dispatch_one(self, config: Config, name: str, args: Sequence[str]) -> ExecutionResult:
        """Run on the target named ``name``.

        An unreachable target yields a skipped result; a spawn failure
        propagates since there is nothing else to run.
        """
        record = config.find(name)
        if record is None:
            raise RepositoryNotFoundError(f"Can't find repository: {name}")

        args = list(args)
        command_line = self._command_line(args)
        path = config.resolve_path(record)
        if not is_checkout(path):
            return self._skipped(record, path, command_line)
        return self._run(record, path, args, command_line)


# =============================================================================
# Logging
# =============================================================================


def configure_logging(verbosity: int) -> None:
    """
    Configure the root logger based on a verbosity count.

    verbosity == 0 -> WARNING
    verbosity == 1 -> INFO
    verbosity >= 2 -> DEBUG
    """
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_time=False, show_path=False)],
        force=True,
    )


# =============================================================================
# CLI Application
# =============================================================================

RUN_ALL_COMMAND = "all"
# Option parsing stops at the first git word so a bare "--" reaches git.
PASSTHROUGH_SETTINGS = {"ignore_unknown_options": True, "allow_interspersed_args": False}

err_console = Console(stderr=True)


class WorkspaceGroup(TyperGroup):
    """Command group that sends unknown verbs to ``all`` as git commands."""

    def parse_args(self, ctx: typer.Context, args: list[str]) -> list[str]:
        ctx.meta["grit.argv"] = list(args)
        return super().parse_args(ctx, args)

    def resolve_command(
        self, ctx: typer.Context, args: list[str]
    ) -> tuple[str | None, TyperCommand | None, list[str]]:
        if args and not args[0].startswith("-") and self.get_command(ctx, args[0]) is None:
            return RUN_ALL_COMMAND, self.get_command(ctx, RUN_ALL_COMMAND), list(args)
        return super().resolve_command(ctx, args)


@dataclass
class WorkspaceSettings:
    """Per-invocation settings collected by the group callback."""

    directory: Path
    max_workers: int = DEFAULT_MAX_WORKERS
    store: ConfigStore = field(init=False)

    def __post_init__(self):
        self.store = ConfigStore(self.directory)


app = typer.Typer(
    name="grit",
    help="Run git commands across every repository of a workspace.",
    no_args_is_help=True,
    cls=WorkspaceGroup,
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        print(f"grit {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    directory: Path = typer.Option(
        None,
        "--directory",
        "-C",
        help="Workspace directory (default: current directory)",
    ),
    workers: int = typer.Option(
        DEFAULT_MAX_WORKERS,
        "--workers",
        "-w",
        envvar=MAX_WORKERS_ENV,
        min=1,
        help="Maximum number of git processes run at once",
    ),
    sequential: bool = typer.Option(
        False,
        "--sequential",
        "-s",
        help="Run one repository at a time",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase log verbosity (can be repeated)",
    ),
):
    """grit: Run git commands across every repository of a workspace."""
    configure_logging(verbose)
    settings = WorkspaceSettings(
        directory=(directory or Path.cwd()).resolve(),
        max_workers=1 if sequential else workers,
    )
    ctx.obj = settings

    if ctx.invoked_subcommand != "init" and settings.store.config_dir.is_dir():
        HistoryLog(settings.store.history_file).append(ctx.meta.get("grit.argv", []))


def get_console_and_formatter() -> tuple[Console, OutputFormatter]:
    """Create console and formatter."""
    console = Console()
    formatter = OutputFormatter(console)
    return console, formatter


def abort(message: str) -> NoReturn:
    """Print an error and exit non-zero."""
    err_console.print(f"[red]Error: {escape(message)}[/]", soft_wrap=True)
    raise typer.Exit(1)


@contextmanager
def reported_errors() -> Iterator[None]:
    """Turn grit errors into a message on stderr and exit status 1."""
    try:
        yield
    except ConfigMissingError as e:
        abort(f"{e}. Are you sure this is a grit directory? Run 'grit init' first.")
    except GritError as e:
        abort(str(e))


def _log_summary(results: Iterable[ExecutionResult]) -> None:
    results = list(results)
    skipped = sum(1 for r in results if r.state == ExecutionState.SKIPPED)
    not_started = sum(1 for r in results if r.state == ExecutionState.FAILED_TO_START)
    failed = sum(1 for r in results if r.state == ExecutionState.COMPLETED and not r.succeeded)
    LOG.info(
        "Ran in %d repositories: %d failed, %d skipped, %d could not start",
        len(results),
        failed,
        skipped,
        not_started,
    )


@app.command(name=RUN_ALL_COMMAND, context_settings=PASSTHROUGH_SETTINGS, add_help_option=False)
def run_all(
    ctx: typer.Context,
    git_args: list[str] = typer.Argument(None, help="git command and its arguments"),
):
    """Run a git command in every repository (also used for unknown verbs)."""
    settings: WorkspaceSettings = ctx.obj
    _, formatter = get_console_and_formatter()
    if not git_args:
        abort("No git command given")

    with reported_errors():
        config = settings.store.load()
        dispatcher = Dispatcher(max_workers=settings.max_workers)
        results = formatter.print_results(dispatcher.iter_dispatch_all(config, git_args))
    _log_summary(results)


@app.command(context_settings=PASSTHROUGH_SETTINGS)
def on(
    ctx: typer.Context,
    repository: str = typer.Argument(..., help="Name of the repository"),
    git_args: list[str] = typer.Argument(None, help="git command and its arguments"),
):
    """Run a git command in one repository."""
    settings: WorkspaceSettings = ctx.obj
    _, formatter = get_console_and_formatter()
    if not git_args:
        abort("No git command given")

    with reported_errors():
        config = settings.store.load()
        result = Dispatcher(max_workers=1).dispatch_one(config, repository, git_args)
        if not result.reachable:
            raise RepositoryUnreachableError(f"Can't find repository: {repository} ({result.path})")
        formatter.print_results([result])


@app.command()
def init(ctx: typer.Context):
    """Create the .grit directory with an empty configuration."""
    settings: WorkspaceSettings = ctx.obj
    console, _ = get_console_and_formatter()
    with reported_errors():
        store = initialize_workspace(settings.directory)
    console.print(f"Initialized grit workspace in [bold]{escape(str(store.workspace))}[/]")


@app.command(name="add-repository")
def add_repository_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the repository"),
    path: str = typer.Argument(None, help="Path of the checkout (default: the name)"),
):
    """Add a repository to the configuration."""
    settings: WorkspaceSettings = ctx.obj
    console, _ = get_console_and_formatter()
    with reported_errors():
        config = add_repository(settings.store.load(), name, path)
        settings.store.save(config)
    console.print(f"Added [cyan]{escape(name)}[/] located at {escape(path or name)}")


app.command(name="add-repo", hidden=True)(add_repository_command)


@app.command(name="add-all")
def add_all_command(ctx: typer.Context):
    """Add every checkout found directly under the workspace root."""
    settings: WorkspaceSettings = ctx.obj
    console, _ = get_console_and_formatter()
    with reported_errors():
        config, added = add_all_repositories(settings.store.load())
        settings.store.save(config)
    for record in added:
        console.print(f"Added [cyan]{escape(record.name)}[/]")
    console.print(f"[bold]{len(added)}[/] repositories added")


@app.command(name="remove-repository")
def remove_repository_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the repository"),
):
    """Remove a repository from the configuration."""
    settings: WorkspaceSettings = ctx.obj
    console, _ = get_console_and_formatter()
    with reported_errors():
        config = remove_repository(settings.store.load(), name)
        settings.store.save(config)
    console.print(f"Removed repository [cyan]{escape(name)}[/] from grit")


for _alias in ("remove-repo", "rm-repository", "rm-repo"):
    app.command(name=_alias, hidden=True)(remove_repository_command)


@app.command(name="config")
def show_config(ctx: typer.Context):
    """Show the current configuration."""
    settings: WorkspaceSettings = ctx.obj
    _, formatter = get_console_and_formatter()
    with reported_errors():
        config = settings.store.load()
    formatter.print_config(config, [is_checkout(config.resolve_path(r)) for r in config.targets])


@app.command(name="clean-config")
def clean_config_command(ctx: typer.Context):
    """Remove repositories whose checkout is missing."""
    settings: WorkspaceSettings = ctx.obj
    console, _ = get_console_and_formatter()
    with reported_errors():
        config, removed = clean_config(settings.store.load())
        settings.store.save(config)
    for record in removed:
        console.print(f"Removed [cyan]{escape(record.name)}[/] ({escape(record.path)})")
    console.print(f"[bold]{len(removed)}[/] repositories removed")


@app.command(name="convert-config")
def convert_config_command(ctx: typer.Context):
    """Migrate a legacy configuration file to the current format."""
    settings: WorkspaceSettings = ctx.obj
    console, _ = get_console_and_formatter()
    with reported_errors():
        config = convert_legacy_config(settings.store)
    console.print(f"Converted configuration with {len(config.repositories)} repositories")


@app.command()
def history(ctx: typer.Context):
    """Show the history of grit commands run in this workspace."""
    settings: WorkspaceSettings = ctx.obj
    _, formatter = get_console_and_formatter()
    formatter.print_history(HistoryLog(settings.store.history_file).read())


@app.command(name="clear-history")
def clear_history(ctx: typer.Context):
    """Clear the history log."""
    settings: WorkspaceSettings = ctx.obj
    if not settings.store.config_dir.is_dir():
        abort(f"{settings.directory} is not a grit project")
    HistoryLog(settings.store.history_file).clear()


@app.command()
def destroy(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete the grit setup (config and history) of this workspace."""
    settings: WorkspaceSettings = ctx.obj
    console, _ = get_console_and_formatter()
    if not settings.store.config_dir.is_dir():
        abort(f"{settings.directory} is not a grit project")
    if not yes:
        typer.confirm("Are you sure?", abort=True)
    destroy_workspace(settings.directory)
    console.print(f"Grit configuration files have been removed from {escape(str(settings.directory))}")


@app.command()
def reset(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Reset the workspace to an empty configuration."""
    settings: WorkspaceSettings = ctx.obj
    console, _ = get_console_and_formatter()
    if not yes:
        typer.confirm("Are you sure?", abort=True)
    destroy_workspace(settings.directory)
    with reported_errors():
        initialize_workspace(settings.directory)
    console.print("Workspace configuration reset")


@app.command()
def version():
    """Show version."""
    print(f"grit {__version__}")


@app.command(name="help")
def show_help(ctx: typer.Context):
    """Show the list of commands."""
    typer.echo(ctx.parent.get_help())
