"""Launcher configuration.

The launcher passes every command-line argument through to the application,
so its own knobs come from the environment:

- ``PYTHON_UNBUNDLER_MAIN``: entry-point override. Set but empty means
  "extract only, launch nothing".
- ``PYTHON_UNBUNDLER_REPO_DIR``: output directory (defaults to the current
  directory).
- ``PYTHON_UNBUNDLER_RESOURCES``: alternate bundle, a directory or zip archive.
- ``PYTHON_UNBUNDLER_LOG_LEVEL``: ``debug``, ``info``, ``warning`` or ``error``.
"""

from collections.abc import Mapping
from dataclasses import dataclass
import logging
import pathlib

ENV_MAIN: str = "PYTHON_UNBUNDLER_MAIN"
ENV_REPO_DIR: str = "PYTHON_UNBUNDLER_REPO_DIR"
ENV_RESOURCES: str = "PYTHON_UNBUNDLER_RESOURCES"
ENV_LOG_LEVEL: str = "PYTHON_UNBUNDLER_LOG_LEVEL"


class ConfigError(ValueError):
    """Raised when an environment override cannot be understood."""


@dataclass(frozen=True, slots=True)
class LauncherConfig:
    """Resolved launcher configuration.

    :ivar entry_point_override: Entry-point name replacing the bundled one, or
        ``None`` to keep the bundled one. ``""`` disables the launch.
    :ivar output_dir: Directory artifacts are extracted under.
    :ivar resources_path: Alternate bundle location, or ``None`` for package data.
    :ivar log_level: ``logging`` level for the launcher's own output.
    """

    entry_point_override: str | None
    output_dir: pathlib.Path
    resources_path: pathlib.Path | None
    log_level: int


_LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def resolve_launcher_config(*, environ: Mapping[str, str]) -> LauncherConfig:
    """Resolve the launcher configuration from environment variables.

    :param environ: Environment mapping (usually ``os.environ``).
    :returns: Resolved config.
    :raises ConfigError: If a value is invalid.
    """

    repo_dir: str = environ.get(ENV_REPO_DIR, "")
    output_dir: pathlib.Path = pathlib.Path(repo_dir) if len(repo_dir) > 0 else pathlib.Path.cwd()

    resources: str = environ.get(ENV_RESOURCES, "")
    resources_path: pathlib.Path | None = pathlib.Path(resources) if len(resources) > 0 else None

    return LauncherConfig(
        entry_point_override=environ.get(ENV_MAIN),
        output_dir=output_dir,
        resources_path=resources_path,
        log_level=_resolve_log_level(environ.get(ENV_LOG_LEVEL)),
    )


def _resolve_log_level(value: str | None) -> int:
    """Resolve a log level name.

    :param value: Raw value, or ``None`` for the default.
    :returns: ``logging`` level.
    :raises ConfigError: If the name is unknown.
    """

    if value is None or len(value.strip()) == 0:
        return logging.INFO

    level: int | None = _LOG_LEVELS.get(value.strip().lower())
    if level is None:
        raise ConfigError(
            f"Invalid {ENV_LOG_LEVEL}={value!r}; expected one of {', '.join(_LOG_LEVELS)}."
        )
    return level
