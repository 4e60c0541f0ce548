"""Command line entry point for python-unbundler."""

import logging
import os
import sys

from python_unbundler.bootstrap import BootstrapResult, prepare
from python_unbundler.config import ConfigError, LauncherConfig, resolve_launcher_config
from python_unbundler.errors import LaunchError
from python_unbundler.launcher import LaunchThread, launch
from python_unbundler.resources import open_resources


def _configure_logging(*, level: int) -> logging.Logger:
    """Configure the python-unbundler logger.

    :param level: ``logging`` level.
    :returns: Configured logger.
    """

    logger: logging.Logger = logging.getLogger("python_unbundler")
    logger.setLevel(level)
    logger.propagate = False

    handler: logging.Handler = logging.StreamHandler(stream=sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger.handlers.clear()
    logger.addHandler(handler)
    return logger


def main(argv: list[str] | None = None) -> int:
    """Extract the bundled artifacts and run the bundled entry point.

    Every argument is passed to the entry point unchanged; the launcher itself
    is configured through ``PYTHON_UNBUNDLER_*`` environment variables.

    :param argv: Optional argv list (excluding program name).
    :returns: Exit code.
    """

    if argv is None:
        argv = sys.argv[1:]

    try:
        config: LauncherConfig = resolve_launcher_config(environ=os.environ)
    except ConfigError as e:
        _configure_logging(level=logging.INFO).error(f"python-unbundler: {e}")
        return 1

    logger: logging.Logger = _configure_logging(level=config.log_level)

    try:
        with open_resources(config.resources_path) as resources:
            result: BootstrapResult = prepare(
                resources=resources,
                output_dir=config.output_dir,
                entry_point_override=config.entry_point_override,
                logger=logger,
            )
    except Exception as e:
        logger.exception(f"python-unbundler: {e}")
        logger.error("python-unbundler: failed to extract bundled artifacts, exiting")
        return 1

    try:
        thread: LaunchThread | None = launch(
            result.entry_point,
            result.load_path,
            argv,
            logger=logger,
            scoped=False,
        )
    except LaunchError as e:
        logger.exception(f"python-unbundler: {e}")
        return 1

    if thread is None:
        return 0

    thread.join()
    failure: BaseException | None = thread.failure
    if isinstance(failure, SystemExit) is True and isinstance(failure.code, (int, type(None))) is False:
        # threading.excepthook skips SystemExit, so a message code is printed here.
        logger.error(f"{failure.code}")
    return thread.exit_status()
