import hashlib
import io
import logging
import pathlib
import sys
import zipfile

import pytest

from python_unbundler import cli, launcher


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def zip_modules(modules: dict[str, str]) -> bytes:
    """Build a zip archive (usable as a ``sys.path`` entry) from module sources."""

    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, source in sorted(modules.items()):
            zf.writestr(name, source)
    return buf.getvalue()


def build_bundle(
    *,
    entry_point: str | None,
    categories: dict[str, list[tuple[str, str, bytes]]],
) -> dict[str, bytes]:
    """Build bundle resources: ``{category: [(id, path, payload), ...]}``."""

    data: dict[str, bytes] = {}
    if entry_point is not None:
        data["entry-point"] = f"{entry_point}\n".encode("utf-8")
    for category, artifacts in categories.items():
        lines: list[str] = []
        for artifact_id, path, payload in artifacts:
            lines.append(f"{sha256_hex(payload)}\t{artifact_id}\t{path}")
            data[f"{category}/{path}"] = payload
        data[f"{category}.list"] = ("\n".join(lines) + "\n").encode("utf-8")
    return data


def write_bundle_dir(root: pathlib.Path, data: dict[str, bytes]) -> pathlib.Path:
    for name, payload in data.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(payload)
    return root


@pytest.fixture
def diag_logger(caplog: pytest.LogCaptureFixture) -> logging.Logger:
    """A propagating logger whose records land in ``caplog``."""

    caplog.set_level(logging.DEBUG, logger="tests.python_unbundler")
    return logging.getLogger("tests.python_unbundler")


@pytest.fixture(autouse=True)
def _reset_cli_logger():
    logger = logging.getLogger("python_unbundler")
    handlers = list(logger.handlers)
    propagate = logger.propagate
    level = logger.level
    yield
    logger.handlers[:] = handlers
    logger.propagate = propagate
    logger.setLevel(level)


@pytest.fixture
def scoped_cli_launch(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make the CLI restore the import state once the entry point finishes."""

    real_launch = launcher.launch

    def _launch(*args, **kwargs):
        kwargs["scoped"] = True
        return real_launch(*args, **kwargs)

    monkeypatch.setattr(cli, "launch", _launch)


@pytest.fixture
def thread_failures(monkeypatch: pytest.MonkeyPatch) -> list[BaseException]:
    """Collect exceptions delivered to ``threading.excepthook``."""

    seen: list[BaseException] = []

    def _hook(args) -> None:
        seen.append(args.exc_value)

    monkeypatch.setattr("threading.excepthook", _hook)
    return seen


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in (
        "PYTHON_UNBUNDLER_MAIN",
        "PYTHON_UNBUNDLER_REPO_DIR",
        "PYTHON_UNBUNDLER_RESOURCES",
        "PYTHON_UNBUNDLER_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def saved_sys_path():
    before = list(sys.path)
    yield before
    assert sys.path == before
