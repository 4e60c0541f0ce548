"""Entry-point launch.

The extracted artifacts are made importable through a :class:`LoadContext`:
while it is active, ``sys.path`` holds only the standard library followed by
the load path, and the launcher's own package cannot be imported. The entry
point is resolved inside that context on the caller's thread, then called on
a dedicated :class:`LaunchThread`.

An exception escaping the entry point is not wrapped: the thread re-raises the
original object, so ``threading.excepthook`` sees exactly what the application
raised, and :meth:`LaunchThread.rethrow` can raise it again in another thread.
"""

from collections.abc import Callable, Iterable, Sequence
from contextlib import ExitStack
from dataclasses import dataclass
import importlib
import importlib.abc
import importlib.machinery
import inspect
import logging
import pathlib
import sys
import sysconfig
import threading
import typing

from python_unbundler.errors import EntryPointNotFoundError, EntryPointSignatureError

DEFAULT_THREAD_NAME: str = "AppMain"
DEFAULT_ATTRIBUTE: str = "main"
HIDDEN_PACKAGES: tuple[str, ...] = ("python_unbundler",)

_NO_RETURN_ANNOTATIONS: tuple[object, ...] = (
    inspect.Signature.empty,
    None,
    type(None),
    "None",
    typing.NoReturn,
    "NoReturn",
    "typing.NoReturn",
)

EntryPoint = Callable[[list[str]], None]


def platform_paths() -> tuple[str, ...]:
    """Return the ``sys.path`` entries that belong to the standard library.

    :returns: Stdlib directories (and the stdlib zip, if any), in ``sys.path`` order.
    """

    roots: list[pathlib.Path] = []
    for key in ("stdlib", "platstdlib"):
        value: str | None = sysconfig.get_path(key)
        if value is not None:
            roots.append(pathlib.Path(value))

    paths: list[str] = []
    for entry in sys.path:
        if len(entry) == 0:
            continue
        p = pathlib.Path(entry)
        if "site-packages" in p.parts or "dist-packages" in p.parts:
            continue
        if p.suffix == ".zip" and p.name.startswith("python") is True:
            paths.append(entry)
            continue
        for root in roots:
            if p == root or p.is_relative_to(root) is True:
                paths.append(entry)
                break
    return tuple(paths)


def _is_hidden(name: str, packages: frozenset[str]) -> bool:
    return name.partition(".")[0] in packages


class _HiddenPackageFinder(importlib.abc.MetaPathFinder):
    """Meta path finder that refuses to import the launcher's own packages."""

    _packages: frozenset[str]

    def __init__(self, packages: frozenset[str]) -> None:
        self._packages = packages

    def find_spec(  # type: ignore[override]
        self,
        fullname: str,
        path: object | None,
        target: object | None = None,
    ) -> importlib.machinery.ModuleSpec | None:
        if _is_hidden(fullname, self._packages) is True:
            raise ModuleNotFoundError(f"No module named {fullname!r}", name=fullname)
        return None


@dataclass(frozen=True, slots=True)
class _SavedState:
    path: list[str]
    meta_path: list[object]
    modules: frozenset[str]
    argv: list[str]


class LoadContext:
    """Import context scoped to a load path.

    Modules already imported stay shared, the way the standard library is shared
    with launched code. New imports are searched for only in the standard library
    and the load path.
    """

    _load_path: tuple[str, ...]
    _base_paths: tuple[str, ...]
    _hidden_packages: frozenset[str]
    _argv: list[str] | None
    _saved: _SavedState | None
    _hidden_modules: dict[str, object]

    def __init__(
        self,
        load_path: Iterable[pathlib.Path],
        *,
        argv: Sequence[str] | None = None,
        hidden_packages: Iterable[str] = HIDDEN_PACKAGES,
        base_paths: Sequence[str] | None = None,
    ) -> None:
        """Initialize the context.

        :param load_path: Application locations, searched after the standard library.
        :param argv: Optional replacement for ``sys.argv`` while active.
        :param hidden_packages: Top-level packages the application may not import.
        :param base_paths: Shared ``sys.path`` entries; defaults to :func:`platform_paths`.
        """

        self._load_path = tuple(str(p) for p in load_path)
        self._base_paths = tuple(base_paths) if base_paths is not None else platform_paths()
        self._hidden_packages = frozenset(hidden_packages)
        self._argv = list(argv) if argv is not None else None
        self._saved = None
        self._hidden_modules = {}

    @property
    def sys_path(self) -> list[str]:
        """The ``sys.path`` installed while the context is active."""

        return [*self._base_paths, *self._load_path]

    def __enter__(self) -> "LoadContext":
        if self._saved is not None:
            raise RuntimeError("LoadContext is already active")

        self._saved = _SavedState(
            path=list(sys.path),
            meta_path=list(sys.meta_path),
            modules=frozenset(sys.modules),
            argv=list(sys.argv),
        )

        self._hidden_modules = {
            name: mod for name, mod in sys.modules.items() if _is_hidden(name, self._hidden_packages) is True
        }
        for name in self._hidden_modules:
            del sys.modules[name]

        sys.meta_path.insert(0, _HiddenPackageFinder(self._hidden_packages))
        sys.path[:] = self.sys_path
        if self._argv is not None:
            sys.argv[:] = self._argv
        importlib.invalidate_caches()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        saved: _SavedState | None = self._saved
        if saved is None:
            return

        sys.path[:] = saved.path
        sys.meta_path[:] = saved.meta_path
        sys.argv[:] = saved.argv
        for name in list(sys.modules):
            if name not in saved.modules:
                del sys.modules[name]
        sys.modules.update(self._hidden_modules)
        importlib.invalidate_caches()

        self._hidden_modules = {}
        self._saved = None


def _module_is_missing(exc: ModuleNotFoundError, module_name: str) -> bool:
    """Check whether an import failure is about the entry module itself.

    :param exc: Import failure.
    :param module_name: Entry module name.
    :returns: ``True`` if the entry module (or one of its parents) does not exist.
    """

    if exc.name is None:
        return False
    return module_name == exc.name or module_name.startswith(f"{exc.name}.") is True


def _check_signature(name: str, obj: object) -> None:
    """Check that ``obj`` can be called as ``obj(args)`` and returns nothing.

    :param name: Entry-point name, for messages.
    :param obj: Resolved object.
    :raises EntryPointSignatureError: If the object does not fit.
    """

    if callable(obj) is False:
        raise EntryPointSignatureError(f"Entry point {name!r} is not callable ({type(obj).__name__})")

    try:
        sig: inspect.Signature = inspect.signature(obj)
    except (TypeError, ValueError):
        # Builtins without introspectable signatures are trusted.
        return

    try:
        sig.bind([])
    except TypeError as e:
        raise EntryPointSignatureError(
            f"Entry point {name!r} must accept a single argument list, got signature {sig}"
        ) from e

    if sig.return_annotation not in _NO_RETURN_ANNOTATIONS:
        raise EntryPointSignatureError(
            f"Entry point {name!r} must not return a value, got annotation {sig.return_annotation!r}"
        )


def resolve_entry_point(name: str) -> EntryPoint:
    """Import and return the entry point named ``name``.

    ``package.module`` resolves to the module's ``main``; ``package.module:attr``
    resolves to ``attr`` (which may be dotted). Exceptions raised while the module
    body executes propagate unchanged.

    :param name: Entry-point name.
    :returns: The callable to launch.
    :raises EntryPointNotFoundError: If the module or attribute does not exist.
    :raises EntryPointSignatureError: If the attribute cannot be called as ``entry(args)``.
    """

    module_name, sep, attr_path = name.partition(":")
    module_name = module_name.strip()
    attr_path = attr_path.strip() if len(sep) > 0 else DEFAULT_ATTRIBUTE
    if len(module_name) == 0 or module_name.startswith(".") is True or len(attr_path) == 0:
        raise EntryPointNotFoundError(f"Invalid entry point name {name!r}")

    try:
        module = importlib.import_module(module_name)
    except ModuleNotFoundError as e:
        if _module_is_missing(e, module_name) is True:
            raise EntryPointNotFoundError(f"Entry point module {module_name!r} not found") from e
        raise

    obj: object = module
    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise EntryPointNotFoundError(
                f"Entry point {name!r} not found: {module_name!r} has no attribute {attr_path!r}"
            ) from e

    _check_signature(name, obj)
    return typing.cast(EntryPoint, obj)


class LaunchThread(threading.Thread):
    """Thread running a resolved entry point.

    :ivar failure: The exception that escaped the entry point, if any.
    """

    failure: BaseException | None
    _entry: EntryPoint
    _args: list[str]
    _scope: ExitStack

    def __init__(self, *, entry: EntryPoint, args: Sequence[str], name: str, scope: ExitStack) -> None:
        """Initialize the thread.

        :param entry: Resolved entry point.
        :param args: Argument vector passed to the entry point.
        :param name: Thread name, for diagnostics.
        :param scope: Cleanup to run once the entry point finishes.
        """

        super().__init__(name=name, daemon=False)
        self.failure = None
        self._entry = entry
        self._args = list(args)
        self._scope = scope

    def run(self) -> None:
        try:
            self._entry(list(self._args))
        except BaseException as e:
            self.failure = e
            raise
        finally:
            self._scope.close()

    def rethrow(self) -> None:
        """Raise the entry point's failure, unchanged, in the calling thread.

        Does nothing if the entry point returned normally.
        """

        if self.failure is not None:
            raise self.failure

    def exit_status(self) -> int:
        """Map the entry point's outcome to a process exit status.

        A normal return is ``0``. A ``SystemExit`` keeps its integer code, with
        ``None`` meaning ``0`` and any other code meaning ``1``, as the
        interpreter does on exit. Any other failure is ``1``.

        :returns: Exit status.
        :raises RuntimeError: If the thread has not finished.
        """

        if self.is_alive() is True or self.ident is None:
            raise RuntimeError(f"Thread {self.name!r} has not finished")

        if self.failure is None:
            return 0
        if isinstance(self.failure, SystemExit) is True:
            code: object = self.failure.code
            if code is None:
                return 0
            if isinstance(code, int) is True:
                return code
            return 1
        return 1


def launch(
    entry_point: str | None,
    load_path: Iterable[pathlib.Path],
    args: Sequence[str],
    *,
    logger: logging.Logger | None = None,
    thread_name: str = DEFAULT_THREAD_NAME,
    scoped: bool = True,
    base_paths: Sequence[str] | None = None,
) -> LaunchThread | None:
    """Resolve ``entry_point`` in an isolated context and start it on a new thread.

    :param entry_point: Entry-point name; empty or ``None`` launches nothing.
    :param load_path: Extracted artifact locations.
    :param args: Argument vector passed to the entry point unchanged.
    :param logger: Optional logger for progress output.
    :param thread_name: Name of the launch thread.
    :param scoped: Restore the import state when the entry point finishes.
        With ``False`` the context stays installed for the rest of the process,
        which keeps imports working for threads the application leaves behind.
    :param base_paths: Shared ``sys.path`` entries; defaults to :func:`platform_paths`.
    :returns: The started thread, or ``None`` if there was nothing to launch.
    :raises EntryPointNotFoundError: If the entry point does not exist.
    :raises EntryPointSignatureError: If the entry point has the wrong shape.
    """

    if logger is None:
        logger = logging.getLogger("python_unbundler")

    if entry_point is None or len(entry_point.strip()) == 0:
        logger.info("python-unbundler: empty entry point specified, exiting")
        return None

    load_path = tuple(load_path)
    if logger.isEnabledFor(logging.DEBUG) is True:
        for p in load_path:
            logger.debug(f"python-unbundler: load path entry {p}")

    scope: ExitStack = ExitStack()
    scope.enter_context(
        LoadContext(load_path, argv=[entry_point, *args], base_paths=base_paths)
    )
    try:
        entry: EntryPoint = resolve_entry_point(entry_point)
    except BaseException:
        scope.close()
        raise

    if scoped is False:
        # Detach the context so the thread's cleanup leaves it installed.
        scope.pop_all()

    logger.info(f"python-unbundler: starting {entry_point}")
    thread: LaunchThread = LaunchThread(entry=entry, args=args, name=thread_name, scope=scope)
    try:
        thread.start()
    except BaseException:
        scope.close()
        raise
    return thread
