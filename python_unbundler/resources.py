"""Read-only access to the embedded resource bundle.

A bundle is a tree of named resources (``/``-separated names). The launcher
never reaches for ambient global state to find it: callers build a
:class:`ResourceBundle` and pass it to the manifest reader and the extractor.

- :class:`TraversableResources` serves any ``importlib.resources`` Traversable
  (package data, a directory, or a ``zipfile.Path``).
- :class:`MemoryResources` serves an in-memory mapping.
"""

import abc
import importlib.resources
import io
import pathlib
import zipfile
from collections.abc import Mapping
from importlib.resources.abc import Traversable
from typing import BinaryIO

from python_unbundler.errors import ArtifactIOError, MissingResourceError

# Package-data directory holding the default bundle.
DEFAULT_PACKAGE: str = "python_unbundler"
DEFAULT_ROOT: str = "bundle"


class ResourceBundle(abc.ABC):
    """A read-only set of named binary resources."""

    @abc.abstractmethod
    def exists(self, name: str) -> bool:
        """Return whether a resource exists.

        :param name: ``/``-separated resource name.
        :returns: ``True`` if the resource can be opened.
        """

    @abc.abstractmethod
    def _open(self, name: str) -> BinaryIO:
        """Open an existing resource for binary reading."""

    def open(self, name: str) -> BinaryIO:
        """Open a resource for binary reading.

        :param name: ``/``-separated resource name.
        :returns: A binary stream; the caller closes it.
        :raises MissingResourceError: If the resource does not exist.
        """

        if self.exists(name) is False:
            raise MissingResourceError(name)
        return self._open(name)

    def read_text(self, name: str) -> str:
        """Read a whole resource as UTF-8 text.

        :param name: ``/``-separated resource name.
        :returns: Decoded text.
        :raises MissingResourceError: If the resource does not exist.
        :raises ArtifactIOError: If the resource cannot be read or is not UTF-8.
        """

        try:
            with self.open(name) as f:
                data: bytes = f.read()
        except (OSError, zipfile.BadZipFile) as e:
            raise ArtifactIOError(f"Failed to read resource {name!r}") from e
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ArtifactIOError(f"Resource {name!r} is not valid UTF-8") from e

    def close(self) -> None:
        """Release any handle held by the bundle."""

    def __enter__(self) -> "ResourceBundle":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()


def _split_name(name: str) -> list[str]:
    parts: list[str] = [p for p in name.split("/") if len(p) > 0]
    if len(parts) == 0:
        raise MissingResourceError(name)
    return parts


class TraversableResources(ResourceBundle):
    """Resources rooted at an ``importlib.resources`` Traversable."""

    _root: Traversable
    _archive: zipfile.ZipFile | None

    def __init__(self, root: Traversable, *, archive: zipfile.ZipFile | None = None) -> None:
        """Initialize the bundle.

        :param root: Traversable acting as the bundle root.
        :param archive: Optional zip archive backing ``root``; closed by :meth:`close`.
        """

        self._root = root
        self._archive = archive

    def _node(self, name: str) -> Traversable:
        node: Traversable = self._root
        for part in _split_name(name):
            node = node / part
        return node

    def exists(self, name: str) -> bool:
        return self._node(name).is_file()

    def _open(self, name: str) -> BinaryIO:
        return self._node(name).open("rb")

    def close(self) -> None:
        if self._archive is not None:
            self._archive.close()
            self._archive = None

    def __repr__(self) -> str:
        return f"TraversableResources({self._root!r})"


class MemoryResources(ResourceBundle):
    """Resources served from an in-memory ``name -> bytes`` mapping."""

    _data: dict[str, bytes]

    def __init__(self, data: Mapping[str, bytes]) -> None:
        self._data = {"/".join(_split_name(k)): v for k, v in data.items()}

    def exists(self, name: str) -> bool:
        return "/".join(_split_name(name)) in self._data

    def _open(self, name: str) -> BinaryIO:
        return io.BytesIO(self._data["/".join(_split_name(name))])


def open_resources(path: pathlib.Path | None = None) -> ResourceBundle:
    """Open the resource bundle to bootstrap from.

    :param path: Optional directory or zip archive acting as the bundle root.
        ``None`` selects the package data bundled with the launcher.
    :returns: A resource bundle; close it when done.
    :raises MissingResourceError: If ``path`` does not exist.
    :raises ArtifactIOError: If ``path`` is a file but not a zip archive.
    """

    if path is None:
        root: Traversable = importlib.resources.files(DEFAULT_PACKAGE) / DEFAULT_ROOT
        return TraversableResources(root)

    if path.is_dir() is True:
        return TraversableResources(path)

    if path.is_file() is True:
        try:
            archive: zipfile.ZipFile = zipfile.ZipFile(path, mode="r")
        except zipfile.BadZipFile as e:
            raise ArtifactIOError(f"Resource bundle is not a zip archive: {path}") from e
        return TraversableResources(zipfile.Path(archive), archive=archive)

    raise MissingResourceError(str(path))
