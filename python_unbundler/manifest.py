"""Manifest parsing.

Each artifact category ships a ``<category>.list`` resource: one artifact per
line, as ``hash<TAB>id<TAB>relative/path``. The entry point ships as a
single-line resource.
"""

from dataclasses import dataclass
import pathlib
import re

from python_unbundler.errors import MalformedEntryError
from python_unbundler.resources import ResourceBundle

ENTRY_POINT_RESOURCE: str = "entry-point"
MANIFEST_SUFFIX: str = ".list"

_DRIVE_PREFIX: re.Pattern[str] = re.compile(r"^[A-Za-z]:")


@dataclass(frozen=True, slots=True)
class ArtifactEntry:
    """One manifest line.

    :ivar hash: Expected SHA-256 hex digest (any case).
    :ivar id: Logical identifier, used for diagnostics only.
    :ivar path: Path relative to the category directory.
    """

    hash: str
    id: str
    path: str

    @classmethod
    def parse_line(cls, line: str) -> "ArtifactEntry":
        """Parse a single manifest line.

        :param line: Line text without the trailing newline.
        :returns: Parsed entry.
        :raises MalformedEntryError: If the line does not have exactly three
            tab-separated fields, or the path would escape the category directory.
        """

        fields: list[str] = line.split("\t")
        if len(fields) != 3:
            raise MalformedEntryError(f"Malformed artifact entry: {line!r}", line=line)

        _check_relative_path(fields[2], line=line)
        return cls(hash=fields[0], id=fields[1], path=fields[2])


def _check_relative_path(path: str, *, line: str) -> None:
    """Reject paths that would land outside the category directory.

    :param path: Path field from a manifest line.
    :param line: Full line, for the error message.
    :raises MalformedEntryError: If the path is unsafe.
    """

    if len(path) == 0:
        raise MalformedEntryError(f"Empty artifact path: {line!r}", line=line)
    if "\\" in path:
        raise MalformedEntryError(f"Refusing backslash artifact path: {line!r}", line=line)
    if _DRIVE_PREFIX.match(path) is not None:
        raise MalformedEntryError(f"Refusing drive-like artifact path: {line!r}", line=line)
    p = pathlib.PurePosixPath(path)
    if p.is_absolute() is True:
        raise MalformedEntryError(f"Refusing absolute artifact path: {line!r}", line=line)
    if ".." in p.parts:
        raise MalformedEntryError(f"Refusing parent-traversal artifact path: {line!r}", line=line)


def split_lines(text: str) -> list[str]:
    r"""Split text on ``\n``, ``\r\n`` and ``\r`` only.

    Unlike :meth:`str.splitlines`, other Unicode line boundaries stay in the line.
    A trailing line terminator does not produce an empty last line.
    """

    lines: list[str] = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def parse_manifest(text: str) -> list[ArtifactEntry]:
    """Parse manifest text into entries, preserving order.

    :param text: Whole manifest text.
    :returns: Entries in file order.
    :raises MalformedEntryError: On the first line that does not parse.
    """

    entries: list[ArtifactEntry] = []
    for lineno, line in enumerate(split_lines(text), start=1):
        try:
            entries.append(ArtifactEntry.parse_line(line))
        except MalformedEntryError as e:
            raise MalformedEntryError(f"line {lineno}: {e}", line=e.line) from None
    return entries


def read_manifest(resources: ResourceBundle, category: str) -> list[ArtifactEntry]:
    """Read the ``<category>.list`` manifest from a bundle.

    :param resources: Resource bundle.
    :param category: Artifact category (e.g. ``libraries``).
    :returns: Entries in manifest order.
    :raises MissingResourceError: If the manifest resource is absent.
    :raises MalformedEntryError: If any line does not parse.
    """

    name: str = f"{category}{MANIFEST_SUFFIX}"
    try:
        return parse_manifest(resources.read_text(name))
    except MalformedEntryError as e:
        raise MalformedEntryError(f"{name}: {e}", line=e.line) from None


def read_entry_point(resources: ResourceBundle, name: str = ENTRY_POINT_RESOURCE) -> str | None:
    """Read the entry-point name from its single-line resource.

    :param resources: Resource bundle.
    :param name: Resource name.
    :returns: The first line stripped of whitespace, or ``None`` if it is empty.
    :raises MissingResourceError: If the resource is absent.
    """

    lines: list[str] = split_lines(resources.read_text(name))
    if len(lines) == 0:
        return None
    first: str = lines[0].strip()
    if len(first) == 0:
        return None
    return first
