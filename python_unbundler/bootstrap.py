"""Bootstrap sequence: read manifests, extract artifacts, assemble the load path.

Everything here runs synchronously on the caller's thread. Two bootstrap runs
sharing one output directory are not guarded against.
"""

from collections.abc import Sequence
from dataclasses import dataclass
import logging
import pathlib
import time

from python_unbundler.errors import ArtifactIOError
from python_unbundler.extractor import ensure_extracted
from python_unbundler.manifest import ArtifactEntry, read_entry_point, read_manifest
from python_unbundler.resources import ResourceBundle

DEFAULT_CATEGORIES: tuple[str, ...] = ("versions", "libraries")


class LoadPathAssembler:
    """Accumulates extracted artifact locations in order."""

    _paths: list[pathlib.Path]
    _built: bool

    def __init__(self) -> None:
        self._paths = []
        self._built = False

    def add(self, path: pathlib.Path) -> None:
        """Append a location.

        :param path: Extracted artifact location.
        :raises RuntimeError: If :meth:`build` was already called.
        """

        if self._built is True:
            raise RuntimeError("Load path already built")
        self._paths.append(path)

    def build(self) -> tuple[pathlib.Path, ...]:
        """Freeze and return the load path.

        :returns: Locations in the order they were added.
        """

        self._built = True
        return tuple(self._paths)

    def __len__(self) -> int:
        return len(self._paths)


@dataclass(frozen=True, slots=True)
class CategoryStats:
    """Extraction counts for one category.

    :ivar extracted: Artifacts written to disk.
    :ivar skipped: Artifacts already up to date.
    """

    extracted: int
    skipped: int


@dataclass(frozen=True, slots=True)
class BootstrapResult:
    """Outcome of a successful bootstrap.

    :ivar entry_point: Entry-point name, or ``None`` when nothing should run.
    :ivar load_path: Extracted artifact locations, in manifest order.
    :ivar extracted: Number of artifacts written during this run.
    :ivar skipped: Number of artifacts that were already up to date.
    """

    entry_point: str | None
    load_path: tuple[pathlib.Path, ...]
    extracted: int
    skipped: int


def extract_category(
    *,
    resources: ResourceBundle,
    category: str,
    output_dir: pathlib.Path,
    assembler: LoadPathAssembler,
    logger: logging.Logger,
) -> CategoryStats:
    """Extract every artifact of one category and record its location.

    :param resources: Resource bundle.
    :param category: Artifact category (e.g. ``versions``).
    :param output_dir: Output root; artifacts land in ``output_dir/<category>/``.
    :param assembler: Load-path assembler to append to.
    :param logger: Logger for progress output.
    :returns: Extraction counts.
    :raises BootstrapError: If the manifest or an artifact is missing or broken.
    """

    entries: list[ArtifactEntry] = read_manifest(resources, category)
    category_dir: pathlib.Path = output_dir / category

    extracted: int = 0
    for entry in entries:
        target_path: pathlib.Path = category_dir / entry.path
        if ensure_extracted(resources, category, entry, target_path, logger=logger) is True:
            extracted += 1
        assembler.add(target_path)

    return CategoryStats(extracted=extracted, skipped=len(entries) - extracted)


def prepare(
    *,
    resources: ResourceBundle,
    output_dir: pathlib.Path,
    entry_point_override: str | None = None,
    categories: Sequence[str] = DEFAULT_CATEGORIES,
    logger: logging.Logger | None = None,
) -> BootstrapResult:
    """Run the bootstrap: read the entry point, extract all categories.

    :param resources: Resource bundle.
    :param output_dir: Output root, created if absent.
    :param entry_point_override: Optional entry-point name replacing the
        bundled one. An empty string means "run nothing".
    :param categories: Categories to extract, in load-path order.
    :param logger: Optional logger for progress output.
    :returns: Bootstrap result.
    :raises BootstrapError: On any missing or malformed input, or I/O failure.
    """

    if logger is None:
        logger = logging.getLogger("python_unbundler")

    entry_point: str | None = read_entry_point(resources)
    if entry_point_override is not None:
        entry_point = entry_point_override.strip()
        if len(entry_point) == 0:
            entry_point = None

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ArtifactIOError(f"Failed to create output directory {output_dir}") from e

    if logger.isEnabledFor(logging.DEBUG) is True:
        logger.debug(f"python-unbundler: resources={resources!r}")
        logger.debug(f"python-unbundler: output_dir={output_dir}")

    t0: float = time.perf_counter()
    assembler: LoadPathAssembler = LoadPathAssembler()
    extracted: int = 0
    skipped: int = 0
    for category in categories:
        stats: CategoryStats = extract_category(
            resources=resources,
            category=category,
            output_dir=output_dir,
            assembler=assembler,
            logger=logger,
        )
        extracted += stats.extracted
        skipped += stats.skipped
    t1: float = time.perf_counter()

    load_path: tuple[pathlib.Path, ...] = assembler.build()
    logger.info(
        f"python-unbundler: {len(load_path)} artifacts ready ({extracted} unpacked, {skipped} up to date) "
        f"in {t1 - t0:.2f}s"
    )
    return BootstrapResult(
        entry_point=entry_point,
        load_path=load_path,
        extracted=extracted,
        skipped=skipped,
    )
