"""Hash-driven artifact extraction."""

import logging
import pathlib
import shutil
import zipfile
from typing import BinaryIO

from python_unbundler.errors import ArtifactIOError, MissingArtifactError, MissingResourceError
from python_unbundler.integrity import verify
from python_unbundler.manifest import ArtifactEntry
from python_unbundler.resources import ResourceBundle


def needs_extraction(
    entry: ArtifactEntry,
    target_path: pathlib.Path,
    *,
    logger: logging.Logger | None = None,
) -> bool:
    """Return whether ``target_path`` must be (re)written.

    Absence and a failed hash check are treated the same way.

    :param entry: Manifest entry with the expected hash.
    :param target_path: Final on-disk location.
    :param logger: Optional logger for the mismatch diagnostic.
    :returns: ``True`` if the artifact has to be extracted.
    """

    if target_path.exists() is False:
        return True
    return verify(target_path, entry.hash, logger=logger) is False


def ensure_extracted(
    resources: ResourceBundle,
    category: str,
    entry: ArtifactEntry,
    target_path: pathlib.Path,
    *,
    logger: logging.Logger | None = None,
) -> bool:
    """Make sure ``target_path`` holds the embedded artifact for ``entry``.

    Repeated calls against an unchanged bundle and target do no work.

    :param resources: Resource bundle holding ``<category>/<entry.path>``.
    :param category: Artifact category.
    :param entry: Manifest entry.
    :param target_path: Final on-disk location.
    :param logger: Optional logger for progress output.
    :returns: ``True`` if the artifact was extracted, ``False`` if skipped.
    :raises MissingArtifactError: If the bundle has no bytes for the entry.
    :raises ArtifactIOError: If the target cannot be read or written.
    """

    if logger is None:
        logger = logging.getLogger("python_unbundler")

    if needs_extraction(entry, target_path, logger=logger) is False:
        if logger.isEnabledFor(logging.DEBUG) is True:
            logger.debug(f"python-unbundler: {category}:{entry.id} up to date at {target_path}")
        return False

    logger.info(f"python-unbundler: unpacking {entry.path} ({category}:{entry.id}) to {target_path}")
    _extract(resources=resources, category=category, entry=entry, target_path=target_path)
    return True


def _extract(
    *,
    resources: ResourceBundle,
    category: str,
    entry: ArtifactEntry,
    target_path: pathlib.Path,
) -> None:
    """Copy one embedded artifact to disk.

    The bytes land in a sibling ``.tmp`` file first and are renamed over the
    target, so the final name never holds a partial copy.

    :param resources: Resource bundle.
    :param category: Artifact category.
    :param entry: Manifest entry.
    :param target_path: Final on-disk location.
    :raises MissingArtifactError: If the source resource is absent.
    :raises ArtifactIOError: If reading the source or writing the target fails.
    """

    try:
        target_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ArtifactIOError(f"Failed to create directory {target_path.parent}") from e

    source_name: str = f"{category}/{entry.path}"
    try:
        src: BinaryIO = resources.open(source_name)
    except MissingResourceError as e:
        raise MissingArtifactError(category=category, entry_id=entry.id, path=entry.path) from e
    except (OSError, zipfile.BadZipFile) as e:
        raise ArtifactIOError(f"Failed to open {source_name}") from e

    tmp_path: pathlib.Path = target_path.with_name(f"{target_path.name}.tmp")
    try:
        with src, open(tmp_path, "wb") as dst:
            shutil.copyfileobj(src, dst)
        tmp_path.replace(target_path)
    except (OSError, zipfile.BadZipFile) as e:
        tmp_path.unlink(missing_ok=True)
        raise ArtifactIOError(f"Failed to extract {source_name} to {target_path}") from e
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
