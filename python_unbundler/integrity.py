"""SHA-256 integrity checks for extracted artifacts."""

import hashlib
import logging
import pathlib

from python_unbundler.errors import ArtifactIOError

_CHUNK_SIZE: int = 1024 * 1024


def sha256_file(path: pathlib.Path) -> str:
    """Hash a file with SHA-256.

    :param path: File to hash.
    :returns: Lowercase hex digest.
    :raises ArtifactIOError: If the file cannot be read.
    """

    h = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            while True:
                chunk: bytes = f.read(_CHUNK_SIZE)
                if len(chunk) == 0:
                    break
                h.update(chunk)
    except OSError as e:
        raise ArtifactIOError(f"Failed to read {path} for hashing") from e
    return h.hexdigest()


def verify(path: pathlib.Path, expected_hash: str, *, logger: logging.Logger | None = None) -> bool:
    """Check a file against its expected SHA-256 digest.

    A mismatch is not an error; it is reported and the caller re-extracts.

    :param path: Existing file to check.
    :param expected_hash: Expected hex digest, compared case-insensitively.
    :param logger: Optional logger for the mismatch diagnostic.
    :returns: ``True`` if the digests match.
    :raises ArtifactIOError: If the file cannot be read.
    """

    if logger is None:
        logger = logging.getLogger("python_unbundler")

    actual_hash: str = sha256_file(path)
    if actual_hash.lower() == expected_hash.lower():
        return True

    logger.warning(
        f"python-unbundler: expected file {path} to have hash {expected_hash}, but got {actual_hash}"
    )
    return False
