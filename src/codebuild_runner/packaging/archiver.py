"""Zip a source tree into a single archive with a content digest."""

from __future__ import annotations

import base64
import hashlib
import os
import tempfile
import zipfile
from pathlib import Path, PurePath
from typing import BinaryIO, Iterator

import structlog

from codebuild_runner.core.constants import VCS_DIRECTORIES
from codebuild_runner.core.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

ZIP_SOURCE_ERROR = "zip_source usage: prefix_to_trim must be contained in the given directory."


def trim_prefix(path: str | PurePath, prefix: str | PurePath) -> str:
    """Return *path* relative to *prefix*, joined with ``/``.

    ``trim_prefix("/tmp/dir/folder/file.txt", "/tmp/dir")`` → ``"folder/file.txt"``.
    A trailing separator on *prefix* makes no difference.

    Raises:
        ConfigurationError: If *prefix* is not an ancestor of (or equal to) *path*.
    """
    try:
        relative = PurePath(path).relative_to(PurePath(prefix))
    except ValueError:
        raise ConfigurationError(
            f"{ZIP_SOURCE_ERROR} prefix_to_trim: {prefix}, directory: {path}",
            code="ZIP_PREFIX",
        ) from None
    return relative.as_posix()


def iter_source_files(directory: Path) -> Iterator[Path]:
    """Yield every file below *directory*, skipping version-control directories.

    Directories are visited in sorted order so archives are reproducible.
    """
    for root, dirnames, filenames in os.walk(directory):
        dirnames[:] = sorted(d for d in dirnames if d not in VCS_DIRECTORIES)
        for name in sorted(filenames):
            yield Path(root) / name


def zip_source(
    directory: str | Path,
    out: BinaryIO,
    prefix_to_trim: str | Path | None = None,
) -> int:
    """Write a zip of *directory* to the binary stream *out*.

    Entry names are the file paths relative to *prefix_to_trim* (defaults to
    *directory* itself) with ``/`` separators on every platform. Only files
    become entries, so an empty directory produces a valid empty archive.

    Returns:
        The number of entries written.

    Raises:
        ConfigurationError: If *directory* is missing, is not a directory, or
            *prefix_to_trim* is not *directory* or one of its ancestors.
    """
    source = Path(directory)
    if not source.is_dir():
        raise ConfigurationError(
            f"Empty or invalid source directory: {source}", code="INVALID_SOURCE_DIR"
        )
    prefix = Path(prefix_to_trim) if prefix_to_trim is not None else source
    # Validates the prefix up front, even when the tree holds no files.
    trim_prefix(source, prefix)

    count = 0
    with zipfile.ZipFile(out, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
        for file_path in iter_source_files(source):
            archive.write(file_path, arcname=trim_prefix(file_path, prefix))
            count += 1
    logger.debug("source_zipped", directory=str(source), entries=count)
    return count


def md5_digest(path: str | Path) -> str:
    """Return the base64-encoded MD5 of a file (the form S3's ``Content-MD5`` expects)."""
    digest = hashlib.md5()  # noqa: S324 - integrity check, not security
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(64 * 1024), b""):
            digest.update(chunk)
    return base64.b64encode(digest.digest()).decode("ascii")


def package_source(directory: str | Path) -> tuple[Path, str]:
    """Zip *directory* into a temporary file and return ``(path, md5)``.

    The archive is created in the system temp directory, never inside
    *directory*, so the archive cannot end up containing itself. The caller
    owns the returned file and must delete it.
    """
    source = Path(directory)
    fd, name = tempfile.mkstemp(prefix=f"{source.name or 'source'}-", suffix=".zip")
    archive_path = Path(name)
    try:
        with os.fdopen(fd, "wb") as out:
            zip_source(source, out)
        return archive_path, md5_digest(archive_path)
    except BaseException:
        archive_path.unlink(missing_ok=True)
        raise
