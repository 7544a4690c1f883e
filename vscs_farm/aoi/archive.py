# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Zip packing, extraction and hashing for problem data and solutions."""

from __future__ import annotations

import hashlib
import logging
import zipfile
from collections.abc import Mapping
from pathlib import Path

from vscs_farm.aoi.api import AoiError


logger = logging.getLogger(__name__)

_HASH_CHUNK_SIZE = 1024 * 1024

# Fixed timestamp for generated entries.
_FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)


class ArchiveError(AoiError):
    """Raised when an archive cannot be built or extracted."""


def sha256_file(path: Path) -> str:
    """Return the hex SHA-256 digest of a file."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        while chunk := f.read(_HASH_CHUNK_SIZE):
            digest.update(chunk)
    return digest.hexdigest()


def _add_tree(zf: zipfile.ZipFile, root: Path) -> int:
    """Add every file under ``root`` with paths relative to ``root``."""
    count = 0
    for path in sorted(root.rglob("*")):
        if path.is_file():
            zf.write(path, path.relative_to(root).as_posix())
            count += 1
    return count


def pack_directory(
    dest: Path,
    source: Path,
    extra: Mapping[str, str] | None = None,
) -> Path:
    """Zip the contents of ``source`` at the archive root.

    Args:
        dest: Archive path to (over)write; parent directories are created.
        source: Directory whose contents are packed.
        extra: Additional ``{archive name: text}`` entries.

    Returns:
        ``dest``.

    Raises:
        ArchiveError: If ``source`` is not a directory.
    """
    if not source.is_dir():
        raise ArchiveError(f"Not a directory: {source}")
    dest.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(dest, "w", zipfile.ZIP_DEFLATED) as zf:
        count = _add_tree(zf, source)
        for name, text in (extra or {}).items():
            info = zipfile.ZipInfo(name, date_time=_FIXED_DATE_TIME)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            zf.writestr(info, text)
    logger.debug("Packed %d files from %s into %s", count, source, dest)
    return dest


def pack_files(dest: Path, files: Mapping[str, Path]) -> Path:
    """Zip individual files under chosen archive names.

    Args:
        dest: Archive path to (over)write.
        files: ``{archive name: source file}``.

    Returns:
        ``dest``.

    Raises:
        ArchiveError: If a source is not a regular file.
    """
    for source in files.values():
        if not source.is_file():
            raise ArchiveError(f"Not a file: {source}")
    dest.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(dest, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, source in files.items():
            zf.write(source, name.lstrip("/"))
    return dest


def extract_zip(archive: Path, dest: Path) -> None:
    """Extract ``archive`` into ``dest``.

    Raises:
        ArchiveError: If the archive is corrupt.
    """
    try:
        with zipfile.ZipFile(archive) as zf:
            zf.extractall(dest)
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"Cannot extract {archive}: {e}") from e
