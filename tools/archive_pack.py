"""Pack a directory tree into a .zip or .tar.gz archive.

The archive is created next to the source directory (in its parent).
Both formats share one directory walk; an ArchiveWriter subclass only
knows how to begin an entry and stream the file body into it.
"""

import logging
import os
import shutil
import tarfile
import zipfile

import _fspath
from archive_common import (
    IO_ERRORS,
    TAR_GZ_SUFFIX,
    ZIP_SUFFIX,
    ArchiveError,
    ArchiveIOError,
    SourceNotDirectoryError,
)

logger = logging.getLogger(__name__)

_COPY_BUFSIZE = 65536


class ArchiveWriter:
    """An open archive that accepts one entry per source file.

    Subclasses set ``suffix`` and open ``self._archive`` in __init__.
    Closing is delegated to the underlying archive's context manager so
    a failed write does not append trailer records.
    """

    suffix = None
    _archive = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return self._archive.__exit__(exc_type, exc, tb)

    def write_entry(self, name, src):
        """Write the open binary file *src* as entry *name*."""
        raise NotImplementedError


class ZipArchiveWriter(ArchiveWriter):
    suffix = ZIP_SUFFIX

    def __init__(self, path):
        self._archive = zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED)

    def write_entry(self, name, src):
        # Metadata (mtime, mode, size) comes from the source file; only
        # the entry name is replaced.
        info = zipfile.ZipInfo.from_file(src.name, arcname=name,
                                         strict_timestamps=False)
        info.compress_type = zipfile.ZIP_DEFLATED
        with self._archive.open(info, "w") as sink:
            shutil.copyfileobj(src, sink, _COPY_BUFSIZE)


class TarGzArchiveWriter(ArchiveWriter):
    suffix = TAR_GZ_SUFFIX

    def __init__(self, path):
        self._archive = tarfile.open(path, "w:gz")

    def write_entry(self, name, src):
        # Header first, then exactly info.size bytes of body.  addfile()
        # raises if the file is shorter than its header claims.
        info = self._archive.gettarinfo(arcname=name, fileobj=src)
        self._archive.addfile(info, src)


WRITERS = {
    "zip": ZipArchiveWriter,
    "tar.gz": TarGzArchiveWriter,
}


def _remove_partial(path):
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("could not remove partial archive %s: %s", path, e)


def _compress_tree(source, archive, writer):
    """Stream every regular file under *source* into *writer*."""
    try:
        entries = _fspath.walk_files(source)
    except OSError as e:
        raise ArchiveIOError(f"failed to compress directory {source}: {e}") from e

    total = 0
    for rel, path in entries:
        if path == archive:
            continue
        try:
            src = _fspath.open_read(path)
        except OSError as e:
            raise ArchiveIOError(f"failed to open file {rel}: {e}") from e
        with src:
            try:
                writer.write_entry(rel, src)
            except IO_ERRORS as e:
                raise ArchiveIOError(f"failed to write file {rel}: {e}") from e
        logger.debug("added %s", rel)
        total += 1
    return total


def compress_directory(source_dir, archive_name, fmt):
    """Compress *source_dir* into a *fmt* archive in its parent directory.

    *archive_name* gets the format suffix appended when it is missing.
    An existing file of that name is replaced.  Returns
    (archive_path, file_count).  Raises SourceNotDirectoryError before
    touching the filesystem when *source_dir* is not a directory, and
    ArchiveIOError for any filesystem or codec failure, in which case the
    partial archive is removed.
    """
    writer_cls = WRITERS.get(fmt)
    if writer_cls is None:
        raise ArchiveError(f"unsupported archive format: {fmt}")

    source = _fspath.abspath(source_dir)
    if not _fspath.is_dir(source):
        raise SourceNotDirectoryError(source)

    archive = _fspath.join(_fspath.parent(source),
                           _fspath.with_suffix(archive_name, writer_cls.suffix))
    logger.info("Packing %s -> %s", source, archive)

    try:
        writer = writer_cls(archive)
    except IO_ERRORS as e:
        raise ArchiveIOError(f"failed to create {writer_cls.suffix} file {archive}: {e}") from e

    # Any failure, interrupts included, leaves no partial archive behind.
    try:
        try:
            with writer:
                total = _compress_tree(source, archive, writer)
        except IO_ERRORS as e:
            raise ArchiveIOError(f"failed to finalize {archive}: {e}") from e
    except BaseException:
        _remove_partial(archive)
        raise

    logger.info("Packed %d files into %s", total, archive)
    return archive, total


def compress_directory_to_zip(source_dir, archive_name):
    """Compress *source_dir* into a .zip archive next to it.

    Example:
        compress_directory_to_zip("/tmp/src", "src_archive")
        -> ("/tmp/src_archive.zip", 2)
    """
    return compress_directory(source_dir, archive_name, "zip")


def compress_directory_to_tar_gz(source_dir, archive_name):
    """Compress *source_dir* into a .tar.gz archive next to it."""
    return compress_directory(source_dir, archive_name, "tar.gz")
