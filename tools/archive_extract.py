"""Archive extractor with path-traversal and size guards.

Supports: .zip, .tar.gz, .tgz

Each archive is unpacked into <dest_dir>/<archive name without suffix>/.
Every entry is checked before anything is written for it:

  1. its target must stay inside that directory (IllegalPathError),
  2. its declared size must not exceed max_size (FileTooLargeError),
  3. after streaming, the bytes on disk must match the declared size
     (IncompleteWriteError).

The first failing entry aborts extraction.  Entries already written stay
on disk.
"""

import logging
import tarfile
import zipfile

import _fspath
from archive_common import (
    DIR_MODE,
    FILE_MODE,
    IO_ERRORS,
    PERM_MASK,
    ArchiveError,
    ArchiveIOError,
    FileTooLargeError,
    IllegalPathError,
    IncompleteWriteError,
    apply_options,
    archive_base_name,
    detect_format,
)

logger = logging.getLogger(__name__)

_COPY_BUFSIZE = 65536

# zipfile raises these for encrypted entries and unknown compression methods.
_ZIP_OPEN_ERRORS = IO_ERRORS + (RuntimeError, NotImplementedError)


def _resolve_target(subdir, name):
    """Return the absolute target for entry *name*, or raise IllegalPathError."""
    target = _fspath.join(subdir, name)
    if _fspath.relative_to(target, subdir) is None:
        logger.warning("path traversal detected: %s", name)
        raise IllegalPathError(name)
    return target


def _make_dir(target, mode, name):
    try:
        _fspath.mkdir_all(target, mode)
    except OSError as e:
        raise ArchiveIOError(f"failed to create directory {name}: {e}") from e


def _check_size(name, size, max_size):
    if size > max_size:
        logger.warning("%s is %d bytes, over the %d byte limit", name, size, max_size)
        raise FileTooLargeError(name, size, max_size)


def _copy_limited(src, dst, limit):
    """Copy at most *limit* bytes from *src* to *dst*; return bytes written."""
    written = 0
    while written < limit:
        chunk = src.read(min(_COPY_BUFSIZE, limit - written))
        if not chunk:
            break
        written += dst.write(chunk)
    return written


def _write_entry(src, target, name, size, mode, max_size):
    """Stream entry *name* from *src* into a new file at *target*."""
    try:
        _fspath.mk_parent_dir(target)
        with _fspath.create_write(target, mode) as dst:
            written = _copy_limited(src, dst, max_size)
    except IO_ERRORS as e:
        raise ArchiveIOError(f"failed to write file {name}: {e}") from e
    if written != size:
        raise IncompleteWriteError(name, written, size)
    logger.debug("extracted %s (%d bytes)", name, written)
    return written


def _prepare_subdir(archive, dest_dir):
    """Create <dest_dir>/<archive base name>/ and return it.

    The base name must name a child of dest_dir: "..", "." and "" (from
    archives called "...zip", "..zip" or ".zip") are rejected.
    """
    name = archive_base_name(archive)
    subdir = _fspath.join(dest_dir, name)
    if _fspath.relative_to(subdir, dest_dir) in (None, "."):
        logger.warning("archive name escapes destination: %s", name)
        raise IllegalPathError(archive)
    try:
        _fspath.mkdir_all(subdir, DIR_MODE)
    except OSError as e:
        raise ArchiveIOError(f"failed to create subdirectory {subdir}: {e}") from e
    return subdir


def _extract_zip_member(zf, info, subdir, max_size):
    """Extract one zip entry.  Returns True if a file was written."""
    name = info.filename
    target = _resolve_target(subdir, name)
    # Unix permission bits live in the high word; zero means the archive
    # was written on a host that does not record them.
    mode = (info.external_attr >> 16) & PERM_MASK

    if info.is_dir():
        _make_dir(target, mode or DIR_MODE, name)
        return False

    _check_size(name, info.file_size, max_size)

    try:
        src = zf.open(info)
    except _ZIP_OPEN_ERRORS as e:
        raise ArchiveIOError(f"failed to open {name} in zip: {e}") from e
    with src:
        _write_entry(src, target, name, info.file_size, mode or FILE_MODE, max_size)
    return True


def _extract_tar_member(tf, member, subdir, max_size):
    """Extract one tar entry.  Returns True if a file was written."""
    name = member.name
    target = _resolve_target(subdir, name)
    # Tar always records permission bits, so 0 is taken literally.
    mode = member.mode & PERM_MASK

    if member.isdir():
        _make_dir(target, mode, name)
        return False
    if not member.isreg():
        logger.debug("skipping %s: not a regular file (type %r)", name, member.type)
        return False

    _check_size(name, member.size, max_size)

    try:
        src = tf.extractfile(member)
    except IO_ERRORS as e:
        raise ArchiveIOError(f"failed to read {name} from tar: {e}") from e
    with src:
        _write_entry(src, target, name, member.size, mode, max_size)
    return True


def extract_zip(archive, dest_dir, *options):
    """Extract a zip archive into <dest_dir>/<archive name minus .zip>/.

    *options* are CompressOptions values (or plain ints taken as
    max_size).  Returns the directory the entries were written to.
    """
    opts = apply_options(*options)
    archive = _fspath.abspath(archive)
    try:
        zf = zipfile.ZipFile(archive, "r")
    except IO_ERRORS as e:
        raise ArchiveIOError(f"failed to open zip file {archive}: {e}") from e

    with zf:
        subdir = _prepare_subdir(archive, dest_dir)
        logger.info("Extracting %s -> %s", archive, subdir)
        count = 0
        for info in zf.infolist():
            if _extract_zip_member(zf, info, subdir, opts.max_size):
                count += 1

    logger.info("Extracted %d files to %s", count, subdir)
    return subdir


def extract_tar_gz(archive, dest_dir, *options):
    """Extract a tar.gz archive into <dest_dir>/<archive name minus .tar.gz>/.

    Only directories and regular files are extracted; links, devices and
    FIFOs are skipped.  Returns the directory the entries were written to.
    """
    opts = apply_options(*options)
    archive = _fspath.abspath(archive)
    try:
        tf = tarfile.open(archive, "r:gz")
    except IO_ERRORS as e:
        raise ArchiveIOError(f"failed to open tar.gz file {archive}: {e}") from e

    with tf:
        subdir = _prepare_subdir(archive, dest_dir)
        logger.info("Extracting %s -> %s", archive, subdir)
        count = 0
        while True:
            try:
                member = tf.next()
            except IO_ERRORS as e:
                raise ArchiveIOError(f"failed to read tar header in {archive}: {e}") from e
            if member is None:
                break
            if _extract_tar_member(tf, member, subdir, opts.max_size):
                count += 1

    logger.info("Extracted %d files to %s", count, subdir)
    return subdir


_EXTRACTORS = {
    "zip": extract_zip,
    "tar.gz": extract_tar_gz,
}


def extract_archive(archive, dest_dir, *options):
    """Extract *archive*, picking the format from its file name."""
    fmt = detect_format(archive)
    if fmt is None:
        raise ArchiveError(f"cannot detect format of {archive}")
    return _EXTRACTORS[fmt](archive, dest_dir, *options)
