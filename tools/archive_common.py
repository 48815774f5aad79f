"""Options, errors and format detection shared by archive_pack and extract."""

import os
import tarfile
import zipfile
import zlib
from dataclasses import dataclass

MAX_SIZE = 1 * 1024 * 1024 * 1024  # 1 GiB per entry

ZIP_SUFFIX = ".zip"
TAR_GZ_SUFFIX = ".tar.gz"

DIR_MODE = 0o755
FILE_MODE = 0o644
PERM_MASK = 0o777

# Low-level failures that get wrapped into ArchiveIOError.
IO_ERRORS = (OSError, EOFError, tarfile.TarError, zipfile.BadZipFile, zlib.error)

# Suffix -> format name.  Longest suffixes first.
_SUFFIXES = (
    (TAR_GZ_SUFFIX, "tar.gz"),
    (".tgz", "tar.gz"),
    (ZIP_SUFFIX, "zip"),
)


class ArchiveError(Exception):
    """Base class for every error raised by the archive tools."""


class SourceNotDirectoryError(ArchiveError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"not a directory: {path}")


class IllegalPathError(ArchiveError):
    """An entry would land outside the extraction directory."""

    def __init__(self, name):
        self.name = name
        super().__init__(f"illegal file path: {name}")


class FileTooLargeError(ArchiveError):
    """An entry declares more bytes than the configured max_size."""

    def __init__(self, name, size, max_size):
        self.name = name
        self.size = size
        self.max_size = max_size
        super().__init__(
            f"file exceeded maximum allowed size: {name} "
            f"(size: {size} bytes, max allowed: {max_size} bytes)")


class IncompleteWriteError(ArchiveError):
    """Fewer bytes reached disk than the entry declared."""

    def __init__(self, name, written, expected):
        self.name = name
        self.written = written
        self.expected = expected
        super().__init__(
            f"incomplete write: {name} (wrote {written} of {expected} bytes); "
            f"consider increasing max_size or checking for disk space issues")


class ArchiveIOError(ArchiveError):
    """Wraps a filesystem or codec failure.  The cause is chained."""


@dataclass(frozen=True)
class CompressOptions:
    """Per-call settings for compression and extraction."""

    max_size: int = MAX_SIZE

    def __post_init__(self):
        if self.max_size < 0:
            raise ValueError(f"max_size must be >= 0, got {self.max_size}")


def max_size(size):
    """Options value overriding the per-entry size cap."""
    return CompressOptions(max_size=size)


def apply_options(*opts):
    """Fold *opts* into a single CompressOptions.

    Each item may be None, a CompressOptions, or a plain int taken as
    max_size.  Later items win.
    """
    options = CompressOptions()
    for opt in opts:
        if opt is None:
            continue
        if isinstance(opt, CompressOptions):
            options = opt
        elif isinstance(opt, int) and not isinstance(opt, bool):
            options = CompressOptions(max_size=opt)
        else:
            raise TypeError(f"unsupported option: {opt!r}")
    return options


def detect_format(path):
    """Detect archive format from filename: "zip", "tar.gz" or None."""
    name = os.path.basename(os.fspath(path)).lower()
    for suffix, fmt in _SUFFIXES:
        if name.endswith(suffix):
            return fmt
    return None


def archive_base_name(path):
    """Archive file name with its format suffix removed."""
    name = os.path.basename(os.fspath(path))
    lower = name.lower()
    for suffix, _ in _SUFFIXES:
        if lower.endswith(suffix):
            return name[:-len(suffix)]
    return name
