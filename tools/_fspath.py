"""Filesystem path helpers shared by the archive tools.

Thin layer over os.path so the packer and extractor agree on how paths are
normalized, joined and compared.  All returned paths are absolute and
normalized: no trailing slash except for the filesystem root.
"""

import os

_POSIX = os.name == "posix"


def abspath(path):
    """Return the absolute, normalized form of *path*."""
    return os.path.normpath(os.path.abspath(os.fspath(path)))


def is_dir(path):
    return os.path.isdir(path)


def join(root, *names):
    """Join *names* onto *root* and normalize the result.

    Absolute components replace everything before them, as with
    os.path.join, so callers must check the result with relative_to().
    """
    return abspath(os.path.join(root, *names))


def parent(path):
    return os.path.dirname(abspath(path))


def mkdir_all(path, mode=0o755):
    """Create *path* and any missing ancestors.  Existing dirs are fine."""
    os.makedirs(path, mode=mode if _POSIX else 0o777, exist_ok=True)


def mk_parent_dir(path):
    mkdir_all(parent(path))


def open_read(path):
    return open(path, "rb")


def create_write(path, mode=0o644):
    """Create or truncate *path* for binary writing.

    *mode* only applies when the file is created and is subject to the
    umask.  It is ignored outside POSIX.
    """
    flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC | getattr(os, "O_BINARY", 0)
    fd = os.open(path, flags, mode if _POSIX else 0o666)
    return os.fdopen(fd, "wb")


def relative_to(path, root):
    """Return *path* relative to *root*, or None if it lies outside.

    Both paths are normalized first, so ".." segments are resolved
    lexically.  Symlinks are not followed.
    """
    path = abspath(path)
    root = abspath(root)
    try:
        if os.path.commonpath([path, root]) != root:
            return None
    except ValueError:
        # Different drives on Windows.
        return None
    return os.path.relpath(path, root)


def with_suffix(name, suffix):
    """Append *suffix* to *name* unless it already ends with it."""
    name = os.fspath(name)
    if not name.endswith(suffix):
        name += suffix
    return name


def walk_files(root):
    """Return [(relpath, abspath), ...] for every regular file under *root*.

    The list is sorted by relpath, which always uses "/" separators.
    Symlinked directories are not descended into; symlinks to files are
    followed.  Errors from listing a directory propagate.
    """
    root = abspath(root)

    def _raise(err):
        raise err

    entries = []
    for dirpath, dirs, files in os.walk(root, onerror=_raise):
        dirs.sort()
        for fname in files:
            fpath = os.path.join(dirpath, fname)
            if not os.path.isfile(fpath):
                continue
            rel = os.path.relpath(fpath, root).replace(os.sep, "/")
            entries.append((rel, fpath))
    entries.sort()
    return entries
