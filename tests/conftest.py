from __future__ import annotations

import io
import os
import sys
import tarfile
import zipfile
from pathlib import Path

import pytest

_REPO = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_REPO / "tools"))


# Files used by the round-trip tests: relative name -> content.
SAMPLE_FILES = {
    "file1.txt": b"Content of file 1",
    "file2.txt": b"Content of file 2",
    "subdir/file3.txt": b"Content of file 3 in subdirectory",
    "subdir1/subdir2/file4.txt": b"Content of file 4 in sub/subdirectory",
}


def write_tree(root: Path, files: dict[str, bytes]) -> None:
    """Create *files* (relative name -> bytes) under *root*."""
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)


def read_tree(root: Path) -> dict[str, bytes]:
    """Return {relpath: bytes} for every regular file under *root*."""
    result = {}
    for dirpath, _, filenames in os.walk(root):
        for fname in filenames:
            path = Path(dirpath) / fname
            result[path.relative_to(root).as_posix()] = path.read_bytes()
    return result


def make_tar_gz(path: Path, members: list[tuple[str, bytes | None]]) -> None:
    """Create a tar.gz at *path* with members: list of (name, content) tuples.

    If content is None the entry is a directory.
    """
    with tarfile.open(path, "w:gz") as tf:
        for name, content in members:
            info = tarfile.TarInfo(name)
            if content is None:
                info.type = tarfile.DIRTYPE
                info.mode = 0o755
                tf.addfile(info)
            else:
                info.size = len(content)
                info.mode = 0o644
                tf.addfile(info, io.BytesIO(content))


def make_zip(path: Path, members: list[tuple[str, bytes | None]]) -> None:
    """Create a zip at *path* with members: list of (name, content) tuples.

    If content is None the entry is a directory.
    """
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in members:
            if content is None:
                zf.writestr(name.rstrip("/") + "/", b"")
            else:
                zf.writestr(name, content)


@pytest.fixture
def src_dir(tmp_path: Path) -> Path:
    """A source tree holding SAMPLE_FILES."""
    src = tmp_path / "src"
    src.mkdir()
    write_tree(src, SAMPLE_FILES)
    return src


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    out = tmp_path / "out"
    out.mkdir()
    return out
