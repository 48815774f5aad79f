"""Unit tests for archive_common: options, errors, format detection."""
from __future__ import annotations

import pytest

from archive_common import (
    MAX_SIZE,
    ArchiveError,
    ArchiveIOError,
    CompressOptions,
    FileTooLargeError,
    IllegalPathError,
    IncompleteWriteError,
    SourceNotDirectoryError,
    apply_options,
    archive_base_name,
    detect_format,
    max_size,
)


class TestDetectFormat:
    @pytest.mark.parametrize("name,expected", [
        ("foo.zip", "zip"),
        ("foo.tar.gz", "tar.gz"),
        ("foo.tgz", "tar.gz"),
        ("FOO.TAR.GZ", "tar.gz"),
        ("/tmp/archives/linux-6.1.tar.gz", "tar.gz"),
        ("foo.tar.xz", None),
        ("foo.gz", None),
        ("foo", None),
    ])
    def test_detect(self, name, expected):
        assert detect_format(name) == expected


class TestArchiveBaseName:
    @pytest.mark.parametrize("path,expected", [
        ("/tmp/src_archive.zip", "src_archive"),
        ("/tmp/src_archive.tar.gz", "src_archive"),
        ("release-1.2.tgz", "release-1.2"),
        ("Data.ZIP", "Data"),
        ("notes.txt", "notes.txt"),
    ])
    def test_base_name(self, path, expected):
        assert archive_base_name(path) == expected


class TestOptions:
    def test_default_is_one_gib(self):
        assert CompressOptions().max_size == MAX_SIZE == 1 << 30

    def test_max_size_override(self):
        assert max_size(1024).max_size == 1024

    def test_apply_options_empty(self):
        assert apply_options() == CompressOptions()

    def test_apply_options_later_wins(self):
        assert apply_options(max_size(10), None, max_size(20)).max_size == 20

    def test_apply_options_plain_int(self):
        assert apply_options(4096).max_size == 4096

    def test_apply_options_rejects_unknown(self):
        with pytest.raises(TypeError):
            apply_options("big")

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            CompressOptions(max_size=-1)

    def test_frozen(self):
        opts = CompressOptions()
        with pytest.raises(AttributeError):
            opts.max_size = 5


class TestErrors:
    def test_hierarchy(self):
        for cls in (SourceNotDirectoryError, IllegalPathError, FileTooLargeError,
                    IncompleteWriteError, ArchiveIOError):
            assert issubclass(cls, ArchiveError)

    def test_kinds_are_distinct(self):
        assert not issubclass(FileTooLargeError, IncompleteWriteError)
        assert not issubclass(IncompleteWriteError, FileTooLargeError)
        assert not issubclass(ArchiveError, OSError)

    def test_file_too_large_context(self):
        err = FileTooLargeError("big.bin", 2048, 1024)
        assert (err.name, err.size, err.max_size) == ("big.bin", 2048, 1024)
        assert "big.bin" in str(err)
        assert "2048" in str(err) and "1024" in str(err)

    def test_incomplete_write_context(self):
        err = IncompleteWriteError("a.txt", 3, 5)
        assert (err.written, err.expected) == (3, 5)
        assert "wrote 3 of 5 bytes" in str(err)

    def test_illegal_path_message(self):
        assert str(IllegalPathError("../x")) == "illegal file path: ../x"

    def test_not_a_directory_message(self):
        err = SourceNotDirectoryError("/tmp/file.txt")
        assert err.path == "/tmp/file.txt"
        assert "not a directory" in str(err)
