"""Tests for archive listing and decompression."""

import gzip
import zipfile

import pytest

from core.archive import ArchiveHandler, archive_kind, is_compressed
from core.errors import ArchiveError

SQL = b"CREATE TABLE t (\n  `id` int\n);\nINSERT INTO t VALUES (1);\n"


@pytest.fixture
def dump_dir(tmp_path):
    d = tmp_path / "dumps"
    d.mkdir()
    return d


def test_archive_kind():
    assert archive_kind("a.sql.gz") == "gz"
    assert archive_kind("a.ZIP") == "zip"
    assert archive_kind("a.sql") == "sql"
    assert archive_kind("a.tar") is None
    assert is_compressed("a.sql.gz")
    assert not is_compressed("a.sql")


class TestListing:
    """Tests for listing and selecting archives in a folder."""

    def test_list_files(self, dump_dir):
        (dump_dir / "b.sql").write_bytes(SQL)
        (dump_dir / "a.sql.gz").write_bytes(gzip.compress(SQL))
        (dump_dir / "notes.txt").write_text("x")
        (dump_dir / "sub").mkdir()

        files = ArchiveHandler(dump_dir).list_files()
        assert [f["name"] for f in files] == ["a.sql.gz", "b.sql"]
        assert files[0]["compressed"] is True
        assert files[1]["compressed"] is False

    def test_select_file(self, dump_dir):
        (dump_dir / "a.sql").write_bytes(SQL)
        handler = ArchiveHandler(dump_dir)
        assert handler.select_file(0) == dump_dir / "a.sql"
        assert handler.select_file(5) is None

    def test_missing_dir(self, tmp_path):
        assert ArchiveHandler(tmp_path / "none").list_files() == []

    def test_get_info(self, dump_dir):
        path = dump_dir / "a.sql"
        path.write_bytes(SQL)
        info = ArchiveHandler(dump_dir).get_info(path)
        assert info["name"] == "a.sql"
        assert info["size_bytes"] == len(SQL)
        with pytest.raises(FileNotFoundError):
            ArchiveHandler(dump_dir).get_info(dump_dir / "x.sql")


class TestExtract:
    """Tests for turning an archive into a plain .sql file."""

    def test_gzip(self, dump_dir, tmp_path):
        archive = dump_dir / "a.sql.gz"
        archive.write_bytes(gzip.compress(SQL))
        dest = ArchiveHandler(dump_dir).extract(archive, tmp_path / "work" / "x.sql")
        assert dest.read_bytes() == SQL

    def test_plain_sql_is_copied(self, dump_dir, tmp_path):
        archive = dump_dir / "a.sql"
        archive.write_bytes(SQL)
        dest = ArchiveHandler(dump_dir).extract(archive, tmp_path / "x.sql")
        assert dest.read_bytes() == SQL

    def test_zip_prefers_sql_member(self, dump_dir, tmp_path):
        archive = dump_dir / "a.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("readme.txt", "hello")
            zf.writestr("__MACOSX/", "")
            zf.writestr("data/.hidden.sql", "hidden")
            zf.writestr("data/dump.sql", SQL)
        dest = ArchiveHandler(dump_dir).extract(archive, tmp_path / "x.sql")
        assert dest.read_bytes() == SQL

    def test_zip_falls_back_to_first_file(self, dump_dir, tmp_path):
        archive = dump_dir / "a.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr(".DS_Store", "junk")
            zf.writestr("export.txt", SQL)
        dest = ArchiveHandler(dump_dir).extract(archive, tmp_path / "x.sql")
        assert dest.read_bytes() == SQL

    def test_zip_without_files(self, dump_dir, tmp_path):
        archive = dump_dir / "a.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr(".hidden", "x")
        dest = tmp_path / "x.sql"
        with pytest.raises(ArchiveError):
            ArchiveHandler(dump_dir).extract(archive, dest)
        assert not dest.exists()

    def test_corrupt_gzip_removes_partial_output(self, dump_dir, tmp_path):
        archive = dump_dir / "a.gz"
        archive.write_bytes(b"definitely not gzip")
        dest = tmp_path / "x.sql"
        with pytest.raises(ArchiveError):
            ArchiveHandler(dump_dir).extract(archive, dest)
        assert not dest.exists()

    def test_gzip_corrupted_midstream_removes_partial_output(self, dump_dir, corrupt_gzip, tmp_path):
        archive = dump_dir / "a.sql.gz"
        archive.write_bytes(corrupt_gzip.read_bytes())
        dest = tmp_path / "x.sql"
        with pytest.raises(ArchiveError):
            ArchiveHandler(dump_dir).extract(archive, dest)
        assert not dest.exists()

    def test_corrupt_zip(self, dump_dir, tmp_path):
        archive = dump_dir / "a.zip"
        archive.write_bytes(b"PK not really")
        with pytest.raises(ArchiveError):
            ArchiveHandler(dump_dir).extract(archive, tmp_path / "x.sql")

    def test_unsupported_extension(self, dump_dir, tmp_path):
        archive = dump_dir / "a.tar"
        archive.write_bytes(b"x")
        with pytest.raises(ArchiveError):
            ArchiveHandler(dump_dir).extract(archive, tmp_path / "x.sql")

    def test_size_limit(self, dump_dir, tmp_path):
        archive = dump_dir / "a.sql"
        archive.write_bytes(b"x" * 2048)
        with pytest.raises(ArchiveError):
            ArchiveHandler(dump_dir, max_size_mb=0.001).extract(archive, tmp_path / "x.sql")

    def test_missing_archive(self, dump_dir, tmp_path):
        with pytest.raises(ArchiveError):
            ArchiveHandler(dump_dir).extract(dump_dir / "no.gz", tmp_path / "x.sql")
