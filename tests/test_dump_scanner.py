"""Tests for the single-pass dump scanner."""

import gzip

import pytest

from core.dump_scanner import DumpScanner
from core.errors import DuplicateTableError, InputUnreadableError
from core.line_classifier import LineClassifier


class TestSampleDump:
    """Tests against the shared sample dump."""

    def test_catalog_order(self, sample_analysis):
        assert sample_analysis.table_names() == ["wp_users", "wp_orders", "logs"]

    def test_create_ranges(self, sample_analysis):
        users = sample_analysis.get("wp_users")
        orders = sample_analysis.get("wp_orders")
        assert (users.create_start, users.create_end) == (6, 12)
        assert (orders.create_start, orders.create_end) == (15, 21)

    def test_insert_statistics(self, sample_analysis, sample_lines):
        users = sample_analysis.get("wp_users")
        assert users.insert_count == 2
        assert users.insert_positions == [13, 24]
        assert users.row_estimates == [2, 1]
        assert users.estimated_rows == 3
        assert users.size_bytes == len(sample_lines[12]) + len(sample_lines[23])
        assert users.avg_row_size == round(users.size_bytes / 3, 2)

        orders = sample_analysis.get("wp_orders")
        assert orders.insert_positions == [22, 23]
        assert orders.row_estimates == [1, 3]
        assert orders.estimated_rows == 4

    def test_structure(self, sample_analysis, sample_lines):
        users = sample_analysis.get("wp_users")
        assert users.structure == b"".join(sample_lines[5:12]).decode("utf-8")
        assert users.engine == "InnoDB"
        assert users.charset == "utf8mb4"
        assert users.auto_increment == 3
        assert users.primary_key == "id"
        assert [c.name for c in users.columns] == ["id", "email", "name"]

        orders = sample_analysis.get("wp_orders")
        assert orders.engine == "MyISAM"
        assert orders.charset == "Unknown"
        assert orders.foreign_keys[0].table == "wp_users"

    def test_insert_only_table(self, sample_analysis):
        logs = sample_analysis.get("logs")
        assert logs.create_start == 0
        assert logs.create_end == 0
        assert logs.structure == ""
        assert logs.engine == "Unknown"
        assert logs.insert_positions == [25]

    def test_summary(self, sample_analysis, sample_dump):
        summary = sample_analysis.summary
        assert summary.total_size_bytes == sample_dump.stat().st_size
        assert summary.total_tables == 3
        assert summary.total_inserts == 5
        assert summary.total_rows_estimated == 8
        assert summary.has_drop_statements is True
        assert summary.has_create_database is True
        assert summary.set_statements == ["SET NAMES utf8mb4;"]
        assert summary.use_statements == ["USE `shop`;"]
        assert summary.table_prefix == "wp_"
        assert sample_analysis.dump_path == str(sample_dump)

    def test_count_conservation(self, sample_analysis, sample_lines):
        classifier = LineClassifier()
        insert_lines = sum(1 for line in sample_lines if classifier.insert_table_name(line.decode().strip()))
        assert sum(t.insert_count for t in sample_analysis.tables.values()) == insert_lines

    def test_idempotent(self, sample_dump):
        first = DumpScanner().scan(sample_dump)
        second = DumpScanner().scan(sample_dump)
        assert first == second

    def test_gzip_input(self, sample_dump, sample_analysis, tmp_path):
        gz_path = tmp_path / "dump.sql.gz"
        with gzip.open(gz_path, "wb") as f:
            f.write(sample_dump.read_bytes())
        result = DumpScanner().scan(gz_path)
        assert result.tables == sample_analysis.tables
        assert result.summary == sample_analysis.summary


class TestScenarios:
    """Tests for single-table scenarios."""

    def test_create_then_insert(self, write_dump):
        path = write_dump(
            "CREATE TABLE users (\n"
            "  id int,\n"
            "  name varchar(10)\n"
            ");\n"
            "INSERT INTO users VALUES (1,'a'),(2,'b');\n"
        )
        users = DumpScanner().scan(path).get("users")
        assert users.create_start == 1
        assert users.create_end == 4
        assert users.insert_count == 1
        assert users.insert_positions == [5]
        assert users.row_estimates == [2]
        assert users.estimated_rows == 2

    def test_insert_without_create(self, write_dump):
        path = write_dump("INSERT INTO orders VALUES (1);\n")
        result = DumpScanner().scan(path)
        orders = result.get("orders")
        assert orders.create_start == 0
        assert orders.insert_count == 1
        assert orders.estimated_rows == 1
        assert orders.avg_row_size == float(len("INSERT INTO orders VALUES (1);\n"))

    def test_one_line_create(self, write_dump):
        t = DumpScanner().scan(write_dump("CREATE TABLE `x` (`id` int);\n")).get("x")
        assert (t.create_start, t.create_end) == (1, 1)
        assert [c.name for c in t.columns] == ["id"]

    def test_create_without_terminator_closed_by_next_create(self, write_dump):
        result = DumpScanner().scan(write_dump(
            "CREATE TABLE a (\n"
            "  `id` int\n"
            "CREATE TABLE b (\n"
            "  `x` int\n"
            ");\n"
        ))
        assert (result.get("a").create_start, result.get("a").create_end) == (1, 2)
        assert (result.get("b").create_start, result.get("b").create_end) == (3, 5)

    def test_create_closed_at_eof(self, write_dump):
        result = DumpScanner().scan(write_dump("-- header\nCREATE TABLE c (\n  `id` int\n"))
        c = result.get("c")
        assert (c.create_start, c.create_end) == (2, 3)
        assert c.create_end >= c.create_start

    def test_table_without_inserts_has_no_avg_row_size(self, write_dump):
        t = DumpScanner().scan(write_dump("CREATE TABLE t (\n  `id` int\n);\n")).get("t")
        assert t.estimated_rows == 0
        assert t.avg_row_size is None

    def test_crlf_lines(self, write_dump):
        path = write_dump("CREATE TABLE t (\r\n  `id` int\r\n);\r\nINSERT INTO t VALUES (1);\r\n")
        result = DumpScanner().scan(path)
        t = result.get("t")
        assert (t.create_start, t.create_end) == (1, 3)
        assert t.size_bytes == len(b"INSERT INTO t VALUES (1);\r\n")

    def test_empty_dump(self, write_dump):
        result = DumpScanner().scan(write_dump(""))
        assert result.tables == {}
        assert result.summary.total_size_bytes == 0

    def test_scan_lines(self):
        result = DumpScanner().scan_lines([b"INSERT INTO t VALUES (1),(2);\n"])
        assert result.get("t").estimated_rows == 2
        assert result.dump_path == ""


class TestDuplicates:
    """Tests for repeated CREATE TABLE statements for the same name."""

    DUMP = (
        "CREATE TABLE `t` (\n"
        "  `id` int\n"
        ");\n"
        "INSERT INTO `t` VALUES (1);\n"
        "CREATE TABLE `t` (\n"
        "  `id` bigint\n"
        ");\n"
        "INSERT INTO `t` VALUES (2);\n"
    )

    def test_last_create_replaces_record(self, write_dump):
        result = DumpScanner().scan(write_dump(self.DUMP))
        t = result.get("t")
        assert (t.create_start, t.create_end) == (5, 7)
        assert t.insert_positions == [8]
        assert t.columns[0].type == "bigint"
        # earlier INSERT is lost from the table but still counted in the running row total
        assert result.summary.total_inserts == 1
        assert result.summary.total_rows_estimated == 2

    def test_strict_mode_raises(self, write_dump):
        with pytest.raises(DuplicateTableError) as excinfo:
            DumpScanner(on_duplicate="error").scan(write_dump(self.DUMP))
        assert excinfo.value.table == "t"
        assert excinfo.value.line_number == 5

    def test_strict_mode_allows_insert_before_create(self, write_dump):
        path = write_dump("INSERT INTO t VALUES (1);\nCREATE TABLE t (\n  `id` int\n);\n")
        t = DumpScanner(on_duplicate="error").scan(path).get("t")
        assert t.create_start == 2
        assert t.insert_count == 0

    def test_invalid_policy(self):
        with pytest.raises(ValueError):
            DumpScanner(on_duplicate="merge")


class TestLimitsAndErrors:
    """Tests for bounded CREATE buffering and unreadable input."""

    def test_create_buffer_cap(self, write_dump):
        path = write_dump("CREATE TABLE `big` (\n  `a` int,\n  `b` int\n);\nINSERT INTO big VALUES (1);\n")
        big = DumpScanner(max_create_block_bytes=10).scan(path).get("big")
        assert big.structure == "CREATE TABLE `big` (\n"
        assert big.structure_truncated is True
        assert (big.create_start, big.create_end) == (1, 4)
        assert big.insert_positions == [5]

    def test_missing_file(self, tmp_path):
        with pytest.raises(InputUnreadableError):
            DumpScanner().scan(tmp_path / "missing.sql")

    def test_corrupt_gzip(self, tmp_path):
        path = tmp_path / "broken.sql.gz"
        path.write_bytes(b"not gzip data")
        with pytest.raises(InputUnreadableError):
            DumpScanner().scan(path)

    def test_gzip_corrupted_midstream(self, corrupt_gzip):
        with pytest.raises(InputUnreadableError):
            DumpScanner().scan(corrupt_gzip)

    def test_create_buffer_cap_counts_bytes(self, write_dump):
        """Test the cap is measured in encoded bytes, so multibyte names reach it sooner."""
        first = "CREATE TABLE `t` (\n"
        second = "  `نام` int,\n"
        third = "  `x` int\n"
        limit = len(first.encode()) + len(second.encode()) - 1
        assert len(first) + len(second) < limit

        path = write_dump(first + second + third + ");\n")
        t = DumpScanner(max_create_block_bytes=limit).scan(path).get("t")
        assert t.structure == first + second
        assert t.structure_truncated is True
        assert (t.create_start, t.create_end) == (1, 4)

    def test_undecodable_bytes_do_not_abort(self, tmp_path):
        path = tmp_path / "latin.sql"
        path.write_bytes(b"INSERT INTO t VALUES ('\xff\xfe');\n")
        t = DumpScanner().scan(path).get("t")
        assert t.size_bytes == len(b"INSERT INTO t VALUES ('\xff\xfe');\n")
