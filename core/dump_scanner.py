"""
اسکن تک‌گذره فایل دامپ MySQL.
بدون بارگذاری کل فایل در حافظه: فقط موقعیت خطوط CREATE TABLE و INSERT
هر جدول و متن CREATE TABLE جدول در حال خواندن نگه داشته می‌شود.
"""
import logging
import zlib
from pathlib import Path

from config import DEFAULT_ENCODING, SCAN_PROGRESS_MB
from core.errors import DuplicateTableError, InputUnreadableError
from core.line_classifier import LineClassifier
from core.models import AnalysisResult, DatabaseSummary, TableRecord
from core.row_estimator import estimate_rows
from core.structure_analyzer import StructureAnalyzer
from utils.helpers import detect_table_prefix, iter_dump_lines

logger = logging.getLogger(__name__)

ON_DUPLICATE_REPLACE = "replace"
ON_DUPLICATE_ERROR = "error"


class _ScanState:
    """وضعیت یک اسکن: OUTSIDE یا IN_CREATE و رکورد CREATE در حال ساخت."""

    def __init__(self):
        self.tables: dict[str, TableRecord] = {}
        self.summary = DatabaseSummary()
        self.line_number = 0
        self.current: TableRecord | None = None
        self.create_lines: list[str] = []
        self.create_bytes = 0

    @property
    def in_create(self) -> bool:
        return self.current is not None


class DumpScanner:
    """خواندن فایل دامپ و ساخت کاتالوگ جداول و خلاصه دیتابیس."""

    def __init__(
        self,
        encoding: str = None,
        on_duplicate: str = ON_DUPLICATE_REPLACE,
        max_create_block_bytes: int | None = None,
        classifier: LineClassifier = None,
        analyzer: StructureAnalyzer = None,
    ):
        if on_duplicate not in (ON_DUPLICATE_REPLACE, ON_DUPLICATE_ERROR):
            raise ValueError(f"invalid on_duplicate policy: {on_duplicate!r}")
        self.encoding = encoding or DEFAULT_ENCODING
        self.on_duplicate = on_duplicate
        self.max_create_block_bytes = max_create_block_bytes
        self.classifier = classifier or LineClassifier()
        self.analyzer = analyzer or StructureAnalyzer()

    def scan(self, dump_path: str | Path) -> AnalysisResult:
        path = Path(dump_path)
        if not path.is_file():
            raise InputUnreadableError(f"فایل یافت نشد: {path}")

        logger.info("Scanning %s", path)
        try:
            result = self.scan_lines(iter_dump_lines(path))
        except (OSError, EOFError, zlib.error) as e:
            raise InputUnreadableError(f"خطا در خواندن {path}: {e}") from e
        result.dump_path = str(path)
        return result

    def scan_lines(self, lines) -> AnalysisResult:
        """lines: iterable از خطوط bytes به ترتیب فایل (با newline)."""
        state = _ScanState()
        progress_step = SCAN_PROGRESS_MB * 1024 * 1024
        next_progress = progress_step

        for raw in lines:
            state.line_number += 1
            state.summary.total_size_bytes += len(raw)
            self._scan_line(state, raw)

            if progress_step and state.summary.total_size_bytes >= next_progress:
                logger.info(
                    "Processed %s MB (%s lines)",
                    state.summary.total_size_bytes // (1024 * 1024),
                    state.line_number,
                )
                next_progress += progress_step

        if state.in_create:
            self._close_create(state, state.line_number)

        return self._finish(state)

    def _scan_line(self, state: _ScanState, raw: bytes) -> None:
        text = raw.decode(self.encoding, errors="replace")
        line = text.strip()

        create_name = self.classifier.create_table_name(line)
        if create_name:
            if state.in_create:
                self._close_create(state, state.line_number - 1)
            self._open_create(state, create_name, raw, text)
        elif state.in_create:
            self._buffer_create_line(state, raw, text)

        insert_name = self.classifier.insert_table_name(line)
        if insert_name:
            record = state.tables.get(insert_name)
            if record is None:
                record = state.tables[insert_name] = TableRecord(name=insert_name)
            rows = estimate_rows(line)
            record.add_insert(state.line_number, len(raw), rows)
            state.summary.total_rows_estimated += rows

        if state.in_create and ";" in line:
            self._close_create(state, state.line_number)

        self._detect_database_operations(state.summary, line)

    def _open_create(self, state: _ScanState, name: str, raw: bytes, text: str) -> None:
        state.current = TableRecord(name=name, create_start=state.line_number)
        state.create_lines = []
        state.create_bytes = 0
        self._buffer_create_line(state, raw, text)

    def _buffer_create_line(self, state: _ScanState, raw: bytes, text: str) -> None:
        """سقف بافر بر حسب بایت خام خطوط است، نه تعداد کاراکتر."""
        limit = self.max_create_block_bytes
        if limit is not None and state.create_bytes >= limit:
            state.current.structure_truncated = True
            return
        state.create_lines.append(text)
        state.create_bytes += len(raw)

    def _close_create(self, state: _ScanState, end_line: int) -> None:
        record = state.current
        record.create_end = end_line
        record.structure = "".join(state.create_lines)
        self.analyzer.apply(record)

        previous = state.tables.get(record.name)
        if previous is not None and previous.has_create and self.on_duplicate == ON_DUPLICATE_ERROR:
            raise DuplicateTableError(record.name, record.create_start)
        if previous is not None and previous.insert_count:
            # آمار INSERT ثبت‌شده برای رکورد قبلی از بین می‌رود
            logger.warning(
                "Table %s redefined at line %s; dropping %s earlier INSERT statements",
                record.name,
                record.create_start,
                previous.insert_count,
            )
        state.tables[record.name] = record

        state.current = None
        state.create_lines = []
        state.create_bytes = 0

    def _detect_database_operations(self, summary: DatabaseSummary, line: str) -> None:
        if self.classifier.is_drop_table(line):
            summary.has_drop_statements = True
        if self.classifier.is_create_database(line):
            summary.has_create_database = True
        if self.classifier.is_set(line):
            summary.set_statements.append(line)
        if self.classifier.is_use(line):
            summary.use_statements.append(line)

    def _finish(self, state: _ScanState) -> AnalysisResult:
        """
        total_tables و total_inserts از کاتالوگ نهایی شمرده می‌شوند، نه هنگام بسته شدن هر CREATE؛
        پس جدول‌های فقط-INSERT هم شمرده می‌شوند و INSERT های رکورد جایگزین‌شده حذف می‌شوند.
        total_rows_estimated در طول اسکن جمع می‌شود و آن INSERT ها را هم شامل است.
        """
        summary = state.summary
        for record in state.tables.values():
            record.finalize()
        summary.total_tables = len(state.tables)
        summary.total_inserts = sum(r.insert_count for r in state.tables.values())
        summary.table_prefix = detect_table_prefix(list(state.tables))

        logger.info(
            "Scan complete: %s lines, %s tables, %s INSERT statements, ~%s rows",
            state.line_number,
            summary.total_tables,
            summary.total_inserts,
            summary.total_rows_estimated,
        )
        return AnalysisResult(tables=state.tables, summary=summary)
