"""
ساخت فایل SQL جداگانه برای هر جدول با استفاده از موقعیت خطوط ثبت‌شده در اسکن.
خطوط بدون تغییر (bytes) کپی می‌شوند؛ خروجی هر جدول یک فایل مستقل است.
"""
import logging
import zlib
from pathlib import Path

from core.errors import InputUnreadableError, OutputUnwritableError
from core.models import AnalysisResult, ExtractionResult, SplitResult, TableRecord
from utils.helpers import ensure_dir, iter_dump_lines, safe_file_name

logger = logging.getLogger(__name__)


def output_file_name(table_name: str) -> str:
    return f"{safe_file_name(table_name)}.sql"


def output_file_names(table_names: list[str]) -> dict[str, str]:
    """
    نام فایل خروجی هر جدول، بدون تکرار.
    دو نام که بعد از پاک‌سازی یکی شوند (مثلاً دو نام فارسی هم‌طول) پسوند _2، _3 و ... می‌گیرند.
    """
    names = {}
    used = set()
    for table_name in table_names:
        base = safe_file_name(table_name)
        candidate = f"{base}.sql"
        n = 2
        while candidate.lower() in used:
            candidate = f"{base}_{n}.sql"
            n += 1
        used.add(candidate.lower())
        names[table_name] = candidate
    return names


class _TableWriter:
    """خروجی یک جدول در گذر رو به جلو روی فایل دامپ."""

    def __init__(self, record: TableRecord, path: Path):
        self.record = record
        self.path = path
        self.handle = None
        self.error: str | None = None
        self.next_index = 0

    @property
    def positions(self) -> list[int]:
        return self.record.insert_positions

    @property
    def needs_rewind(self) -> bool:
        """INSERT قبل از پایان CREATE؛ ترتیب خروجی در یک گذر حفظ نمی‌شود."""
        record = self.record
        return bool(record.has_create and self.positions and self.positions[0] <= record.create_end)

    def open(self) -> None:
        try:
            self.handle = open(self.path, "wb")
        except OSError as e:
            raise OutputUnwritableError(f"ساخت فایل خروجی ممکن نیست: {self.path} ({e})") from e

    def close(self) -> None:
        if self.handle is not None:
            self.handle.close()
            self.handle = None

    def write(self, raw: bytes) -> None:
        if self.error:
            return
        try:
            self.handle.write(raw)
        except OSError as e:
            self.error = f"خطا در نوشتن {self.path}: {e}"

    def feed(self, line_number: int, raw: bytes) -> None:
        record = self.record
        if record.has_create and record.create_start <= line_number <= record.create_end:
            self.write(raw)
        elif self.next_index < len(self.positions) and line_number == self.positions[self.next_index]:
            self.write(raw)
            self.next_index += 1

    def is_finished(self, line_number: int) -> bool:
        if self.error:
            return True
        create_done = not self.record.has_create or line_number >= self.record.create_end
        return create_done and self.next_index >= len(self.positions)


class TableExtractor:
    """Re-reads the original dump and writes one standalone file per table."""

    def extract_table(self, dump_path: str | Path, record: TableRecord, output_path: str | Path) -> ExtractionResult:
        """
        خروجی: خطوط [create_start, create_end] (اگر CREATE دیده شده باشد)
        و سپس خطوط insert_positions به ترتیب صعودی.
        """
        writer = _TableWriter(record, Path(output_path))
        try:
            writer.open()
        except OutputUnwritableError as e:
            return self._failure(record.name, str(e))

        try:
            if writer.needs_rewind:
                self._copy_in_two_passes(dump_path, writer)
            else:
                self._copy_in_one_pass(dump_path, [writer])
        except InputUnreadableError as e:
            writer.error = str(e)
        finally:
            writer.close()
        return self._result(writer)

    def split(
        self,
        analysis: AnalysisResult,
        tables: list[str],
        output_dir: str | Path,
        single_pass: bool = True,
    ) -> SplitResult:
        """
        جداسازی جداول انتخاب‌شده. شکست یک جدول روی بقیه اثری ندارد.
        single_pass: یک گذر مشترک روی دامپ برای همه جداول.
        """
        requested = list(dict.fromkeys(tables))
        result = SplitResult(output_dir=Path(output_dir))
        try:
            ensure_dir(output_dir)
        except OSError as e:
            result.results = [self._failure(name, f"ساخت پوشه خروجی ممکن نیست: {e}") for name in requested]
            return result

        dump_path = analysis.dump_path
        records = []
        for name in requested:
            record = analysis.get(name)
            if record is None:
                result.results.append(self._failure(name, "جدول در دامپ یافت نشد"))
            else:
                records.append(record)
        file_names = output_file_names([record.name for record in records])

        shared = []
        for record in records:
            if not single_pass:
                path = result.output_dir / file_names[record.name]
                result.results.append(self.extract_table(dump_path, record, path))
                continue
            writer = _TableWriter(record, result.output_dir / file_names[record.name])
            if writer.needs_rewind:
                result.results.append(self.extract_table(dump_path, record, writer.path))
                continue
            try:
                writer.open()
            except OutputUnwritableError as e:
                result.results.append(self._failure(record.name, str(e)))
                continue
            shared.append(writer)

        if shared:
            try:
                self._copy_in_one_pass(dump_path, shared)
            except InputUnreadableError as e:
                for writer in shared:
                    writer.error = str(e)
            finally:
                for writer in shared:
                    writer.close()
            result.results.extend(self._result(writer) for writer in shared)

        order = {name: i for i, name in enumerate(requested)}
        result.results.sort(key=lambda r: order[r.table])
        return result

    def _copy_in_one_pass(self, dump_path, writers: list[_TableWriter]) -> None:
        pending = list(writers)
        line_number = 0
        try:
            for raw in iter_dump_lines(dump_path):
                line_number += 1
                for writer in pending:
                    writer.feed(line_number, raw)
                pending = [w for w in pending if not w.is_finished(line_number)]
                if not pending:
                    break
        except (OSError, EOFError, zlib.error) as e:
            raise InputUnreadableError(f"خطا در خواندن {dump_path}: {e}") from e

    def _copy_in_two_passes(self, dump_path, writer: _TableWriter) -> None:
        """اول بازه CREATE، سپس از ابتدای فایل خطوط INSERT."""
        record = writer.record
        try:
            line_number = 0
            for raw in iter_dump_lines(dump_path):
                line_number += 1
                if line_number >= record.create_start:
                    writer.write(raw)
                if line_number >= record.create_end:
                    break

            line_number = 0
            for raw in iter_dump_lines(dump_path):
                if writer.next_index >= len(writer.positions):
                    break
                line_number += 1
                if line_number == writer.positions[writer.next_index]:
                    writer.write(raw)
                    writer.next_index += 1
        except (OSError, EOFError, zlib.error) as e:
            raise InputUnreadableError(f"خطا در خواندن {dump_path}: {e}") from e

    def _result(self, writer: _TableWriter) -> ExtractionResult:
        name = writer.record.name
        if writer.error:
            # فایل ناقص باقی نمی‌ماند
            writer.path.unlink(missing_ok=True)
            return self._failure(name, writer.error)

        size = writer.path.stat().st_size
        logger.info("Extracted %s -> %s (%s bytes)", name, writer.path.name, size)
        return ExtractionResult(table=name, success=True, message="ok", path=writer.path, size_bytes=size)

    def _failure(self, table: str, message: str) -> ExtractionResult:
        logger.error("Extraction of %s failed: %s", table, message)
        return ExtractionResult(table=table, success=False, message=message)
