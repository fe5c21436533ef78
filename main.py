import argparse
import logging
import sys

from bidi.algorithm import get_display

from config import (
    CATALOG_DB_PATH,
    DUMP_DIR,
    LOG_FILE,
    LOG_FORMAT,
    LOG_LEVEL,
    MAX_CREATE_BLOCK_BYTES,
    OUTPUT_DIR,
    STRUCTURE_DISPLAY_LIMIT,
    WORK_DIR,
)

# رفع خطای Unicode در ویندوز
if sys.platform == "win32" and hasattr(sys.stdout, "reconfigure"):
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")

from core.archive import ArchiveHandler
from core.catalog_store import CatalogStore, WorkUnit, cleanup_work_unit, new_work_unit
from core.dump_scanner import DumpScanner
from core.errors import DumpSplitterError, WorkUnitNotFoundError
from core.extractor import TableExtractor
from core.report_exporter import ReportExporter
from utils.helpers import (
    clear_directory,
    detect_file_encoding,
    format_bytes,
    list_directory,
    setup_logging,
    truncate_structure,
    write_output_readme,
)

logger = logging.getLogger(__name__)


def rtl(text: str) -> str:
    """تبدیل متن فارسی/عربی برای نمایش درست در کنسول."""
    return get_display(text)


def select_archive(handler: ArchiveHandler):
    """نمایش لیست فایل‌ها و انتخاب توسط کاربر."""
    files = handler.list_files()

    if not files:
        print(rtl(f"هیچ فایل دامپی در پوشه {DUMP_DIR} یافت نشد."))
        print(rtl("فایل‌های مجاز: .sql, .gz, .zip"))
        return None

    print(rtl("\nفایل‌های دامپ موجود:"))
    print("-" * 50)
    for i, f in enumerate(files):
        comp = rtl(" [فشرده]") if f["compressed"] else ""
        print(f"  {i + 1}. {f['name']} ({f['size_mb']} MB){comp}")
    print("-" * 50)

    while True:
        try:
            choice = input(rtl("شماره فایل را وارد کنید (یا Enter برای اولین فایل، 0 برای خروج):  ")).strip()
            if not choice:
                idx = 0
            else:
                idx = int(choice)
                if idx == 0:
                    return None
                idx -= 1
            path = handler.select_file(idx)
            if path:
                return path
            print(rtl("شماره نامعتبر است."))
        except ValueError:
            print(rtl("لطفاً یک عدد وارد کنید."))
        except (KeyboardInterrupt, EOFError):
            print(rtl("\nلغو شد."))
            return None


def parse_table_selection(choice: str, table_names: list[str]) -> list[str]:
    """
    'all' یا '*' برای همه جداول، وگرنه لیست جداشده با کاما از شماره‌ها یا نام جدول‌ها.
    موارد نامعتبر نادیده گرفته می‌شوند.
    """
    choice = choice.strip()
    if choice.lower() in ("all", "*"):
        return list(table_names)

    selected = []
    for part in choice.split(","):
        part = part.strip()
        if not part:
            continue
        if part.isdigit():
            idx = int(part) - 1
            if 0 <= idx < len(table_names):
                selected.append(table_names[idx])
        elif part in table_names:
            selected.append(part)
    return list(dict.fromkeys(selected))


def print_analysis(analysis):
    summary = analysis.summary
    print(rtl(f"\nحجم دامپ: {format_bytes(summary.total_size_bytes)}"))
    print(rtl(f"تعداد جدول‌ها: {summary.total_tables}"))
    print(rtl(f"دستورات INSERT: {summary.total_inserts}"))
    print(rtl(f"ردیف تخمینی: {summary.total_rows_estimated}"))
    if summary.table_prefix:
        print(rtl(f"پیشوند تشخیص داده شده: '{summary.table_prefix}'"))
    if summary.has_drop_statements:
        print(rtl("دامپ شامل DROP TABLE است."))
    if summary.has_create_database:
        print(rtl("دامپ شامل CREATE DATABASE است."))

    print("-" * 70)
    for i, record in enumerate(analysis.tables.values()):
        create = f"{record.create_start}-{record.create_end}" if record.has_create else "-"
        print(
            f"  {i + 1}. {record.name}  lines={create}  inserts={record.insert_count}  "
            f"rows~{record.estimated_rows}  size={format_bytes(record.size_bytes)}  "
            f"engine={record.engine}  charset={record.charset}"
        )
    print("-" * 70)


def show_structure(analysis, table_name: str):
    record = analysis.get(table_name)
    if record is None or not record.has_create:
        print(rtl(f"ساختاری برای {table_name} یافت نشد."))
        return
    print(truncate_structure(record.structure, STRUCTURE_DISPLAY_LIMIT))


def cleanup_all():
    """حذف همه فایل‌های موقت، خروجی‌ها و کاتالوگ ذخیره‌شده."""
    removed = clear_directory(WORK_DIR) + clear_directory(OUTPUT_DIR)
    with CatalogStore(CATALOG_DB_PATH) as store:
        units = store.clear()
    print(rtl(f"{removed} فایل/پوشه و {units} کار ذخیره‌شده حذف شد."))


def list_outputs():
    """نمایش کارهای ذخیره‌شده و پوشه‌های خروجی، جدیدترین اول."""
    with CatalogStore(CATALOG_DB_PATH) as store:
        units = store.list_units()
    if units:
        print(rtl("کارهای ذخیره‌شده (برای ادامه: --resume <work_id>):"))
        for unit in units:
            print(f"  {unit['work_id']}  {unit['created_at']}  tables={unit['tables']}  {unit['original_name']}")

    items = list_directory(OUTPUT_DIR)
    if not items:
        print(rtl("هیچ خروجی‌ای وجود ندارد."))
        return
    for item in items:
        print(f"  {item['modified']}  {item['size']:>10}  {item['name']}")


def load_work_unit(work_id: str) -> WorkUnit | None:
    with CatalogStore(CATALOG_DB_PATH) as store:
        try:
            return store.load(work_id)
        except WorkUnitNotFoundError as e:
            print(rtl(f"خطا: {e}"))
            return None


def delete_work_unit(work_id: str) -> bool:
    """حذف یک کار: فایل SQL باز شده، پوشه خروجی و رکورد کاتالوگ."""
    with CatalogStore(CATALOG_DB_PATH) as store:
        try:
            unit = store.load(work_id)
        except WorkUnitNotFoundError as e:
            print(rtl(f"خطا: {e}"))
            return False
        removed = cleanup_work_unit(unit)
        store.delete(work_id)
    print(rtl(f"کار {work_id} حذف شد ({removed} فایل/پوشه)."))
    return True


def resume_work_unit(work_id: str):
    """ادامه از تحلیل ذخیره‌شده: بدون اسکن دوباره، مستقیم انتخاب و جداسازی جداول."""
    unit = load_work_unit(work_id)
    if unit is None:
        return None
    if unit.analysis is None or not unit.dump_path.is_file():
        print(rtl(f"فایل SQL یا تحلیل این کار در دسترس نیست: {unit.dump_path}"))
        return None
    print(rtl(f"ادامه کار روی {unit.original_name}"))
    return split_tables(unit, unit.dump_path.stat().st_size)


def analyze_archive(handler: ArchiveHandler, archive_path):
    """باز کردن آرشیو، تحلیل و ذخیره WorkUnit. در صورت خطا None."""
    info = handler.get_info(archive_path)
    print(rtl(f"\nفایل انتخاب شده: {info['name']}"))
    print(rtl(f"حجم: {info['size_mb']} MB"))
    print(rtl(f"فشرده: {'بله' if info['compressed'] else 'خیر'}"))

    unit = new_work_unit(info["name"], WORK_DIR, OUTPUT_DIR)
    try:
        print(rtl("\nدر حال باز کردن فایل..."))
        handler.extract(archive_path, unit.dump_path)

        print(rtl("در حال تحلیل ساختار SQL..."))
        encoding = detect_file_encoding(unit.dump_path)
        logger.info("Detected encoding %s for %s", encoding, unit.original_name)
        scanner = DumpScanner(encoding=encoding, max_create_block_bytes=MAX_CREATE_BLOCK_BYTES)
        unit.analysis = scanner.scan(unit.dump_path)
    except DumpSplitterError as e:
        print(rtl(f"خطا: {e}"))
        cleanup_work_unit(unit)
        return None

    with CatalogStore(CATALOG_DB_PATH) as store:
        store.save(unit)
    print(rtl(f"شناسه کار: {unit.work_id}"))
    return unit, info["size_bytes"]


def split_tables(unit: WorkUnit, source_size: int):
    """انتخاب جداول توسط کاربر، جداسازی، و ساخت README و گزارش‌های Excel."""
    analysis = unit.analysis
    print_analysis(analysis)
    if not analysis.tables:
        print(rtl("هیچ جدولی در فایل یافت نشد."))
        return None

    table_names = analysis.table_names()
    try:
        choice = input(rtl("جداول مورد نظر (all یا شماره/نام با کاما، ?نام برای نمایش ساختار):  "))
        while choice.strip().startswith("?"):
            show_structure(analysis, choice.strip()[1:].strip())
            choice = input(rtl("جداول مورد نظر:  "))
    except (KeyboardInterrupt, EOFError):
        print(rtl("\nلغو شد."))
        return None

    selected = parse_table_selection(choice, table_names)
    if not selected:
        print(rtl("هیچ جدولی انتخاب نشد."))
        return None

    print(rtl(f"\nدر حال جداسازی {len(selected)} جدول..."))
    result = TableExtractor().split(analysis, selected, unit.output_dir)
    for r in result.results:
        if r.success:
            print(rtl(f"  {r.table} -> {r.path.name} ({format_bytes(r.size_bytes)})"))
        else:
            print(rtl(f"  {r.table}: خطا - {r.message}"))

    exporter = ReportExporter(unit.output_dir)
    write_output_readme(
        unit.output_dir,
        unit.original_name,
        source_size,
        results=result.results,
        summary=analysis.summary,
    )
    exporter.export_overview(analysis)
    exporter.export_columns_chunked(analysis)

    print(rtl(f"\nپوشه خروجی: {unit.output_dir}"))
    print(rtl(f"{len(result.created)} فایل ساخته شد، {len(result.failed)} خطا."))
    logger.info("Work unit %s done", unit.work_id)
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Analyze a MySQL dump and split it into one SQL file per table.")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--cleanup", action="store_true", help="remove all work units, outputs and the catalog")
    group.add_argument("--list", action="store_true", help="list saved work units and output folders")
    group.add_argument("--resume", metavar="WORK_ID", help="split tables from a saved analysis")
    group.add_argument("--delete", metavar="WORK_ID", help="remove one work unit and its files")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(LOG_LEVEL, LOG_FORMAT, LOG_FILE or None)

    if args.cleanup:
        cleanup_all()
        return
    if args.list:
        list_outputs()
        return
    if args.delete:
        delete_work_unit(args.delete)
        return
    if args.resume:
        resume_work_unit(args.resume)
        return

    print(rtl("=== SQL Dump Splitter ==="))
    print(rtl(f"پوشه دامپ: {DUMP_DIR}"))
    print(rtl(f"خروجی: {OUTPUT_DIR}"))

    handler = ArchiveHandler(DUMP_DIR)
    archive_path = select_archive(handler)
    if not archive_path:
        return

    analyzed = analyze_archive(handler, archive_path)
    if analyzed is None:
        return
    unit, source_size = analyzed
    split_tables(unit, source_size)


if __name__ == "__main__":
    main()
