from pathlib import Path

import xlsxwriter
from openpyxl import Workbook

from config import EXCEL_MAX_ROWS_PER_FILE
from core.models import AnalysisResult

OVERVIEW_HEADERS = [
    "table",
    "create_start",
    "create_end",
    "insert_count",
    "estimated_rows",
    "size_bytes",
    "avg_row_size",
    "engine",
    "charset",
    "collation",
    "row_format",
    "auto_increment",
    "primary_key",
    "columns",
    "indexes",
    "foreign_keys",
]

COLUMN_HEADERS = [
    "جدول",
    "ستون",
    "نوع",
    "NULL",
    "پیش‌فرض",
    "اضافی",
    "کلید",
]


def _ensure_str(val):
    """تبدیل مقدار به رشته با پشتیبانی صحیح از Unicode/فارسی."""
    if val is None:
        return ""
    if isinstance(val, bytes):
        return val.decode("utf-8", errors="replace")
    return str(val)


class ReportExporter:
    """Exports a dump analysis (table catalog) to Excel files."""

    def __init__(self, output_dir: str | Path):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def export_overview(self, analysis: AnalysisResult, file_name: str = "tables.xlsx") -> Path:
        """یک ردیف برای هر جدول و یک شیت خلاصه دیتابیس."""
        wb = Workbook()
        ws = wb.active
        ws.title = "tables"
        ws.append(OVERVIEW_HEADERS)
        for record in analysis.tables.values():
            ws.append([
                record.name,
                record.create_start,
                record.create_end,
                record.insert_count,
                record.estimated_rows,
                record.size_bytes,
                record.avg_row_size,
                record.engine,
                record.charset,
                record.collation,
                record.row_format,
                record.auto_increment,
                record.primary_key,
                len(record.columns),
                ", ".join(f"{i.name}({i.column})" for i in record.indexes),
                ", ".join(f"{fk.table}({fk.column})" for fk in record.foreign_keys),
            ])

        summary = analysis.summary
        ws_summary = wb.create_sheet("summary")
        ws_summary.append(["total_size_bytes", summary.total_size_bytes])
        ws_summary.append(["total_tables", summary.total_tables])
        ws_summary.append(["total_inserts", summary.total_inserts])
        ws_summary.append(["total_rows_estimated", summary.total_rows_estimated])
        ws_summary.append(["has_drop_statements", summary.has_drop_statements])
        ws_summary.append(["has_create_database", summary.has_create_database])
        ws_summary.append(["table_prefix", summary.table_prefix])
        for stmt in summary.use_statements:
            ws_summary.append(["use", stmt])

        output_path = self.output_dir / file_name
        wb.save(str(output_path))
        return output_path

    def export_columns_chunked(
        self,
        analysis: AnalysisResult,
        output_base_name: str = "columns",
        max_rows_per_file: int | None = None,
    ) -> list[Path]:
        """
        ستون‌های همه جداول در چند فایل Excel با حداکثر ردیف مشخص.
        نام فایل‌ها: 1_{base}.xlsx, 2_{base}.xlsx, ...
        """
        max_rows = max_rows_per_file or EXCEL_MAX_ROWS_PER_FILE
        rows = [
            [
                record.name,
                column.name,
                column.type,
                "YES" if column.nullable else "NO",
                column.default,
                column.extra,
                column.key,
            ]
            for record in analysis.tables.values()
            for column in record.columns
        ]
        if not rows:
            return []

        exported = []
        for file_index, offset in enumerate(range(0, len(rows), max_rows), start=1):
            output_path = self.output_dir / f"{file_index}_{output_base_name}.xlsx"
            wb = xlsxwriter.Workbook(
                str(output_path),
                options={"strings_to_urls": False, "constant_memory": True},
            )
            ws = wb.add_worksheet(output_base_name[:31])
            ws.right_to_left()  # جهت راست‌به‌چپ برای فارسی
            rtl_format = wb.add_format({"reading_order": 2})

            for col, val in enumerate(COLUMN_HEADERS):
                ws.write(0, col, val, rtl_format)
            for row_idx, row in enumerate(rows[offset:offset + max_rows]):
                for col_idx, val in enumerate(row):
                    ws.write(row_idx + 1, col_idx, _ensure_str(val), rtl_format)

            wb.close()
            exported.append(output_path)

        return exported
