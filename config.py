"""
تنظیمات برنامه تقسیم فایل دامپ.
هر مقدار را می‌توان با متغیر محیطی هم‌نام تغییر داد.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

# پوشه فایل‌های فشرده ورودی (.gz, .zip, .sql)
DUMP_DIR = Path(os.getenv("DUMP_DIR", BASE_DIR / "dumps"))

# پوشه فایل‌های SQL استخراج‌شده از آرشیو
WORK_DIR = Path(os.getenv("WORK_DIR", BASE_DIR / "uploads"))

# پوشه خروجی جداول جداشده
OUTPUT_DIR = Path(os.getenv("OUTPUT_DIR", BASE_DIR / "outputs"))

# دیتابیس SQLite برای نگهداری نتیجه تحلیل هر فایل
CATALOG_DB_PATH = Path(os.getenv("CATALOG_DB_PATH", BASE_DIR / "data" / "catalog.db"))

DEFAULT_ENCODING = os.getenv("DEFAULT_ENCODING", "utf-8")

ARCHIVE_EXTENSIONS = (".gz", ".zip", ".sql")

MAX_ARCHIVE_SIZE_MB = int(os.getenv("MAX_ARCHIVE_SIZE_MB", "500"))

# حداکثر طول ساختار جدول برای نمایش (در استخراج استفاده نمی‌شود)
STRUCTURE_DISPLAY_LIMIT = int(os.getenv("STRUCTURE_DISPLAY_LIMIT", "50000"))

# سقف بافر متن CREATE TABLE؛ 0 یعنی بدون محدودیت
MAX_CREATE_BLOCK_BYTES = int(os.getenv("MAX_CREATE_BLOCK_BYTES", "0")) or None

# گزارش پیشرفت اسکن هر چند مگابایت
SCAN_PROGRESS_MB = int(os.getenv("SCAN_PROGRESS_MB", "100"))

EXCEL_MAX_ROWS_PER_FILE = int(os.getenv("EXCEL_MAX_ROWS_PER_FILE", "500000"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_FILE = os.getenv("LOG_FILE", "")
