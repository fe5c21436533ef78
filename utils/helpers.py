import gzip
import logging
import os
import re
import shutil
import sys
from collections import Counter
from datetime import datetime
from pathlib import Path

import chardet
import jdatetime

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
_BYTE_UNITS = ("B", "KB", "MB", "GB")
TRUNCATION_MARKER = "\n\n... (truncated, structure too large) ..."


def setup_logging(level: str = "INFO", fmt: str = "%(asctime)s [%(levelname)s] %(message)s", log_file: str | Path = None):
    """تنظیم لاگ برنامه: کنسول و در صورت نیاز فایل."""
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    formatter = logging.Formatter(fmt)

    sh = logging.StreamHandler(sys.stderr)
    sh.setFormatter(formatter)
    root.addHandler(sh)

    if log_file:
        ensure_dir(Path(log_file).parent)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(formatter)
        root.addHandler(fh)
    return root


def is_gzip_file(file_path: str | Path) -> bool:
    path = Path(file_path)
    return path.suffix == ".gz" or path.name.endswith(".sql.gz")


def detect_file_encoding(file_path: str | Path, sample_size: int = 100_000) -> str:
    """تشخیص encoding فایل دامپ (عادی یا gzip) با نمونه‌گیری از ابتدای فایل."""
    path = Path(file_path)
    opener = gzip.open if is_gzip_file(path) else open
    with opener(path, "rb") as f:
        raw = f.read(sample_size)
    result = chardet.detect(raw)
    enc = result.get("encoding") or "utf-8"
    # ascii زیرمجموعه utf-8 است و در ادامه فایل ممکن است متن غیرلاتین باشد
    if enc.lower() == "ascii":
        return "utf-8"
    return enc


def ensure_dir(path: str | Path) -> Path:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_file_size_mb(file_path: str | Path) -> float:
    return os.path.getsize(file_path) / (1024 * 1024)


def format_bytes(size: int) -> str:
    """مثلاً 1536 -> '1.5 KB'"""
    size = max(size, 0)
    pow_ = 0
    value = float(size)
    while value >= 1024 and pow_ < len(_BYTE_UNITS) - 1:
        value /= 1024
        pow_ += 1
    return f"{round(value, 2):g} {_BYTE_UNITS[pow_]}"


def safe_file_name(name: str, default: str = "table") -> str:
    """نام امن برای فایل خروجی؛ جلوگیری از خروج از پوشه با / یا \\."""
    safe = _UNSAFE_NAME_CHARS.sub("_", name)
    if not safe.strip("."):
        return default
    return safe


def truncate_structure(text: str, limit: int = 50_000) -> str:
    """کوتاه کردن ساختار جدول فقط برای نمایش."""
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


def iter_dump_lines(file_path: str | Path):
    """
    فایل دامپ را به صورت باینری باز می‌کند (فشرده یا عادی).
    یک generator از خطوط bytes برمی‌گرداند تا طول و محتوای خطوط دقیق بماند.
    """
    path = Path(file_path)
    if is_gzip_file(path):
        with gzip.open(path, "rb") as f:
            yield from f
    else:
        with open(path, "rb") as f:
            yield from f


def detect_table_prefix(table_names: list[str]) -> str:
    """
    از روی لیست نام جدول‌ها، رایج‌ترین پیشوند را پیدا می‌کند.
    مثلاً wp_users, wp_posts, wp_options -> wp_
    """
    prefixes = []
    for name in table_names:
        idx = name.find("_")
        if idx > 0:
            prefixes.append(name[: idx + 1])

    counter = Counter(prefixes)
    if not counter:
        return ""

    prefix, count = counter.most_common(1)[0]
    return prefix if count >= 2 else ""


def get_shamsi_date() -> str:
    """برگرداندن تاریخ فعلی به صورت رشته."""
    now = jdatetime.datetime.now()
    return now.strftime("%Y/%m/%d")


def list_directory(directory: str | Path) -> list[dict]:
    """محتوای یک پوشه، جدیدترین اول، با حجم و زمان تغییر."""
    directory = Path(directory)
    if not directory.exists():
        return []

    items = []
    for entry in directory.iterdir():
        is_dir = entry.is_dir()
        if is_dir:
            size = sum(f.stat().st_size for f in entry.rglob("*") if f.is_file())
        else:
            size = entry.stat().st_size
        mtime = entry.stat().st_mtime
        items.append({
            "name": entry.name,
            "path": entry,
            "is_dir": is_dir,
            "type": "Directory" if is_dir else f"{entry.suffix.lstrip('.')} File",
            "size": format_bytes(size),
            "size_bytes": size,
            "modified": datetime.fromtimestamp(mtime).strftime("%Y-%m-%d %H:%M:%S"),
            "mtime": mtime,
        })
    items.sort(key=lambda item: item["mtime"], reverse=True)
    return items


def remove_path(path: str | Path) -> bool:
    """حذف فایل یا پوشه؛ برمی‌گرداند آیا چیزی حذف شد."""
    path = Path(path)
    if path.is_dir():
        shutil.rmtree(path)
        return True
    if path.exists():
        path.unlink()
        return True
    return False


def clear_directory(directory: str | Path, keep: tuple = (".htaccess", ".gitkeep")) -> int:
    """حذف همه محتوای پوشه به جز فایل‌های keep. برمی‌گرداند تعداد موارد حذف‌شده."""
    directory = Path(directory)
    if not directory.exists():
        return 0
    removed = 0
    for entry in directory.iterdir():
        if entry.name in keep:
            continue
        if remove_path(entry):
            removed += 1
    return removed


def write_output_readme(
    folder: Path,
    dump_name: str,
    size_bytes: int,
    results: list = None,
    summary=None,
) -> Path:
    """فایل README داخل پوشه خروجی با تاریخ، نام فایل، حجم و نتیجه جداسازی هر جدول."""
    readme_path = Path(folder) / "README.txt"
    lines = [
        f"تاریخ: {get_shamsi_date()}",
        f"نام فایل: {dump_name}",
        f"حجم فایل: {format_bytes(size_bytes)}",
    ]

    if summary is not None:
        lines.append("")
        lines.append(f"تعداد جدول‌ها: {summary.total_tables}")
        lines.append(f"تعداد INSERT: {summary.total_inserts}")
        lines.append(f"تعداد ردیف تخمینی: {summary.total_rows_estimated}")
        if summary.table_prefix:
            lines.append(f"پیشوند جدول‌ها: {summary.table_prefix}")

    if results:
        lines.append("")
        lines.append("جدول | فایل | حجم | وضعیت")
        lines.append("-" * 45)
        for r in results:
            file_name = r.path.name if r.path else "-"
            status = "ok" if r.success else f"error: {r.message}"
            lines.append(f"{r.table} | {file_name} | {format_bytes(r.size_bytes)} | {status}")

    content = "\n".join(lines) + "\n"
    readme_path.write_text(content, encoding="utf-8")
    return readme_path
