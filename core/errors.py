"""خطاهای تقسیم‌کننده دامپ."""


class DumpSplitterError(Exception):
    """Base class for all splitter errors."""


class InputUnreadableError(DumpSplitterError):
    """فایل دامپ قابل باز کردن یا خواندن نیست؛ تحلیل کامل متوقف می‌شود."""


class OutputUnwritableError(DumpSplitterError):
    """فایل خروجی یک جدول ساخته نمی‌شود؛ فقط همان جدول شکست می‌خورد."""


class ArchiveError(DumpSplitterError):
    """آرشیو ورودی معتبر نیست یا باز نمی‌شود."""


class DuplicateTableError(DumpSplitterError):
    """CREATE TABLE تکراری در حالت سخت‌گیرانه."""

    def __init__(self, table: str, line_number: int):
        super().__init__(f"CREATE TABLE تکراری برای {table} در خط {line_number}")
        self.table = table
        self.line_number = line_number


class WorkUnitNotFoundError(DumpSplitterError):
    pass
