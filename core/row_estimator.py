"""تخمین تعداد ردیف‌های یک دستور INSERT تک‌خطی."""
import re

_VALUES_PATTERN = re.compile(r"VALUES\s*\((.*)\)", re.IGNORECASE)
_ROW_SEPARATOR = "),("


def estimate_rows(insert_line: str) -> int:
    """
    تعداد ردیف‌ها = تعداد "),(" داخل بخش VALUES به علاوه یک.
    اگر VALUES روی همین خط نباشد (INSERT چندخطی) یک برمی‌گرداند.
    مقادیر رشته‌ای پارس نمی‌شوند؛ رشته‌ای که خودش شامل "),(" باشد بیش‌شماری می‌کند.
    """
    m = _VALUES_PATTERN.search(insert_line)
    if not m:
        return 1
    return m.group(1).count(_ROW_SEPARATOR) + 1
