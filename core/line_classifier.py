"""
تشخیص نوع هر خط فایل دامپ با الگوهای مستقل (یک الگو برای هر نوع دستور).
"""
import re

_NAME = r"[`\"]?([^`\"\s(]+)[`\"]?"


class LineClassifier:
    """Matches a single (trimmed) dump line against fixed statement signatures."""

    _CREATE_TABLE_PATTERN = re.compile(
        r"CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?" + _NAME,
        re.IGNORECASE,
    )
    _INSERT_TABLE_PATTERN = re.compile(r"INSERT\s+INTO\s+" + _NAME, re.IGNORECASE)
    _DROP_TABLE_PATTERN = re.compile(r"^DROP\s+TABLE", re.IGNORECASE)
    _CREATE_DATABASE_PATTERN = re.compile(r"^CREATE\s+DATABASE", re.IGNORECASE)
    # SET بدون IGNORECASE: خطوط /*!40101 SET ... */ و set داخل داده نادیده گرفته می‌شوند
    _SET_PATTERN = re.compile(r"^SET\b")
    _USE_PATTERN = re.compile(r"^USE\s+`", re.IGNORECASE)

    def create_table_name(self, line: str) -> str | None:
        m = self._CREATE_TABLE_PATTERN.search(line)
        return m.group(1) if m else None

    def insert_table_name(self, line: str) -> str | None:
        m = self._INSERT_TABLE_PATTERN.search(line)
        return m.group(1) if m else None

    def is_drop_table(self, line: str) -> bool:
        return bool(self._DROP_TABLE_PATTERN.match(line))

    def is_create_database(self, line: str) -> bool:
        return bool(self._CREATE_DATABASE_PATTERN.match(line))

    def is_set(self, line: str) -> bool:
        return bool(self._SET_PATTERN.match(line))

    def is_use(self, line: str) -> bool:
        return bool(self._USE_PATTERN.match(line))
