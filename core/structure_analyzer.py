"""
استخراج ساختار جدول از متن CREATE TABLE.
پارسر کامل SQL نیست؛ هر ویژگی با یک الگوی مستقل جستجو می‌شود و هر خط
بخش ستون‌ها به ترتیب اولویت با چند الگو مقایسه می‌شود.
"""
import re

from core.models import ColumnInfo, ForeignKeyInfo, IndexInfo, TableRecord, TableStructure, UNKNOWN


class StructureAnalyzer:
    """Derives engine/charset/columns/keys from one CREATE TABLE block."""

    _ENGINE_PATTERN = re.compile(r"ENGINE\s*=\s*(\w+)", re.IGNORECASE)
    _CHARSET_PATTERN = re.compile(r"CHARSET\s*=\s*(\w+)", re.IGNORECASE)
    _CHARACTER_SET_PATTERN = re.compile(r"CHARACTER\s+SET\s+(\w+)", re.IGNORECASE)
    _COLLATE_PATTERN = re.compile(r"COLLATE\s*=\s*([^\s;]+)", re.IGNORECASE)
    _AUTO_INCREMENT_PATTERN = re.compile(r"AUTO_INCREMENT\s*=\s*(\d+)", re.IGNORECASE)
    _ROW_FORMAT_PATTERN = re.compile(r"ROW_FORMAT\s*=\s*(\w+)", re.IGNORECASE)
    _DEFAULT_CHARSET_PATTERN = re.compile(r"DEFAULT\s+CHARSET\s*=\s*(\w+)", re.IGNORECASE)

    # بخش بین اولین "(" و آخرین ")"
    _BODY_PATTERN = re.compile(r"\(([\s\S]*)\)[^)]*$")

    _COLUMN_PATTERN = re.compile(r"^`([^`]+)`\s+([^\s,(]+(?:\([^)]+\))?)\s*(.*?)(?:,|$)")
    _PRIMARY_KEY_PATTERN = re.compile(r"PRIMARY\s+KEY\s*\(`?([^`)]+)`?\)", re.IGNORECASE)
    _INDEX_PATTERN = re.compile(
        r"^(?:(?:UNIQUE|FULLTEXT|SPATIAL)\s+)?(?:KEY|INDEX)\s+(?:`?([^`\s(]+)`?)?\s*\(`?([^`)]+)`?\)",
        re.IGNORECASE,
    )
    _FOREIGN_KEY_PATTERN = re.compile(r"FOREIGN\s+KEY", re.IGNORECASE)
    _REFERENCES_PATTERN = re.compile(r"REFERENCES\s+`?([^`\s(]+)`?\s*(?:\(`?([^`)]+)`?)?", re.IGNORECASE)

    _COLUMN_DEFAULT_PATTERN = re.compile(r"DEFAULT\s+([^,\s]+)", re.IGNORECASE)

    def analyze(self, text: str) -> TableStructure:
        structure = TableStructure()
        self._read_table_options(text, structure)

        m = self._BODY_PATTERN.search(text)
        if m:
            for line in m.group(1).split("\n"):
                self._read_body_line(line.strip(), structure)
        return structure

    def apply(self, record: TableRecord) -> TableRecord:
        """ساختار را از record.structure استخراج و روی همان رکورد ثبت می‌کند."""
        record.apply_structure(self.analyze(record.structure))
        return record

    def _read_table_options(self, text: str, structure: TableStructure) -> None:
        m = self._ENGINE_PATTERN.search(text)
        if m:
            structure.engine = m.group(1)

        m = self._CHARSET_PATTERN.search(text) or self._CHARACTER_SET_PATTERN.search(text)
        if m:
            structure.charset = m.group(1)

        m = self._COLLATE_PATTERN.search(text)
        if m:
            structure.collation = m.group(1).strip("`'\"")

        m = self._AUTO_INCREMENT_PATTERN.search(text)
        if m:
            structure.auto_increment = int(m.group(1))

        m = self._ROW_FORMAT_PATTERN.search(text)
        if m:
            structure.row_format = m.group(1)

        if structure.charset == UNKNOWN:
            m = self._DEFAULT_CHARSET_PATTERN.search(text)
            if m:
                structure.charset = m.group(1)

    def _read_body_line(self, line: str, structure: TableStructure) -> None:
        m = self._COLUMN_PATTERN.match(line)
        if m:
            options = m.group(3).strip()
            column = self._parse_column(m.group(1), m.group(2), options)
            if "PRIMARY KEY" in options.upper():
                structure.primary_key = column.name
            structure.columns.append(column)
            return

        m = self._PRIMARY_KEY_PATTERN.search(line)
        if m:
            structure.primary_key = m.group(1)
            return

        m = self._INDEX_PATTERN.match(line)
        if m:
            structure.indexes.append(IndexInfo(name=m.group(1) or "index", column=m.group(2)))
            return

        if self._FOREIGN_KEY_PATTERN.search(line):
            m = self._REFERENCES_PATTERN.search(line)
            if m:
                structure.foreign_keys.append(ForeignKeyInfo(table=m.group(1), column=m.group(2) or ""))

    def _parse_column(self, name: str, column_type: str, options: str) -> ColumnInfo:
        upper = options.upper()
        column = ColumnInfo(name=name, type=column_type, nullable="NOT NULL" not in upper)

        m = self._COLUMN_DEFAULT_PATTERN.search(options)
        if m:
            column.default = m.group(1).strip("'\"`")
        if "AUTO_INCREMENT" in upper:
            column.extra = "auto_increment"
        if "PRIMARY KEY" in upper:
            column.key = "PRI"
        # UNIQUE بعد از PRIMARY KEY بررسی می‌شود و آن را بازنویسی می‌کند
        if "UNIQUE" in upper:
            column.key = "UNI"
        return column
