"""
مدل‌های داده نتیجه تحلیل دامپ: رکورد هر جدول، خلاصه دیتابیس و نتیجه استخراج.
"""
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path

UNKNOWN = "Unknown"


@dataclass
class ColumnInfo:
    name: str
    type: str
    nullable: bool = True
    default: str | None = None
    extra: str = ""
    key: str = ""


@dataclass
class IndexInfo:
    name: str
    column: str


@dataclass
class ForeignKeyInfo:
    table: str
    column: str = ""


@dataclass
class TableStructure:
    """Structural fields derived from one CREATE TABLE block."""

    engine: str = UNKNOWN
    charset: str = UNKNOWN
    collation: str | None = None
    auto_increment: int | None = None
    row_format: str | None = None
    columns: list[ColumnInfo] = field(default_factory=list)
    primary_key: str | None = None
    indexes: list[IndexInfo] = field(default_factory=list)
    foreign_keys: list[ForeignKeyInfo] = field(default_factory=list)


@dataclass
class TableRecord:
    """اطلاعات ساختاری و موقعیتی یک جدول در فایل دامپ."""

    name: str
    create_start: int = 0
    create_end: int = 0
    insert_count: int = 0
    insert_positions: list[int] = field(default_factory=list)
    row_estimates: list[int] = field(default_factory=list)
    estimated_rows: int = 0
    size_bytes: int = 0
    avg_row_size: float | None = None
    structure: str = ""
    structure_truncated: bool = False
    engine: str = UNKNOWN
    charset: str = UNKNOWN
    collation: str | None = None
    row_format: str | None = None
    auto_increment: int | None = None
    columns: list[ColumnInfo] = field(default_factory=list)
    primary_key: str | None = None
    indexes: list[IndexInfo] = field(default_factory=list)
    foreign_keys: list[ForeignKeyInfo] = field(default_factory=list)

    @property
    def has_create(self) -> bool:
        return self.create_start > 0

    def add_insert(self, line_number: int, size: int, rows: int) -> None:
        self.insert_count += 1
        self.insert_positions.append(line_number)
        self.size_bytes += size
        self.row_estimates.append(rows)

    def apply_structure(self, structure: TableStructure) -> None:
        for f in fields(structure):
            setattr(self, f.name, getattr(structure, f.name))

    def finalize(self) -> None:
        """محاسبه تعداد ردیف تخمینی و میانگین اندازه ردیف."""
        self.estimated_rows = sum(self.row_estimates)
        if self.estimated_rows > 0:
            self.avg_row_size = round(self.size_bytes / self.estimated_rows, 2)
        else:
            self.avg_row_size = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "TableRecord":
        data = dict(data)
        data["columns"] = [ColumnInfo(**c) for c in data.get("columns", [])]
        data["indexes"] = [IndexInfo(**i) for i in data.get("indexes", [])]
        data["foreign_keys"] = [ForeignKeyInfo(**fk) for fk in data.get("foreign_keys", [])]
        return cls(**data)


@dataclass
class DatabaseSummary:
    total_size_bytes: int = 0
    total_tables: int = 0
    total_inserts: int = 0
    total_rows_estimated: int = 0
    has_drop_statements: bool = False
    has_create_database: bool = False
    set_statements: list[str] = field(default_factory=list)
    use_statements: list[str] = field(default_factory=list)
    table_prefix: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "DatabaseSummary":
        return cls(**data)


@dataclass
class AnalysisResult:
    """کاتالوگ جداول (نام -> رکورد) به همراه خلاصه دیتابیس."""

    tables: dict[str, TableRecord]
    summary: DatabaseSummary
    dump_path: str = ""

    def get(self, table_name: str) -> TableRecord | None:
        return self.tables.get(table_name)

    def table_names(self) -> list[str]:
        return list(self.tables)


@dataclass
class ExtractionResult:
    table: str
    success: bool
    message: str = ""
    path: Path | None = None
    size_bytes: int = 0


@dataclass
class SplitResult:
    output_dir: Path
    results: list[ExtractionResult] = field(default_factory=list)

    @property
    def created(self) -> list[ExtractionResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[ExtractionResult]:
        return [r for r in self.results if not r.success]
