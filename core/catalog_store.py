"""
نگهداری نتیجه تحلیل هر فایل دامپ (WorkUnit) در SQLite.
هر WorkUnit مستقل است؛ هیچ وضعیت سراسری بین دو دامپ مشترک نیست.
"""
import json
import logging
import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from config import OUTPUT_DIR, WORK_DIR
from core.errors import WorkUnitNotFoundError
from core.models import AnalysisResult, DatabaseSummary, TableRecord
from utils.helpers import remove_path

logger = logging.getLogger(__name__)


@dataclass
class WorkUnit:
    """وضعیت کار روی یک فایل دامپ: مسیر فایل SQL، پوشه خروجی و کاتالوگ جداول."""

    work_id: str
    original_name: str
    dump_path: Path
    output_dir: Path
    analysis: AnalysisResult | None = None
    created_at: str = field(default_factory=lambda: datetime.now().strftime("%Y-%m-%d %H:%M:%S"))


def new_work_unit(original_name: str, work_dir: str | Path = None, output_dir: str | Path = None) -> WorkUnit:
    work_id = uuid.uuid4().hex
    work_dir = Path(work_dir or WORK_DIR)
    output_dir = Path(output_dir or OUTPUT_DIR)
    return WorkUnit(
        work_id=work_id,
        original_name=original_name,
        dump_path=work_dir / f"{work_id}.sql",
        output_dir=output_dir / f"{work_id}_split",
    )


def cleanup_work_unit(unit: WorkUnit) -> int:
    """حذف فایل SQL باز شده و پوشه خروجی. برمی‌گرداند تعداد موارد حذف‌شده."""
    removed = 0
    for path in (unit.dump_path, unit.output_dir):
        if remove_path(path):
            removed += 1
    logger.info("Cleaned up work unit %s (%s items removed)", unit.work_id, removed)
    return removed


class CatalogStore:
    """Persists work units and their table catalogs in SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.conn = None

    def connect(self):
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.db_path), timeout=30.0)
        self.conn.execute("PRAGMA busy_timeout=30000")
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA synchronous=NORMAL")
        self._create_schema()
        return self

    def _create_schema(self):
        self.conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS work_units (
                work_id TEXT PRIMARY KEY,
                original_name TEXT NOT NULL,
                dump_path TEXT NOT NULL,
                output_dir TEXT NOT NULL,
                created_at TEXT NOT NULL,
                summary TEXT
            );
            CREATE TABLE IF NOT EXISTS table_records (
                work_id TEXT NOT NULL,
                position INTEGER NOT NULL,
                name TEXT NOT NULL,
                record TEXT NOT NULL,
                PRIMARY KEY (work_id, name)
            );
            """
        )

    def commit(self):
        self.conn.commit()

    def save(self, unit: WorkUnit) -> None:
        """ذخیره (یا جایگزینی) WorkUnit و کاتالوگ جداول آن."""
        summary = None
        if unit.analysis is not None:
            summary = json.dumps(unit.analysis.summary.to_dict(), ensure_ascii=False)

        self.conn.execute(
            "INSERT OR REPLACE INTO work_units (work_id, original_name, dump_path, output_dir, created_at, summary) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (unit.work_id, unit.original_name, str(unit.dump_path), str(unit.output_dir), unit.created_at, summary),
        )
        self.conn.execute("DELETE FROM table_records WHERE work_id = ?", (unit.work_id,))
        if unit.analysis is not None:
            rows = [
                (unit.work_id, position, name, json.dumps(record.to_dict(), ensure_ascii=False))
                for position, (name, record) in enumerate(unit.analysis.tables.items())
            ]
            self.conn.executemany(
                "INSERT INTO table_records (work_id, position, name, record) VALUES (?, ?, ?, ?)",
                rows,
            )
        self.commit()

    def load(self, work_id: str) -> WorkUnit:
        row = self.conn.execute(
            "SELECT work_id, original_name, dump_path, output_dir, created_at, summary "
            "FROM work_units WHERE work_id = ?",
            (work_id,),
        ).fetchone()
        if row is None:
            raise WorkUnitNotFoundError(f"WorkUnit یافت نشد: {work_id}")

        unit = WorkUnit(
            work_id=row[0],
            original_name=row[1],
            dump_path=Path(row[2]),
            output_dir=Path(row[3]),
            created_at=row[4],
        )
        if row[5] is not None:
            cursor = self.conn.execute(
                "SELECT name, record FROM table_records WHERE work_id = ? ORDER BY position",
                (work_id,),
            )
            tables = {name: TableRecord.from_dict(json.loads(data)) for name, data in cursor.fetchall()}
            unit.analysis = AnalysisResult(
                tables=tables,
                summary=DatabaseSummary.from_dict(json.loads(row[5])),
                dump_path=str(unit.dump_path),
            )
        return unit

    def list_units(self) -> list[dict]:
        cursor = self.conn.execute(
            "SELECT w.work_id, w.original_name, w.created_at, COUNT(t.name) "
            "FROM work_units w LEFT JOIN table_records t ON t.work_id = w.work_id "
            "GROUP BY w.work_id ORDER BY w.created_at DESC"
        )
        return [
            {"work_id": r[0], "original_name": r[1], "created_at": r[2], "tables": r[3]}
            for r in cursor.fetchall()
        ]

    def delete(self, work_id: str) -> bool:
        self.conn.execute("DELETE FROM table_records WHERE work_id = ?", (work_id,))
        cursor = self.conn.execute("DELETE FROM work_units WHERE work_id = ?", (work_id,))
        self.commit()
        return cursor.rowcount > 0

    def clear(self) -> int:
        """حذف همه WorkUnit ها. برمی‌گرداند تعداد حذف‌شده."""
        count = self.conn.execute("SELECT COUNT(*) FROM work_units").fetchone()[0]
        self.conn.execute("DELETE FROM table_records")
        self.conn.execute("DELETE FROM work_units")
        self.commit()
        return count

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        self.close()
