"""
لیست و باز کردن آرشیوهای دامپ (.gz، .zip یا .sql عادی).
خروجی همیشه یک فایل .sql روی دیسک است که اسکنر و استخراج‌گر روی آن کار می‌کنند.
"""
import gzip
import logging
import shutil
import zipfile
import zlib
from pathlib import Path, PurePosixPath

from config import ARCHIVE_EXTENSIONS, DUMP_DIR, MAX_ARCHIVE_SIZE_MB
from core.errors import ArchiveError
from utils.helpers import ensure_dir, get_file_size_mb, is_gzip_file

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def archive_kind(path: str | Path) -> str | None:
    """نوع آرشیو بر اساس پسوند: gz، zip، sql یا None."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in ARCHIVE_EXTENSIONS:
        return None
    return suffix.lstrip(".")


class ArchiveHandler:
    """Lists dump archives in a folder and decompresses one of them to a .sql file."""

    def __init__(self, dump_dir: str | Path = None, max_size_mb: int = None):
        self.dump_dir = Path(dump_dir or DUMP_DIR)
        self.max_size_mb = max_size_mb or MAX_ARCHIVE_SIZE_MB

    def list_files(self) -> list[dict]:
        """لیست فایل‌های دامپ موجود در پوشه."""
        if not self.dump_dir.exists():
            return []

        result = []
        for f in sorted(self.dump_dir.iterdir()):
            if not f.is_file() or archive_kind(f) is None:
                continue
            result.append({
                "name": f.name,
                "path": f,
                "size_mb": round(get_file_size_mb(f), 2),
                "compressed": is_compressed(f),
            })
        return result

    def select_file(self, index: int) -> Path | None:
        """انتخاب فایل بر اساس شماره در لیست."""
        files = self.list_files()
        if 0 <= index < len(files):
            return files[index]["path"]
        return None

    def get_info(self, archive_path: str | Path) -> dict:
        path = Path(archive_path)
        if not path.exists():
            raise FileNotFoundError(f"فایل یافت نشد: {path}")

        return {
            "path": str(path),
            "name": path.name,
            "size_mb": round(get_file_size_mb(path), 2),
            "size_bytes": path.stat().st_size,
            "compressed": is_compressed(path),
        }

    def validate(self, archive_path: str | Path) -> str:
        path = Path(archive_path)
        if not path.is_file():
            raise ArchiveError(f"فایل یافت نشد: {path}")
        kind = archive_kind(path)
        if kind is None:
            raise ArchiveError(f"فقط فایل‌های {', '.join(ARCHIVE_EXTENSIONS)} پشتیبانی می‌شوند: {path.name}")
        if get_file_size_mb(path) > self.max_size_mb:
            raise ArchiveError(f"حجم فایل بیش از حد مجاز است (حداکثر {self.max_size_mb} MB): {path.name}")
        return kind

    def extract(self, archive_path: str | Path, dest_path: str | Path) -> Path:
        """
        آرشیو را به فایل SQL مقصد باز می‌کند.
        در صورت خطا فایل ناقص مقصد حذف و ArchiveError داده می‌شود.
        """
        path = Path(archive_path)
        dest = Path(dest_path)
        kind = self.validate(path)
        ensure_dir(dest.parent)

        try:
            if kind == "gz":
                self._extract_gzip(path, dest)
            elif kind == "zip":
                self._extract_zip(path, dest)
            else:
                shutil.copyfile(path, dest)
        except ArchiveError:
            dest.unlink(missing_ok=True)
            raise
        except (OSError, EOFError, zlib.error, zipfile.BadZipFile) as e:
            dest.unlink(missing_ok=True)
            raise ArchiveError(f"باز کردن آرشیو ممکن نشد: {path.name} ({e})") from e

        logger.info("Extracted %s -> %s", path.name, dest)
        return dest

    def _extract_gzip(self, path: Path, dest: Path) -> None:
        with gzip.open(path, "rb") as src, open(dest, "wb") as out:
            shutil.copyfileobj(src, out, CHUNK_SIZE)

    def _extract_zip(self, path: Path, dest: Path) -> None:
        with zipfile.ZipFile(path) as zf:
            member = self._pick_zip_member(zf)
            if member is None:
                raise ArchiveError(f"هیچ فایل SQL در آرشیو ZIP یافت نشد: {path.name}")
            with zf.open(member) as src, open(dest, "wb") as out:
                shutil.copyfileobj(src, out, CHUNK_SIZE)

    def _pick_zip_member(self, zf: zipfile.ZipFile) -> str | None:
        """اولین فایل .sql، وگرنه اولین فایل غیرمخفی."""
        candidates = []
        for name in zf.namelist():
            if name.endswith("/") or PurePosixPath(name).name.startswith("."):
                continue
            candidates.append(name)

        for name in candidates:
            if name.lower().endswith(".sql"):
                return name
        return candidates[0] if candidates else None


def is_compressed(path: str | Path) -> bool:
    return is_gzip_file(path) or archive_kind(path) == "zip"
