"""SQLite persistence for plate photo records.

The `images` table is the single source of truth: there is no in-memory
cache and every read goes back to the database. Mutations are serialized
through one process-wide lock, and each operation runs on its own short-lived
connection so readers see a committed snapshot.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
import sqlite3
import threading

from loguru import logger

from core.errors import PersistenceError, ValidationError
from core.models import UNKNOWN_PLATE, FolderPreview, PhotoCategory, PhotoRecord
from infrastructure.utils import format_iso_datetime, parse_iso_datetime, utc_now

SCHEMA = """
CREATE TABLE IF NOT EXISTS images (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    imageUri TEXT NOT NULL,
    assetId TEXT,
    category TEXT NOT NULL,
    detectedText TEXT,
    date TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_images_detected_text ON images (detectedText);
"""

_COLUMNS = "id, imageUri, assetId, category, detectedText, date"


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_record(row: sqlite3.Row) -> PhotoRecord:
    raw_category = row["category"]
    try:
        category = PhotoCategory(raw_category)
    except ValueError:
        logger.warning("Unknown category {!r} on record {}", raw_category, row["id"])
        category = PhotoCategory.DETAIL_SHOT
    created_at = parse_iso_datetime(row["date"])
    if created_at is None:
        raise PersistenceError(f"Corrupt date on record {row['id']}: {row['date']!r}")
    return PhotoRecord(
        id=int(row["id"]),
        image_uri=row["imageUri"],
        external_asset_id=row["assetId"] or "",
        category=category,
        plate_text=row["detectedText"] or "",
        created_at=created_at,
    )


class SqlitePhotoStore:
    """Persist photo records and derive per-plate folders from them."""

    def __init__(self, db_path: str | Path, busy_timeout_sec: float = 20.0) -> None:
        self._db_path = Path(db_path)
        self._timeout = max(0.1, float(busy_timeout_sec))
        self._write_lock = threading.RLock()

    @property
    def db_path(self) -> Path:
        return self._db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection that commits on success and rolls back on error."""
        try:
            conn = sqlite3.connect(self._db_path, timeout=self._timeout)
        except sqlite3.Error as ex:
            raise PersistenceError(f"Cannot open database {self._db_path}: {ex}") from ex
        conn.row_factory = sqlite3.Row
        try:
            conn.execute(f"PRAGMA busy_timeout={int(self._timeout * 1000)}")
            yield conn
            conn.commit()
        except sqlite3.Error as ex:
            conn.rollback()
            logger.error("Database error on {}: {}", self._db_path, ex)
            raise PersistenceError(str(ex)) from ex
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_schema(self) -> None:
        """Create the `images` table if missing. Safe to call repeatedly."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as ex:
            raise PersistenceError(f"Cannot create database directory: {ex}") from ex
        with self._write_lock, self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(SCHEMA)
        logger.info("Photo store ready: {}", self._db_path)

    def insert(
        self,
        image_uri: str,
        external_asset_id: str | None,
        category: PhotoCategory | str,
        plate_text: str | None,
    ) -> PhotoRecord:
        """Persist a new record and return it with its assigned id.

        Raises:
            ValidationError: `image_uri` is empty or `category` is unknown.
            PersistenceError: The database could not be written.
        """
        if not image_uri:
            raise ValidationError("image_uri must not be empty")
        try:
            cat = PhotoCategory(category)
        except ValueError as ex:
            raise ValidationError(f"Unknown photo category: {category!r}") from ex

        plate = plate_text or UNKNOWN_PLATE
        asset_id = external_asset_id or ""
        created_at = utc_now()

        with self._write_lock, self._connect() as conn:
            cur = conn.execute(
                "INSERT INTO images (imageUri, assetId, category, detectedText, date) "
                "VALUES (?, ?, ?, ?, ?)",
                (image_uri, asset_id, cat.value, plate, format_iso_datetime(created_at)),
            )
            new_id = int(cur.lastrowid)

        logger.info("Saved record {} for plate {}", new_id, plate)
        return PhotoRecord(
            id=new_id,
            image_uri=image_uri,
            external_asset_id=asset_id,
            category=cat,
            plate_text=plate,
            created_at=created_at,
        )

    def get_record(self, record_id: int) -> PhotoRecord | None:
        """Return the record with `record_id`, or None when it does not exist."""
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM images WHERE id = ?", (int(record_id),)
            ).fetchone()
        return _row_to_record(row) if row else None

    def list_folders(self) -> list[FolderPreview]:
        """One preview per plate, most recently active plate first.

        Records without a plate or with the unknown-plate sentinel are left
        out of the folder listing.
        """
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT detectedText, imageUri
                FROM images AS i
                WHERE detectedText IS NOT NULL
                  AND detectedText != ''
                  AND detectedText != ?
                  AND id = (SELECT MAX(id) FROM images WHERE detectedText = i.detectedText)
                ORDER BY id DESC
                """,
                (UNKNOWN_PLATE,),
            ).fetchall()
        return [FolderPreview(plate=r["detectedText"], cover_image_uri=r["imageUri"]) for r in rows]

    def list_by_plate(self, plate: str) -> list[PhotoRecord]:
        """Records whose plate equals `plate` exactly, newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM images WHERE detectedText = ? ORDER BY id DESC",
                (plate,),
            ).fetchall()
        return [_row_to_record(r) for r in rows]

    def search(self, query: str) -> list[PhotoRecord]:
        """Case-insensitive substring search on plate or category, newest first."""
        pattern = f"%{_escape_like(query or '')}%"
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM images "
                "WHERE detectedText LIKE ? ESCAPE '\\' OR category LIKE ? ESCAPE '\\' "
                "ORDER BY id DESC",
                (pattern, pattern),
            ).fetchall()
        return [_row_to_record(r) for r in rows]

    def list_all(self) -> list[PhotoRecord]:
        """Every record, newest first."""
        with self._connect() as conn:
            rows = conn.execute(f"SELECT {_COLUMNS} FROM images ORDER BY id DESC").fetchall()
        return [_row_to_record(r) for r in rows]

    def list_asset_ids(self) -> set[str]:
        """Non-empty external asset ids referenced by any record."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT DISTINCT assetId FROM images WHERE assetId IS NOT NULL AND assetId != ''"
            ).fetchall()
        return {r["assetId"] for r in rows}

    def count(self) -> int:
        """Total number of records."""
        with self._connect() as conn:
            return int(conn.execute("SELECT COUNT(*) FROM images").fetchone()[0])

    def delete_record(self, record_id: int) -> bool:
        """Delete one record. Unknown ids are a no-op; returns whether a row went away.

        The linked external asset is not touched here.
        """
        with self._write_lock, self._connect() as conn:
            cur = conn.execute("DELETE FROM images WHERE id = ?", (int(record_id),))
            removed = cur.rowcount > 0
        if removed:
            logger.info("Deleted record {}", record_id)
        else:
            logger.debug("Delete skipped, record {} not found", record_id)
        return removed

    def delete_folder(self, plate: str) -> int:
        """Delete every record of `plate` in one transaction; returns the count."""
        with self._write_lock, self._connect() as conn:
            cur = conn.execute("DELETE FROM images WHERE detectedText = ?", (plate,))
            removed = max(cur.rowcount, 0)
        logger.info("Deleted folder {} ({} records)", plate, removed)
        return removed

    def delete_records(self, record_ids: Sequence[int]) -> int:
        """Delete exactly `record_ids` in one transaction; returns the count removed."""
        ids = [(int(rid),) for rid in record_ids]
        if not ids:
            return 0
        with self._write_lock, self._connect() as conn:
            before = conn.total_changes
            conn.executemany("DELETE FROM images WHERE id = ?", ids)
            removed = conn.total_changes - before
        logger.info("Deleted {} record(s)", removed)
        return removed
