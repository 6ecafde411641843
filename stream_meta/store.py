from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from threading import Lock
from typing import Any, Mapping, Optional, Protocol

from .models import MediaRecord, StoreError, StoreUnavailableError

logger = logging.getLogger(__name__)

WRITABLE_COLUMNS = ("title", "album", "artist", "duration", "artwork")


class RecordStore(Protocol):
    def find_locator(self, media_id: int) -> Optional[str]: ...

    def update_record(self, media_id: int, fields: Mapping[str, Any]) -> int: ...


class MediaStore:
    """SQLite-backed media table shared by the player and the enrichment batches."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        try:
            self._conn = sqlite3.connect(self.path, check_same_thread=False)
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS media (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    uri TEXT,
                    title TEXT,
                    album TEXT,
                    artist TEXT,
                    duration INTEGER,
                    artwork BLOB
                )
                """
            )
            self._conn.commit()
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"cannot open media store {self.path}: {exc}") from exc

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def add_media(self, uri: Optional[str], media_id: Optional[int] = None) -> int:
        with self._lock:
            cursor = self._execute(
                "INSERT INTO media(id, uri) VALUES(?, ?)",
                (media_id, uri),
            )
            self._commit()
        return int(cursor.lastrowid)

    def find_locator(self, media_id: int) -> Optional[str]:
        with self._lock:
            cursor = self._execute("SELECT uri FROM media WHERE id = ?", (int(media_id),))
            row = cursor.fetchone()
        if not row:
            return None
        return row[0]

    def update_record(self, media_id: int, fields: Mapping[str, Any]) -> int:
        unknown = set(fields) - set(WRITABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Unsupported media columns: {', '.join(sorted(unknown))}")
        if not fields:
            return 0
        columns = [name for name in WRITABLE_COLUMNS if name in fields]
        assignments = ", ".join(f"{name} = ?" for name in columns)
        values = [fields[name] for name in columns]
        with self._lock:
            cursor = self._execute(
                f"UPDATE media SET {assignments} WHERE id = ?",
                (*values, int(media_id)),
            )
            self._commit()
        return cursor.rowcount

    def get_record(self, media_id: int) -> Optional[MediaRecord]:
        with self._lock:
            cursor = self._execute(
                "SELECT id, uri, title, album, artist, duration, artwork FROM media WHERE id = ?",
                (int(media_id),),
            )
            row = cursor.fetchone()
        if not row:
            return None
        return self._to_record(row)

    def list_records(self) -> list[MediaRecord]:
        with self._lock:
            cursor = self._execute(
                "SELECT id, uri, title, album, artist, duration, artwork FROM media ORDER BY id"
            )
            rows = cursor.fetchall()
        return [self._to_record(row) for row in rows]

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        try:
            return self._conn.execute(sql, params)
        except sqlite3.ProgrammingError as exc:
            # Raised for operations on a closed connection.
            raise StoreUnavailableError(str(exc)) from exc
        except sqlite3.Error as exc:
            logger.debug("Media store statement failed: %s", exc)
            raise StoreError(str(exc)) from exc

    def _commit(self) -> None:
        try:
            self._conn.commit()
        except sqlite3.ProgrammingError as exc:
            raise StoreUnavailableError(str(exc)) from exc
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc

    @staticmethod
    def _to_record(row: tuple) -> MediaRecord:
        media_id, uri, title, album, artist, duration, artwork = row
        return MediaRecord(
            id=int(media_id),
            uri=uri,
            title=title,
            album=album,
            artist=artist,
            duration=int(duration) if duration is not None else None,
            artwork=bytes(artwork) if artwork is not None else None,
        )
