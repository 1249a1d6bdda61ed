"""
DuckDB storage backend for song persistence.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import duckdb

from ..errors import StoreUnavailable
from .base import AudioFile, SongRecord


logger = logging.getLogger(__name__)

_SONG_COLUMNS = """
    id, filename, source_url, storage_path, language, language_code, summary,
    explicit, keywords, moods, themes, flags, embedding, created_at
"""


def _dump_list(values: tuple[str, ...]) -> str:
    return json.dumps(list(values), ensure_ascii=False)


def _load_list(raw: Any) -> tuple[str, ...]:
    if raw is None:
        return ()
    try:
        loaded = json.loads(str(raw))
    except json.JSONDecodeError:
        return (str(raw),)
    if isinstance(loaded, list):
        return tuple(str(item) for item in loaded)
    if isinstance(loaded, dict):
        return tuple(str(item) for item in loaded.values())
    return (str(loaded),)


def _load_dict(raw: Any) -> dict[str, Any]:
    if raw is None:
        return {}
    try:
        loaded = json.loads(str(raw))
    except json.JSONDecodeError:
        return {}
    return loaded if isinstance(loaded, dict) else {}


def _search_text(record: SongRecord) -> str:
    fields = [record.summary, *record.keywords, *record.moods, *record.themes]
    return "\n".join(fields).lower()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class DuckDBSongStore:
    """DuckDB-backed persistence for songs and their audio.

    Embeddings are stored as JSON text and returned undecoded on
    ``SongRecord.embedding``; decoding (and rejecting bad rows) happens at
    ranking time.
    """

    def __init__(
        self,
        db_path: str,
        *,
        read_only: bool = False,
        initialize: bool = True,
    ) -> None:
        self.db_path = str(Path(db_path).expanduser().resolve())
        self.read_only = read_only
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = duckdb.connect(self.db_path, read_only=read_only)
        except duckdb.Error as exc:
            raise StoreUnavailable(f"Cannot open song store at {self.db_path}: {exc}") from exc
        if initialize and not read_only:
            self.initialize()

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        self._conn.close()

    def initialize(self) -> None:
        self._execute("CREATE SEQUENCE IF NOT EXISTS song_seq START 1")
        self._execute(
            """
            CREATE TABLE IF NOT EXISTS songs (
                id VARCHAR PRIMARY KEY,
                seq BIGINT NOT NULL DEFAULT nextval('song_seq'),
                filename VARCHAR NOT NULL,
                source_url VARCHAR NOT NULL,
                storage_path VARCHAR NOT NULL,
                language VARCHAR NOT NULL DEFAULT 'unknown',
                language_code VARCHAR NOT NULL DEFAULT 'unknown',
                summary VARCHAR NOT NULL DEFAULT '',
                explicit BOOLEAN NOT NULL DEFAULT FALSE,
                keywords VARCHAR NOT NULL DEFAULT '[]',
                moods VARCHAR NOT NULL DEFAULT '[]',
                themes VARCHAR NOT NULL DEFAULT '[]',
                flags VARCHAR NOT NULL DEFAULT '{}',
                search_text VARCHAR DEFAULT '',
                embedding VARCHAR,
                created_at TIMESTAMP NOT NULL
            );
            """
        )
        self._execute(
            """
            CREATE TABLE IF NOT EXISTS song_audio (
                song_id VARCHAR PRIMARY KEY REFERENCES songs(id),
                content_type VARCHAR NOT NULL,
                format VARCHAR NOT NULL,
                file_size BIGINT NOT NULL,
                data BLOB NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
            """
        )
        # Stores created before the substring column existed.
        self._execute("ALTER TABLE songs ADD COLUMN IF NOT EXISTS search_text VARCHAR DEFAULT ''")

    @staticmethod
    def new_song_id() -> str:
        return f"song_{uuid.uuid4().hex}"

    def insert_song(self, record: SongRecord, audio: AudioFile | None = None) -> str:
        song_id = record.id or self.new_song_id()
        record = replace(
            record,
            id=song_id,
            created_at=record.created_at or _utcnow(),
        )
        embedding = None if record.embedding is None else json.dumps(record.embedding)

        cursor = self._cursor()
        try:
            cursor.begin()
            cursor.execute(
                """
                INSERT INTO songs (
                    id, filename, source_url, storage_path, language, language_code,
                    summary, explicit, keywords, moods, themes, flags, embedding,
                    search_text, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    record.id,
                    record.filename,
                    record.source_url,
                    record.storage_path,
                    record.language,
                    record.language_code,
                    record.summary,
                    record.explicit,
                    _dump_list(record.keywords),
                    _dump_list(record.moods),
                    _dump_list(record.themes),
                    json.dumps(record.flags, ensure_ascii=False, sort_keys=True),
                    embedding,
                    _search_text(record),
                    record.created_at,
                ],
            )
            if audio is not None:
                cursor.execute(
                    """
                    INSERT INTO song_audio (song_id, content_type, format, file_size, data)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    [
                        song_id,
                        audio.content_type,
                        audio.format,
                        audio.file_size,
                        audio.data,
                    ],
                )
            cursor.commit()
        except duckdb.Error as exc:
            try:
                cursor.rollback()
            except duckdb.Error:
                logger.debug("Rollback after failed insert also failed", exc_info=True)
            raise StoreUnavailable(f"Failed to insert song {song_id}: {exc}") from exc
        finally:
            cursor.close()

        logger.info("Stored song %s (%s)", song_id, record.filename)
        return song_id

    def fetch_all_with_embeddings(self) -> list[SongRecord]:
        rows = self._fetch(
            f"""
            SELECT {_SONG_COLUMNS}
            FROM songs
            WHERE embedding IS NOT NULL
            ORDER BY created_at ASC, seq ASC
            """
        )
        return [self._row_to_record(row) for row in rows]

    def fetch_recent(self, limit: int) -> list[SongRecord]:
        return self.list_songs(limit=limit)

    def fetch_by_substring(self, term: str, limit: int) -> list[SongRecord]:
        needle = term.strip().lower()
        if not needle:
            return []
        rows = self._fetch(
            f"""
            SELECT {_SONG_COLUMNS}
            FROM songs
            WHERE strpos(search_text, ?) > 0
            ORDER BY created_at DESC, seq DESC
            LIMIT ?
            """,
            [needle, max(limit, 0)],
        )
        return [self._row_to_record(row) for row in rows]

    def get_song(self, song_id: str) -> SongRecord | None:
        rows = self._fetch(
            f"SELECT {_SONG_COLUMNS} FROM songs WHERE id = ? LIMIT 1",
            [song_id],
        )
        if not rows:
            return None
        return self._row_to_record(rows[0])

    def list_songs(self, *, limit: int, offset: int = 0) -> list[SongRecord]:
        rows = self._fetch(
            f"""
            SELECT {_SONG_COLUMNS}
            FROM songs
            ORDER BY created_at DESC, seq DESC
            LIMIT ? OFFSET ?
            """,
            [max(limit, 0), max(offset, 0)],
        )
        return [self._row_to_record(row) for row in rows]

    def count_songs(self) -> int:
        rows = self._fetch("SELECT COUNT(*) FROM songs")
        return int(rows[0][0]) if rows else 0

    def get_audio(self, song_id: str) -> AudioFile | None:
        rows = self._fetch(
            """
            SELECT song_id, content_type, format, data
            FROM song_audio
            WHERE song_id = ?
            LIMIT 1
            """,
            [song_id],
        )
        if not rows:
            return None
        row = rows[0]
        return AudioFile(
            song_id=str(row[0]),
            content_type=str(row[1]),
            format=str(row[2]),
            data=bytes(row[3]),
        )

    def _cursor(self) -> duckdb.DuckDBPyConnection:
        try:
            return self._conn.cursor()
        except duckdb.Error as exc:
            raise StoreUnavailable(f"Song store connection unavailable: {exc}") from exc

    def _execute(self, sql: str, params: list[Any] | None = None) -> None:
        cursor = self._cursor()
        try:
            cursor.execute(sql, params or [])
        except duckdb.Error as exc:
            raise StoreUnavailable(f"Song store statement failed: {exc}") from exc
        finally:
            cursor.close()

    def _fetch(self, sql: str, params: list[Any] | None = None) -> list[tuple[Any, ...]]:
        cursor = self._cursor()
        try:
            return cursor.execute(sql, params or []).fetchall()
        except duckdb.Error as exc:
            raise StoreUnavailable(f"Song store query failed: {exc}") from exc
        finally:
            cursor.close()

    @staticmethod
    def _row_to_record(row: tuple[Any, ...]) -> SongRecord:
        return SongRecord(
            id=str(row[0]),
            filename=str(row[1]),
            source_url=str(row[2]),
            storage_path=str(row[3]),
            language=str(row[4]),
            language_code=str(row[5]),
            summary=str(row[6]),
            explicit=bool(row[7]),
            keywords=_load_list(row[8]),
            moods=_load_list(row[9]),
            themes=_load_list(row[10]),
            flags=_load_dict(row[11]),
            embedding=row[12],
            created_at=row[13],
        )
