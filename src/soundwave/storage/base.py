"""
Storage interfaces and data models for song persistence.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol


@dataclass(frozen=True)
class SongRecord:
    """A stored song with its analysis metadata and embedding.

    ``embedding`` holds whatever the store read back. It is normally a list
    of floats, but legacy rows may carry ``None`` or an undecodable value;
    the ranker is responsible for rejecting those.
    """

    id: str
    filename: str
    source_url: str
    storage_path: str
    language: str = "unknown"
    language_code: str = "unknown"
    summary: str = ""
    explicit: bool = False
    keywords: tuple[str, ...] = ()
    moods: tuple[str, ...] = ()
    themes: tuple[str, ...] = ()
    flags: dict[str, Any] = field(default_factory=dict)
    embedding: Any = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class AudioFile:
    """Raw audio bytes kept next to a song record."""

    song_id: str
    content_type: str
    format: str
    data: bytes

    @property
    def file_size(self) -> int:
        return len(self.data)


class SongStore(Protocol):
    """Protocol for persistence operations used by upload and search."""

    def initialize(self) -> None:
        """Initialize required tables."""

    def close(self) -> None:
        """Release the underlying connection."""

    def insert_song(self, record: SongRecord, audio: AudioFile | None = None) -> str:
        """Atomically insert a song (and optional audio). Return its id."""

    def fetch_all_with_embeddings(self) -> list[SongRecord]:
        """Return every song with a stored embedding, oldest first."""

    def fetch_recent(self, limit: int) -> list[SongRecord]:
        """Return the newest songs, newest first."""

    def fetch_by_substring(self, term: str, limit: int) -> list[SongRecord]:
        """Case-insensitive containment search over summary and tag lists."""

    def get_song(self, song_id: str) -> SongRecord | None:
        """Get a song by id."""

    def list_songs(self, *, limit: int, offset: int = 0) -> list[SongRecord]:
        """Page through songs, newest first."""

    def count_songs(self) -> int:
        """Count stored songs."""

    def get_audio(self, song_id: str) -> AudioFile | None:
        """Fetch the stored audio for a song."""
