"""Storage backends for SoundWave songs."""

from .base import AudioFile, SongRecord, SongStore
from .duckdb import DuckDBSongStore

__all__ = [
    "AudioFile",
    "SongRecord",
    "SongStore",
    "DuckDBSongStore",
]
