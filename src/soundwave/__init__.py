"""
SoundWave - music upload, analysis and semantic search.

This package accepts audio uploads, has them analyzed for language, mood
and themes by a third-party lyrics API, stores the results with a Google
GenAI text embedding in DuckDB, and serves search over them.

Example usage:
    >>> from soundwave import DuckDBSongStore, EmbeddingProvider, SongSearchEngine
    >>> store = DuckDBSongStore("songs.duckdb")
    >>> engine = SongSearchEngine(store, EmbeddingProvider())
    >>> results = engine.search("melancholic love song")
"""

from .analysis import SongAnalysis, normalize_analysis
from .config import SearchPolicy
from .embeddings import EmbeddingProvider
from .errors import (
    AnalysisFailed,
    EmbeddingUnavailable,
    InvalidUpload,
    MalformedEmbedding,
    SoundwaveError,
    StoreUnavailable,
    UploadFailed,
)
from .ingest import UploadPipeline, UploadResult
from .models import MatchResult
from .search import SongSearchEngine, cosine_similarity, rank
from .storage import AudioFile, DuckDBSongStore, SongRecord, SongStore

__all__ = [
    # Search
    "SongSearchEngine",
    "SearchPolicy",
    "MatchResult",
    "cosine_similarity",
    "rank",
    # Storage
    "DuckDBSongStore",
    "SongStore",
    "SongRecord",
    "AudioFile",
    # Upload
    "UploadPipeline",
    "UploadResult",
    "SongAnalysis",
    "normalize_analysis",
    "EmbeddingProvider",
    # Errors
    "SoundwaveError",
    "EmbeddingUnavailable",
    "MalformedEmbedding",
    "StoreUnavailable",
    "AnalysisFailed",
    "UploadFailed",
    "InvalidUpload",
]
