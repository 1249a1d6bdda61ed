"""Search helpers for stored songs."""

from .engine import SongSearchEngine
from .ranker import RankedMatch, cosine_similarity, decode_embedding, rank

__all__ = [
    "SongSearchEngine",
    "RankedMatch",
    "cosine_similarity",
    "decode_embedding",
    "rank",
]
