from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from soundwave.errors import EmbeddingUnavailable
from soundwave.storage import DuckDBSongStore, SongRecord

BASE_TIME = datetime(2025, 1, 1, 12, 0, 0)


@dataclass
class FakeEmbedding:
    values: list[float]


@dataclass
class FakeEmbedResult:
    embeddings: list[FakeEmbedding]


class FakeModels:
    """Records calls and returns deterministic embeddings."""

    def __init__(self, *, fail: bool = False) -> None:
        self.calls: list[dict[str, Any]] = []
        self.fail = fail

    def embed_content(
        self, *, model: str, contents: list[str], config: dict
    ) -> FakeEmbedResult:
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.fail:
            raise RuntimeError("quota exceeded")
        dim = config.get("output_dimensionality", 768)
        return FakeEmbedResult(
            embeddings=[
                FakeEmbedding(values=[float(i + 1)] * dim) for i in range(len(contents))
            ]
        )


class FakeGenAIClient:
    def __init__(self, *, fail: bool = False) -> None:
        self.models = FakeModels(fail=fail)


class TableEmbedder:
    """Embedder that looks texts up in a table, with a fallback vector."""

    def __init__(
        self,
        table: dict[str, list[float]] | None = None,
        default: list[float] | None = None,
        *,
        fail: bool = False,
    ) -> None:
        self.table = table or {}
        self.default = default or [0.0, 0.0, 0.0, 1.0]
        self.fail = fail
        self.queries: list[str] = []
        self.documents: list[str] = []

    def embed_query(self, query: str) -> list[float]:
        self.queries.append(query)
        if self.fail:
            raise EmbeddingUnavailable("provider down")
        return list(self.table.get(query, self.default))

    def embed_document(self, text: str) -> list[float]:
        self.documents.append(text)
        if self.fail:
            raise EmbeddingUnavailable("provider down")
        return list(self.table.get(text, self.default))


def make_song(
    index: int,
    *,
    embedding: Any = None,
    summary: str = "",
    keywords: tuple[str, ...] = (),
    moods: tuple[str, ...] = (),
    themes: tuple[str, ...] = (),
) -> SongRecord:
    return SongRecord(
        id=f"song_{index:03d}",
        filename=f"{index:03d}-track.mp3",
        source_url=f"https://files.example/{index:03d}.mp3",
        storage_path=f"/tmp/uploads/{index:03d}-track.mp3",
        summary=summary or f"Instrumental piece number {index}",
        keywords=keywords,
        moods=moods,
        themes=themes,
        embedding=embedding,
        created_at=BASE_TIME + timedelta(minutes=index),
    )


@pytest.fixture()
def store(tmp_path: Path):
    song_store = DuckDBSongStore(str(tmp_path / "songs.duckdb"))
    yield song_store
    song_store.close()
