"""Tests for the upload pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from conftest import TableEmbedder
from soundwave.errors import AnalysisFailed, EmbeddingUnavailable, InvalidUpload
from soundwave.ingest import UploadPipeline

ANALYSIS = {
    "language": "English",
    "language-iso": "en",
    "summary": "A song about leaving home",
    "explicit": False,
    "keywords": {"0": "home", "1": "road"},
    "ddex moods": {"0": "Nostalgic"},
    "ddex themes": ["Journey"],
    "flags": {},
}


class _RecordingHost:
    def __init__(self) -> None:
        self.hosted: list[tuple[str, bytes]] = []

    def host(self, filename: str, data: bytes) -> str:
        self.hosted.append((filename, data))
        return f"https://files.example/{filename}"


class _StaticAnalyzer:
    def __init__(self, payload: Any = None, *, fail: bool = False) -> None:
        self.payload = ANALYSIS if payload is None else payload
        self.fail = fail
        self.urls: list[str] = []

    def analyze(self, song_url: str) -> Any:
        self.urls.append(song_url)
        if self.fail:
            raise AnalysisFailed("API request failed: 500 - boom")
        return self.payload


def _pipeline(store, tmp_path: Path, **overrides) -> UploadPipeline:
    options = {
        "store": store,
        "embedding_provider": TableEmbedder(default=[0.5, 0.5]),
        "host": _RecordingHost(),
        "analyzer": _StaticAnalyzer(),
        "upload_dir": str(tmp_path / "uploads"),
    }
    options.update(overrides)
    return UploadPipeline(**options)


def test_process_stores_normalized_song_and_audio(store, tmp_path: Path) -> None:
    embedder = TableEmbedder(default=[0.5, 0.5])
    host = _RecordingHost()
    analyzer = _StaticAnalyzer()
    pipeline = _pipeline(store, tmp_path, embedding_provider=embedder, host=host, analyzer=analyzer)

    result = pipeline.process("../evil/home.mp3", b"ID3-bytes", "audio/mpeg")

    assert host.hosted == [("home.mp3", b"ID3-bytes")]
    assert analyzer.urls == ["https://files.example/home.mp3"]
    assert embedder.documents == ["A song about leaving home home road Nostalgic Journey"]

    stored = store.get_song(result.song_id)
    assert stored is not None
    assert stored.filename == result.filename
    assert stored.filename.endswith("-home.mp3")
    assert stored.source_url == "https://files.example/home.mp3"
    assert stored.keywords == ("home", "road")
    assert stored.moods == ("Nostalgic",)
    assert stored.themes == ("Journey",)
    assert stored.language_code == "en"
    assert stored.embedding == "[0.5, 0.5]"

    local_copy = Path(stored.storage_path)
    assert local_copy.parent == tmp_path / "uploads"
    assert local_copy.read_bytes() == b"ID3-bytes"

    audio = store.get_audio(result.song_id)
    assert audio is not None
    assert audio.format == "mp3"
    assert audio.content_type == "audio/mpeg"
    assert audio.data == b"ID3-bytes"
    assert result.raw_analysis == ANALYSIS


@pytest.mark.parametrize(
    ("filename", "data", "content_type"),
    [
        ("notes.txt", b"hello", "text/plain"),
        ("song.mp3", b"ID3", None),
        ("song.mp3", b"", "audio/mpeg"),
        ("", b"ID3", "audio/mpeg"),
    ],
)
def test_process_rejects_invalid_uploads(store, tmp_path: Path, filename, data, content_type) -> None:
    host = _RecordingHost()
    pipeline = _pipeline(store, tmp_path, host=host)

    with pytest.raises(InvalidUpload):
        pipeline.process(filename, data, content_type)

    assert host.hosted == []
    assert store.count_songs() == 0


def test_process_enforces_size_limit(store, tmp_path: Path) -> None:
    pipeline = _pipeline(store, tmp_path, max_bytes=4)

    with pytest.raises(InvalidUpload, match="limit"):
        pipeline.process("song.mp3", b"12345", "audio/mpeg")


def test_analysis_failure_stores_nothing(store, tmp_path: Path) -> None:
    pipeline = _pipeline(store, tmp_path, analyzer=_StaticAnalyzer(fail=True))

    with pytest.raises(AnalysisFailed):
        pipeline.process("song.mp3", b"ID3", "audio/mpeg")

    assert store.count_songs() == 0


def test_embedding_failure_stores_nothing(store, tmp_path: Path) -> None:
    pipeline = _pipeline(store, tmp_path, embedding_provider=TableEmbedder(fail=True))

    with pytest.raises(EmbeddingUnavailable):
        pipeline.process("song.mp3", b"ID3", "audio/mpeg")

    assert store.count_songs() == 0


def test_non_object_analysis_is_rejected(store, tmp_path: Path) -> None:
    pipeline = _pipeline(store, tmp_path, analyzer=_StaticAnalyzer(payload=["nope"]))

    with pytest.raises(AnalysisFailed):
        pipeline.process("song.mp3", b"ID3", "audio/mpeg")


@pytest.mark.parametrize(
    "overrides",
    [
        {"analyzer": _StaticAnalyzer(fail=True)},
        {"embedding_provider": TableEmbedder(fail=True)},
    ],
)
def test_failed_upload_removes_local_copy(store, tmp_path: Path, overrides) -> None:
    pipeline = _pipeline(store, tmp_path, **overrides)

    with pytest.raises((AnalysisFailed, EmbeddingUnavailable)):
        pipeline.process("song.mp3", b"ID3", "audio/mpeg")

    assert list((tmp_path / "uploads").iterdir()) == []
