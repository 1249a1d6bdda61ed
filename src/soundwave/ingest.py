"""
Upload pipeline orchestration.

An upload is saved locally, published to the public file host, analyzed,
embedded, and finally written to the store in one transaction. Nothing is
written to the store unless every earlier step succeeded.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from .analysis import SongAnalysis, normalize_analysis
from .config import MAX_UPLOAD_BYTES
from .errors import InvalidUpload
from .storage import AudioFile, SongRecord, SongStore


logger = logging.getLogger(__name__)


class FileHost(Protocol):
    def host(self, filename: str, data: bytes) -> str: ...


class SongAnalyzer(Protocol):
    def analyze(self, song_url: str) -> dict[str, Any]: ...


class DocumentEmbedder(Protocol):
    def embed_document(self, text: str) -> list[float]: ...


@dataclass(frozen=True)
class UploadResult:
    """Summary output for a processed upload."""

    song_id: str
    filename: str
    source_url: str
    analysis: SongAnalysis
    raw_analysis: dict[str, Any]


def _audio_format(filename: str) -> str:
    suffix = Path(filename).suffix.lower().lstrip(".")
    return suffix or "unknown"


class UploadPipeline:
    """Turn an uploaded audio file into a stored, searchable song."""

    def __init__(
        self,
        store: SongStore,
        embedding_provider: DocumentEmbedder,
        host: FileHost,
        analyzer: SongAnalyzer,
        upload_dir: str,
        *,
        max_bytes: int = MAX_UPLOAD_BYTES,
    ) -> None:
        self.store = store
        self.embedding_provider = embedding_provider
        self.host = host
        self.analyzer = analyzer
        self.upload_dir = Path(upload_dir)
        self.max_bytes = max_bytes

    def process(self, filename: str, data: bytes, content_type: str | None) -> UploadResult:
        original_name = Path(filename or "").name
        self._validate(original_name, data, content_type)

        stored_name = f"{int(time.time() * 1000)}-{original_name}"
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        local_path = self.upload_dir / stored_name
        local_path.write_bytes(data)
        logger.info("File uploaded locally: %s -> %s", original_name, local_path)

        try:
            return self._publish(original_name, stored_name, local_path, data, content_type)
        except BaseException:
            local_path.unlink(missing_ok=True)
            logger.info("Removed local copy after failed upload: %s", local_path)
            raise

    def _publish(
        self,
        original_name: str,
        stored_name: str,
        local_path: Path,
        data: bytes,
        content_type: str | None,
    ) -> UploadResult:
        source_url = self.host.host(original_name, data)
        raw_analysis = self.analyzer.analyze(source_url)
        analysis = normalize_analysis(raw_analysis)
        embedding = self.embedding_provider.embed_document(analysis.embedding_text())

        record = SongRecord(
            id="",
            filename=stored_name,
            source_url=source_url,
            storage_path=str(local_path),
            language=analysis.language,
            language_code=analysis.language_code,
            summary=analysis.summary,
            explicit=analysis.explicit,
            keywords=analysis.keywords,
            moods=analysis.moods,
            themes=analysis.themes,
            flags=analysis.flags,
            embedding=embedding,
        )
        audio = AudioFile(
            song_id="",
            content_type=str(content_type),
            format=_audio_format(original_name),
            data=data,
        )
        song_id = self.store.insert_song(record, audio)
        return UploadResult(
            song_id=song_id,
            filename=stored_name,
            source_url=source_url,
            analysis=analysis,
            raw_analysis=raw_analysis,
        )

    def _validate(self, filename: str, data: bytes, content_type: str | None) -> None:
        if not filename:
            raise InvalidUpload("Uploaded file has no name.")
        if not content_type or not content_type.startswith("audio/"):
            raise InvalidUpload("Only audio files are allowed")
        if not data:
            raise InvalidUpload("Uploaded file is empty.")
        if len(data) > self.max_bytes:
            raise InvalidUpload(
                f"Uploaded file exceeds the limit of {self.max_bytes} bytes."
            )
