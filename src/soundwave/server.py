"""
FastAPI server for SoundWave.

Provides song upload, semantic search, listing, and audio streaming. The
song store and the external clients are created in the app lifespan (or
injected through ``create_app``) and hung off ``app.state``.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Iterator

from dotenv import load_dotenv
from fastapi import FastAPI, File, Request, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse

from .clients import CatboxHost, SonotellerClient
from .config import (
    MAX_UPLOAD_BYTES,
    configure_logging,
    resolve_db_path,
    resolve_upload_dir,
)
from .embeddings import EmbeddingProvider, UnconfiguredEmbedder
from .errors import (
    AnalysisFailed,
    EmbeddingUnavailable,
    InvalidUpload,
    SoundwaveError,
    StoreUnavailable,
    UploadFailed,
)
from .ingest import FileHost, SongAnalyzer, UploadPipeline
from .models import (
    ErrorResponse,
    SearchResponse,
    SongListResponse,
    SongResponse,
    SongView,
    UploadResponse,
)
from .search import SongSearchEngine
from .storage import DuckDBSongStore, SongStore

logger = logging.getLogger(__name__)

_AUDIO_CHUNK_SIZE = 64 * 1024


def _error_status(exc: SoundwaveError) -> int:
    if isinstance(exc, InvalidUpload):
        return 400
    if isinstance(exc, StoreUnavailable):
        return 503
    if isinstance(exc, (EmbeddingUnavailable, AnalysisFailed, UploadFailed)):
        return 502
    return 500


def _error_response(exc: Exception, status_code: int | None = None) -> JSONResponse:
    if status_code is None:
        status_code = _error_status(exc) if isinstance(exc, SoundwaveError) else 500
    return JSONResponse(
        ErrorResponse(error=str(exc)).model_dump(by_alias=True),
        status_code=status_code,
    )


def _default_embedding_provider() -> Any:
    try:
        return EmbeddingProvider()
    except ValueError as exc:
        logger.warning("Semantic search disabled: %s", exc)
        return UnconfiguredEmbedder()


def _default_analyzer() -> SongAnalyzer | None:
    try:
        return SonotellerClient()
    except ValueError as exc:
        logger.warning("Song analysis disabled: %s", exc)
        return None


def create_app(
    *,
    store: SongStore | None = None,
    embedding_provider: Any | None = None,
    host: FileHost | None = None,
    analyzer: SongAnalyzer | None = None,
    db_path: str | None = None,
    upload_dir: str | None = None,
    max_upload_bytes: int = MAX_UPLOAD_BYTES,
) -> FastAPI:
    """Build the API app. Anything not injected is created from the environment."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        load_dotenv()
        song_store = store or DuckDBSongStore(resolve_db_path(db_path))
        embedder = embedding_provider or _default_embedding_provider()
        song_analyzer = analyzer or _default_analyzer()

        app.state.store = song_store
        app.state.search_engine = SongSearchEngine(song_store, embedder)
        app.state.upload_pipeline = None
        app.state.upload_disabled_reason = None
        if song_analyzer is None:
            app.state.upload_disabled_reason = "Song analysis is not configured (RAPID_API_KEY)."
        elif isinstance(embedder, UnconfiguredEmbedder):
            app.state.upload_disabled_reason = "Embeddings are not configured (GOOGLE_API_KEY)."
        else:
            app.state.upload_pipeline = UploadPipeline(
                store=song_store,
                embedding_provider=embedder,
                host=host or CatboxHost(),
                analyzer=song_analyzer,
                upload_dir=resolve_upload_dir(upload_dir),
                max_bytes=max_upload_bytes,
            )
        if app.state.upload_disabled_reason:
            logger.warning("Uploads disabled: %s", app.state.upload_disabled_reason)
        logger.info("SoundWave API ready (store: %s)", getattr(song_store, "db_path", "injected"))
        try:
            yield
        finally:
            if store is None:
                song_store.close()

    app = FastAPI(
        title="SoundWave",
        description="Music upload, analysis and semantic search",
        lifespan=lifespan,
    )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/search", response_model=SearchResponse)
    def search(request: Request, q: str | None = None):
        """Semantic search with substring and recent-songs fallbacks."""
        engine: SongSearchEngine = request.app.state.search_engine
        try:
            results = engine.search(q)
        except Exception as exc:
            logger.exception("Search failed for %r", q)
            return _error_response(exc)
        return SearchResponse(results=results)

    @app.post("/upload", response_model=UploadResponse)
    async def upload(request: Request, songFile: UploadFile | None = File(None)):
        """Store, analyze and index an uploaded audio file."""
        pipeline: UploadPipeline | None = request.app.state.upload_pipeline
        if songFile is None:
            return _error_response(InvalidUpload("No file uploaded"), 400)
        if pipeline is None:
            reason = request.app.state.upload_disabled_reason
            return _error_response(SoundwaveError(reason or "Uploads are disabled."), 503)

        try:
            # One byte past the limit is enough to reject an oversized file.
            data = await songFile.read(pipeline.max_bytes + 1)
            result = await asyncio.to_thread(
                pipeline.process,
                songFile.filename or "",
                data,
                songFile.content_type,
            )
        except Exception as exc:
            logger.exception("Processing error for upload %s", songFile.filename)
            return _error_response(exc)
        finally:
            await songFile.close()

        return UploadResponse(
            message="Song processed and stored successfully",
            song_id=result.song_id,
            details=result.raw_analysis,
        )

    @app.get("/songs", response_model=SongListResponse)
    def list_songs(request: Request, limit: int = 20, offset: int = 0):
        """List stored songs, newest first."""
        song_store: SongStore = request.app.state.store
        limit = min(max(limit, 1), 100)
        try:
            records = song_store.list_songs(limit=limit, offset=max(offset, 0))
            total = song_store.count_songs()
        except Exception as exc:
            logger.exception("Listing songs failed")
            return _error_response(exc)
        return SongListResponse(
            total=total,
            songs=[SongView.from_record(record) for record in records],
        )

    @app.get("/songs/{song_id}", response_model=SongResponse)
    def get_song(request: Request, song_id: str):
        song_store: SongStore = request.app.state.store
        try:
            record = song_store.get_song(song_id)
        except Exception as exc:
            logger.exception("Fetching song %s failed", song_id)
            return _error_response(exc)
        if record is None:
            return _error_response(LookupError(f"Song not found: {song_id}"), 404)
        return SongResponse(song=SongView.from_record(record))

    @app.get("/songs/{song_id}/audio")
    def stream_audio(request: Request, song_id: str):
        """Stream the stored audio bytes for a song."""
        song_store: SongStore = request.app.state.store
        try:
            audio = song_store.get_audio(song_id)
        except Exception as exc:
            logger.exception("Fetching audio for %s failed", song_id)
            return _error_response(exc)
        if audio is None:
            return _error_response(LookupError(f"Audio not found: {song_id}"), 404)

        def chunks() -> Iterator[bytes]:
            for start in range(0, len(audio.data), _AUDIO_CHUNK_SIZE):
                yield audio.data[start : start + _AUDIO_CHUNK_SIZE]

        return StreamingResponse(
            chunks(),
            media_type=audio.content_type,
            headers={
                "Content-Length": str(audio.file_size),
                "Content-Disposition": f'inline; filename="{song_id}.{audio.format}"',
            },
        )

    return app


app = create_app()


def run_server(host: str = "127.0.0.1", port: int = 8000, *, db_path: str | None = None):
    """Run the FastAPI server."""
    import uvicorn

    configure_logging()
    uvicorn.run(create_app(db_path=db_path), host=host, port=port)


if __name__ == "__main__":
    run_server()
