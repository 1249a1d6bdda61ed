import mimetypes
from pathlib import Path
from typing import Annotated, NoReturn

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from typer import Argument, Exit, Option, Typer

from .clients import CatboxHost, SonotellerClient
from .config import configure_logging, resolve_db_path, resolve_upload_dir
from .embeddings import EmbeddingProvider, UnconfiguredEmbedder
from .errors import SoundwaveError
from .ingest import UploadPipeline
from .models import MatchResult
from .search import SongSearchEngine
from .storage import DuckDBSongStore

app = Typer(help="SoundWave: upload, analyze and search songs.")
console = Console()

DbPathOption = Annotated[
    str | None,
    Option("--db-path", help="DuckDB file to use (defaults to SOUNDWAVE_DB_PATH)."),
]


@app.callback()
def setup(
    log_level: Annotated[
        str | None, Option("--log-level", help="Logging level, e.g. DEBUG.")
    ] = None,
) -> None:
    load_dotenv()
    configure_logging(log_level)


def _fail(exc: Exception) -> NoReturn:
    console.print(f"[bold red]Error:[/] {exc}")
    raise Exit(code=1)


def render_results(results: list[MatchResult]) -> Table:
    table = Table(title=f"{len(results)} result(s)", title_justify="left")
    table.add_column("Score", justify="right")
    table.add_column("Match")
    table.add_column("Song")
    table.add_column("Moods")
    table.add_column("Summary", overflow="fold")
    for result in results:
        table.add_row(
            f"{result.similarity:.3f}",
            result.match_kind,
            f"{result.filename}\n[dim]{result.song_id}[/]",
            ", ".join(result.moods),
            result.summary,
        )
    return table


@app.command()
def serve(
    host: Annotated[str, Option("--host", help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, Option("--port", "-p", help="Port to listen on.")] = 8000,
    db_path: DbPathOption = None,
) -> None:
    """Run the HTTP API."""
    from .server import run_server

    run_server(host=host, port=port, db_path=db_path)


@app.command("init-db")
def init_db(db_path: DbPathOption = None) -> None:
    """Create the song tables if they do not exist."""
    resolved = resolve_db_path(db_path)
    try:
        store = DuckDBSongStore(resolved)
    except SoundwaveError as exc:
        _fail(exc)
    store.close()
    console.print(f"[bold green]Song store ready at[/] {resolved}")


@app.command()
def search(
    query: Annotated[str, Argument(help="Free-text query. Empty lists recent songs.")] = "",
    db_path: DbPathOption = None,
) -> None:
    """Search stored songs by meaning, text, or recency."""
    try:
        store = DuckDBSongStore(resolve_db_path(db_path))
    except SoundwaveError as exc:
        _fail(exc)
    try:
        provider = EmbeddingProvider() if query.strip() else UnconfiguredEmbedder()
        engine = SongSearchEngine(store, provider)
        results = engine.search(query)
    except (SoundwaveError, ValueError) as exc:
        _fail(exc)
    finally:
        store.close()
    console.print(render_results(results))


@app.command()
def upload(
    file: Annotated[Path, Argument(help="Audio file to upload.", exists=True, dir_okay=False)],
    db_path: DbPathOption = None,
    upload_dir: Annotated[
        str | None, Option("--upload-dir", help="Where to keep a local copy.")
    ] = None,
) -> None:
    """Host, analyze, embed and store an audio file."""
    content_type = mimetypes.guess_type(file.name)[0] or "application/octet-stream"
    try:
        store = DuckDBSongStore(resolve_db_path(db_path))
    except SoundwaveError as exc:
        _fail(exc)
    try:
        pipeline = UploadPipeline(
            store=store,
            embedding_provider=EmbeddingProvider(),
            host=CatboxHost(),
            analyzer=SonotellerClient(),
            upload_dir=resolve_upload_dir(upload_dir),
        )
        with console.status("Uploading and analyzing..."):
            result = pipeline.process(file.name, file.read_bytes(), content_type)
    except (SoundwaveError, ValueError) as exc:
        _fail(exc)
    finally:
        store.close()

    console.print(f"[bold green]Stored[/] {result.filename} as [bold]{result.song_id}[/]")
    console.print(f"Hosted at {result.source_url}")
    if result.analysis.summary:
        console.print(result.analysis.summary)


@app.command("list")
def list_songs(
    limit: Annotated[int, Option("--limit", "-n", help="Number of songs.")] = 20,
    db_path: DbPathOption = None,
) -> None:
    """List the most recently uploaded songs."""
    try:
        store = DuckDBSongStore(resolve_db_path(db_path))
    except SoundwaveError as exc:
        _fail(exc)
    try:
        records = store.list_songs(limit=limit)
    except SoundwaveError as exc:
        _fail(exc)
    finally:
        store.close()

    table = Table(title=f"{len(records)} song(s)", title_justify="left")
    table.add_column("Id")
    table.add_column("File")
    table.add_column("Language")
    table.add_column("Created")
    for record in records:
        table.add_row(
            record.id,
            record.filename,
            record.language,
            str(record.created_at) if record.created_at else "",
        )
    console.print(table)
