"""CLI for textcheck.

Commands:
    upload <path>               - Store text files in the blob store
    list-files                  - List stored files
    analyze <file-id>           - Analyze a stored file
    show-analysis <id>          - Show an analysis result
    list-analyses               - List all analysis results
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from pathlib import Path
from typing import Annotated
from uuid import UUID

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from textcheck.analysis import AnalysisService, ArtifactCache, RandomPlaceholderScorer
from textcheck.clients import BlobStoreClient, WordCloudClient
from textcheck.config import configure_logging, settings
from textcheck.db import create_engine, create_session_factory, init_db
from textcheck.errors import NotFoundError, TextcheckError
from textcheck.models import AnalysisBase, AnalysisResult, StorageBase
from textcheck.storage import BlobStore, compute_content_hash

app = typer.Typer(
    name="textcheck",
    help="textcheck: content-addressed text storage and analysis",
    no_args_is_help=True,
)
console = Console()

# Supported file extensions for upload
SUPPORTED_EXTENSIONS = {".txt"}


def run_async(coro):
    """Run an async coroutine in sync context."""
    return asyncio.run(coro)


def parse_id(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        console.print(f"[red]Error:[/red] Invalid UUID: {value}")
        raise typer.Exit(1) from None


def render_analysis(result: AnalysisResult) -> None:
    panel_content = []
    panel_content.append(f"[bold]ID:[/bold] {result.id}")
    panel_content.append(f"[bold]File:[/bold] {result.file_name} ({result.file_id})")
    panel_content.append(f"[bold]Paragraphs:[/bold] {result.paragraph_count:,}")
    panel_content.append(f"[bold]Words:[/bold] {result.word_count:,}")
    panel_content.append(f"[bold]Characters:[/bold] {result.character_count:,}")
    if result.artifact_path:
        panel_content.append(f"[bold]Word cloud:[/bold] {result.artifact_path}")
    panel_content.append(f"[bold]Analyzed:[/bold] {result.analyzed_at}")

    console.print(Panel("\n".join(panel_content), title="Analysis Details"))

    if result.matches:
        table = Table(title="Similarity Matches")
        table.add_column("File")
        table.add_column("File ID")
        table.add_column("Score", justify="right")
        for match in result.matches:
            table.add_row(
                match.matched_file_name,
                str(match.matched_file_id)[:8] + "...",
                f"{match.similarity_score:.0f}",
            )
        console.print(table)


def collect_files(path: Path, recursive: bool) -> list[Path]:
    if path.is_file():
        return [path]
    pattern = "**/*" if recursive else "*"
    return sorted(
        f for f in path.glob(pattern) if f.is_file() and f.suffix.lower() in SUPPORTED_EXTENSIONS
    )


@app.callback()
def main() -> None:
    configure_logging(settings.log_level)


@app.command()
def upload(
    path: Annotated[Path, typer.Argument(help="File or directory to upload")],
    recursive: Annotated[
        bool, typer.Option("--recursive", "-r", help="Recursively upload directories")
    ] = False,
):
    """Store text files in the blob store.

    Files whose content is already stored are reported as duplicates.
    """
    if not path.exists():
        console.print(f"[red]Error:[/red] Path does not exist: {path}")
        raise typer.Exit(1)

    files_to_process = collect_files(path, recursive)
    if not files_to_process:
        console.print("[yellow]No supported files found to upload.[/yellow]")
        raise typer.Exit(0)

    async def _upload() -> tuple[int, int]:
        engine = create_engine(settings.storage_database_url, echo=settings.database_echo)
        await init_db(engine, StorageBase)
        session_factory = create_session_factory(engine)

        stored = duplicates = 0
        try:
            for file_path in files_to_process:
                content = file_path.read_bytes()
                console.print(f"  Processing: {file_path.name}...", end=" ")
                async with session_factory() as session:
                    store = BlobStore(session, settings.storage_dir)
                    is_duplicate = await store.find_by_hash(compute_content_hash(content)) is not None
                    try:
                        record = await store.put(content, file_path.name, "text/plain")
                    except TextcheckError as e:
                        console.print(f"[red]ERROR[/red]: {e}")
                        continue

                if is_duplicate:
                    duplicates += 1
                    console.print(f"[yellow]SKIP[/yellow] (duplicate of {record.id})")
                else:
                    stored += 1
                    console.print(f"[green]OK[/green] → {record.id}")
        finally:
            await engine.dispose()
        return stored, duplicates

    console.print(f"[blue]Uploading {len(files_to_process)} file(s)...[/blue]\n")
    stored, duplicates = run_async(_upload())

    console.print()
    console.print(f"[bold]Summary:[/bold] {stored} stored, {duplicates} duplicates")


@app.command("list-files")
def list_files():
    """List all stored files."""
    async def _list():
        engine = create_engine(settings.storage_database_url, echo=settings.database_echo)
        await init_db(engine, StorageBase)
        try:
            async with create_session_factory(engine)() as session:
                return await BlobStore(session, settings.storage_dir).list_all()
        finally:
            await engine.dispose()

    records = run_async(_list())
    if not records:
        console.print("[yellow]No files stored.[/yellow]")
        return

    table = Table(title=f"Stored Files ({len(records)})")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Size", justify="right")
    table.add_column("Hash")
    table.add_column("Uploaded")
    for record in records:
        table.add_row(
            str(record.id),
            record.file_name,
            f"{record.size:,}",
            record.content_hash,
            str(record.uploaded_at),
        )
    console.print(table)


async def _with_analysis_service(callback):
    """Run ``callback(service)`` against the analysis database and real clients."""
    engine = create_engine(settings.analysis_database_url, echo=settings.database_echo)
    await init_db(engine, AnalysisBase)
    try:
        async with (
            BlobStoreClient(settings.storage_service_url, timeout=settings.http_timeout_seconds) as blobs,
            WordCloudClient(settings.wordcloud_api_url, timeout=settings.http_timeout_seconds) as renderer,
            create_session_factory(engine)() as session,
        ):
            service = AnalysisService(
                session,
                blobs,
                ArtifactCache(session, renderer, settings.artifact_dir),
                RandomPlaceholderScorer(settings.similarity_placeholder_max),
                match_threshold=settings.similarity_match_threshold,
            )
            return await callback(service)
    finally:
        await engine.dispose()


@app.command()
def analyze(
    file_id: Annotated[str, typer.Argument(help="Stored file ID (UUID)")],
):
    """Analyze a stored file.

    Content is fetched from the storage service; a file analyzed before
    shows its stored result.
    """
    fid = parse_id(file_id)
    try:
        result = run_async(_with_analysis_service(lambda service: service.analyze(fid)))
    except NotFoundError:
        console.print(f"[red]Error:[/red] File not found: {file_id}")
        raise typer.Exit(1) from None
    except TextcheckError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    render_analysis(result)


@app.command("show-analysis")
def show_analysis(
    analysis_id: Annotated[str, typer.Argument(help="Analysis ID (UUID)")],
):
    """Show details for a specific analysis result."""
    aid = parse_id(analysis_id)
    try:
        result = run_async(_with_analysis_service(lambda service: service.get_by_id(aid)))
    except NotFoundError:
        console.print(f"[red]Error:[/red] Analysis not found: {analysis_id}")
        raise typer.Exit(1) from None

    render_analysis(result)


@app.command("list-analyses")
def list_analyses():
    """List all analysis results."""
    results: Sequence[AnalysisResult] = run_async(
        _with_analysis_service(lambda service: service.list_all())
    )
    if not results:
        console.print("[yellow]No analysis results.[/yellow]")
        return

    table = Table(title=f"Analysis Results ({len(results)})")
    table.add_column("ID")
    table.add_column("File")
    table.add_column("Paragraphs", justify="right")
    table.add_column("Words", justify="right")
    table.add_column("Characters", justify="right")
    table.add_column("Matches", justify="right")
    for result in results:
        table.add_row(
            str(result.id)[:8] + "...",
            result.file_name,
            str(result.paragraph_count),
            str(result.word_count),
            str(result.character_count),
            str(len(result.matches)),
        )
    console.print(table)


if __name__ == "__main__":
    app()
