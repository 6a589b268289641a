"""Academio retrieval CLI - curriculum ingestion, search and memory upkeep."""

from __future__ import annotations

import sys
import time
from typing import Optional

import click
from tqdm import tqdm

from academio_rag.embeddings.factory import create_embeddings
from academio_rag.errors import EmptyCollectionError, RagError
from academio_rag.logging_utils import configure_logging
from academio_rag.memory.service import StudentMemory
from academio_rag.pipeline.chunk import TextSegmenter
from academio_rag.pipeline.config import Config, load_config
from academio_rag.pipeline.extract import PdfTextExtractor
from academio_rag.pipeline.indexer import BATCH_END, BATCH_START, CHUNK_DONE, BatchIndexer, ProgressEvent
from academio_rag.pipeline.ingest import (
    FAILED,
    PLANNED,
    SKIPPED,
    FileReport,
    IngestionOrchestrator,
    IngestReport,
)
from academio_rag.rag.retriever import MatchStrength, RetrievalEngine, classify
from academio_rag.storage.vectorstore import PgVectorStore

PREVIEW_CHARS = 280

VERDICTS = {
    MatchStrength.CONFIDENT: "PASSED",
    MatchStrength.PARTIAL: "PARTIAL",
    MatchStrength.WEAK: "WEAK",
}

config_option = click.option(
    "--config", "-c", "config_path", default=None, help="Configuration file path"
)


def _load(config_path: Optional[str]) -> Config:
    try:
        cfg = load_config(config_path)
    except FileNotFoundError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    configure_logging(cfg.logging.level)
    return cfg


def _create_store(cfg: Config) -> PgVectorStore:
    return PgVectorStore(
        database_url=cfg.vector_store.get_database_url(),
        timeout=cfg.vector_store.timeout,
        max_pool_size=cfg.vector_store.pool_max_size,
    )


def print_header(text: str):
    """Print section header."""
    click.echo(f"\n{'=' * 60}\n{text}\n{'=' * 60}\n")


class ProgressRenderer:
    """Renders indexer progress events as one tqdm bar per batch.

    Every chunk whose embedding failed is echoed with a ✗ marker, and the
    running failure count is shown in the bar postfix.
    """

    def __init__(self):
        self._bar: tqdm | None = None
        self._embedded = 0
        self._failed = 0

    def __call__(self, event: ProgressEvent) -> None:
        if event.kind == BATCH_START:
            self._embedded = 0
            self._failed = 0
            self._bar = tqdm(
                total=event.batch_size,
                desc=f"  Batch {event.batch_number}/{event.total_batches}",
                unit="chunk",
                leave=False,
            )
        elif event.kind == CHUNK_DONE:
            if event.embedded:
                self._embedded += 1
            else:
                self._failed += 1
                click.echo(f"    ✗ {event.chunk_id}: embedding failed")
            if self._bar is not None:
                self._bar.set_postfix(failed=self._failed, refresh=False)
                self._bar.update(1)
        elif event.kind == BATCH_END:
            if self._bar is not None:
                self._bar.close()
                self._bar = None
            click.echo(
                f"  Batch {event.batch_number}/{event.total_batches}: "
                f"{event.batch_size} chunks, {self._embedded} embedded, {self._failed} failed "
                f"({event.ms_per_chunk}ms/chunk)"
            )


def print_file_result(file_report: FileReport) -> None:
    if file_report.status == SKIPPED:
        click.echo(f"  - skipped: {file_report.reason}")
    elif file_report.status == FAILED:
        click.echo(f"  ✗ failed: {file_report.reason}")
    elif file_report.status == PLANNED:
        click.echo(f"  {file_report.chunks} chunks planned ({file_report.pages} pages)")
    else:
        marker = "✓" if file_report.failed == 0 else "✗"
        click.echo(
            f"  {marker} {file_report.chunks} chunks: "
            f"{file_report.embedded} embedded, {file_report.failed} failed"
        )


def print_ingest_summary(report: IngestReport) -> None:
    print_header("Ingestion summary")
    mode = "dry run" if report.dry_run else "indexed"
    click.echo(f"Collection:  {report.collection} ({mode})")
    click.echo(f"Files:       {report.total_files} (skipped {report.skipped_files}, failed {report.failed_files})")
    click.echo(f"Chunks:      {report.total_chunks}")
    if not report.dry_run:
        click.echo(f"Embedded:    {report.total_embedded}")
        click.echo(f"Failed:      {report.total_failed}")
    click.echo(f"Elapsed:     {report.elapsed:.1f}s")

    for file_report in report.files:
        if file_report.reason:
            click.echo(f"  - {file_report.source.display_name}: {file_report.reason}")

    if report.signature_mismatch:
        click.echo("! Collection settings changed since it was built; consider --clear")

    if report.succeeded:
        click.echo("\n✓ Ingestion completed successfully")
    else:
        click.echo("\n✓ Ingestion completed with warnings")


@click.group()
def cli():
    """Academio retrieval CLI - curriculum ingestion, search and memory upkeep."""
    pass


@click.command()
@click.option("--grade", default=None, help="Only ingest grade directories starting with this prefix")
@click.option("--clear", is_flag=True, help="Delete the collection before ingesting")
@click.option("--dry-run", is_flag=True, help="Extract and chunk only; no embedding or storage")
@click.option("--workers", type=click.IntRange(min=1), default=None, help="Concurrent embedding calls per batch")
@config_option
def ingest(grade: Optional[str], clear: bool, dry_run: bool, workers: Optional[int], config_path: Optional[str]):
    """Ingest curriculum textbooks into the vector store."""
    cfg = _load(config_path)
    started = time.monotonic()

    print_header("Curriculum ingestion")
    click.echo(f"Corpus:      {cfg.corpus.root}")
    click.echo(f"Collection:  {cfg.corpus.collection_name}")
    click.echo(f"Model:       {cfg.embedding.model}")
    click.echo(f"Chunking:    {cfg.chunking.chunk_size} chars, {cfg.chunking.chunk_overlap} overlap")
    if grade:
        click.echo(f"Grade:       {grade}*")
    if dry_run:
        click.echo("Mode:        dry run")

    embeddings = create_embeddings(cfg.embedding)
    store = None if dry_run else _create_store(cfg)
    indexer = BatchIndexer(
        embeddings,
        batch_size=cfg.chunking.batch_size,
        allow_unembedded_fallback=cfg.chunking.allow_unembedded_fallback,
        max_workers=workers or cfg.chunking.embed_workers,
    )
    orchestrator = IngestionOrchestrator(
        corpus_root=cfg.corpus.root,
        extractor=PdfTextExtractor(),
        segmenter=TextSegmenter(cfg.chunking.chunk_size, cfg.chunking.chunk_overlap),
        embeddings=embeddings,
        store=store,
        indexer=indexer,
        collection_name=cfg.corpus.collection_name,
    )

    def on_file(index: int, total: int, source) -> None:
        click.echo(f"\n[{index}/{total}] {source.display_name}")

    try:
        report = orchestrator.run(
            group_filter=grade,
            clear=clear,
            dry_run=dry_run,
            on_progress=ProgressRenderer(),
            on_file=on_file,
            on_file_done=print_file_result,
        )
    except RagError as e:
        click.echo(f"\n✗ Ingestion failed: {e}", err=True)
        click.echo(f"  Elapsed: {time.monotonic() - started:.1f}s", err=True)
        sys.exit(1)
    finally:
        if store is not None:
            store.close()

    print_ingest_summary(report)


@click.command()
@click.argument("query_words", nargs=-1, required=True)
@click.option("--top-k", "-k", type=click.IntRange(min=1), default=None, help="Number of results")
@click.option("--grade", default=None, help="Only search one grade directory (e.g. 01_primaria_1)")
@config_option
def query(query_words: tuple, top_k: Optional[int], grade: Optional[str], config_path: Optional[str]):
    """Search the curriculum collection."""
    cfg = _load(config_path)
    text = " ".join(query_words).strip()
    if not text:
        click.echo("✗ Query must not be empty", err=True)
        sys.exit(1)

    top_k = top_k or cfg.retrieval.top_k
    store = _create_store(cfg)
    engine = RetrievalEngine(
        create_embeddings(cfg.embedding),
        store,
        default_collection=cfg.corpus.collection_name,
    )

    click.echo(f'Query: "{text}"')
    try:
        store.ping()
        results = engine.retrieve(
            text,
            top_k=top_k,
            where={"grade_dir": grade} if grade else None,
        )
    except EmptyCollectionError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    except RagError as e:
        click.echo(f"✗ Query failed: {e}", err=True)
        sys.exit(1)
    finally:
        store.close()

    if not results:
        click.echo("✗ No results")
        sys.exit(1)

    for result in results:
        meta = result.as_chunk_metadata()
        preview = " ".join(result.text.split())[:PREVIEW_CHARS]
        click.echo(f"\n[{result.rank}] similarity {result.similarity:.2f}  {meta.source_title}")
        click.echo(
            f"    {meta.group_label} | {meta.subject} | page ~{meta.source_page} "
            f"| chunk #{meta.chunk_index}"
        )
        click.echo(f"    {preview}")

    best = results[0].similarity
    strength = classify(
        best,
        confident_threshold=cfg.retrieval.confident_threshold,
        partial_threshold=cfg.retrieval.partial_threshold,
    )
    click.echo(f"\nVerdict: {VERDICTS[strength]} (top similarity {best:.2f})")


@cli.group()
def memory():
    """Manage per-student interaction memory."""
    pass


def _memory_service(cfg: Config, store: PgVectorStore) -> StudentMemory:
    return StudentMemory(
        create_embeddings(cfg.embedding),
        store,
        limit=cfg.memory.limit,
        min_similarity=cfg.memory.min_similarity,
        answer_excerpt_chars=cfg.memory.answer_excerpt_chars,
    )


@memory.command()
@click.argument("student_id")
@config_option
def stats(student_id: str, config_path: Optional[str]):
    """Show memory statistics for a student."""
    cfg = _load(config_path)
    store = _create_store(cfg)
    try:
        store.ping()
        result = _memory_service(cfg, store).stats(student_id)
    except RagError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    finally:
        store.close()

    click.echo(f"Student:   {student_id}")
    click.echo(f"Memories:  {result.total}")
    if result.total:
        click.echo(f"Oldest:    {result.oldest}")
        click.echo(f"Newest:    {result.newest}")


@memory.command()
@click.option("--student", "student_id", default=None, help="Reset one student's memory")
@click.option("--all", "reset_all", is_flag=True, help="Reset ALL student memories")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@config_option
def reset(student_id: Optional[str], reset_all: bool, yes: bool, config_path: Optional[str]):
    """Reset student memory (destructive)."""
    if bool(student_id) == reset_all:
        raise click.UsageError("Pass exactly one of --student or --all")

    cfg = _load(config_path)
    if reset_all and not yes:
        click.confirm("This will delete ALL student memories. Continue?", abort=True)

    store = _create_store(cfg)
    try:
        store.ping()
        service = _memory_service(cfg, store)
        if reset_all:
            deleted = service.reset_all()
            click.echo(f"✓ Deleted {deleted} memory collections")
        else:
            current = service.stats(student_id).total
            click.echo(f"Current memories: {current}")
            if current == 0:
                click.echo("No memories to reset.")
                return
            service.reset_student(student_id)
            click.echo("✓ Student memory has been reset")
    except RagError as e:
        click.echo(f"✗ Reset failed: {e}", err=True)
        sys.exit(1)
    finally:
        store.close()


@memory.command()
@click.argument("student_ids", nargs=-1)
@click.option("--clean", is_flag=True, help="Delete orphaned memory collections")
@config_option
def verify(student_ids: tuple, clean: bool, config_path: Optional[str]):
    """Compare memory collections with the given student IDs."""
    cfg = _load(config_path)
    store = _create_store(cfg)
    try:
        store.ping()
        service = _memory_service(cfg, store)
        result = service.verify_synchronization(student_ids)

        click.echo(f"In sync: {'✓ yes' if result.in_sync else '✗ no'}")
        for orphan in result.orphaned:
            click.echo(f"  orphaned: {orphan}")
        for missing in result.missing:
            click.echo(f"  missing:  {missing}")

        if clean and result.orphaned:
            cleaned = service.clean_orphaned(result.orphaned)
            click.echo(f"✓ Cleaned {cleaned} orphaned collections")
    except RagError as e:
        click.echo(f"✗ Verification failed: {e}", err=True)
        sys.exit(1)
    finally:
        store.close()


cli.add_command(ingest)
cli.add_command(query)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
