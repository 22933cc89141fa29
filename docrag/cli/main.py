"""Standalone CLI for ingesting and querying per-document vector collections.

Usage::

    python -m docrag.cli ingest --document-id doc-42 --file report.txt \\
        --strategy chapters

    python -m docrag.cli search --document-id doc-42 --query "revenue growth"

    python -m docrag.cli search --query "revenue growth" --top-k 3

    python -m docrag.cli stats --document-id doc-42
    python -m docrag.cli delete --document-id doc-42
    python -m docrag.cli list
    python -m docrag.cli health
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from docrag.config.loader import load_settings
from docrag.config.settings import Settings
from docrag.main import build_pipeline, build_vector_store
from docrag.models.pipeline import IngestionJob
from docrag.models.rag import (
    ChunkingOptions,
    ChunkingStrategy,
    EmbeddingOptions,
    EmbeddingProviderName,
)
from docrag.utils.errors import DocRAGError
from docrag.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

_PROVIDER_CHOICES = [p.value for p in EmbeddingProviderName]


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_ingest(args: argparse.Namespace, settings: Settings) -> int:
    text = sys.stdin.read() if args.file == "-" else Path(args.file).read_text(encoding="utf-8")
    job = IngestionJob(
        document_id=args.document_id,
        extracted_text=text,
        chunking_options=ChunkingOptions(
            strategy=ChunkingStrategy(args.strategy),
            chunk_size=args.chunk_size,
            chunk_overlap=args.chunk_overlap,
            preprocess=args.preprocess,
        ),
        embedding_options=EmbeddingOptions(
            provider=EmbeddingProviderName(args.provider) if args.provider else None,
            model=args.model,
        ),
    )

    pipeline = build_pipeline(settings)
    try:
        result = await pipeline.process_ingestion_job(job)
    finally:
        await pipeline.close()
    print(result.model_dump_json(indent=2))
    return 0 if result.success else 1


async def _handle_search(args: argparse.Namespace, settings: Settings) -> int:
    pipeline = build_pipeline(settings)
    try:
        if args.document_id:
            response = await pipeline.search_in_document(
                args.document_id,
                args.query,
                top_k=args.top_k,
                min_score=args.min_score,
                embedding_provider=args.provider,
                model=args.model,
            )
        else:
            response = await pipeline.search_all_documents(
                args.query,
                top_k=args.top_k,
                min_score=args.min_score,
                embedding_provider=args.provider,
                model=args.model,
            )
    finally:
        await pipeline.close()
    print(response.model_dump_json(indent=2))
    return 0 if response.success else 1


async def _handle_delete(args: argparse.Namespace, settings: Settings) -> int:
    pipeline = build_pipeline(settings)
    try:
        response = await pipeline.delete_document_rag(args.document_id)
    finally:
        await pipeline.close()
    print(response.model_dump_json(indent=2))
    return 0 if response.success else 1


async def _handle_stats(args: argparse.Namespace, settings: Settings) -> int:
    pipeline = build_pipeline(settings)
    try:
        response = await pipeline.get_document_rag_stats(args.document_id)
    finally:
        await pipeline.close()
    print(response.model_dump_json(indent=2))
    return 0 if response.success else 1


async def _handle_list(args: argparse.Namespace, settings: Settings) -> int:
    store = build_vector_store(settings)
    try:
        names = await store.list_collections()
    except DocRAGError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await store.close()
    print(json.dumps({"collections": sorted(names)}, indent=2))
    return 0


async def _handle_health(args: argparse.Namespace, settings: Settings) -> int:
    store = build_vector_store(settings)
    try:
        healthy = await store.health_check()
    finally:
        await store.close()
    print(json.dumps({"vector_store": healthy}, indent=2))
    return 0 if healthy else 1


_HANDLERS = {
    "ingest": _handle_ingest,
    "search": _handle_search,
    "delete": _handle_delete,
    "stats": _handle_stats,
    "list": _handle_list,
    "health": _handle_health,
}


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _add_embedding_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--provider",
        choices=_PROVIDER_CHOICES,
        default=None,
        help="Embedding backend (default: first one with credentials)",
    )
    parser.add_argument("--model", default=None, help="Embedding model override")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docrag",
        description="Chunk, embed and search documents in per-document vector collections.",
    )
    parser.add_argument("--config", default=None, help="Optional YAML settings file")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Ingest a plain-text document")
    ingest.add_argument("--document-id", required=True)
    ingest.add_argument("--file", required=True, help="Text file to ingest, or '-' for stdin")
    ingest.add_argument(
        "--strategy",
        choices=[s.value for s in ChunkingStrategy],
        default=ChunkingStrategy.STANDARD.value,
    )
    ingest.add_argument("--chunk-size", type=int, default=None)
    ingest.add_argument("--chunk-overlap", type=int, default=None)
    ingest.add_argument(
        "--preprocess",
        action="store_true",
        help="Normalize whitespace before chunking",
    )
    _add_embedding_args(ingest)

    search = subparsers.add_parser("search", help="Semantic search in one or all documents")
    search.add_argument("--query", required=True)
    search.add_argument(
        "--document-id",
        default=None,
        help="Restrict to one document (default: search all collections)",
    )
    search.add_argument("--top-k", type=int, default=None)
    search.add_argument("--min-score", type=float, default=None)
    _add_embedding_args(search)

    delete = subparsers.add_parser("delete", help="Delete a document's collection")
    delete.add_argument("--document-id", required=True)

    stats = subparsers.add_parser("stats", help="Show a document's collection stats")
    stats.add_argument("--document-id", required=True)

    subparsers.add_parser("list", help="List all collections")
    subparsers.add_parser("health", help="Check vector store connectivity")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, run the chosen command, and return an exit code."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
    except DocRAGError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    configure_logging(args.log_level or settings.log_level)

    handler = _HANDLERS[args.command]
    try:
        return asyncio.run(handler(args, settings))
    except (DocRAGError, OSError, ValueError) as exc:
        logger.error("cli_command_failed", command=args.command, error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
