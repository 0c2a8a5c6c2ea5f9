# =============================================================================
# docrag/cli/ingest.py -- Document Ingestion CLI
# =============================================================================
#
# Command-line front end for the ingestion and deletion coordinators.
#
# Supported subcommands:
#
#   ingest   -- Ingest one or more files (pdf, docx, txt, md)
#   delete   -- Remove a document's vectors and metadata record
#   list     -- List document records, newest first
#   show     -- Print one document record
#   inspect  -- Compare a record with the vectors actually stored
#
# Usage examples:
#   python -m docrag.cli ingest report.pdf notes.md
#   python -m docrag.cli ingest report.pdf --title "Q3 Report" --id doc-q3
#   python -m docrag.cli delete doc-1718000000000-1a2b3c4d
#   python -m docrag.cli delete doc-stuck --force
#   python -m docrag.cli inspect doc-q3
# =============================================================================

"""Standalone CLI for ingesting, listing and deleting documents.

Exit codes: ``0`` success, ``1`` a command failed, ``2`` usage error.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from docrag.config.loader import load_settings
from docrag.config.settings import Settings
from docrag.main import Pipeline, open_pipeline
from docrag.models.document import Document, DocumentUpload
from docrag.utils.errors import DocRagError, IngestionError
from docrag.utils.logging import configure_logging


def _print_document(document: Document) -> None:
    print(f"  ID:         {document.document_id}")
    print(f"  Title:      {document.title}")
    print(f"  File:       {document.filename} ({document.file_type}, {document.file_size} bytes)")
    print(f"  Status:     {document.status.value}")
    print(f"  Uploaded:   {document.uploaded_at.isoformat()}")
    if document.processed_at:
        print(f"  Processed:  {document.processed_at.isoformat()}")
    if document.chunk_count is not None:
        print(f"  Chunks:     {document.chunk_count}")
        print(f"  Vectors:    {document.vector_count}")
        print(f"  Characters: {document.content_length}")
    if document.error_message:
        print(f"  Error:      {document.error_message}")


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_ingest(args: argparse.Namespace, pipeline: Pipeline) -> int:
    if len(args.files) > 1 and (args.document_id or args.title):
        print("Error: --id and --title apply to a single file only.", file=sys.stderr)
        return 2

    failures = 0
    for file_name in args.files:
        path = Path(file_name)
        try:
            data = path.read_bytes()
        except OSError as exc:
            print(f"Error: cannot read {path}: {exc}", file=sys.stderr)
            failures += 1
            continue

        upload = DocumentUpload(
            filename=path.name,
            data=data,
            title=args.title,
            file_type=args.file_type,
        )
        print(f"Ingesting: {path}")
        try:
            result = await pipeline.ingestion.ingest(upload, document_id=args.document_id)
        except IngestionError as exc:
            print(f"  Failed at {exc.stage}: {exc.message}", file=sys.stderr)
            if not exc.status_recorded:
                print("  Warning: the failure could not be recorded on the document.", file=sys.stderr)
            failures += 1
            continue
        except DocRagError as exc:
            print(f"  Rejected: {exc}", file=sys.stderr)
            failures += 1
            continue

        print(f"  Document ID: {result.document_id}")
        print(f"  Chunks:      {result.chunk_count}")
        print(f"  Vectors:     {result.vector_count}")
        print(f"  Time:        {result.ingestion_time:.2f}s")

    return 1 if failures else 0


async def _handle_delete(args: argparse.Namespace, pipeline: Pipeline) -> int:
    result = await pipeline.deletion.delete(args.document_id, force=args.force)
    print(f"Deleted {result.document_id}: {result.vectors_deleted} vectors removed.")
    return 0


async def _handle_list(args: argparse.Namespace, pipeline: Pipeline) -> int:
    documents = await pipeline.deletion.list_documents()
    if not documents:
        print("No documents.")
        return 0
    for document in documents:
        chunks = "-" if document.chunk_count is None else str(document.chunk_count)
        print(
            f"{document.document_id:<36} {document.status.value:<11} "
            f"{chunks:>6}  {document.title}"
        )
    return 0


async def _handle_show(args: argparse.Namespace, pipeline: Pipeline) -> int:
    document = await pipeline.deletion.get(args.document_id)
    _print_document(document)
    return 0


async def _handle_inspect(args: argparse.Namespace, pipeline: Pipeline) -> int:
    report = await pipeline.deletion.inspect(args.document_id)
    print(f"Document {report.document_id} ({report.status.value})")
    print(f"  Chunk count:     {report.chunk_count if report.chunk_count is not None else '-'}")
    print(f"  Vectors present: {report.vector_ids_present}")
    if report.is_consistent:
        print("  Consistent.")
        return 0
    for problem in report.problems:
        print(f"  Problem: {problem}")
    return 1


_HANDLERS = {
    "ingest": _handle_ingest,
    "delete": _handle_delete,
    "list": _handle_list,
    "show": _handle_show,
    "inspect": _handle_inspect,
}


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    handler = _HANDLERS[args.command]
    try:
        async with open_pipeline(settings) as pipeline:
            return await handler(args, pipeline)
    except DocRagError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the docrag CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m docrag.cli",
        description="Ingest documents into the docrag vector index.",
    )
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="YAML settings file (default: config/config.yaml; optional)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # -- ingest --
    ingest_parser = subparsers.add_parser("ingest", help="Ingest one or more files")
    ingest_parser.add_argument("files", nargs="+", help="Paths of the files to ingest")
    ingest_parser.add_argument("--title", help="Document title (default: filename stem)")
    ingest_parser.add_argument(
        "--type", dest="file_type", help="File type override (default: file extension)"
    )
    ingest_parser.add_argument(
        "--id", dest="document_id", help="Document id; an existing id is re-ingested"
    )

    # -- delete --
    delete_parser = subparsers.add_parser("delete", help="Delete a document")
    delete_parser.add_argument("document_id", help="Document id")
    delete_parser.add_argument(
        "--force", action="store_true", help="Delete even if ingestion appears in progress"
    )

    # -- list / show / inspect --
    subparsers.add_parser("list", help="List documents")
    show_parser = subparsers.add_parser("show", help="Show one document record")
    show_parser.add_argument("document_id", help="Document id")
    inspect_parser = subparsers.add_parser(
        "inspect", help="Check a document's record against its stored vectors"
    )
    inspect_parser.add_argument("document_id", help="Document id")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse arguments, load settings, dispatch, exit."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(2)

    try:
        settings = load_settings(args.config)
    except DocRagError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    configure_logging(settings.log_level, json_output=settings.log_json, app_env=settings.app_env)

    if args.command == "ingest" and not settings.openai_api_key:
        print("Error: OPENAI_API_KEY is not set.", file=sys.stderr)
        sys.exit(1)

    sys.exit(asyncio.run(_run(args, settings)))
