#!/usr/bin/env python
"""Work with the document store from the command line.

Usage:
    python scripts/docqa_cli.py upload report.pdf        # Extract, embed and store a file
    python scripts/docqa_cli.py list                     # Show stored documents
    python scripts/docqa_cli.py ask <doc_id> "question"  # Ask about a document
"""
import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from docqa import config
from docqa.errors import DocQAError
from docqa.rag.answerer import Answerer
from docqa.rag.ingest import IngestPipeline
from docqa.store import DocumentStore
import structlog

logger = structlog.get_logger()


async def cmd_upload(store: DocumentStore, args: argparse.Namespace) -> int:
    path: Path = args.path
    if not path.exists():
        print(f"\n❌ Error: file not found: {path}\n")
        return 1

    print(f"\n📄 Uploading {path.name} ({path.stat().st_size} bytes)")
    print(f"   Embedding model:  {config.EMBEDDING_MODEL}")
    print(f"   Chunk size:       {config.CHUNK_SIZE} chars")
    print(f"   Chunk overlap:    {config.CHUNK_OVERLAP} chars\n")

    pipeline = IngestPipeline(store)
    result = await pipeline.ingest(path.read_bytes(), path.name)

    print(f"✅ Stored as {result.document_id} ({result.chunk_count} chunks)")
    print(f"✅ Store at: {store.path}\n")
    return 0


async def cmd_list(store: DocumentStore, args: argparse.Namespace) -> int:
    summaries = store.list()
    if not summaries:
        print("\nNo documents stored yet.\n")
        return 0

    print(f"\n{'=' * 60}")
    for s in summaries:
        print(f"  {s.id}  {s.filename[:30]:<30} {s.chunk_count:>4} chunks {s.history_count:>3} Q&A")
    print(f"{'=' * 60}\n")
    return 0


async def cmd_ask(store: DocumentStore, args: argparse.Namespace) -> int:
    answerer = Answerer(store)
    result = await answerer.ask(args.doc_id, args.question)
    print(f"\n{result.answer.strip()}\n")
    return 0


COMMANDS = {
    "upload": cmd_upload,
    "list": cmd_list,
    "ask": cmd_ask,
}


async def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Upload documents and ask questions about them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--storage",
        type=Path,
        default=None,
        help=f"Store file (default: {config.STORAGE_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    upload = subparsers.add_parser("upload", help="Extract, embed and store a file")
    upload.add_argument("path", type=Path)

    subparsers.add_parser("list", help="List stored documents")

    ask = subparsers.add_parser("ask", help="Ask a question about a document")
    ask.add_argument("doc_id")
    ask.add_argument("question")

    args = parser.parse_args()
    store = DocumentStore(args.storage)

    try:
        return await COMMANDS[args.command](store, args)

    except KeyboardInterrupt:
        print("\n\n⚠️  Cancelled by user.\n")
        return 1

    except DocQAError as e:
        print(f"\n❌ {e.kind}: {e.message}\n")
        logger.error("cli_command_failed", command=args.command, kind=e.kind, error=e.message)
        return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
