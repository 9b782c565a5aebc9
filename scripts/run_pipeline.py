#!/usr/bin/env python
"""Walk one document through the RAG pipeline from the command line.

Usage:
    python scripts/run_pipeline.py notes.pdf                      # Chunk and embed
    python scripts/run_pipeline.py notes.md --query "What is RAG?"
    python scripts/run_pipeline.py notes.txt --chunk-size 800 --overlap 50 --export out.json
"""
import argparse
import asyncio
import json
import mimetypes
import sys
from datetime import datetime
from pathlib import Path

import structlog

from rag_studio import config
from rag_studio.credentials import resolve_credential
from rag_studio.errors import RagStudioError
from rag_studio.llm_client import create_openai_client
from rag_studio.rag.embedder import Embedder
from rag_studio.rag.extractor import extract_document
from rag_studio.rag.retriever import Retriever
from rag_studio.rag.synthesizer import AnswerSynthesizer
from rag_studio.session import PipelineSession

logger = structlog.get_logger()


class StepReporter:
    """Prints one line per pipeline step and a closing summary."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.start_time = None

    def start(self, message: str):
        self.start_time = datetime.now()
        print(f"\n{'=' * 60}")
        print(f"  {message}")
        print(f"{'=' * 60}\n")

    def step(self, number: int, title: str, detail: str):
        print(f"  [{number}/4] {title:<10} {detail}")

    def finish(self, session: PipelineSession):
        elapsed_seconds = (datetime.now() - self.start_time).total_seconds()
        snapshot = session.snapshot()

        print(f"\n{'=' * 60}")
        print(f"  Pipeline Complete")
        print(f"{'=' * 60}\n")
        print(f"  📄 Document:        {session.document.filename}")
        print(f"  📝 Chunks created:  {snapshot['chunkCount']}")
        print(f"  🧮 Vectors stored:  {snapshot['vectorCount']} (dimension {snapshot['dimension']})")
        print(f"  ⏱️  Time elapsed:    {elapsed_seconds:.1f}s")

        if snapshot.get("warning"):
            print(f"\n⚠️  {snapshot['warning']}")

        print(f"\n{'=' * 60}\n")


async def run(args, reporter: StepReporter) -> PipelineSession:
    content = args.file.read_bytes()
    mimetype, _ = mimetypes.guess_type(args.file.name)

    client = create_openai_client(resolve_credential(args.api_key))
    embedder = Embedder(client)

    session = PipelineSession()
    session.update_chunk_config(args.chunk_size, args.overlap)

    document = await asyncio.to_thread(extract_document, args.file.name, content, mimetype)
    session.set_document(document)
    reporter.step(1, "Upload", f"{len(document.text):,} characters extracted")

    await session.next()
    config_line = session.chunk_config.to_dict()
    reporter.step(
        2,
        "Chunk",
        f"{len(session.chunks)} chunks "
        f"(size {config_line['chunkSize']}, overlap {config_line['overlap']})",
    )
    if args.verbose:
        for index, chunk in enumerate(session.chunks[:5]):
            print(f"        #{index}: {chunk[:60]!r}")

    await session.next(embedder)
    reporter.step(3, "Embed", f"{len(session.vector_store)} vectors with {embedder.model}")

    await session.next()
    if args.query:
        retriever = Retriever(embedder, AnswerSynthesizer(client))
        result = await session.retrieve(retriever, args.query, top_k=args.top_k)
        reporter.step(4, "Retrieve", f"{len(result.results)} chunks for {args.query!r}")
        for item in result.results:
            print(f"        #{item.id} ({item.similarity:.3f}) {item.text[:60]!r}")
        print(f"\n  💬 {result.answer}")
    else:
        suggestions = ", ".join(session.suggest_queries()) or "none"
        reporter.step(4, "Retrieve", f"ready; suggested queries: {suggestions}")

    return session


async def main():
    """Main entry point for the pipeline script."""
    parser = argparse.ArgumentParser(
        description="Upload, chunk, embed and query one document",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_pipeline.py notes.pdf
  python scripts/run_pipeline.py notes.md --query "What is RAG?" --top-k 5
        """,
    )

    parser.add_argument("file", type=Path, help="TXT, MD or PDF file to process")
    parser.add_argument("--query", "-q", default=None, help="Question to answer at step 4")
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=config.DEFAULT_CHUNK_SIZE,
        help=f"Chunk size in characters (default: {config.DEFAULT_CHUNK_SIZE})",
    )
    parser.add_argument(
        "--overlap",
        type=int,
        default=config.DEFAULT_CHUNK_OVERLAP,
        help=f"Chunk overlap in characters (default: {config.DEFAULT_CHUNK_OVERLAP})",
    )
    parser.add_argument(
        "--top-k",
        type=int,
        default=config.RETRIEVAL_TOP_K,
        help=f"Chunks to retrieve (default: {config.RETRIEVAL_TOP_K})",
    )
    parser.add_argument("--api-key", default=None, help="OpenAI API key (default: $OPENAI_API_KEY)")
    parser.add_argument("--export", type=Path, default=None, help="Write the session export here")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show chunk previews")

    args = parser.parse_args()
    reporter = StepReporter(verbose=args.verbose)

    try:
        print("\n📋 Configuration:")
        print(f"   Embedding model:  {config.EMBEDDING_MODEL}")
        print(f"   Chat model:       {config.CHAT_MODEL}")
        print(f"   API base URL:     {config.OPENAI_BASE_URL}")

        reporter.start(f"Processing {args.file.name}")
        session = await run(args, reporter)
        reporter.finish(session)

        if args.export:
            args.export.write_text(json.dumps(session.export()), encoding="utf-8")
            print(f"✅ Session exported to: {args.export}\n")

    except KeyboardInterrupt:
        print("\n\n⚠️  Cancelled by user.\n")
        sys.exit(1)

    except FileNotFoundError as e:
        print(f"\n❌ Error: {e}\n")
        sys.exit(1)

    except RagStudioError as e:
        print(f"\n❌ Error: {e.message}\n")
        logger.error("pipeline_script_failed", error=e.message, error_type=type(e).__name__)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
