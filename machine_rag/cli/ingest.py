"""``ingest`` command: build the vector-store corpus.

Usage::

    python -m machine_rag.cli ingest                      # RAG_INGEST_DIR
    python -m machine_rag.cli ingest --path ./data/jsonld
    python -m machine_rag.cli ingest plant.jsonld manual.pdf
"""

from __future__ import annotations

import argparse
import sys

from machine_rag.config.settings import Settings


def add_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser(
        "ingest",
        help="Ingest JSON-LD graphs and referenced PDFs into the vector store",
    )
    parser.add_argument("--path", help="Folder to ingest recursively (default: RAG_INGEST_DIR)")
    parser.add_argument("files", nargs="*", default=[], help="Explicit .json/.jsonld/.pdf files")


async def run(args: argparse.Namespace, app_settings: Settings) -> int:
    from machine_rag.main import build_ingestion_service

    if args.files and args.path:
        print("Error: pass either --path or files, not both.", file=sys.stderr)
        return 2

    service = build_ingestion_service(app_settings)
    target = args.files or args.path or app_settings.rag_ingest_dir
    print(f"Ingesting into collection '{app_settings.rag_collection_name}'")
    print(f"  Sources: {target}")

    result = await service.ingest(target)

    print("\nIngestion complete:")
    print(f"  Records uploaded:   {result.records_uploaded}")
    print(f"  Parent records:     {result.parent_records}")
    print(f"  Chunk records:      {result.chunk_records}")
    print(f"  Duplicate chunks:   {result.duplicate_chunks}")
    print(f"  Duplicate files:    {result.duplicate_files}")
    print(f"  Dropped (dim):      {result.dropped_records}")
    print(f"  Failed sources:     {result.failed_sources}")
    print(f"  Failed references:  {result.failed_references}")
    print(f"  Time:               {result.ingestion_time:.2f}s")
    return 0
