# =============================================================================
# machine_rag/cli/__init__.py: CLI Package
# =============================================================================
#
# Command-line entry points for operators:
#
#   ingest   build the vector-store corpus from JSON-LD machine graphs and
#            the PDF manuals they reference (plus PDFs found in the folder)
#   ask      run one query turn (live chart, live alerts or a grounded
#            answer) and print the reply
#
# Heavy imports (openai, chromadb, httpx providers) are deferred into the
# command handlers so `--help` stays fast.
# =============================================================================

"""Command-line tools for machine-rag.

- ``python -m machine_rag.cli ingest [--path DIR | FILES...]``
- ``python -m machine_rag.cli ask "question" [--asset NAME ...] [--rules]``
"""
