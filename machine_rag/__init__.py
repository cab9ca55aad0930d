"""machine-rag: retrieval-augmented answers about industrial machines.

Two pipelines live in this package:

- ``machine_rag.services.ingestion`` turns machine property graphs
  (JSON-LD) and the PDF manuals they reference into parent and chunk
  embeddings in a vector store.
- ``machine_rag.services.query`` routes a conversation turn to live
  time-series data, live alerts, or document retrieval plus a completion
  call.
"""

__version__ = "0.1.0"
