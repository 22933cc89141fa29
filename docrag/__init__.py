"""docrag: chunking, embedding and per-document vector storage for RAG."""

__version__ = "0.1.0"
