"""Code indexing pipeline: local source, code and Markdown chunking, API embeddings, Qdrant and SQL sinks, and an HTTP job server."""

__version__ = "0.1.0"