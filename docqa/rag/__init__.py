"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Text extraction from uploaded files
- Document chunking with overlap
- Embedding generation
- Cosine similarity ranking
- Retrieval and grounded answering
"""
