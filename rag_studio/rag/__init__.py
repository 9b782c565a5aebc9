"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Text extraction from uploaded files
- Document chunking with overlap
- Embedding generation
- In-memory vector storage and cosine search
- Keyword suggestions
- Answer generation
"""
