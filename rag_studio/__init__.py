"""RAG Studio: a step-by-step Retrieval-Augmented Generation walk-through."""

__version__ = "0.1.0"
