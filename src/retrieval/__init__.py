"""Embedding, vector storage and context retrieval."""

from src.retrieval.classifier import QueryIntent, classify_question
from src.retrieval.config import RetrievalConfig, get_retrieval_config
from src.retrieval.embeddings import EmbeddingProvider
from src.retrieval.orchestrator import RetrievalResult, Retriever
from src.retrieval.vector_store import DocumentChunk, DocumentStats, LanceVectorStore, VectorStore

__all__ = [
    "DocumentChunk",
    "DocumentStats",
    "EmbeddingProvider",
    "LanceVectorStore",
    "QueryIntent",
    "RetrievalConfig",
    "RetrievalResult",
    "Retriever",
    "VectorStore",
    "classify_question",
    "get_retrieval_config",
]
