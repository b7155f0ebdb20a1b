"""RAG module - Retrieval-Augmented Generation system"""

from kbresponder.rag.chain import ResponseComposer, StageResult
from kbresponder.rag.chunker import generate_fixed_size_chunks, generate_recursive_chunks
from kbresponder.rag.factory import build_embeddings_service, build_generator_service
from kbresponder.rag.retriever import Retriever, RetrievalResult
from kbresponder.rag.vector_store import KnowledgeStore

__all__ = [
    'ResponseComposer',
    'StageResult',
    'generate_fixed_size_chunks',
    'generate_recursive_chunks',
    'build_embeddings_service',
    'build_generator_service',
    'Retriever',
    'RetrievalResult',
    'KnowledgeStore'
]
