"""RAG system configuration"""

from kbresponder.config import settings
from dataclasses import dataclass


@dataclass
class RAGConfig:
    """Configuration for RAG system"""
    
    # AI Provider Selection
    ai_provider: str = settings.AI_PROVIDER  # "openai" or "gemini"
    
    # OpenAI Settings
    openai_api_key: str = settings.OPENAI_API_KEY
    llm_model: str = settings.OPENAI_MODEL
    embedding_model: str = settings.OPENAI_EMBEDDING_MODEL
    max_tokens: int = settings.OPENAI_MAX_TOKENS
    temperature: float = settings.OPENAI_TEMPERATURE
    
    # Gemini Settings
    google_api_key: str = settings.GOOGLE_API_KEY
    gemini_model: str = settings.GEMINI_MODEL
    gemini_embedding_model: str = settings.GEMINI_EMBEDDING_MODEL
    gemini_max_tokens: int = settings.GEMINI_MAX_TOKENS
    gemini_temperature: float = settings.GEMINI_TEMPERATURE
    
    # Both providers are asked for vectors of this size
    vector_size: int = settings.EMBEDDING_DIMENSION
    
    # Chunking
    chunk_size: int = settings.RAG_CHUNK_SIZE
    chunk_overlap: int = settings.RAG_CHUNK_OVERLAP
    
    # Retrieval
    top_k: int = settings.RAG_TOP_K
    max_distance: float = settings.RAG_MAX_DISTANCE
    history_limit: int = settings.RAG_HISTORY_LIMIT
    
    # Generation
    default_language: str = settings.RAG_DEFAULT_LANGUAGE
    request_timeout: float = settings.RAG_REQUEST_TIMEOUT


# Global RAG config instance
rag_config = RAGConfig()
