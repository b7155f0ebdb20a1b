"""Factory for AI service providers"""

import logging
from typing import Any
from kbresponder.rag.config import RAGConfig, rag_config

logger = logging.getLogger(__name__)


def build_embeddings_service(config: RAGConfig = rag_config) -> Any:
    """Build the embeddings service for the configured AI provider"""
    provider = config.ai_provider.lower()
    
    if provider == "gemini":
        from kbresponder.rag.embeddings_gemini import GeminiEmbeddingsService
        service = GeminiEmbeddingsService(config)
    elif provider == "openai":
        from kbresponder.rag.embeddings import EmbeddingsService
        service = EmbeddingsService(config)
    else:
        raise ValueError(f"Unsupported AI provider: {config.ai_provider}")
    
    logger.info(f"Embeddings service ready: {type(service).__name__}")
    return service


def build_generator_service(config: RAGConfig = rag_config) -> Any:
    """Build the completion service for the configured AI provider"""
    provider = config.ai_provider.lower()
    
    if provider == "gemini":
        from kbresponder.rag.generator_gemini import GeminiGenerator
        service = GeminiGenerator(config)
    elif provider == "openai":
        from kbresponder.rag.generator import Generator
        service = Generator(config)
    else:
        raise ValueError(f"Unsupported AI provider: {config.ai_provider}")
    
    logger.info(f"Generator service ready: {type(service).__name__}")
    return service
