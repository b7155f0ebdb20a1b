"""OpenAI embeddings service"""

from typing import List, Optional
from openai import AsyncOpenAI
import asyncio
import logging
from kbresponder.exceptions import ExternalAPIException
from kbresponder.rag.config import RAGConfig, rag_config

logger = logging.getLogger(__name__)


class EmbeddingsService:
    """Service for generating embeddings using OpenAI"""
    
    def __init__(self, config: RAGConfig = rag_config):
        self.config = config
        self.model = config.embedding_model
        self.dimensions = config.vector_size
        self.timeout = config.request_timeout
        self._client: Optional[AsyncOpenAI] = None
    
    @property
    def client(self) -> AsyncOpenAI:
        """Create the API client on first use"""
        if self._client is None:
            if not self.config.openai_api_key:
                raise ExternalAPIException("Missing OPENAI_API_KEY in environment")
            self._client = AsyncOpenAI(api_key=self.config.openai_api_key)
            logger.info(f"Initialized OpenAI embeddings with model: {self.model}")
        return self._client
    
    async def _embed(self, inputs: List[str]) -> List[List[float]]:
        try:
            response = await asyncio.wait_for(
                self.client.embeddings.create(
                    model=self.model,
                    input=inputs,
                    dimensions=self.dimensions
                ),
                timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise ExternalAPIException(f"Embedding request timed out after {self.timeout}s") from e
        
        # The API tags each vector with its input position
        items = sorted(response.data, key=lambda item: item.index)
        return [item.embedding for item in items]
    
    async def generate_embedding_async(self, text: str) -> List[float]:
        """
        Generate embedding for a single query text
        
        Args:
            text: Text to embed
            
        Returns:
            List of floats representing the embedding vector
        """
        try:
            embeddings = await self._embed([text])
            logger.debug(f"Generated embedding for text of length {len(text)}")
            return embeddings[0] if embeddings else []
        except Exception as e:
            logger.error(f"Error generating embedding: {e}")
            raise
    
    async def generate_embeddings_batch_async(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts in one request
        
        Args:
            texts: List of texts to embed
            
        Returns:
            List of embedding vectors, in input order
        """
        if not texts:
            return []
        
        try:
            embeddings = await self._embed(texts)
            logger.info(f"Generated {len(embeddings)} embeddings in batch")
            return embeddings
        except Exception as e:
            logger.error(f"Error generating batch embeddings: {e}")
            raise
