"""Google Gemini embeddings service"""

from typing import List
import google.generativeai as genai
import asyncio
import logging
from kbresponder.exceptions import ExternalAPIException
from kbresponder.rag.config import RAGConfig, rag_config

logger = logging.getLogger(__name__)

# embed_content accepts at most this many texts per call
BATCH_SIZE = 100


class GeminiEmbeddingsService:
    """Service for generating embeddings using Google Gemini"""
    
    def __init__(self, config: RAGConfig = rag_config):
        self.config = config
        self.dimensions = config.vector_size
        self.timeout = config.request_timeout
        self._configured = False
        
        # Ensure embedding model has "models/" prefix
        model_name = config.gemini_embedding_model
        if not model_name.startswith("models/"):
            model_name = f"models/{model_name}"
        self.model_name = model_name
    
    def _ensure_configured(self):
        """Configure the SDK on first use"""
        if self._configured:
            return
        if not self.config.google_api_key:
            raise ExternalAPIException("Missing GOOGLE_API_KEY in environment")
        genai.configure(api_key=self.config.google_api_key)
        self._configured = True
        logger.info(f"Initialized Gemini embeddings with model: {self.model_name}")
    
    async def _embed(self, content, task_type: str):
        self._ensure_configured()
        
        # The Gemini SDK is synchronous, run it off the event loop
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(
                    genai.embed_content,
                    model=self.model_name,
                    content=content,
                    task_type=task_type,
                    output_dimensionality=self.dimensions
                ),
                timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise ExternalAPIException(f"Embedding request timed out after {self.timeout}s") from e
        return result['embedding']
    
    async def generate_embedding_async(self, text: str) -> List[float]:
        """
        Generate embedding for a single query text using Gemini
        
        Args:
            text: Text to embed
            
        Returns:
            List of floats representing the embedding vector
        """
        try:
            embedding = await self._embed(text, task_type="retrieval_query")
            logger.debug(f"Generated Gemini embedding for text of length {len(text)}")
            return embedding
        except Exception as e:
            logger.error(f"Error generating Gemini embedding: {e}")
            raise
    
    async def generate_embeddings_batch_async(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts in batch
        
        Args:
            texts: List of texts to embed
            
        Returns:
            List of embedding vectors, in input order
        """
        if not texts:
            return []
        
        try:
            embeddings: List[List[float]] = []
            for batch_start in range(0, len(texts), BATCH_SIZE):
                batch_texts = texts[batch_start:batch_start + BATCH_SIZE]
                
                result = await self._embed(batch_texts, task_type="retrieval_document")
                batch_embeddings = result if result and isinstance(result[0], list) else [result]
                embeddings.extend(batch_embeddings)
                
                logger.info(f"Batch {batch_start // BATCH_SIZE + 1}: Generated {len(batch_embeddings)} embeddings")
            
            return embeddings
            
        except Exception as e:
            logger.error(f"Error generating batch Gemini embeddings: {e}")
            raise
