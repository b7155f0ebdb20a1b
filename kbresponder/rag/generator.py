"""OpenAI completion service"""

from typing import List, Dict, Any, Optional
from openai import AsyncOpenAI
import asyncio
import tiktoken
import logging
from kbresponder.exceptions import ExternalAPIException
from kbresponder.rag.config import RAGConfig, rag_config

logger = logging.getLogger(__name__)


class Generator:
    """LLM-based response generator"""
    
    def __init__(self, config: RAGConfig = rag_config):
        self.config = config
        self.model = config.llm_model
        self.max_tokens = config.max_tokens
        self.temperature = config.temperature
        self.timeout = config.request_timeout
        self._client: Optional[AsyncOpenAI] = None
        
        # Token counter
        try:
            self.encoding = tiktoken.encoding_for_model(self.model)
        except KeyError:
            self.encoding = tiktoken.get_encoding("cl100k_base")
    
    @property
    def is_available(self) -> bool:
        """Whether a credential is configured"""
        return bool(self.config.openai_api_key)
    
    @property
    def client(self) -> AsyncOpenAI:
        """Create the API client on first use"""
        if self._client is None:
            if not self.is_available:
                raise ExternalAPIException("Missing OPENAI_API_KEY in environment")
            self._client = AsyncOpenAI(api_key=self.config.openai_api_key)
        return self._client
    
    def count_tokens(self, text: str) -> int:
        """Count tokens in text"""
        try:
            return len(self.encoding.encode(text))
        except Exception as e:
            logger.warning(f"Error counting tokens: {e}")
            # Rough estimate: 1 token ≈ 4 characters
            return len(text) // 4
    
    def count_messages_tokens(self, messages: List[Dict[str, str]]) -> int:
        """Count tokens in message list"""
        total = 0
        for message in messages:
            # Each message has overhead (role, content, etc.)
            total += 4
            for value in message.values():
                total += self.count_tokens(str(value))
        total += 2  # Overhead for entire request
        return total
    
    async def generate_async(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Generate response using LLM
        
        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Sampling temperature (default: from config)
            max_tokens: Max tokens to generate (default: from config)
            
        Returns:
            Dict with 'text' and 'tokens' keys
        """
        try:
            temperature = temperature if temperature is not None else self.temperature
            max_tokens = max_tokens or self.max_tokens
            
            input_tokens = self.count_messages_tokens(messages)
            logger.info(f"Generating response with {input_tokens} input tokens")
            
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens
                ),
                timeout=self.timeout
            )
            
            text = response.choices[0].message.content or ""
            usage = response.usage
            total_tokens = usage.total_tokens if usage else input_tokens + self.count_tokens(text)
            
            logger.info(f"Generated response: {len(text)} chars, {total_tokens} total tokens")
            return {
                'text': text,
                'tokens': total_tokens
            }
            
        except asyncio.TimeoutError as e:
            logger.error(f"Completion request timed out after {self.timeout}s")
            raise ExternalAPIException(f"Completion request timed out after {self.timeout}s") from e
        except Exception as e:
            logger.error(f"Error generating response: {e}")
            raise
    
    async def complete(self, prompt: str) -> str:
        """Single-turn completion, returns the generated text"""
        response = await self.generate_async([{"role": "user", "content": prompt}])
        return response['text']
