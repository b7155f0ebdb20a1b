"""Google Gemini completion service"""

from typing import List, Dict, Any, Optional, Tuple
import google.generativeai as genai
import asyncio
import logging
from kbresponder.exceptions import ExternalAPIException
from kbresponder.rag.config import RAGConfig, rag_config

logger = logging.getLogger(__name__)


class GeminiGenerator:
    """Gemini-based response generator"""
    
    def __init__(self, config: RAGConfig = rag_config):
        self.config = config
        self.model_name = config.gemini_model
        self.max_tokens = config.gemini_max_tokens
        self.temperature = config.gemini_temperature
        self.timeout = config.request_timeout
        self._configured = False
    
    @property
    def is_available(self) -> bool:
        """Whether a credential is configured"""
        return bool(self.config.google_api_key)
    
    def _ensure_configured(self):
        """Configure the SDK on first use"""
        if self._configured:
            return
        if not self.is_available:
            raise ExternalAPIException("Missing GOOGLE_API_KEY in environment")
        genai.configure(api_key=self.config.google_api_key)
        self._configured = True
    
    def _convert_messages_to_gemini_format(self, messages: List[Dict[str, str]]) -> Tuple[Optional[str], list]:
        """
        Convert OpenAI-style messages to Gemini format
        
        Gemini uses a different format:
        - System message goes in the model config
        - User/assistant messages become the chat history
        """
        system_instruction = None
        chat_history = []
        
        for msg in messages:
            role = msg.get("role", "user")
            content = msg.get("content", "")
            
            if role == "system":
                system_instruction = content
            elif role == "user":
                chat_history.append({"role": "user", "parts": [content]})
            elif role == "assistant":
                chat_history.append({"role": "model", "parts": [content]})
        
        return system_instruction, chat_history
    
    async def generate_async(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Generate response using Gemini
        
        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens in response
            
        Returns:
            Dict with 'text' and 'tokens' keys
        """
        self._ensure_configured()
        
        try:
            system_instruction, chat_history = self._convert_messages_to_gemini_format(messages)
            if not chat_history or chat_history[-1]["role"] != "user":
                raise ValueError("No user message found in messages")
            
            generation_config = genai.GenerationConfig(
                temperature=temperature if temperature is not None else self.temperature,
                max_output_tokens=max_tokens if max_tokens is not None else self.max_tokens,
            )
            model = genai.GenerativeModel(
                model_name=self.model_name,
                generation_config=generation_config,
                system_instruction=system_instruction
            )
            
            response = await asyncio.wait_for(
                model.generate_content_async(chat_history),
                timeout=self.timeout
            )
            
            text = response.text
            usage = getattr(response, "usage_metadata", None)
            total_tokens = usage.total_token_count if usage else 0
            
            logger.info(f"Gemini generation: {len(text)} chars, {total_tokens} tokens used")
            return {
                'text': text,
                'tokens': total_tokens
            }
            
        except asyncio.TimeoutError as e:
            logger.error(f"Gemini request timed out after {self.timeout}s")
            raise ExternalAPIException(f"Completion request timed out after {self.timeout}s") from e
        except Exception as e:
            logger.error(f"Gemini generation error: {e}")
            raise
    
    async def complete(self, prompt: str) -> str:
        """Single-turn completion, returns the generated text"""
        response = await self.generate_async([{"role": "user", "content": prompt}])
        return response['text']
