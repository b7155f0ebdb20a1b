"""Reply composition pipeline"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, TypeVar
import logging
import re
import time

from kbresponder.rag.config import RAGConfig, rag_config
from kbresponder.rag.prompt_templates import (
    build_language_detection_prompt,
    build_messages,
    format_context,
    format_conversation_history,
)
from kbresponder.rag.retriever import Retriever, RetrievalResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

HistoryLoader = Callable[[int, int], List[Dict[str, str]]]

_LANGUAGE_CODE = re.compile(r"^[a-z]{3}$")


@dataclass
class StageResult(Generic[T]):
    """Outcome of an optional pipeline stage"""
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def or_default(self, default: T) -> T:
        """The stage value, or `default` when the stage failed"""
        return self.value if self.ok else default


async def _run_stage(name: str, stage: Callable[[], Awaitable[T]]) -> StageResult[T]:
    try:
        return StageResult(value=await stage())
    except Exception as e:
        logger.error(f"{name} failed: {e}", exc_info=True)
        return StageResult(error=e)


class ResponseComposer:
    """Composes a chat reply from retrieved context, history and the LLM"""

    def __init__(
        self,
        generator: Any,
        retriever: Retriever,
        history_loader: HistoryLoader,
        config: RAGConfig = rag_config
    ):
        self.generator = generator
        self.retriever = retriever
        self.history_loader = history_loader
        self.history_limit = config.history_limit
        self.default_language = config.default_language

    async def _detect_language(self, text: str) -> StageResult[str]:
        async def detect() -> str:
            if not self.generator.is_available:
                return self.default_language
            raw = await self.generator.complete(build_language_detection_prompt(text))
            code = (raw or "").strip().strip('"\'`').lower()
            if not _LANGUAGE_CODE.match(code):
                logger.warning(f"Unexpected language detection result: {raw!r}")
                return self.default_language
            return code

        return await _run_stage("Language detection", detect)

    async def _load_context(self, text: str) -> StageResult[List[RetrievalResult]]:
        return await _run_stage("Knowledge retrieval", lambda: self.retriever.retrieve(text))

    async def _load_history(self, chat_id: int) -> StageResult[List[Dict[str, str]]]:
        async def load() -> List[Dict[str, str]]:
            return self.history_loader(chat_id, self.history_limit)

        return await _run_stage("History retrieval", load)

    async def compose(self, text: str, chat_id: int) -> Optional[str]:
        """
        Generate a reply to a chat message

        Language detection, retrieval and history lookup each fall back to
        an empty default when they fail. Only an unavailable or failing
        completion model aborts the reply.

        Args:
            text: Incoming user message
            chat_id: Chat the message belongs to

        Returns:
            Trimmed reply text, or None when no reply could be generated
        """
        if not self.generator.is_available:
            logger.error("Completion model is not configured, no reply generated")
            return None

        start_time = time.time()

        language = (await self._detect_language(text)).or_default(self.default_language)
        documents = (await self._load_context(text)).or_default([])
        history = (await self._load_history(chat_id)).or_default([])

        messages = build_messages(
            text=text,
            context=format_context([doc.page_content for doc in documents]),
            conversation_history=format_conversation_history(history),
            detected_language=language
        )

        try:
            response = await self.generator.generate_async(messages)
        except Exception as e:
            logger.error(f"[Chat {chat_id}] Completion request failed: {e}", exc_info=True)
            return None

        reply = (response.get('text') or "").strip()
        if not reply:
            return None

        logger.info(
            f"[Chat {chat_id}] Reply composed in {int((time.time() - start_time) * 1000)}ms "
            f"(language: {language}, docs: {len(documents)}, history: {len(history)})"
        )
        return reply
