"""Semantic search retriever"""

from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Callable
import logging

from sqlalchemy.orm import Session

from kbresponder.rag.config import RAGConfig, rag_config
from kbresponder.rag.vector_store import KnowledgeStore

logger = logging.getLogger(__name__)


@dataclass
class RetrievalResult:
    """Retrieved chunk text with the metadata of its source"""
    page_content: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class Retriever:
    """Retriever for semantic search over the knowledge base"""

    def __init__(
        self,
        embeddings: Any,
        session_factory: Callable[[], Session],
        store: Optional[KnowledgeStore] = None,
        config: RAGConfig = rag_config
    ):
        self.embeddings = embeddings
        self.session_factory = session_factory
        self.store = store or KnowledgeStore()
        self.top_k = config.top_k
        self.max_distance = config.max_distance

    async def retrieve(
        self,
        query: str,
        limit: Optional[int] = None,
        threshold: Optional[float] = None
    ) -> List[RetrievalResult]:
        """
        Retrieve chunks relevant to a query

        Args:
            query: User query text
            limit: Maximum number of results (default: from config)
            threshold: Only chunks with a cosine distance strictly below this
                are returned (default: from config)

        Returns:
            Results ordered from most to least similar
        """
        limit = self.top_k if limit is None else limit
        threshold = self.max_distance if threshold is None else threshold

        trimmed_query = (query or "").strip()
        if not trimmed_query or limit <= 0:
            return []

        logger.info(f"Generating embedding for query: {trimmed_query[:50]}...")
        query_vector = await self.embeddings.generate_embedding_async(trimmed_query)
        if query_vector is None or len(query_vector) == 0:
            logger.warning("Query embedding is empty, skipping search")
            return []

        db = self.session_factory()
        try:
            rows = self.store.search(db, list(query_vector), limit=limit, max_distance=threshold)
        finally:
            db.close()

        # Already filtered and ordered by the database, but explicit
        rows = sorted(
            (row for row in rows if row.distance < threshold),
            key=lambda row: row.distance
        )[:limit]

        results = []
        for row in rows:
            if not isinstance(row.text, str) or not row.text:
                continue
            metadata = row.document_metadata if row.document_metadata is not None else row.chunk_metadata
            results.append(RetrievalResult(page_content=row.text, metadata=metadata or {}))
            logger.debug(f"  distance {row.distance:.3f}: {row.text[:60]}")

        logger.info(f"Retrieved {len(results)} chunks (limit: {limit}, threshold: {threshold})")
        return results
