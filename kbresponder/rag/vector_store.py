"""pgvector-backed knowledge store"""

from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional
from datetime import datetime
import logging

from sqlalchemy import desc
from sqlalchemy.orm import Session, contains_eager, joinedload

from kbresponder.exceptions import KnowledgeBaseNotFoundError, KnowledgeBaseValidationError
from kbresponder.models.document import Document, DocumentType
from kbresponder.models.document_chunk import DocumentChunk
from kbresponder.schemas.document import KnowledgeBaseEntry

logger = logging.getLogger(__name__)


@dataclass
class ChunkDraft:
    """Embedded chunk waiting to be persisted"""
    chunk_index: int
    text: str
    embedding: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DocumentDraft:
    """Document and its embedded chunks waiting to be persisted"""
    document_type: DocumentType
    title: Optional[str]
    metadata: Optional[Dict[str, Any]]
    chunks: List[ChunkDraft] = field(default_factory=list)


@dataclass
class SimilarChunk:
    """Row returned by a similarity search"""
    text: Optional[str]
    chunk_metadata: Optional[Dict[str, Any]]
    document_metadata: Optional[Dict[str, Any]]
    distance: float


def _has_embedding(chunk: ChunkDraft) -> bool:
    return chunk.embedding is not None and len(chunk.embedding) > 0


class KnowledgeStore:
    """Documents and embedded chunks in PostgreSQL with pgvector"""

    def save_document_with_chunks(self, db: Session, draft: DocumentDraft) -> Document:
        """
        Add a document and its chunks to the session

        Chunks without an embedding are dropped. The caller owns the
        transaction; nothing is committed here.

        Args:
            db: Database session inside an open transaction
            draft: Document to persist

        Returns:
            The flushed document (id assigned)

        Raises:
            KnowledgeBaseValidationError: If no chunk has a usable embedding
        """
        if not draft.chunks:
            raise KnowledgeBaseValidationError("Document has no chunks to persist")

        valid_chunks = []
        for chunk in draft.chunks:
            if not _has_embedding(chunk):
                logger.warning(f"Skipping chunk {chunk.chunk_index} with empty embedding: {chunk.metadata}")
                continue
            valid_chunks.append(chunk)

        if not valid_chunks:
            raise KnowledgeBaseValidationError("Embedding service did not return usable vectors")

        document = Document(
            document_type=draft.document_type.value,
            title=draft.title,
            doc_metadata=draft.metadata,
            chunks=[
                DocumentChunk(
                    chunk_index=chunk.chunk_index,
                    text=chunk.text,
                    embedding=chunk.embedding,
                    chunk_metadata=chunk.metadata
                )
                for chunk in valid_chunks
            ]
        )
        db.add(document)
        db.flush()

        logger.info(f"Staged document {document.id} ({draft.document_type.value}) with {len(valid_chunks)} chunks")
        return document

    def get_chunk(self, db: Session, chunk_id: int) -> Optional[DocumentChunk]:
        """Get a chunk together with its live parent document"""
        return db.query(DocumentChunk).join(DocumentChunk.document).options(
            contains_eager(DocumentChunk.document)
        ).filter(
            DocumentChunk.id == chunk_id,
            Document.deleted_at.is_(None)
        ).first()

    def update_document_and_chunk(
        self,
        db: Session,
        chunk: DocumentChunk,
        draft: DocumentDraft
    ) -> DocumentChunk:
        """
        Overwrite a document's title/metadata and one of its chunks

        Args:
            db: Database session inside an open transaction
            chunk: Chunk to overwrite, with its document loaded
            draft: Replacement content; its first chunk replaces `chunk`

        Returns:
            The updated chunk
        """
        replacement = draft.chunks[0] if draft.chunks else None
        if replacement is None or not _has_embedding(replacement):
            raise KnowledgeBaseValidationError("Embedding service returned an empty vector")

        now = datetime.utcnow()
        document = chunk.document
        document.title = draft.title
        document.doc_metadata = draft.metadata
        document.updated_at = now

        chunk.text = replacement.text
        chunk.embedding = replacement.embedding
        chunk.chunk_metadata = replacement.metadata
        chunk.updated_at = now

        db.flush()
        logger.info(f"Staged update of chunk {chunk.id} in document {document.id}")
        return chunk

    def get_document(self, db: Session, document_id: int) -> Optional[Document]:
        """Get a live document with its chunks"""
        return db.query(Document).options(
            joinedload(Document.chunks)
        ).filter(
            Document.id == document_id,
            Document.deleted_at.is_(None)
        ).first()

    def list_documents(self, db: Session, document_type: Optional[str] = None) -> List[Document]:
        """List live documents, newest first"""
        query = db.query(Document).filter(Document.deleted_at.is_(None))
        if document_type:
            query = query.filter(Document.document_type == document_type)
        return query.order_by(desc(Document.updated_at), desc(Document.id)).all()

    def delete_document(self, db: Session, document_id: int) -> None:
        """
        Delete a document; its chunks go with it

        Raises:
            KnowledgeBaseNotFoundError: If the document does not exist
        """
        document = db.query(Document).filter(
            Document.id == document_id,
            Document.deleted_at.is_(None)
        ).first()
        if not document:
            raise KnowledgeBaseNotFoundError(document_id, entity="Document")

        db.delete(document)
        db.flush()
        logger.info(f"Staged deletion of document {document_id}")

    def list_entries(
        self,
        db: Session,
        document_type: Optional[str] = None
    ) -> List[KnowledgeBaseEntry]:
        """
        List chunks joined with their parent document, newest first

        Args:
            db: Database session
            document_type: Only include chunks of documents of this type

        Returns:
            Entries; metadata is the document's when it has any
        """
        query = db.query(DocumentChunk, Document).join(
            Document, Document.id == DocumentChunk.document_id
        ).filter(Document.deleted_at.is_(None))

        if document_type:
            query = query.filter(Document.document_type == document_type)

        rows = query.order_by(desc(DocumentChunk.updated_at), desc(DocumentChunk.id)).all()

        return [
            KnowledgeBaseEntry(
                id=chunk.id,
                text=chunk.text,
                metadata=document.doc_metadata if document.doc_metadata is not None else chunk.chunk_metadata,
                document_type=document.document_type,
                created_at=chunk.created_at,
                updated_at=chunk.updated_at
            )
            for chunk, document in rows
        ]

    def search(
        self,
        db: Session,
        query_vector: List[float],
        limit: int,
        max_distance: float
    ) -> List[SimilarChunk]:
        """
        Nearest chunks by cosine distance

        Args:
            db: Database session
            query_vector: Query embedding vector
            limit: Maximum number of rows
            max_distance: Only rows strictly closer than this are returned

        Returns:
            Rows ordered by ascending distance
        """
        distance = DocumentChunk.embedding.cosine_distance(query_vector)

        rows = db.query(
            DocumentChunk.text,
            DocumentChunk.chunk_metadata.label("chunk_metadata"),
            Document.doc_metadata.label("document_metadata"),
            distance.label("distance")
        ).join(
            Document, Document.id == DocumentChunk.document_id
        ).filter(
            Document.deleted_at.is_(None),
            distance < max_distance
        ).order_by(distance).limit(limit).all()

        logger.info(f"Found {len(rows)} chunks (max distance: {max_distance})")
        return [
            SimilarChunk(
                text=row.text,
                chunk_metadata=row.chunk_metadata,
                document_metadata=row.document_metadata,
                distance=float(row.distance)
            )
            for row in rows
        ]
