"""Knowledge base ingestion and maintenance service"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union
import logging

from sqlalchemy.orm import Session

from kbresponder.database.session import transaction
from kbresponder.exceptions import KnowledgeBaseNotFoundError, KnowledgeBaseValidationError
from kbresponder.models.document import Document, DocumentType, FILE_DOCUMENT_TYPES
from kbresponder.rag.chunker import generate_fixed_size_chunks, normalize_text
from kbresponder.rag.config import RAGConfig, rag_config
from kbresponder.rag.document_parser import (
    ParsedDocument,
    ParsedDocxDocument,
    ParsedPdfDocument,
    UploadedFile,
    convert_docx_to_text,
    convert_pdf_to_text,
    convert_txt_to_text,
)
from kbresponder.rag.vector_store import ChunkDraft, DocumentDraft, KnowledgeStore
from kbresponder.schemas.document import (
    ChunkMetadata,
    DocumentMetadata,
    DocxMetadata,
    FaqMetadata,
    FaqRecord,
    KnowledgeBaseEntry,
    PdfMetadata,
    TxtMetadata,
)

logger = logging.getLogger(__name__)

FaqInput = Union[FaqRecord, Dict[str, Any]]


@dataclass
class FaqPayload:
    """Question/answer records for a FAQ ingestion"""
    records: Sequence[FaqInput]


KnowledgeBasePayload = Union[FaqPayload, UploadedFile]

_CONVERTERS = {
    DocumentType.PDF: convert_pdf_to_text,
    DocumentType.DOCX: convert_docx_to_text,
    DocumentType.TXT: convert_txt_to_text,
}


def parse_document_type(value: Union[str, DocumentType]) -> DocumentType:
    """Resolve a document type tag, rejecting unknown ones"""
    if isinstance(value, DocumentType):
        return value
    try:
        return DocumentType(str(value).strip().lower())
    except ValueError:
        raise KnowledgeBaseValidationError(f"Unsupported document type: {value}") from None


def _faq_field(record: FaqInput, name: str) -> Optional[str]:
    value = getattr(record, name, None) if isinstance(record, FaqRecord) else record.get(name)
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _file_metadata(document_type: DocumentType, parsed: ParsedDocument) -> DocumentMetadata:
    if document_type is DocumentType.PDF and isinstance(parsed, ParsedPdfDocument):
        return PdfMetadata(
            file_name=parsed.file_name,
            title=parsed.title,
            page_count=parsed.page_count,
            info=parsed.info
        )
    if document_type is DocumentType.DOCX and isinstance(parsed, ParsedDocxDocument):
        return DocxMetadata(file_name=parsed.file_name, title=parsed.title, messages=parsed.messages)
    return TxtMetadata(file_name=parsed.file_name, title=parsed.title)


class KnowledgeBaseService:
    """Turns documents and FAQ records into persisted, embedded chunks"""

    def __init__(
        self,
        embeddings: Any,
        store: Optional[KnowledgeStore] = None,
        config: RAGConfig = rag_config
    ):
        self.embeddings = embeddings
        self.store = store or KnowledgeStore()
        self.chunk_size = config.chunk_size
        self.chunk_overlap = config.chunk_overlap

    async def _embed_all(self, texts: List[str]) -> List[List[float]]:
        vectors = await self.embeddings.generate_embeddings_batch_async(texts)
        if not vectors:
            raise KnowledgeBaseValidationError("Embedding service did not return usable vectors")
        if len(vectors) != len(texts):
            raise KnowledgeBaseValidationError(
                f"Embedding service returned {len(vectors)} vectors for {len(texts)} texts"
            )
        return vectors

    async def _build_faq_documents(self, records: Sequence[FaqInput]) -> List[DocumentDraft]:
        """One single-chunk document per complete question/answer pair"""
        entries = []
        for record in records or []:
            question = _faq_field(record, "question")
            answer = _faq_field(record, "answer")
            if not question or not answer:
                logger.debug("Skipping FAQ record without question or answer")
                continue
            entries.append((question, answer, f"Question: {question}\nAnswer: {answer}"))

        if not entries:
            return []

        vectors = await self._embed_all([text for _, _, text in entries])

        return [
            DocumentDraft(
                document_type=DocumentType.FAQ,
                title=question,
                metadata=FaqMetadata(question=question, answer=answer).to_json_dict(),
                chunks=[ChunkDraft(chunk_index=0, text=text, embedding=vector, metadata={})]
            )
            for (question, answer, text), vector in zip(entries, vectors)
        ]

    async def _build_file_document(self, document_type: DocumentType, upload: Any) -> DocumentDraft:
        """Extract, chunk and embed one uploaded file"""
        if not isinstance(upload, UploadedFile):
            raise KnowledgeBaseValidationError(
                f"{document_type.value.upper()} payload missing file data"
            )

        parsed = _CONVERTERS[document_type](upload)
        text = normalize_text(parsed.text)
        if not text:
            raise KnowledgeBaseValidationError(f"Document text is empty for type {document_type.value}")

        chunks = generate_fixed_size_chunks(text, self.chunk_size, self.chunk_overlap)
        if not chunks:
            raise KnowledgeBaseValidationError(
                f"{document_type.value.upper()} document did not produce any chunks"
            )

        logger.info(f"Generating embeddings for {len(chunks)} chunks of '{parsed.title}'")
        vectors = await self._embed_all([chunk.text for chunk in chunks])

        return DocumentDraft(
            document_type=document_type,
            title=parsed.title or parsed.file_name,
            metadata=_file_metadata(document_type, parsed).to_json_dict(),
            chunks=[
                ChunkDraft(
                    chunk_index=index,
                    text=chunk.text,
                    embedding=vector,
                    metadata=ChunkMetadata(
                        chunk_index=index,
                        char_start=chunk.start,
                        char_end=chunk.end
                    ).to_json_dict()
                )
                for index, (chunk, vector) in enumerate(zip(chunks, vectors))
            ]
        )

    async def _build_documents(
        self,
        document_type: DocumentType,
        payload: KnowledgeBasePayload
    ) -> List[DocumentDraft]:
        if document_type is DocumentType.FAQ:
            if not isinstance(payload, FaqPayload):
                raise KnowledgeBaseValidationError("FAQ payload missing records")
            return await self._build_faq_documents(payload.records)
        if document_type in FILE_DOCUMENT_TYPES:
            return [await self._build_file_document(document_type, payload)]
        raise KnowledgeBaseValidationError(f"Unsupported document type: {document_type.value}")

    async def create_entries(
        self,
        db: Session,
        document_type: Union[str, DocumentType],
        payload: KnowledgeBasePayload
    ) -> List[Document]:
        """
        Ingest a FAQ record set or an uploaded file

        Every document produced by the call is written in one transaction,
        so either all of them are stored or none is.

        Args:
            db: Database session
            document_type: pdf, docx, txt or faq
            payload: FaqPayload for faq, UploadedFile otherwise

        Returns:
            Created documents (empty when no FAQ record was usable)

        Raises:
            KnowledgeBaseValidationError: Unsupported type, unreadable or
                empty document, or no usable embeddings
        """
        doc_type = parse_document_type(document_type)
        drafts = await self._build_documents(doc_type, payload)
        if not drafts:
            logger.info(f"No {doc_type.value} entries to ingest")
            return []

        with transaction(db):
            documents = [self.store.save_document_with_chunks(db, draft) for draft in drafts]

        logger.info(f"Ingested {len(documents)} {doc_type.value} document(s)")
        return documents

    async def update_entry(self, db: Session, chunk_id: int, record: FaqInput) -> KnowledgeBaseEntry:
        """
        Re-embed one FAQ entry in place

        Args:
            db: Database session
            chunk_id: Id of the entry's chunk
            record: Edited question/answer pair

        Returns:
            The updated entry

        Raises:
            KnowledgeBaseNotFoundError: If the chunk or its document is missing
            KnowledgeBaseValidationError: If the document is not a FAQ, the
                record is incomplete or embedding failed
        """
        chunk = self.store.get_chunk(db, chunk_id)
        if chunk is None or chunk.document is None:
            raise KnowledgeBaseNotFoundError(chunk_id)

        document_type = chunk.document.document_type
        if document_type != DocumentType.FAQ.value:
            raise KnowledgeBaseValidationError(f"Unsupported document type: {document_type}")

        drafts = await self._build_faq_documents([record])
        if not drafts:
            raise KnowledgeBaseValidationError("Both question and answer are required")

        with transaction(db):
            self.store.update_document_and_chunk(db, chunk, drafts[0])

        logger.info(f"Updated FAQ entry {chunk_id}")
        return KnowledgeBaseEntry(
            id=chunk.id,
            text=chunk.text,
            metadata=chunk.document.doc_metadata if chunk.document.doc_metadata is not None else chunk.chunk_metadata,
            document_type=document_type,
            created_at=chunk.created_at,
            updated_at=chunk.updated_at
        )

    async def replace_document(
        self,
        db: Session,
        document_id: int,
        document_type: Union[str, DocumentType],
        payload: KnowledgeBasePayload
    ) -> List[Document]:
        """
        Re-ingest a document, replacing the old one and its chunks

        Embedding happens before anything is touched; the delete and the
        inserts share one transaction.
        """
        if self.store.get_document(db, document_id) is None:
            raise KnowledgeBaseNotFoundError(document_id, entity="Document")

        doc_type = parse_document_type(document_type)
        drafts = await self._build_documents(doc_type, payload)
        if not drafts:
            raise KnowledgeBaseValidationError("No valid records provided")

        with transaction(db):
            self.store.delete_document(db, document_id)
            documents = [self.store.save_document_with_chunks(db, draft) for draft in drafts]

        logger.info(f"Replaced document {document_id} with {len(documents)} document(s)")
        return documents

    def list_entries(self, db: Session, document_type: Optional[str] = None) -> List[KnowledgeBaseEntry]:
        """List entries, optionally only those of one document type"""
        if document_type:
            document_type = parse_document_type(document_type).value
        return self.store.list_entries(db, document_type)

    def list_documents(self, db: Session, document_type: Optional[str] = None) -> List[Document]:
        """List documents, optionally only those of one document type"""
        if document_type:
            document_type = parse_document_type(document_type).value
        return self.store.list_documents(db, document_type)

    def get_document(self, db: Session, document_id: int) -> Document:
        """Get a document with its chunks"""
        document = self.store.get_document(db, document_id)
        if document is None:
            raise KnowledgeBaseNotFoundError(document_id, entity="Document")
        return document

    def delete_document(self, db: Session, document_id: int) -> None:
        """Delete a document and its chunks"""
        with transaction(db):
            self.store.delete_document(db, document_id)
        logger.info(f"Deleted document {document_id}")
