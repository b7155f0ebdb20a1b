"""Document model"""

import enum

from sqlalchemy import Column, Integer, String, DateTime, JSON, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from kbresponder.database.base import Base


class DocumentType(str, enum.Enum):
    """Kinds of source a knowledge base document can come from"""
    
    PDF = "pdf"
    DOCX = "docx"
    TXT = "txt"
    FAQ = "faq"


FILE_DOCUMENT_TYPES = frozenset({DocumentType.PDF, DocumentType.DOCX, DocumentType.TXT})


class Document(Base):
    """Document model for knowledge base"""
    
    __tablename__ = "documents"
    
    id = Column(Integer, primary_key=True, index=True)
    document_type = Column(String(20), nullable=False, index=True)
    title = Column(String(500), nullable=True)
    doc_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
    
    # Relationships
    chunks = relationship(
        "DocumentChunk",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="DocumentChunk.chunk_index",
    )
    
    __table_args__ = (
        Index('idx_document_type_updated', 'document_type', 'updated_at'),
    )
    
    def __repr__(self):
        return f"<Document(id={self.id}, type={self.document_type}, title={self.title})>"
