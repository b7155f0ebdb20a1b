"""Knowledge base document schemas"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Annotated, Optional, List, Dict, Any, Literal, Union
from datetime import datetime


class CamelModel(BaseModel):
    """Schema serialized with camelCase keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
    
    def to_json_dict(self) -> Dict[str, Any]:
        """Dump to a JSON-safe dict for storage in a JSON column"""
        return self.model_dump(mode="json", by_alias=True)


class FaqRecord(CamelModel):
    """Question/answer pair submitted for a FAQ document"""
    question: Optional[str] = None
    answer: Optional[str] = None


# Document metadata, one variant per document type

class PdfMetadata(CamelModel):
    """Metadata stored for PDF documents"""
    document_type: Literal["pdf"] = "pdf"
    file_name: Optional[str] = None
    title: Optional[str] = None
    page_count: int = 0
    info: Optional[Dict[str, Any]] = None


class DocxMetadata(CamelModel):
    """Metadata stored for DOCX documents"""
    document_type: Literal["docx"] = "docx"
    file_name: Optional[str] = None
    title: Optional[str] = None
    messages: List[Dict[str, Any]] = Field(default_factory=list)


class TxtMetadata(CamelModel):
    """Metadata stored for TXT documents"""
    document_type: Literal["txt"] = "txt"
    file_name: Optional[str] = None
    title: Optional[str] = None


class FaqMetadata(CamelModel):
    """Metadata stored for FAQ documents"""
    document_type: Literal["faq"] = "faq"
    question: str
    answer: str


DocumentMetadata = Annotated[
    Union[PdfMetadata, DocxMetadata, TxtMetadata, FaqMetadata],
    Field(discriminator="document_type"),
]


class ChunkMetadata(CamelModel):
    """Position of a chunk inside its normalized source text"""
    chunk_index: int
    char_start: int
    char_end: int


# Requests

class KnowledgeBaseCreateRequest(CamelModel):
    """Create knowledge base entries request"""
    document_type: Optional[str] = None
    records: Optional[List[FaqRecord]] = None


class KnowledgeBaseUpdateRequest(CamelModel):
    """Regenerate a single FAQ entry"""
    record: Optional[FaqRecord] = None


# Responses

class KnowledgeBaseEntry(CamelModel):
    """Chunk joined with its parent document"""
    id: int
    text: str
    metadata: Optional[Dict[str, Any]] = None
    document_type: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class DocumentChunkResponse(CamelModel):
    """Document chunk response"""
    id: int
    chunk_index: int
    text: str
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="chunk_metadata")
    created_at: datetime
    updated_at: datetime
    
    model_config = ConfigDict(from_attributes=True)


class DocumentSummaryResponse(CamelModel):
    """Document without its chunks"""
    id: int
    document_type: str
    title: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="doc_metadata")
    created_at: datetime
    updated_at: datetime
    
    model_config = ConfigDict(from_attributes=True)


class DocumentDetailResponse(CamelModel):
    """Document detail response"""
    id: int
    document_type: str
    title: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="doc_metadata")
    chunks: List[DocumentChunkResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    
    model_config = ConfigDict(from_attributes=True)


class StatusResponse(BaseModel):
    """Acknowledgement response"""
    status: str = "ok"
