"""Database models package"""

from kbresponder.models.document import Document, DocumentType
from kbresponder.models.document_chunk import DocumentChunk
from kbresponder.models.message import Message, MessageRole

__all__ = [
    "Document",
    "DocumentType",
    "DocumentChunk",
    "Message",
    "MessageRole",
]
