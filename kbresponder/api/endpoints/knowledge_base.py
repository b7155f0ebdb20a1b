"""Knowledge base API endpoints"""

from fastapi import APIRouter, Depends, Query, Request, Path
from sqlalchemy.orm import Session
from typing import Optional, List
import logging

from kbresponder.api.deps import get_knowledge_base_service, read_ingestion_payload
from kbresponder.database.session import get_db
from kbresponder.exceptions import KnowledgeBaseValidationError
from kbresponder.schemas.document import (
    KnowledgeBaseEntry,
    KnowledgeBaseUpdateRequest,
    StatusResponse,
)
from kbresponder.services.knowledge_base import KnowledgeBaseService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/knowledge-base", response_model=StatusResponse)
async def create_knowledge_base_entries(
    request: Request,
    db: Session = Depends(get_db),
    service: KnowledgeBaseService = Depends(get_knowledge_base_service)
):
    """
    Ingest FAQ records or an uploaded document

    - **JSON**: `{"documentType": "faq", "records": [{"question": ..., "answer": ...}]}`
    - **multipart**: `requestBody` (JSON with `documentType` pdf/docx/txt) and `file`
    """
    document_type, payload = await read_ingestion_payload(request)
    documents = await service.create_entries(db, document_type, payload)
    logger.info(f"Created {len(documents)} {document_type.value} document(s)")
    return StatusResponse()


@router.get("/knowledge-base", response_model=List[KnowledgeBaseEntry])
async def list_knowledge_base_entries(
    document_type: Optional[str] = Query(None, alias="documentType"),
    db: Session = Depends(get_db),
    service: KnowledgeBaseService = Depends(get_knowledge_base_service)
):
    """List knowledge base entries, newest first"""
    return service.list_entries(db, document_type.strip() if document_type else None)


@router.put("/knowledge-base/{entry_id}", response_model=KnowledgeBaseEntry)
async def update_knowledge_base_entry(
    body: KnowledgeBaseUpdateRequest,
    entry_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    service: KnowledgeBaseService = Depends(get_knowledge_base_service)
):
    """Replace the question/answer of a FAQ entry and re-embed it"""
    if body.record is None:
        raise KnowledgeBaseValidationError("record object is required")
    return await service.update_entry(db, entry_id, body.record)


@router.delete("/knowledge-base/{document_id}", response_model=StatusResponse)
async def delete_knowledge_base_entry(
    document_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    service: KnowledgeBaseService = Depends(get_knowledge_base_service)
):
    """Delete a document and all of its entries"""
    service.delete_document(db, document_id)
    return StatusResponse()
