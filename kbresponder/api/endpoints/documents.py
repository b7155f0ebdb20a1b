"""Document management API endpoints"""

from fastapi import APIRouter, Depends, Query, Request, Path
from sqlalchemy.orm import Session
from typing import Optional, List
import logging

from kbresponder.api.deps import get_knowledge_base_service, read_ingestion_payload
from kbresponder.database.session import get_db
from kbresponder.schemas.document import (
    DocumentDetailResponse,
    DocumentSummaryResponse,
    StatusResponse,
)
from kbresponder.services.knowledge_base import KnowledgeBaseService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/document", response_model=List[DocumentSummaryResponse])
async def list_documents(
    document_type: Optional[str] = Query(None, alias="documentType"),
    db: Session = Depends(get_db),
    service: KnowledgeBaseService = Depends(get_knowledge_base_service)
):
    """List documents, newest first"""
    documents = service.list_documents(db, document_type.strip() if document_type else None)
    return [DocumentSummaryResponse.model_validate(doc) for doc in documents]


@router.get("/document/{document_id}", response_model=DocumentDetailResponse)
async def get_document(
    document_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    service: KnowledgeBaseService = Depends(get_knowledge_base_service)
):
    """Get a document with its chunks"""
    return DocumentDetailResponse.model_validate(service.get_document(db, document_id))


@router.put("/document/{document_id}", response_model=StatusResponse)
async def replace_document(
    request: Request,
    document_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    service: KnowledgeBaseService = Depends(get_knowledge_base_service)
):
    """
    Re-ingest a document

    Accepts the same body as `POST /api/knowledge-base`. The old document
    and its chunks are replaced in one transaction.
    """
    document_type, payload = await read_ingestion_payload(request)
    await service.replace_document(db, document_id, document_type, payload)
    return StatusResponse()


@router.delete("/document/{document_id}", response_model=StatusResponse)
async def delete_document(
    document_id: int = Path(..., gt=0),
    db: Session = Depends(get_db),
    service: KnowledgeBaseService = Depends(get_knowledge_base_service)
):
    """Delete a document and its chunks"""
    service.delete_document(db, document_id)
    return StatusResponse()
