"""Shared request dependencies"""

from typing import Tuple
import logging

from fastapi import Request
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from kbresponder.config import settings
from kbresponder.exceptions import KnowledgeBaseValidationError
from kbresponder.models.document import DocumentType, FILE_DOCUMENT_TYPES
from kbresponder.rag.document_parser import UploadedFile
from kbresponder.schemas.document import KnowledgeBaseCreateRequest
from kbresponder.services.knowledge_base import (
    FaqPayload,
    KnowledgeBasePayload,
    KnowledgeBaseService,
    parse_document_type,
)

logger = logging.getLogger(__name__)


def get_knowledge_base_service(request: Request) -> KnowledgeBaseService:
    """Knowledge base service built at startup"""
    return request.app.state.knowledge_base_service


async def read_ingestion_payload(request: Request) -> Tuple[DocumentType, KnowledgeBasePayload]:
    """
    Parse an ingestion request body

    JSON bodies carry FAQ records. Multipart bodies carry a JSON
    `requestBody` field and the uploaded `file`.

    Raises:
        KnowledgeBaseValidationError: Malformed body, missing or unsupported
            document type, missing records or file, oversized file
    """
    content_type = request.headers.get("content-type", "")
    body = None
    upload = None

    try:
        if "multipart/form-data" in content_type:
            form = await request.form()
            raw_body = form.get("requestBody")
            if isinstance(raw_body, str) and raw_body.strip():
                body = KnowledgeBaseCreateRequest.model_validate_json(raw_body)
            file_field = form.get("file")
            if isinstance(file_field, UploadFile):
                upload = file_field
        else:
            body = KnowledgeBaseCreateRequest.model_validate(await request.json())
    except (ValueError, ValidationError) as e:
        logger.warning(f"Could not parse ingestion payload: {e}")
        raise KnowledgeBaseValidationError("Invalid payload") from e

    if body is None or not body.document_type:
        raise KnowledgeBaseValidationError("documentType is required")

    document_type = parse_document_type(body.document_type)

    if document_type in FILE_DOCUMENT_TYPES:
        if upload is None:
            raise KnowledgeBaseValidationError(
                f"File upload is required for documentType={document_type.value}"
            )
        content = await upload.read()
        if len(content) > settings.MAX_UPLOAD_SIZE_BYTES:
            raise KnowledgeBaseValidationError(
                f"File must be smaller than {settings.MAX_UPLOAD_SIZE_BYTES // (1024 * 1024)}MB"
            )
        return document_type, UploadedFile(content=content, file_name=upload.filename)

    if not body.records:
        raise KnowledgeBaseValidationError("no records provided")
    return document_type, FaqPayload(records=body.records)
