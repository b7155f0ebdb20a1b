"""Plain-text extraction for uploaded documents"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from io import BytesIO
from typing import Any, BinaryIO, Dict, List, Optional, Union
import logging
import re

import PyPDF2
import docx

from kbresponder.exceptions import KnowledgeBaseValidationError

logger = logging.getLogger(__name__)

_EXTENSION = re.compile(r"\.[a-zA-Z0-9]{1,5}$")
_PDF_DATE = re.compile(
    r"^D:(?P<year>\d{4})(?P<month>\d{2})?(?P<day>\d{2})?"
    r"(?P<hour>\d{2})?(?P<minute>\d{2})?(?P<second>\d{2})?"
    r"(?P<tz>[Zz]|[+\-]\d{2}'?\d{2}'?)?"
)


@dataclass
class UploadedFile:
    """Raw upload as received from the caller"""
    content: Union[bytes, BinaryIO]
    file_name: Optional[str] = None


@dataclass
class ParsedTxtDocument:
    text: str
    title: Optional[str] = None
    file_name: Optional[str] = None


@dataclass
class ParsedDocxDocument:
    text: str
    title: Optional[str] = None
    file_name: Optional[str] = None
    messages: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class ParsedPdfDocument:
    text: str
    title: Optional[str] = None
    file_name: Optional[str] = None
    page_count: int = 0
    info: Optional[Dict[str, Any]] = None


ParsedDocument = Union[ParsedPdfDocument, ParsedDocxDocument, ParsedTxtDocument]


def extract_file_name(name: Optional[str]) -> Optional[str]:
    """Strip a short trailing extension (1-5 alphanumerics) from a file name"""
    if not isinstance(name, str):
        return None
    return _EXTENSION.sub("", name)


def _read_bytes(upload: UploadedFile, label: str) -> bytes:
    try:
        content = upload.content
        if hasattr(content, "read"):
            content = content.read()
        if not isinstance(content, (bytes, bytearray)):
            raise TypeError(f"expected bytes, got {type(content).__name__}")
        return bytes(content)
    except Exception as e:
        logger.error(f"Reading uploaded {label} failed: {e}")
        raise KnowledgeBaseValidationError(f"Failed to read uploaded {label} file") from e


def convert_pdf_to_text(upload: UploadedFile) -> ParsedPdfDocument:
    """
    Extract text, page count and document info from a PDF upload

    Args:
        upload: Uploaded PDF file

    Returns:
        Parsed PDF document

    Raises:
        KnowledgeBaseValidationError: If the file can't be read or parsed, or
            holds no extractable text
    """
    data = _read_bytes(upload, "PDF")

    try:
        reader = PyPDF2.PdfReader(BytesIO(data))
        page_texts = [page.extract_text() or "" for page in reader.pages]
        page_count = len(reader.pages)
        raw_info = reader.metadata
    except Exception as e:
        logger.error(f"PDF parsing failed: {e}", exc_info=True)
        raise KnowledgeBaseValidationError("Failed to parse PDF file") from e

    text = "\n".join(page_texts).strip()
    if not text:
        raise KnowledgeBaseValidationError("PDF does not contain extractable text")

    info = normalize_pdf_info(
        {key: raw_info[key] for key in raw_info} if raw_info is not None else None
    )
    file_name = extract_file_name(upload.file_name)
    embedded_title = info.get("Title") if info else None
    if isinstance(embedded_title, str):
        embedded_title = embedded_title.strip()

    logger.info(f"Extracted {len(text)} characters from {page_count} PDF pages")
    return ParsedPdfDocument(
        text=text,
        title=embedded_title or file_name,
        file_name=file_name,
        page_count=page_count,
        info=info
    )


def convert_docx_to_text(upload: UploadedFile) -> ParsedDocxDocument:
    """
    Extract paragraph and table text from a DOCX upload

    Args:
        upload: Uploaded DOCX file

    Returns:
        Parsed DOCX document, with notes about content that was not extracted

    Raises:
        KnowledgeBaseValidationError: If the file can't be read or parsed, or
            holds no extractable text
    """
    data = _read_bytes(upload, "DOCX")

    messages: List[Dict[str, Any]] = []
    try:
        document = docx.Document(BytesIO(data))
        parts = [para.text for para in document.paragraphs]
        for table in document.tables:
            for row in table.rows:
                parts.append("\t".join(cell.text for cell in row.cells))
        if document.tables:
            messages.append({
                "type": "info",
                "message": f"Extracted text from {len(document.tables)} table(s)"
            })
        if document.inline_shapes:
            messages.append({
                "type": "warning",
                "message": f"Skipped {len(document.inline_shapes)} embedded image(s)"
            })
        embedded_title = (document.core_properties.title or "").strip()
    except Exception as e:
        logger.error(f"DOCX parsing failed: {e}", exc_info=True)
        raise KnowledgeBaseValidationError("Failed to parse DOCX file") from e

    text = "\n".join(parts).strip()
    if not text:
        raise KnowledgeBaseValidationError("DOCX does not contain extractable text")

    file_name = extract_file_name(upload.file_name)
    return ParsedDocxDocument(
        text=text,
        title=embedded_title or file_name,
        file_name=file_name,
        messages=messages
    )


def convert_txt_to_text(upload: UploadedFile) -> ParsedTxtDocument:
    """Decode a UTF-8 text upload"""
    data = _read_bytes(upload, "TXT")

    try:
        contents = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise KnowledgeBaseValidationError("Failed to read uploaded TXT file") from e

    text = contents.strip()
    if not text:
        raise KnowledgeBaseValidationError("TXT file is empty")

    file_name = extract_file_name(upload.file_name)
    return ParsedTxtDocument(text=text, title=file_name, file_name=file_name)


def normalize_pdf_info(info: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Make PDF document info JSON-serializable

    Keys lose their leading slash, dates become ISO-8601 strings and missing
    values become an explicit None.
    """
    if info is None:
        return None

    normalized: Dict[str, Any] = {}
    for key, value in info.items():
        name = str(key).lstrip("/")
        if isinstance(value, datetime):
            normalized[name] = value.isoformat()
        elif value is None:
            normalized[name] = None
        elif isinstance(value, (bool, int, float)):
            normalized[name] = value
        else:
            text = str(value)
            parsed = _parse_pdf_date(text)
            normalized[name] = parsed.isoformat() if parsed else text
    return normalized


def _parse_pdf_date(value: str) -> Optional[datetime]:
    """Parse a PDF date string such as D:20240131120000+02'00'"""
    match = _PDF_DATE.match(value)
    if not match:
        return None

    parts = match.groupdict()
    try:
        moment = datetime(
            int(parts["year"]),
            int(parts["month"] or 1),
            int(parts["day"] or 1),
            int(parts["hour"] or 0),
            int(parts["minute"] or 0),
            int(parts["second"] or 0),
        )
    except ValueError:
        return None

    tz = parts["tz"]
    if tz is None:
        return moment
    if tz in ("Z", "z"):
        return moment.replace(tzinfo=timezone.utc)

    digits = tz[1:].replace("'", "")
    offset = timedelta(hours=int(digits[:2]), minutes=int(digits[2:4] or 0))
    if tz[0] == "-":
        offset = -offset
    return moment.replace(tzinfo=timezone(offset))
