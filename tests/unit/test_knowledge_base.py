"""Test knowledge base ingestion and maintenance"""

from datetime import datetime

import pytest

from kbresponder.exceptions import KnowledgeBaseNotFoundError, KnowledgeBaseValidationError
from kbresponder.models.document import Document, DocumentType
from kbresponder.models.document_chunk import DocumentChunk
from kbresponder.rag.document_parser import UploadedFile
from kbresponder.schemas.document import FaqRecord
from kbresponder.services.knowledge_base import FaqPayload, parse_document_type


def _txt(text="Exports are limited to one million rows.", name="limits.txt"):
    return UploadedFile(content=text.encode("utf-8"), file_name=name)


@pytest.mark.parametrize("value,expected", [
    ("faq", DocumentType.FAQ),
    (" PDF ", DocumentType.PDF),
    (DocumentType.TXT, DocumentType.TXT),
])
def test_parse_document_type(value, expected):
    assert parse_document_type(value) is expected


def test_parse_document_type_rejects_unknown():
    with pytest.raises(KnowledgeBaseValidationError, match="Unsupported document type: xlsx"):
        parse_document_type("xlsx")


@pytest.mark.asyncio
async def test_create_faq_entry(db, kb_service, stub_embeddings):
    documents = await kb_service.create_entries(
        db, "faq", FaqPayload(records=[{"question": "Q1", "answer": "A1"}])
    )

    assert len(documents) == 1
    stored = db.query(Document).one()
    assert stored.document_type == "faq"
    assert stored.title == "Q1"
    assert stored.doc_metadata == {"documentType": "faq", "question": "Q1", "answer": "A1"}
    assert len(stored.chunks) == 1
    assert stored.chunks[0].text == "Question: Q1\nAnswer: A1"
    assert stored.chunks[0].chunk_index == 0
    assert stub_embeddings.batches == [["Question: Q1\nAnswer: A1"]]


@pytest.mark.asyncio
async def test_create_faq_skips_incomplete_records(db, kb_service, stub_embeddings):
    documents = await kb_service.create_entries(
        db, "faq", FaqPayload(records=[{"question": "", "answer": "A1"}])
    )

    assert documents == []
    assert db.query(Document).count() == 0
    assert stub_embeddings.batches == []


@pytest.mark.asyncio
async def test_create_faq_embeds_valid_records_in_one_batch(db, kb_service, stub_embeddings):
    records = [
        FaqRecord(question=" How do I reset my password? ", answer="Use the login page link."),
        {"question": "Missing answer"},
        {"question": "Where are invoices?", "answer": "Under Billing."},
    ]
    documents = await kb_service.create_entries(db, DocumentType.FAQ, FaqPayload(records=records))

    assert len(documents) == 2
    assert len(stub_embeddings.batches) == 1
    assert stub_embeddings.batches[0] == [
        "Question: How do I reset my password?\nAnswer: Use the login page link.",
        "Question: Where are invoices?\nAnswer: Under Billing.",
    ]
    assert db.query(DocumentChunk).count() == 2


@pytest.mark.asyncio
async def test_create_txt_entry(db, kb_service):
    text = "Exports are limited to one million rows."
    await kb_service.create_entries(db, "txt", _txt(text))

    stored = db.query(Document).one()
    assert stored.document_type == "txt"
    assert stored.title == "limits"
    assert stored.doc_metadata == {"documentType": "txt", "fileName": "limits", "title": "limits"}
    assert [chunk.text for chunk in stored.chunks] == [text]
    assert stored.chunks[0].chunk_metadata == {"chunkIndex": 0, "charStart": 0, "charEnd": len(text)}


@pytest.mark.asyncio
async def test_create_pdf_entry(db, kb_service, pdf_bytes):
    content = pdf_bytes(info={"Title": "Guide", "CreationDate": "D:20240131120000Z"})
    await kb_service.create_entries(db, "pdf", UploadedFile(content=content, file_name="guide.pdf"))

    stored = db.query(Document).one()
    assert stored.document_type == "pdf"
    assert stored.title == "Guide"
    assert stored.doc_metadata == {
        "documentType": "pdf",
        "fileName": "guide",
        "title": "Guide",
        "pageCount": 1,
        "info": {"Title": "Guide", "CreationDate": "2024-01-31T12:00:00+00:00"},
    }
    assert [chunk.text for chunk in stored.chunks] == ["Hello support"]


@pytest.mark.asyncio
async def test_create_txt_entry_splits_long_text(db, kb_service):
    kb_service.chunk_size = 50
    kb_service.chunk_overlap = 10
    await kb_service.create_entries(db, "txt", _txt("word " * 40))

    stored = db.query(Document).one()
    assert len(stored.chunks) > 1
    assert [chunk.chunk_index for chunk in stored.chunks] == list(range(len(stored.chunks)))
    for chunk in stored.chunks:
        assert len(chunk.text) <= 50


@pytest.mark.asyncio
async def test_create_txt_with_empty_embedding_persists_nothing(db, kb_service, stub_embeddings):
    stub_embeddings.empty = True

    with pytest.raises(KnowledgeBaseValidationError):
        await kb_service.create_entries(db, "txt", _txt())

    assert db.query(Document).count() == 0
    assert db.query(DocumentChunk).count() == 0


@pytest.mark.asyncio
async def test_create_entries_rejects_vector_count_mismatch(db, kb_service, stub_embeddings):
    async def short_batch(texts):
        return []

    stub_embeddings.generate_embeddings_batch_async = short_batch

    with pytest.raises(KnowledgeBaseValidationError, match="did not return usable vectors"):
        await kb_service.create_entries(db, "faq", FaqPayload(records=[{"question": "Q", "answer": "A"}]))
    assert db.query(Document).count() == 0


@pytest.mark.asyncio
async def test_create_entries_rejects_unsupported_type(db, kb_service, stub_embeddings):
    with pytest.raises(KnowledgeBaseValidationError, match="Unsupported document type: csv"):
        await kb_service.create_entries(db, "csv", _txt())
    assert stub_embeddings.batches == []


@pytest.mark.asyncio
async def test_create_file_entry_requires_upload(db, kb_service):
    with pytest.raises(KnowledgeBaseValidationError, match="TXT payload missing file data"):
        await kb_service.create_entries(db, "txt", FaqPayload(records=[]))


@pytest.mark.asyncio
async def test_create_empty_txt_is_rejected(db, kb_service):
    with pytest.raises(KnowledgeBaseValidationError, match="TXT file is empty"):
        await kb_service.create_entries(db, "txt", _txt("   "))


@pytest.mark.asyncio
async def test_update_faq_entry(db, kb_service, stub_embeddings):
    await kb_service.create_entries(db, "faq", FaqPayload(records=[{"question": "Q1", "answer": "A1"}]))
    chunk = db.query(DocumentChunk).one()

    entry = await kb_service.update_entry(db, chunk.id, {"question": "Q2", "answer": "A2"})

    assert entry.id == chunk.id
    assert entry.text == "Question: Q2\nAnswer: A2"
    assert entry.document_type == "faq"
    assert entry.metadata == {"documentType": "faq", "question": "Q2", "answer": "A2"}
    assert db.query(Document).one().title == "Q2"
    assert stub_embeddings.batches[-1] == ["Question: Q2\nAnswer: A2"]


@pytest.mark.asyncio
async def test_update_entry_not_found(db, kb_service):
    with pytest.raises(KnowledgeBaseNotFoundError, match="Knowledge base entry 999 not found"):
        await kb_service.update_entry(db, 999, {"question": "Q", "answer": "A"})


@pytest.mark.asyncio
async def test_update_entry_rejects_file_documents(db, kb_service):
    await kb_service.create_entries(db, "txt", _txt())
    chunk = db.query(DocumentChunk).one()

    with pytest.raises(KnowledgeBaseValidationError, match="Unsupported document type: txt"):
        await kb_service.update_entry(db, chunk.id, {"question": "Q", "answer": "A"})


@pytest.mark.asyncio
async def test_update_entry_requires_question_and_answer(db, kb_service):
    await kb_service.create_entries(db, "faq", FaqPayload(records=[{"question": "Q1", "answer": "A1"}]))
    chunk = db.query(DocumentChunk).one()

    with pytest.raises(KnowledgeBaseValidationError, match="Both question and answer are required"):
        await kb_service.update_entry(db, chunk.id, FaqRecord(question="Q2"))
    assert db.query(DocumentChunk).one().text == "Question: Q1\nAnswer: A1"


@pytest.mark.asyncio
async def test_list_entries_filters_by_type(db, kb_service):
    await kb_service.create_entries(db, "faq", FaqPayload(records=[{"question": "Q1", "answer": "A1"}]))
    await kb_service.create_entries(db, "txt", _txt())

    entries = kb_service.list_entries(db)
    assert len(entries) == 2
    assert entries[0].document_type == "txt"

    faq_entries = kb_service.list_entries(db, "faq")
    assert [entry.text for entry in faq_entries] == ["Question: Q1\nAnswer: A1"]
    assert faq_entries[0].metadata["question"] == "Q1"


def test_list_entries_rejects_unknown_type(db, kb_service):
    with pytest.raises(KnowledgeBaseValidationError):
        kb_service.list_entries(db, "slides")


@pytest.mark.asyncio
async def test_get_and_delete_document(db, kb_service):
    kb_service.chunk_size = 20
    kb_service.chunk_overlap = 0
    documents = await kb_service.create_entries(db, "txt", _txt("alpha beta gamma delta epsilon zeta eta"))
    document_id = documents[0].id

    document = kb_service.get_document(db, document_id)
    assert [chunk.chunk_index for chunk in document.chunks] == list(range(len(document.chunks)))

    kb_service.delete_document(db, document_id)

    assert db.query(Document).count() == 0
    assert db.query(DocumentChunk).count() == 0
    with pytest.raises(KnowledgeBaseNotFoundError, match=f"Document {document_id} not found"):
        kb_service.get_document(db, document_id)


def test_delete_unknown_document(db, kb_service):
    with pytest.raises(KnowledgeBaseNotFoundError):
        kb_service.delete_document(db, 42)


@pytest.mark.asyncio
async def test_soft_deleted_documents_are_hidden(db, kb_service):
    documents = await kb_service.create_entries(db, "faq", FaqPayload(records=[{"question": "Q1", "answer": "A1"}]))
    document = db.get(Document, documents[0].id)
    chunk_id = document.chunks[0].id
    document.deleted_at = datetime.utcnow()
    db.commit()

    with pytest.raises(KnowledgeBaseNotFoundError):
        await kb_service.update_entry(db, chunk_id, {"question": "Q2", "answer": "A2"})
    with pytest.raises(KnowledgeBaseNotFoundError):
        kb_service.delete_document(db, document.id)

    assert db.query(Document).count() == 1
    assert db.query(DocumentChunk).one().text == "Question: Q1\nAnswer: A1"


@pytest.mark.asyncio
async def test_replace_document(db, kb_service):
    documents = await kb_service.create_entries(db, "txt", _txt())
    old_id = documents[0].id

    replaced = await kb_service.replace_document(
        db, old_id, "faq", FaqPayload(records=[{"question": "Q1", "answer": "A1"}])
    )

    assert len(replaced) == 1
    remaining = db.query(Document).all()
    assert [doc.document_type for doc in remaining] == ["faq"]
    assert db.query(DocumentChunk).count() == 1


@pytest.mark.asyncio
async def test_replace_document_failure_keeps_original(db, kb_service, stub_embeddings):
    documents = await kb_service.create_entries(db, "txt", _txt())
    old_id = documents[0].id
    stub_embeddings.empty = True

    with pytest.raises(KnowledgeBaseValidationError):
        await kb_service.replace_document(db, old_id, "txt", _txt("New content", name="new.txt"))

    stored = db.query(Document).one()
    assert stored.id == old_id
    assert stored.title == "limits"
    assert db.query(DocumentChunk).count() == 1


@pytest.mark.asyncio
async def test_replace_unknown_document(db, kb_service):
    with pytest.raises(KnowledgeBaseNotFoundError):
        await kb_service.replace_document(db, 7, "txt", _txt())
