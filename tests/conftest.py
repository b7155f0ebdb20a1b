"""Pytest configuration and fixtures"""

import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from kbresponder.main import app
from kbresponder.api.deps import get_knowledge_base_service
from kbresponder.config import settings
from kbresponder.database.base import Base
from kbresponder.database.session import get_db
from kbresponder.services.knowledge_base import KnowledgeBaseService

# Test database URL
TEST_DATABASE_URL = "sqlite:///./test.db"

# Create test engine
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_vector(*values: float):
    """Embedding of the configured size, padded with zeros"""
    vector = [float(v) for v in values]
    return vector + [0.0] * (settings.EMBEDDING_DIMENSION - len(vector))


class StubEmbeddings:
    """Deterministic embedding service"""

    def __init__(self, vector=None, empty: bool = False):
        self.vector = vector or make_vector(1.0)
        self.empty = empty
        self.queries = []
        self.batches = []

    async def generate_embedding_async(self, text):
        self.queries.append(text)
        return [] if self.empty else list(self.vector)

    async def generate_embeddings_batch_async(self, texts):
        self.batches.append(list(texts))
        return [[] if self.empty else list(self.vector) for _ in texts]


class StubGenerator:
    """Deterministic completion service"""

    def __init__(self, reply="Thanks for reaching out.", language="eng",
                 available=True, fail_detection=False, fail_generation=False):
        self.reply = reply
        self.language = language
        self.is_available = available
        self.fail_detection = fail_detection
        self.fail_generation = fail_generation
        self.prompts = []
        self.requests = []

    async def complete(self, prompt):
        self.prompts.append(prompt)
        if self.fail_detection:
            raise RuntimeError("detection unavailable")
        return self.language

    async def generate_async(self, messages, temperature=None, max_tokens=None):
        self.requests.append(messages)
        if self.fail_generation:
            raise RuntimeError("completion unavailable")
        return {"text": self.reply, "tokens": 0}


@pytest.fixture
def stub_embeddings():
    return StubEmbeddings()


@pytest.fixture
def stub_generator():
    return StubGenerator()


@pytest.fixture(scope="function")
def db():
    """Database session fixture"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def kb_service(stub_embeddings):
    return KnowledgeBaseService(stub_embeddings)


@pytest.fixture(scope="function")
def client(db, kb_service):
    """Test client fixture"""
    def override_get_db():
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_knowledge_base_service] = lambda: kb_service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def pytest_collection_modifyitems(config, items):
    """Skip pgvector tests unless DATABASE_URL points at PostgreSQL"""
    if os.environ.get("DATABASE_URL", settings.DATABASE_URL).startswith("postgresql") and os.environ.get("RUN_POSTGRES_TESTS"):
        return
    skip_postgres = pytest.mark.skip(reason="needs PostgreSQL with pgvector (set RUN_POSTGRES_TESTS=1)")
    for item in items:
        if "postgres" in item.keywords:
            item.add_marker(skip_postgres)


@pytest.fixture
def vector():
    """Factory for embeddings of the configured size"""
    return make_vector


def make_pdf(text: str = "Hello support", info: dict = None) -> bytes:
    """Single-page PDF with one Helvetica text line and an optional /Info dictionary"""
    content = f"BT /F1 18 Tf 20 100 Td ({text}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 300 144] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    if info:
        entries = " ".join(f"/{key} ({value})" for key, value in info.items())
        objects.append(f"<< {entries} >>".encode("latin-1"))

    output = b"%PDF-1.4\n"
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(output))
        output += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_position = len(output)
    output += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    for offset in offsets:
        output += b"%010d 00000 n \n" % offset

    trailer = f"<< /Size {len(objects) + 1} /Root 1 0 R"
    if info:
        trailer += f" /Info {len(objects)} 0 R"
    output += f"trailer\n{trailer} >>\nstartxref\n{xref_position}\n%%EOF\n".encode("latin-1")
    return output


@pytest.fixture
def pdf_bytes():
    """Factory for small text PDFs"""
    return make_pdf
