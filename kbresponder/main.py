"""
FastAPI application entry point

The HTTP surface covers knowledge base maintenance. Chat transports reuse the
lifespan-built `app.state.composer` with
`kbresponder.services.message_service.handle_incoming_message`.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from sqlalchemy import text
import logging

from kbresponder.api.endpoints import health, knowledge_base, documents
from kbresponder.database.session import engine, SessionLocal
from kbresponder.database.base import Base
from kbresponder.config import settings
from kbresponder.utils.logger import setup_logging
from kbresponder.exceptions import (
    ChatbotException,
    KnowledgeBaseNotFoundError,
    ValidationException,
)
from kbresponder.rag.chain import ResponseComposer
from kbresponder.rag.config import rag_config
from kbresponder.rag.factory import build_embeddings_service, build_generator_service
from kbresponder.rag.retriever import Retriever
from kbresponder.rag.vector_store import KnowledgeStore
from kbresponder.schemas.response import ErrorResponse
from kbresponder.services.knowledge_base import KnowledgeBaseService
from kbresponder.services.message_service import make_history_loader

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


def init_database() -> None:
    """Enable pgvector and create missing tables"""
    if engine.dialect.name == "postgresql":
        with engine.begin() as conn:
            conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
    Base.metadata.create_all(bind=engine)


def init_services(app: FastAPI) -> None:
    """Build the RAG services once and share them through app.state"""
    embeddings = build_embeddings_service(rag_config)
    generator = build_generator_service(rag_config)
    store = KnowledgeStore()
    retriever = Retriever(embeddings, SessionLocal, store=store, config=rag_config)

    app.state.generator = generator
    app.state.knowledge_base_service = KnowledgeBaseService(embeddings, store=store, config=rag_config)
    app.state.composer = ResponseComposer(
        generator,
        retriever,
        make_history_loader(SessionLocal),
        config=rag_config
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager
    - Startup: Initialize database tables, build AI services
    - Shutdown: Release database connections
    """
    # Startup
    logger.info(f"Starting {settings.APP_NAME}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    logger.info("=" * 60)
    logger.info(f"AI provider: {rag_config.ai_provider.upper()}")
    if rag_config.ai_provider.lower() == "gemini":
        logger.info(f"Model: {rag_config.gemini_model}")
        logger.info(f"Embedding: {rag_config.gemini_embedding_model}")
        logger.info("API key: " + ("set" if rag_config.google_api_key else "NOT SET"))
    else:
        logger.info(f"Model: {rag_config.llm_model}")
        logger.info(f"Embedding: {rag_config.embedding_model}")
        logger.info("API key: " + ("set" if rag_config.openai_api_key else "NOT SET"))
    logger.info("=" * 60)

    # Create database tables
    try:
        init_database()
        logger.info("Database tables created/verified")
    except Exception as e:
        logger.error(f"Database initialization error: {str(e)}")

    init_services(app)

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME}")
    engine.dispose()


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Knowledge base ingestion and retrieval-augmented chat replies",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(knowledge_base.router, prefix="/api", tags=["knowledge-base"])
app.include_router(documents.router, prefix="/api", tags=["documents"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(mode="json")
    )


# Exception handlers
@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed path, query or body parameters"""
    logger.warning(f"Invalid request to {request.url.path}: {exc.errors()}")
    return _error(400, "Invalid request")


@app.exception_handler(ValidationException)
async def validation_exception_handler(request: Request, exc: ValidationException):
    """Handle rejected input"""
    logger.warning(f"Validation error: {str(exc)}")
    return _error(400, str(exc))


@app.exception_handler(KnowledgeBaseNotFoundError)
async def not_found_exception_handler(request: Request, exc: KnowledgeBaseNotFoundError):
    """Handle references to missing entities"""
    logger.info(f"Not found: {str(exc)}")
    return _error(404, str(exc))


@app.exception_handler(ChatbotException)
async def chatbot_exception_handler(request: Request, exc: ChatbotException):
    """Handle custom chatbot exceptions"""
    logger.error(f"Chatbot exception: {str(exc)}")
    return _error(500, str(exc))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions"""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return _error(500, "An unexpected error occurred")


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": f"{settings.APP_NAME} API",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
        "docs": "/docs" if settings.DEBUG else "disabled"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "kbresponder.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
