"""FastAPI application entry point for the knowledge-base API."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import PipelineSettings
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.ocr.OCRClientManager import OCRClientManager
from shared.store.memory.DocumentStoreMemory import DocumentStoreMemory
from services.extraction.TextExtractor import TextExtractor
from services.indexing.IndexingService import IndexingService
from services.knowledge_base.KnowledgeBaseService import KnowledgeBaseService
from services.retrieval.ContextAssembler import ContextAssembler
from services.retrieval.KeywordRetriever import KeywordRetriever
from services.retrieval.Retriever import Retriever
from services.retrieval.SemanticRetriever import SemanticRetriever
from services.retrieval.TokenEstimator import CharTokenEstimator
from server.core.QueryService import QueryService
from server.routers.DocumentRouter import router as document_router
from server.routers.QueryRouter import router as query_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)
    config = app.state.helper_config
    settings = PipelineSettings.from_config(config)

    embed_client = EmbedClientManager(helper_config=config).get_client()
    rag_client = RAGClientManager(helper_config=config).get_client()
    ocr_client = OCRClientManager(helper_config=config).get_client()

    logging.info("Booting all clients...")
    for client in [embed_client, rag_client]:
        await client.boot()
    logging.info("All clients booted successfully.")

    await check_connections(embed_client, rag_client)
    if not await rag_client.do_existence_check():
        logging.info("Creating vector collection (size %d).", rag_client.vector_size)
        await rag_client.do_create_collection(distance=embed_client.embed_distance)

    document_store = DocumentStoreMemory(helper_config=config)
    token_estimator = CharTokenEstimator()
    indexer = IndexingService(helper_config=config, embed_client=embed_client, rag_client=rag_client, settings=settings)

    app.state.settings = settings
    app.state.kb_service = KnowledgeBaseService(
        helper_config=config,
        document_store=document_store,
        extractor=TextExtractor(helper_config=config, ocr_client=ocr_client, settings=settings),
        indexer=indexer,
        settings=settings,
    )
    # semantic search first, keyword selection over raw documents as fallback
    retriever = Retriever(
        helper_config=config,
        strategies=[
            SemanticRetriever(
                helper_config=config,
                embed_client=embed_client,
                rag_client=rag_client,
                token_estimator=token_estimator,
                settings=settings,
            ),
            KeywordRetriever(helper_config=config, document_store=document_store, token_estimator=token_estimator),
        ],
    )
    app.state.query_service = QueryService(
        helper_config=config,
        retriever=retriever,
        assembler=ContextAssembler(),
        settings=settings,
    )

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    for client in [embed_client, rag_client]:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="knowledge_base",
    description=(
        "Document ingestion and retrieval core of a knowledge-base chatbot. "
        "Uploads are extracted (PDF with OCR fallback, Word, spreadsheets, images), "
        "chunked and embedded into a vector database per owner. "
        "POST /query returns the passages and assembled prompt context for a question, "
        "falling back to keyword selection when semantic search is unavailable."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(document_router)
app.include_router(query_router)


async def check_connections(embed_client: EmbedClientInterface, rag_client: RAGClientInterface) -> None:
    """Check connectivity to the configured backends on startup.

    Embedding failures are non-fatal: owners may bring their own keys and
    queries fall back to keyword selection. The vector store is required.

    Raises:
        Exception: If the vector store is not reachable.
    """
    result = await rag_client.do_healthcheck()
    if not result.is_success:
        raise Exception(
            f"RAG client '{rag_client.__class__.__name__}' is not reachable "
            f"(status {result.status_code}). Cannot index or serve queries."
        )

    if not embed_client.has_api_key():
        logging.warning("No embedding API key configured; semantic indexing needs a per-request X-Embedding-Key.")
        return
    try:
        result = await embed_client.do_healthcheck()
    except Exception as e:
        logging.warning("Embedding client '%s' is not reachable: %s", embed_client.get_engine_name(), e)
        return
    if not result.is_success:
        logging.warning(
            "Embedding client '%s' is not reachable (status %d). Queries will fall back to keyword selection.",
            embed_client.get_engine_name(),
            result.status_code,
        )


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting knowledge_base API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
