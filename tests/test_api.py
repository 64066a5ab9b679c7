import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from server.core.QueryService import QueryService
from server.routers.DocumentRouter import router as document_router
from server.routers.QueryRouter import router as query_router
from services.extraction.TextExtractor import TextExtractor
from services.indexing.IndexingService import IndexingService
from services.knowledge_base.KnowledgeBaseService import KnowledgeBaseService
from services.retrieval.ContextAssembler import ContextAssembler
from services.retrieval.KeywordRetriever import KeywordRetriever
from services.retrieval.Retriever import Retriever
from services.retrieval.SemanticRetriever import SemanticRetriever
from services.retrieval.TokenEstimator import CharTokenEstimator
from shared.models.config import PipelineSettings
from shared.store.memory.DocumentStoreMemory import DocumentStoreMemory
from tests.fakes import FakeEmbedClient, FakeOCRClient, FakeRAGClient, make_config

API_KEY = "test-api-key"
HEADERS = {"X-Api-Key": API_KEY}


@pytest.fixture
def rag():
    return FakeRAGClient(helper_config=make_config())


@pytest.fixture
def client(monkeypatch, rag):
    config = make_config(monkeypatch, API_SERVER_API_KEY=API_KEY)
    settings = PipelineSettings(max_chunk_size=200, chunk_overlap=20, similarity_threshold=0.0)
    embed = FakeEmbedClient(helper_config=config)
    store = DocumentStoreMemory(helper_config=config)
    estimator = CharTokenEstimator()

    app = FastAPI()
    app.include_router(document_router)
    app.include_router(query_router)
    app.state.helper_config = config
    app.state.kb_service = KnowledgeBaseService(
        helper_config=config,
        document_store=store,
        extractor=TextExtractor(helper_config=config, ocr_client=FakeOCRClient(helper_config=config), settings=settings),
        indexer=IndexingService(helper_config=config, embed_client=embed, rag_client=rag, settings=settings),
        settings=settings,
    )
    retriever = Retriever(
        helper_config=config,
        strategies=[
            SemanticRetriever(
                helper_config=config, embed_client=embed, rag_client=rag, token_estimator=estimator, settings=settings,
            ),
            KeywordRetriever(helper_config=config, document_store=store, token_estimator=estimator),
        ],
    )
    app.state.query_service = QueryService(
        helper_config=config, retriever=retriever, assembler=ContextAssembler(), settings=settings,
    )
    return TestClient(app)


def upload(client: TestClient, owner_id: str, files: list[tuple[str, bytes, str]], embedding_key: str | None = None):
    headers = dict(HEADERS)
    if embedding_key:
        headers["X-Embedding-Key"] = embedding_key
    return client.post(
        "/documents",
        data={"owner_id": owner_id},
        files=[("files", file) for file in files],
        headers=headers,
    )


def test_requests_need_the_api_key(client):
    assert client.get("/documents", params={"owner_id": "owner-a"}, headers={"X-Api-Key": "wrong"}).status_code == 401
    assert client.get("/documents", params={"owner_id": "owner-a"}).status_code == 422


def test_upload_reports_rejected_files(client):
    response = upload(
        client, "owner-a",
        [("faq.txt", "Returns are accepted within 14 days.".encode(), "text/plain"), ("empty.txt", b"", "text/plain")],
        embedding_key="sk-user",
    )

    assert response.status_code == 200
    body = response.json()
    assert [doc["name"] for doc in body["documents"]] == ["faq.txt"]
    assert [(e["file_name"], e["kind"]) for e in body["errors"]] == [("empty.txt", "validation")]
    assert body["indexing"][0]["status"] == "complete"


def test_list_documents_is_owner_scoped(client):
    upload(client, "owner-a", [("a.txt", b"Alpha.", "text/plain")])
    upload(client, "owner-b", [("b.txt", b"Beta.", "text/plain")])

    body = client.get("/documents", params={"owner_id": "owner-a"}, headers=HEADERS).json()

    assert body["total"] == 1
    assert body["documents"][0]["name"] == "a.txt"
    assert body["documents"][0]["characters"] == len("Alpha.")


def test_query_uses_semantic_search_with_key(client):
    upload(client, "owner-a", [("faq.txt", b"Returns are accepted within 14 days.", "text/plain")], embedding_key="sk-user")

    response = client.post(
        "/query",
        json={"query": "Can I return?", "owner_id": "owner-a", "max_tokens": 200},
        headers={**HEADERS, "X-Embedding-Key": "sk-user"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["strategy"] == "semantic"
    assert body["passages"][0]["document_name"] == "faq.txt"
    assert "Returns are accepted within 14 days." in body["prompt"]
    assert body["prompt"].endswith("Can I return?")


def test_query_falls_back_to_keywords_without_key(client):
    upload(client, "owner-a", [("faq.txt", b"Returns are accepted within 14 days.", "text/plain")])

    body = client.post("/query", json={"query": "returns", "owner_id": "owner-a"}, headers=HEADERS).json()

    assert body["strategy"] == "keyword"
    assert body["fallbacks"][0].startswith("semantic:")
    assert body["context"] == "[faq.txt]\nReturns are accepted within 14 days."


def test_query_validates_its_body(client):
    response = client.post("/query", json={"query": "", "owner_id": "owner-a"}, headers=HEADERS)
    assert response.status_code == 422


def test_delete_document(client, rag):
    upload(client, "owner-a", [("a.txt", b"Alpha.", "text/plain")], embedding_key="sk-user")

    missing = client.delete("/documents/nope.txt", params={"owner_id": "owner-a"}, headers=HEADERS)
    deleted = client.delete("/documents/a.txt", params={"owner_id": "owner-a"}, headers=HEADERS)

    assert missing.status_code == 404
    assert deleted.json() == {"deleted": 1}
    assert rag.get_owner_points("owner-a") == []


def test_delete_reports_vector_store_failure(client, rag):
    upload(client, "owner-a", [("a.txt", b"Alpha.", "text/plain")], embedding_key="sk-user")
    rag.unavailable = True

    response = client.delete("/documents/a.txt", params={"owner_id": "owner-a"}, headers=HEADERS)

    assert response.status_code == 502


def test_clear_documents(client):
    upload(client, "owner-a", [("a.txt", b"Alpha.", "text/plain"), ("b.txt", b"Beta.", "text/plain")])

    response = client.delete("/documents", params={"owner_id": "owner-a"}, headers=HEADERS)

    assert response.json() == {"deleted": 2}
    assert client.get("/documents", params={"owner_id": "owner-a"}, headers=HEADERS).json()["total"] == 0
