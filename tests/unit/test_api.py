"""
Unit tests for the HTTP API.

Service handles are replaced through app.dependency_overrides; the client is
used without a context manager so the lifespan (database, Vertex AI) never runs.
"""

from dataclasses import replace
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from regs_search.database import DocumentNotFoundError
from regs_search.main import app, get_embedder, get_expander, get_ranker, get_toc_store
from regs_search.toc_ranking import HybridSectionRanker

pytestmark = pytest.mark.unit

PDF_PAGE_OFFSET = 4


class FakeTocStore:
    """In-memory stand-in for TocStore with one document"""

    def __init__(self, entries):
        self.entries = entries
        self.logged = []
        self.fail_logging = False

    async def get_document(self, document_id):
        if document_id != 1:
            raise DocumentNotFoundError(document_id)
        return {"id": 1, "title": "AS/NZS 3000:2018", "document_type": "standard", "pdf_page_offset": PDF_PAGE_OFFSET}

    async def get_toc_entries(self, document_id):
        return list(self.entries)

    async def log_query(self, **fields):
        if self.fail_logging:
            raise RuntimeError("connection refused")
        self.logged.append(fields)
        return len(self.logged)


@pytest.fixture
def store(sample_toc):
    return FakeTocStore(sample_toc)


@pytest.fixture
def embedder():
    embedder = Mock()
    embedder.available = True
    embedder.embed.return_value = None
    return embedder


@pytest.fixture
def expander():
    expander = Mock()
    expander.expand.side_effect = lambda question, title="": [question]
    return expander


@pytest.fixture
def client(store, embedder, expander):
    app.dependency_overrides[get_toc_store] = lambda: store
    app.dependency_overrides[get_embedder] = lambda: embedder
    app.dependency_overrides[get_expander] = lambda: expander
    app.dependency_overrides[get_ranker] = lambda: HybridSectionRanker()
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestServiceEndpoints:
    """Test root and health"""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["uptime_seconds"] >= 0


class TestTocEndpoint:
    """Test GET /v1/documents/{id}/toc"""

    def test_lists_entries_with_pdf_pages(self, client):
        response = client.get("/v1/documents/1/toc")
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 27
        first = body["toc"][0]
        assert first["section_number"] == "1"
        assert first["page"] == 33
        assert first["pdf_page"] == 33 + PDF_PAGE_OFFSET
        assert first["has_embedding"] is False

    def test_unknown_document(self, client):
        response = client.get("/v1/documents/99/toc")
        assert response.status_code == 404


class TestSearchToc:
    """Test POST /v1/search-toc"""

    def test_exact_section_number(self, client):
        response = client.post("/v1/search-toc", json={"query": "6.2.2", "document_id": 1})
        assert response.status_code == 200
        body = response.json()

        assert body["selection"]["section_number"] == "6.2.2"
        assert body["selection"]["score"] == 1000.0
        assert body["selection"]["pdf_page"] == 317 + PDF_PAGE_OFFSET
        assert body["alternatives"] == []
        assert body["meta"]["result_count"] == 1
        assert body["meta"]["used_embeddings"] is False
        assert body["meta"]["mode"] == "hybrid"

    def test_alternatives(self, client):
        body = client.post("/v1/search-toc", json={"query": "scope", "document_id": 1}).json()

        assert body["selection"]["section_number"] == "1"
        assert [a["section_number"] for a in body["alternatives"]] == ["1.1", "6.2.1", "6.3.1"]
        assert body["selection"]["score"] == pytest.approx(233.333)

    def test_no_match_is_not_an_error(self, client):
        response = client.post("/v1/search-toc", json={"query": "xyzzy", "document_id": 1})
        assert response.status_code == 200
        body = response.json()
        assert body["selection"] is None
        assert body["results"] == []
        assert body["meta"]["top_score"] == 0.0

    def test_blank_query_rejected(self, client):
        response = client.post("/v1/search-toc", json={"query": "   ", "document_id": 1})
        assert response.status_code == 422

    def test_unknown_document(self, client):
        response = client.post("/v1/search-toc", json={"query": "scope", "document_id": 99})
        assert response.status_code == 404

    def test_corpus_without_embeddings_skips_query_embedding(self, client, embedder):
        client.post("/v1/search-toc", json={"query": "scope", "document_id": 1})
        embedder.embed.assert_not_called()

    def test_embedding_failure_falls_back_to_keywords(self, client, store, embedder):
        store.entries = [replace(e, embedding=[0.0, 1.0]) for e in store.entries]
        embedder.embed.return_value = None

        body = client.post("/v1/search-toc", json={"query": "6.2.2", "document_id": 1}).json()

        assert body["meta"]["used_embeddings"] is False
        assert body["meta"]["result_count"] == 1

    def test_hybrid_with_query_embedding(self, client, store, embedder):
        store.entries = [replace(e, embedding=[0.0, 1.0]) for e in store.entries]
        embedder.embed.return_value = [0.0, 1.0]

        body = client.post("/v1/search-toc", json={"query": "6.2.2", "document_id": 1}).json()

        assert body["meta"]["used_embeddings"] is True
        assert body["selection"]["section_number"] == "6.2.2"
        assert body["selection"]["semantic_score"] == 1.0
        # Every entry is semantically identical, so all pass the threshold
        assert body["meta"]["result_count"] == 20


class TestQuestionSearch:
    """Test POST /v1/search (expanded queries, merged)"""

    def test_merges_expanded_queries(self, client, expander):
        expander.expand.side_effect = None
        expander.expand.return_value = ["bath zones", "scope"]

        response = client.post("/v1/search", json={"question": "where can a light go near the bath", "document_id": 1})
        assert response.status_code == 200
        body = response.json()

        assert body["document"] == "AS/NZS 3000:2018"
        assert body["queries"] == ["bath zones", "scope"]
        assert [s["section_number"] for s in body["sections"]] == ["1", "1.1", "6.2.1", "6.2", "6.2.2"]
        assert body["total_found"] == 6
        assert body["sections"][0]["found_by"] == "scope"
        assert body["sections"][3]["found_by"] == "bath zones"

    def test_max_sections(self, client):
        body = client.post("/v1/search", json={"question": "scope", "document_id": 1, "max_sections": 2}).json()

        assert body["queries"] == ["scope"]
        assert len(body["sections"]) == 2
        assert body["total_found"] == 3


class TestPassageRerank:
    """Test POST /v1/passages/rerank"""

    def test_clause_number_boost(self, client):
        response = client.post("/v1/passages/rerank", json={
            "query": "what does 6.2.2 say",
            "passages": [
                {"content": "General requirements", "similarity": 0.3},
                {"content": "Zones are defined", "section_number": "6.2.2", "similarity": 0.5},
            ],
        })
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert body["results"][0]["section_number"] == "6.2.2"
        assert body["results"][0]["relevance_score"] == pytest.approx(0.9)


class TestReferences:
    """Test POST /v1/references"""

    def test_extracts_pages(self, client):
        response = client.post("/v1/references", json={"text": "See page 320 and Table 6.1 on pg. 318"})
        assert response.status_code == 200
        assert response.json()["references"] == [
            {"page": 318, "type": "table"},
            {"page": 320, "type": "page"},
        ]


class TestEmbedEndpoint:
    """Test POST /v1/embed"""

    def test_embed(self, client, embedder):
        embedder.embed.return_value = [0.1, 0.2, 0.3]

        response = client.post("/v1/embed", json={"text": "bathroom zone clearances"})
        assert response.status_code == 200
        assert response.json() == {"embedding": [0.1, 0.2, 0.3], "dimension": 3}

    def test_embedder_unavailable(self, client, embedder):
        embedder.available = False

        response = client.post("/v1/embed", json={"text": "bathroom zone clearances"})
        assert response.status_code == 503

    def test_embedding_failure(self, client, embedder):
        embedder.embed.return_value = None

        response = client.post("/v1/embed", json={"text": "bathroom zone clearances"})
        assert response.status_code == 503


class TestQueryLog:
    """Test POST /v1/query-log"""

    def test_logs_query(self, client, store):
        response = client.post("/v1/query-log", json={
            "query_text": "bath zones",
            "query_type": "voice",
            "document_id": 1,
            "result_section": "6.2.2",
            "result_page": 317,
            "result_found": True,
            "alternatives_count": 3,
        })
        assert response.status_code == 200
        assert response.json() == {"success": True, "log_id": 1}
        assert store.logged[0]["result_section"] == "6.2.2"
        assert store.logged[0]["query_id"] is None

    def test_store_error(self, client, store):
        store.fail_logging = True

        response = client.post("/v1/query-log", json={"query_text": "bath zones"})
        assert response.status_code == 500
