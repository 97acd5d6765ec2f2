"""Tests for API endpoints (no external API keys required)."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import httpx
import pytest
from anthropic import APIStatusError
from fastapi.testclient import TestClient

from src.api.dependencies import get_search_client, get_store
from src.api.main import app
from src.api.routes.query import NO_RESULTS_ANSWER
from src.api.routes.vtt import MAX_UPLOAD_BYTES
from src.ingestion.models import ChunkAnalysis
from src.ingestion.pipeline import ProcessingResult, ResourceIngestResult
from src.resources.validators import ResourceType
from src.retrieval.models import ResultType, SearchResult

VALID_VTT = b"""WEBVTT

00:00:01.000 --> 00:00:05.000
Today we will cover list comprehensions in Python.
"""


@pytest.fixture
def store() -> MagicMock:
    mock_store = MagicMock()
    mock_store.create_lecture.return_value = "lec-1"
    return mock_store


@pytest.fixture
def search_client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def client(store: MagicMock, search_client: MagicMock) -> Iterator[TestClient]:
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_search_client] = lambda: search_client
    yield TestClient(app)
    app.dependency_overrides.clear()


def _processing_result() -> ProcessingResult:
    return ProcessingResult(
        lecture_id="lec-1",
        num_segments=1,
        lecture_start_index=0,
        num_chunks=1,
        total_duration=5.0,
        chunk_analysis=ChunkAnalysis(total_chunks=1, quality_score=0.5),
        processing_time=0.1234,
    )


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


class TestVTTUpload:
    def test_requires_file(self, client: TestClient) -> None:
        assert client.post("/api/vtt/upload").status_code == 422

    def test_upload_runs_pipeline(self, client: TestClient, store: MagicMock) -> None:
        with patch("src.api.routes.vtt.process_vtt_file", return_value=_processing_result()) as mock_process:
            response = client.post(
                "/api/vtt/upload",
                files={"file": ("week1.vtt", VALID_VTT, "text/vtt")},
                data={"title": "Week 1", "cohort_id": "c-1"},
            )

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["lecture_id"] == "lec-1"
        assert body["title"] == "Week 1"
        assert body["num_chunks"] == 1
        assert body["quality_score"] == 0.5
        assert body["processing_time"] == 0.12
        store.create_lecture.assert_called_once_with("Week 1", "c-1", "week1.vtt", len(VALID_VTT))
        assert mock_process.call_args.args[:2] == (store, "lec-1")

    def test_title_defaults_to_filename(self, client: TestClient, store: MagicMock) -> None:
        with patch("src.api.routes.vtt.process_vtt_file", return_value=_processing_result()):
            response = client.post("/api/vtt/upload", files={"file": ("decorators.vtt", VALID_VTT, "text/vtt")})
        assert response.json()["title"] == "decorators"

    def test_invalid_vtt_rejected(self, client: TestClient, store: MagicMock) -> None:
        response = client.post(
            "/api/vtt/upload",
            files={"file": ("notes.vtt", b"these are just some notes", "text/vtt")},
        )
        assert response.status_code == 400
        assert "Missing WEBVTT header" in response.json()["detail"]
        store.create_lecture.assert_not_called()

    def test_binary_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/api/vtt/upload",
            files={"file": ("audio.vtt", b"\xff\xfb\x90\x00" * 10, "application/octet-stream")},
        )
        assert response.status_code == 400

    def test_too_large(self, client: TestClient) -> None:
        with patch("src.api.routes.vtt.MAX_UPLOAD_BYTES", 10):
            response = client.post("/api/vtt/upload", files={"file": ("big.vtt", VALID_VTT, "text/vtt")})
        assert response.status_code == 413
        assert MAX_UPLOAD_BYTES == 50 * 1024 * 1024


class TestLectureStatus:
    def test_status(self, client: TestClient, store: MagicMock) -> None:
        store.get_lecture_status.return_value = {
            "id": "lec-1",
            "title": "Week 1",
            "status": "processing",
            "processing_stage": "embedding",
            "processing_progress": 55,
            "chunks_count": None,
            "error_message": None,
        }
        response = client.get("/api/vtt/status/lec-1")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "processing"
        assert body["processing_stage"] == "embedding"
        assert body["processing_progress"] == 55

    def test_unknown_lecture_404(self, client: TestClient, store: MagicMock) -> None:
        store.get_lecture_status.return_value = None
        assert client.get("/api/vtt/status/missing").status_code == 404


class TestQuery:
    def test_validation(self, client: TestClient) -> None:
        assert client.post("/api/query", json={}).status_code == 422

    def test_rejects_bad_top_k(self, client: TestClient) -> None:
        assert client.post("/api/query", json={"question": "q", "top_k": 0}).status_code == 422

    def test_no_results(self, client: TestClient, search_client: MagicMock) -> None:
        search_client.search.return_value = []
        with patch("src.api.routes.query.generate_answer") as mock_generate:
            response = client.post("/api/query", json={"question": "anything"})
        assert response.status_code == 200
        assert response.json() == {"answer": NO_RESULTS_ANSWER, "sources": [], "model": None, "usage": None}
        mock_generate.assert_not_called()

    def test_rerank_and_answer(self, client: TestClient, search_client: MagicMock) -> None:
        search_client.search.return_value = [
            SearchResult(id=f"c{i}", type=ResultType.LECTURE, text=f"chunk {i}", similarity=0.7 + i / 100)
            for i in range(4)
        ]
        answer = {"answer": "Here you go.", "model": "claude-test", "usage": {"input_tokens": 1, "output_tokens": 2}}
        with patch("src.api.routes.query.generate_answer", return_value=answer) as mock_generate:
            response = client.post(
                "/api/query",
                json={
                    "question": "explain it",
                    "cohort_id": "c-1",
                    "top_k": 2,
                    "history": [{"role": "user", "content": "hi"}],
                },
            )

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["answer"] == "Here you go."
        assert [s["id"] for s in body["sources"]] == ["c3", "c2"]
        assert body["sources"][0]["ranking_factors"]["vector_similarity"] == pytest.approx(0.73)
        assert search_client.search.call_args.kwargs["cohort_id"] == "c-1"
        question, top, history = mock_generate.call_args.args
        assert question == "explain it"
        assert len(top) == 2
        assert history == [{"role": "user", "content": "hi"}]

    def test_llm_unavailable_returns_503(self, client: TestClient, search_client: MagicMock) -> None:
        search_client.search.return_value = [
            SearchResult(id="c1", type=ResultType.LECTURE, text="chunk", similarity=0.8)
        ]
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        error = APIStatusError(
            "Overloaded", response=httpx.Response(529, request=request), body=None
        )
        with patch("src.api.routes.query.generate_answer", side_effect=error):
            response = client.post("/api/query", json={"question": "q"})
        assert response.status_code == 503
        assert "LLM unavailable" in response.json()["detail"]


class TestResources:
    def test_add_resource(self, client: TestClient, store: MagicMock) -> None:
        result = ResourceIngestResult(resource_id="res-1", resource_type=ResourceType.GITHUB, num_chunks=3)
        with patch("src.api.routes.resources.ingest_resource", return_value=result) as mock_ingest:
            response = client.post(
                "/api/resources",
                json={"url": "https://github.com/psf/requests", "title": "Requests", "content": "HTTP for humans."},
            )
        assert response.status_code == 200, response.text
        assert response.json() == {"resource_id": "res-1", "resource_type": "github", "num_chunks": 3}
        assert mock_ingest.call_args.args[0] is store

    def test_invalid_url_is_400(self, client: TestClient) -> None:
        response = client.post(
            "/api/resources",
            json={
                "url": "https://example.com/page",
                "title": "Not a repo",
                "content": "text",
                "resource_type": "github",
            },
        )
        assert response.status_code == 400
        assert "Invalid github URL" in response.json()["detail"]

    def test_unknown_resource_type_is_422(self, client: TestClient) -> None:
        response = client.post(
            "/api/resources",
            json={"url": "https://example.com", "title": "x", "content": "y", "resource_type": "podcast"},
        )
        assert response.status_code == 422
