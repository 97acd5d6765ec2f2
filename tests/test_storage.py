"""Tests for the Supabase knowledge store and embedding helpers (mocked clients)."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from src.ingestion.embeddings import embed_items, embed_texts
from src.ingestion.models import Chunk, ChunkMetadata, ResourceChunk
from src.ingestion.storage import CHUNK_INSERT_BATCH_SIZE, KnowledgeStore, LectureStatus


def _chunk(index: int) -> Chunk:
    return Chunk(
        text=f"chunk {index}",
        start_time="00:00:01.000",
        end_time="00:00:05.000",
        token_count=3,
        metadata=ChunkMetadata(chunk_index=index, has_overlap=index > 0),
    )


def _inserted_rows(client: MagicMock) -> list[list[dict]]:
    return [c.args[0] for c in client.table.return_value.insert.call_args_list]


class TestKnowledgeStore:
    def test_create_lecture(self) -> None:
        client = MagicMock()
        client.table.return_value.insert.return_value.execute.return_value.data = [{"id": 42}]
        store = KnowledgeStore(client=client)

        assert store.create_lecture("Week 1", "c-1", "week1.vtt", 123) == "42"
        row = client.table.return_value.insert.call_args.args[0]
        assert row["status"] == LectureStatus.PENDING
        assert row["processing_progress"] == 0
        client.table.assert_called_with("lectures")

    def test_get_lecture_status_missing(self) -> None:
        client = MagicMock()
        client.table.return_value.select.return_value.eq.return_value.execute.return_value.data = []
        assert KnowledgeStore(client=client).get_lecture_status("nope") is None

    def test_mark_failed(self) -> None:
        client = MagicMock()
        KnowledgeStore(client=client).mark_failed("lec-1", "boom")
        update = client.table.return_value.update.call_args.args[0]
        assert update["status"] == "failed"
        assert update["error_message"] == "boom"
        client.table.return_value.update.return_value.eq.assert_called_with("id", "lec-1")

    def test_lecture_chunks_inserted_in_batches(self) -> None:
        client = MagicMock()
        store = KnowledgeStore(client=client)
        pairs = [(_chunk(i), [0.1]) for i in range(CHUNK_INSERT_BATCH_SIZE + 5)]

        written = store.store_lecture_chunks("lec-1", pairs, {"lecture_title": "T"}, "c-1")

        assert written == CHUNK_INSERT_BATCH_SIZE + 5
        batches = _inserted_rows(client)
        assert [len(b) for b in batches] == [CHUNK_INSERT_BATCH_SIZE, 5]
        row = batches[0][1]
        assert row["type"] == "lecture"
        assert row["lecture_id"] == "lec-1"
        assert row["cohort_id"] == "c-1"
        assert row["metadata"] == {
            "lecture_title": "T",
            "chunk_index": 1,
            "has_overlap": True,
            "timestamp": "00:00:01.000",
        }

    def test_resource_chunks(self) -> None:
        client = MagicMock()
        pairs = [(ResourceChunk(text="readme", chunk_index=0, token_count=2), [0.3])]
        assert KnowledgeStore(client=client).store_resource_chunks("res-1", pairs, {"type": "github"}) == 1
        row = _inserted_rows(client)[0][0]
        assert row["type"] == "resource"
        assert row["resource_id"] == "res-1"
        assert row["metadata"] == {"type": "github", "chunk_index": 0}

    def test_search_knowledge_rpc(self) -> None:
        client = MagicMock()
        client.rpc.return_value.execute.return_value.data = [{"id": "c1"}]
        rows = KnowledgeStore(client=client).search_knowledge([0.1], 0.7, 20, "c-1", "lecture")
        assert rows == [{"id": "c1"}]
        client.rpc.assert_called_once_with(
            "search_knowledge",
            {
                "query_embedding": [0.1],
                "match_threshold": 0.7,
                "match_count": 20,
                "filter_cohort_id": "c-1",
                "filter_type": "lecture",
            },
        )

    def test_client_created_lazily_and_reset(self) -> None:
        with patch("src.ingestion.storage.create_client") as mock_create:
            store = KnowledgeStore()
            mock_create.assert_not_called()
            assert store.client is store.client
            assert mock_create.call_count == 1
            store.reset()
            store.client  # noqa: B018
            assert mock_create.call_count == 2


class TestEmbeddings:
    def _client(self) -> MagicMock:
        client = MagicMock()
        client.embeddings.create.side_effect = lambda input, model, dimensions: MagicMock(
            data=[MagicMock(embedding=[float(len(text))]) for text in input]
        )
        return client

    def test_embed_texts_empty(self) -> None:
        client = MagicMock()
        assert embed_texts([], client=client) == []
        client.embeddings.create.assert_not_called()

    def test_embed_items_batches_and_progress(self) -> None:
        client = self._client()
        progress: list[tuple[int, int]] = []
        items = ["a", "bb", "ccc", "dddd", "eeeee"]

        pairs = embed_items(items, lambda s: s, batch_size=2, on_progress=lambda d, t: progress.append((d, t)), client=client)

        assert pairs == [(s, [float(len(s))]) for s in items]
        assert client.embeddings.create.call_count == 3
        assert progress == [(2, 5), (4, 5), (5, 5)]

    def test_embed_items_rejects_bad_batch_size(self) -> None:
        with pytest.raises(ValueError, match="batch_size"):
            embed_items(["a"], lambda s: s, batch_size=0, client=MagicMock())
