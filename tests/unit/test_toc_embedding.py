"""
Unit tests for TOC embedding backfill (mocked store and embedder).
"""

from unittest.mock import AsyncMock, Mock

import pytest

from regs_search.toc_embedding import backfill_embeddings

pytestmark = pytest.mark.unit


@pytest.fixture
def entries(make_entry):
    return [
        make_entry(1, "6.2.1", "Scope", 317, embedding=[0.1, 0.2]),
        make_entry(2, "6.2.2", "Classification of zones", 317),
        make_entry(3, "6.2.3", "Protection against electric shock", 320),
    ]


@pytest.fixture
def store(entries):
    store = Mock()
    store.get_toc_entries = AsyncMock(return_value=entries)
    store.update_entry_embedding = AsyncMock()
    store.count_embedded_entries = AsyncMock(return_value=2)
    return store


@pytest.mark.asyncio
async def test_embeds_missing_entries_only(store):
    """Existing embeddings are skipped, failures counted, not fatal"""
    embedder = Mock()
    embedder.embed.side_effect = [[0.5, 0.5], None]

    stats = await backfill_embeddings(store, embedder, document_id=1)

    assert stats == {"total": 3, "embedded": 1, "skipped": 1, "failed": 1}
    embedder.embed.assert_any_call("6.2.2 Classification of zones")
    store.update_entry_embedding.assert_awaited_once_with(2, [0.5, 0.5])


@pytest.mark.asyncio
async def test_force_reembeds_everything(store):
    embedder = Mock()
    embedder.embed.return_value = [1.0, 0.0]

    stats = await backfill_embeddings(store, embedder, document_id=1, force=True)

    assert stats["embedded"] == 3
    assert stats["skipped"] == 0
    assert store.update_entry_embedding.await_count == 3
