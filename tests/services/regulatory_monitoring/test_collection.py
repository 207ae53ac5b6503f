"""
Tests for the Collection Stage
==============================

Tests for:
- Url deduplication
- Per-source failure isolation
- Enabled source filtering
- Static source adapter date window

Version: 0.1.0
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from services.regulatory_monitoring.pipeline.collection import (
    NO_ADAPTER_ERROR,
    CollectionStage,
    deduplicate_by_url,
)
from services.regulatory_monitoring.sources import FetchParams, StaticSourceAdapter
from tests.factories import make_document


@pytest.fixture
def stage() -> CollectionStage:
    return CollectionStage()


def failing_adapter(source_id: str) -> AsyncMock:
    adapter = AsyncMock()
    adapter.source_id = source_id
    adapter.fetch.side_effect = ConnectionError("source unreachable")
    return adapter


# ============================================================================
# Deduplication Tests
# ============================================================================


class TestDeduplication:
    """Tests for deduplicate_by_url."""

    def test_later_document_wins(self) -> None:
        """Test two documents with one url keep the later title."""
        first = make_document(url="https://x/1", title="Draft")
        second = make_document(url="https://x/1", title="Final")

        assert deduplicate_by_url([first, second]) == [second]

    def test_first_position_kept(self) -> None:
        """Test the surviving document keeps the url's first position."""
        a1 = make_document(url="https://x/a", title="A1")
        b = make_document(url="https://x/b", title="B")
        a2 = make_document(url="https://x/a", title="A2")

        result = deduplicate_by_url([a1, b, a2])

        assert [d.title for d in result] == ["A2", "B"]

    def test_idempotent(self) -> None:
        """Test deduplicating twice changes nothing."""
        documents = [
            make_document(url="https://x/1"),
            make_document(url="https://x/2"),
            make_document(url="https://x/1", title="again"),
        ]

        once = deduplicate_by_url(documents)

        assert deduplicate_by_url(once) == once


# ============================================================================
# Collection Stage Tests
# ============================================================================


class TestCollectionStage:
    """Tests for CollectionStage.collect."""

    @pytest.mark.asyncio
    async def test_duplicate_urls_across_sources(self, stage: CollectionStage) -> None:
        """Test the same url from two sources is returned once."""
        adapters = {
            "eurlex": StaticSourceAdapter("eurlex", [make_document(url="https://x/1", title="Old")]),
            "cnil": StaticSourceAdapter(
                "cnil", [make_document(url="https://x/1", title="New", source_id="cnil")]
            ),
        }

        result = await stage.collect(adapters, FetchParams())

        assert len(result.documents) == 1
        assert result.documents[0].title == "New"
        assert result.source_status["eurlex"].count == 1
        assert result.source_status["cnil"].count == 1

    @pytest.mark.asyncio
    async def test_failing_source_isolated(self, stage: CollectionStage) -> None:
        """Test one failing adapter does not stop the others."""
        adapters = {
            "broken": failing_adapter("broken"),
            "eurlex": StaticSourceAdapter("eurlex", [make_document()]),
        }

        result = await stage.collect(adapters, FetchParams())

        assert len(result.documents) == 1
        assert result.source_status["broken"].success is False
        assert result.source_status["broken"].error == "source unreachable"
        assert result.source_status["eurlex"].success is True

    @pytest.mark.asyncio
    async def test_enabled_sources_filter(self, stage: CollectionStage) -> None:
        """Test only enabled sources are fetched."""
        skipped = AsyncMock()
        adapters = {
            "eurlex": StaticSourceAdapter("eurlex", [make_document()]),
            "cnil": skipped,
        }

        result = await stage.collect(adapters, FetchParams(enabled_sources=["eurlex"]))

        assert list(result.source_status) == ["eurlex"]
        skipped.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_enabled_source_without_adapter(self, stage: CollectionStage) -> None:
        """Test an enabled but unregistered source is reported as failed."""
        result = await stage.collect({}, FetchParams(enabled_sources=["ec_ai_office"]))

        assert result.documents == []
        assert result.source_status["ec_ai_office"].success is False
        assert result.source_status["ec_ai_office"].error == NO_ADAPTER_ERROR

    @pytest.mark.asyncio
    async def test_no_adapters(self, stage: CollectionStage) -> None:
        """Test collecting from nothing yields an empty result."""
        result = await stage.collect({}, FetchParams())

        assert result.documents == []
        assert result.source_status == {}


# ============================================================================
# Static Source Tests
# ============================================================================


class TestStaticSourceAdapter:
    """Tests for StaticSourceAdapter."""

    @pytest.mark.asyncio
    async def test_date_window(self) -> None:
        """Test dated documents outside the window are dropped."""
        today = datetime.now(UTC).date()
        recent = make_document(url="https://x/recent", published_date=today - timedelta(days=2))
        old = make_document(url="https://x/old", published_date=today - timedelta(days=30))
        undated = make_document(url="https://x/undated")
        adapter = StaticSourceAdapter("eurlex", [recent, old, undated])

        documents = await adapter.fetch(FetchParams(days_back=7))

        assert [d.url for d in documents] == ["https://x/recent", "https://x/undated"]

    @pytest.mark.asyncio
    async def test_date_filter_disabled(self) -> None:
        """Test every document is served when filtering is off."""
        old = make_document(published_date=datetime(2020, 1, 1, tzinfo=UTC).date())
        adapter = StaticSourceAdapter("eurlex", [old], filter_by_date=False)

        assert await adapter.fetch(FetchParams()) == [old]
