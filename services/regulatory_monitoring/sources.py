"""
Source Adapters
===============

Interface the collection stage uses to fetch documents from one
regulatory source (EUR-Lex, CNIL, the EC AI Office, ...), plus a
static adapter for fixtures and file-based runs.

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta

from pydantic import BaseModel, Field

from services.regulatory_monitoring.models import RawDocument
from shared.logging import get_logger


logger = get_logger(__name__)


class FetchParams(BaseModel):
    """Parameters handed to every adapter."""

    days_back: int = Field(default=7, ge=1)
    enabled_sources: list[str] | None = None

    @property
    def since(self) -> date:
        """Earliest publication date of interest."""
        return (datetime.now(UTC) - timedelta(days=self.days_back)).date()


class SourceAdapter(ABC):
    """
    Fetches documents from one regulatory source.

    Implementations may raise; the collection stage isolates failures
    per source.
    """

    source_id: str

    @abstractmethod
    async def fetch(self, params: FetchParams) -> list[RawDocument]:
        """Fetch documents published within ``params.days_back`` days."""
        ...


class StaticSourceAdapter(SourceAdapter):
    """
    Serves a fixed list of documents.

    Documents without a publication date are always returned; dated ones
    only when published on or after ``params.since``.
    """

    def __init__(
        self,
        source_id: str,
        documents: Iterable[RawDocument],
        filter_by_date: bool = True,
    ) -> None:
        self.source_id = source_id
        self._documents = list(documents)
        self._filter_by_date = filter_by_date

    async def fetch(self, params: FetchParams) -> list[RawDocument]:
        if not self._filter_by_date:
            return list(self._documents)

        since = params.since
        documents = [
            doc
            for doc in self._documents
            if doc.published_date is None or doc.published_date >= since
        ]
        logger.debug(
            "static_source_fetched",
            source=self.source_id,
            available=len(self._documents),
            returned=len(documents),
        )
        return documents
