"""
Collection Stage
================

Fetches documents from every enabled source adapter and merges them into
one batch with unique urls.

Version: 0.1.0
"""

from collections.abc import Iterable, Mapping

from services.regulatory_monitoring.models import CollectionResult, RawDocument, SourceStatus
from services.regulatory_monitoring.sources import FetchParams, SourceAdapter
from shared.logging import get_logger


logger = get_logger(__name__)

NO_ADAPTER_ERROR = "no adapter registered"


def deduplicate_by_url(documents: Iterable[RawDocument]) -> list[RawDocument]:
    """
    Keep one document per url, last write wins.

    The surviving document takes the position where its url first
    appeared.
    """
    by_url: dict[str, RawDocument] = {}
    for document in documents:
        by_url[document.url] = document
    return list(by_url.values())


class CollectionStage:
    """Merges documents from N source adapters."""

    async def collect(
        self,
        adapters: Mapping[str, SourceAdapter],
        params: FetchParams,
    ) -> CollectionResult:
        """
        Fetch from each enabled source and deduplicate.

        Sources run in registration order. A failing adapter is recorded
        in ``source_status`` and the others continue.

        Args:
            adapters: Adapters keyed by source id
            params: days_back and enabled sources (None: all registered)

        Returns:
            CollectionResult with unique documents and per-source status
        """
        enabled = set(params.enabled_sources) if params.enabled_sources is not None else None

        documents: list[RawDocument] = []
        source_status: dict[str, SourceStatus] = {}

        for source_id, adapter in adapters.items():
            if enabled is not None and source_id not in enabled:
                continue

            try:
                fetched = await adapter.fetch(params)
            except Exception as e:
                logger.error(
                    "source_collection_failed",
                    source=source_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                source_status[source_id] = SourceStatus(success=False, count=0, error=str(e))
                continue

            documents.extend(fetched)
            source_status[source_id] = SourceStatus(success=True, count=len(fetched))
            logger.info("source_collected", source=source_id, count=len(fetched))

        for source_id in params.enabled_sources or []:
            if source_id not in adapters:
                logger.warning("source_adapter_missing", source=source_id)
                source_status[source_id] = SourceStatus(
                    success=False,
                    count=0,
                    error=NO_ADAPTER_ERROR,
                )

        unique = deduplicate_by_url(documents)

        logger.info(
            "collection_completed",
            total=len(documents),
            unique=len(unique),
            duplicates_removed=len(documents) - len(unique),
        )

        return CollectionResult(documents=unique, source_status=source_status)
