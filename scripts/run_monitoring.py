#!/usr/bin/env python3
"""
Monitoring Run Script
=====================

Run the regulatory monitoring workflow over documents stored as JSON.

Each documents file becomes one static source. A file holds either a
list of documents or an object ``{"source_id": ..., "documents": [...]}``;
the source id defaults to the file name.

Usage:
    python scripts/run_monitoring.py data/eurlex.json data/cnil.json
    python scripts/run_monitoring.py data/*.json --org org.json --days-back 30
    python scripts/run_monitoring.py data/eurlex.json --min-score 30 --no-date-filter

Version: 0.1.0
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console

from services.regulatory_monitoring import (
    InMemoryInsightStore,
    InMemoryOrganizationDirectory,
    RegulatoryMonitoringWorkflow,
    StaticSourceAdapter,
)
from services.regulatory_monitoring.models import (
    AISystem,
    ComplianceRecord,
    OrganizationContext,
    RawDocument,
    RunRequest,
)
from shared.config import get_settings
from shared.logging import get_logger, setup_logging


logger = get_logger(__name__)


def load_source(path: Path, filter_by_date: bool) -> StaticSourceAdapter:
    """Build a static source from one documents file."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        source_id = data.get("source_id", path.stem)
        items = data.get("documents", [])
    else:
        source_id = path.stem
        items = data

    documents = [
        RawDocument.model_validate({"source_id": source_id, "source": source_id, **item})
        for item in items
    ]
    return StaticSourceAdapter(source_id, documents, filter_by_date=filter_by_date)


def load_organization(path: Path) -> OrganizationContext:
    """Derive an organization context from an inventory file."""
    data = json.loads(path.read_text(encoding="utf-8"))
    return OrganizationContext.from_inventory(
        org_id=data["org_id"],
        ai_systems=[AISystem.model_validate(s) for s in data.get("ai_systems", [])],
        maturity_level=data.get("maturity_level"),
        compliance_records=[
            ComplianceRecord.model_validate(r) for r in data.get("compliance_records", [])
        ],
    )


async def main(args: argparse.Namespace) -> int:
    """Run the workflow and print a JSON summary."""
    settings = get_settings()
    setup_logging(
        log_level=settings.log_level.value,
        json_logs=settings.json_logs or settings.is_production,
        service_name=settings.service_name,
    )

    adapters = [load_source(Path(p), not args.no_date_filter) for p in args.documents]
    logger.info("sources_loaded", sources=[a.source_id for a in adapters])

    directory = InMemoryOrganizationDirectory()
    org_id = None
    if args.org:
        context = load_organization(Path(args.org))
        directory.add(context)
        org_id = context.org_id

    store = InMemoryInsightStore()
    workflow = RegulatoryMonitoringWorkflow(
        adapters=adapters,
        store=store,
        directory=directory,
        settings=settings.monitoring,
    )
    result = await workflow.run(
        RunRequest(
            days_back=args.days_back,
            sources=args.sources,
            min_relevance_score=args.min_score,
            org_id=org_id,
        )
    )

    summary: dict[str, Any] = {
        "metrics": result.metrics.model_dump(mode="json"),
        "insights": [s.model_dump(mode="json") for s in store.summaries],
    }
    Console().print_json(data=summary)

    return 1 if result.metrics.persistence_failures else 0


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Run regulatory monitoring over JSON document files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "documents",
        nargs="+",
        help="JSON files of documents, one source per file",
    )
    parser.add_argument(
        "--org",
        help="JSON file describing the organization inventory",
    )
    parser.add_argument(
        "--days-back",
        type=int,
        default=None,
        help="Look-back window in days (default: settings)",
    )
    parser.add_argument(
        "--sources",
        nargs="*",
        default=None,
        help="Only run these source ids",
    )
    parser.add_argument(
        "--min-score",
        type=float,
        default=None,
        help="Minimum relevance score (default: settings)",
    )
    parser.add_argument(
        "--no-date-filter",
        action="store_true",
        help="Return every document regardless of publication date",
    )

    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    exit_code = asyncio.run(main(args))
    sys.exit(exit_code)
