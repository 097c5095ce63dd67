"""
Pytest Configuration and Shared Fixtures
"""

import random
from typing import Callable

import pytest

from golden_record.models.entities import (
    CleanedRecord,
    DataClass,
    IngestionType,
    RawRecord,
    SourceId,
)
from golden_record.pipeline.hygiene import apply_hygiene
from golden_record.pipeline.ingest import ingest_sources


@pytest.fixture
def make_raw() -> Callable[..., RawRecord]:
    """Factory for hand-built raw records with CRM lineage."""
    def _make(**fields) -> RawRecord:
        lineage = {
            "source": "Salesforce CRM",
            "source_id": SourceId.CRM,
            "source_category": "Customer Centric",
            "ingestion_type": IngestionType.BATCH,
            "data_class": DataClass.TRANSACTIONAL,
        }
        lineage.update(fields)
        return RawRecord(**lineage)

    return _make


@pytest.fixture
def make_cleaned(make_raw) -> Callable[..., CleanedRecord]:
    """Factory for cleaned records that skip hygiene entirely."""
    def _make(**fields) -> CleanedRecord:
        return CleanedRecord(**make_raw(**fields).model_dump())

    return _make


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source."""
    return random.Random(42)


@pytest.fixture
def retail_raw(rng) -> list[RawRecord]:
    """Raw batch for the retail sources."""
    return ingest_sources(
        [SourceId.CRM, SourceId.GA4, SourceId.POS, SourceId.LOYALTY, SourceId.WEB_APP_EVENTS],
        count=8,
        rng=rng,
    )


@pytest.fixture
def retail_cleaned(retail_raw) -> list[CleanedRecord]:
    """Retail batch after default hygiene."""
    return apply_hygiene(retail_raw)
