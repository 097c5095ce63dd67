"""
Data Models and Quality Scoring

Pydantic models for records, clusters and profiles, plus data quality scoring.
"""

from golden_record.models.entities import (
    RawRecord,
    CleanedRecord,
    IdentityCluster,
    UnifiedProfile,
    SourceId,
    ProcessingStage,
)
from golden_record.models.quality import DataQualityScorer, QualityReport

__all__ = [
    "RawRecord",
    "CleanedRecord",
    "IdentityCluster",
    "UnifiedProfile",
    "SourceId",
    "ProcessingStage",
    "DataQualityScorer",
    "QualityReport",
]
