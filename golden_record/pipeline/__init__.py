"""
Record-Linkage Pipeline

Components for generating, cleaning, resolving, profiling and outputting
customer records.
"""

from golden_record.pipeline.ingest import generate, ingest_sources, RecordGenerator
from golden_record.pipeline.hygiene import apply_hygiene, HygieneRules
from golden_record.pipeline.identity import resolve_identities, IdentityResolver
from golden_record.pipeline.profiles import build_profiles, ProfileBuilder
from golden_record.pipeline.orchestrator import run_pipeline, PipelineOrchestrator, PipelineContext
from golden_record.pipeline.outputs import generate_outputs, OutputGenerator

__all__ = [
    "generate",
    "ingest_sources",
    "RecordGenerator",
    "apply_hygiene",
    "HygieneRules",
    "resolve_identities",
    "IdentityResolver",
    "build_profiles",
    "ProfileBuilder",
    "run_pipeline",
    "PipelineOrchestrator",
    "PipelineContext",
    "generate_outputs",
    "OutputGenerator",
]
