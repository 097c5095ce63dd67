"""
Stage Narration

Plain-text commentary for each pipeline stage, quoting the data of the
current run.
"""

from typing import Optional, Sequence

from golden_record.models.entities import (
    CleanedRecord,
    IdentityCluster,
    IngestionType,
    ProcessingStage,
    RawRecord,
    SourceId,
    UnifiedProfile,
)
from golden_record.pipeline.ingest import SOURCE_CATALOG, parse_source_id


def source_selection_message(source_ids: Sequence[str | SourceId]) -> str:
    """Summarize a source selection by ingestion mode and category."""
    if not source_ids:
        return "No data sources selected. Pick one or more sources to begin."

    selected = [
        SOURCE_CATALOG[sid]
        for sid in (parse_source_id(s) for s in source_ids)
        if sid is not None
    ]
    realtime = [s.name for s in selected if s.ingestion_type == IngestionType.REALTIME]
    batch = [s.name for s in selected if s.ingestion_type == IngestionType.BATCH]
    categories = list(dict.fromkeys(s.category for s in selected))

    noun = "category" if len(categories) == 1 else "categories"
    lines = [f"Selected {len(source_ids)} source(s) across {len(categories)} {noun}."]
    if realtime:
        lines.append(f"Realtime ingestion: {', '.join(realtime)}")
    if batch:
        lines.append(f"Batch ingestion: {', '.join(batch)}")
    if len(source_ids) >= 3:
        lines.append(
            f"With {len(source_ids)} sources, identity resolution has multiple join keys "
            "to stitch cross-system records into unified profiles."
        )
    return "\n".join(lines)


def _hygiene_detail(raw: Sequence[RawRecord], cleaned: Sequence[CleanedRecord]) -> str:
    if not raw or not cleaned:
        return ""
    first = cleaned[0]
    if first.original_phone and first.phone:
        return f' For example, "{first.original_phone}" was standardized to "{first.phone}".'
    if first.original_email and first.email:
        return f' For example, "{first.original_email}" was cleaned to "{first.email}".'
    return ""


def stage_message(
    stage: ProcessingStage,
    raw: Sequence[RawRecord] = (),
    cleaned: Sequence[CleanedRecord] = (),
    clusters: Sequence[IdentityCluster] = (),
    profiles: Sequence[UnifiedProfile] = (),
    source_count: int = 0,
) -> Optional[str]:
    """Narration for ``stage``, or None while idle."""
    if stage == ProcessingStage.IDLE:
        return None

    if stage == ProcessingStage.INGESTING:
        return (
            f"Ingesting data: {len(raw)} raw records arriving via realtime and batch pipelines, "
            "with inconsistent phone formats, mixed-case names and scattered IDs."
        )

    if stage == ProcessingStage.HYGIENE:
        return (
            "Data hygiene: phones normalized to (XXX) XXX-XXXX, emails lowercased and trimmed, "
            "names proper-cased." + _hygiene_detail(raw, cleaned)
        )

    if stage == ProcessingStage.IDENTITY:
        message = "Identity resolution: matching records across sources on email and phone keys."
        if clusters:
            message += f" {len(clusters)} identity clusters found across {source_count} sources."
        return message

    if stage == ProcessingStage.PROFILING:
        message = "Building unified profiles: each identity cluster becomes one Golden Record."
        if profiles:
            first = profiles[0]
            message += (
                f" For example, {first.display_name} was merged from {first.record_count} "
                f"source records ({', '.join(first.sources)})."
            )
        return message

    if stage == ProcessingStage.MEASUREMENT:
        message = "Measurement: computing LTV projections and quality scores on the unified data."
        if profiles:
            average = round(sum(p.ltv for p in profiles) / len(profiles))
            message += f" Average LTV across {len(profiles)} profiles: ${average:,}."
        return message

    if stage == ProcessingStage.ACTIVATING:
        return f"Activating: {len(profiles)} Golden Records are ready for downstream audiences and journeys."

    return f"Simulation complete: {len(profiles)} unified profiles (Golden Records) created."
