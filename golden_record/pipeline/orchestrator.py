"""
Pipeline Orchestration

Sequences ingestion, hygiene, identity resolution, profiling and measurement
across named stages, emitting an immutable snapshot at every stage.
"""

import asyncio
import logging
import random
from typing import AsyncIterator, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

from golden_record.models.entities import (
    CleanedRecord,
    IdentityCluster,
    IdentityMode,
    ProcessingStage,
    RawRecord,
    SimulationMode,
    SourceId,
    UnifiedProfile,
)
from golden_record.models.quality import DataQualityScorer, QualityReport
from golden_record.pipeline.hygiene import HygieneRules, apply_hygiene
from golden_record.pipeline.identity import resolve_identities
from golden_record.pipeline.ingest import EdgeCaseFlags, ingest_sources
from golden_record.pipeline.narration import stage_message
from golden_record.pipeline.profiles import build_profiles

logger = logging.getLogger(__name__)


STAGE_PROGRESS: dict[ProcessingStage, int] = {
    ProcessingStage.IDLE: 0,
    ProcessingStage.INGESTING: 0,
    ProcessingStage.HYGIENE: 25,
    ProcessingStage.IDENTITY: 50,
    ProcessingStage.PROFILING: 65,
    ProcessingStage.MEASUREMENT: 80,
    ProcessingStage.ACTIVATING: 90,
    ProcessingStage.COMPLETE: 100,
}


class PipelineContext(BaseModel):
    """Settings for a pipeline run.

    Hygiene rules, identity mode and simulation mode are read when the stage
    that needs them executes, so changes made while a run is suspended take
    effect for the rest of that run.
    """
    model_config = ConfigDict(validate_assignment=True)

    selected_sources: list[str] = Field(default_factory=list, description="Catalog keys; unknown keys ingest nothing")
    hygiene_rules: HygieneRules = Field(default_factory=HygieneRules)
    identity_mode: IdentityMode = IdentityMode.DETERMINISTIC
    edge_cases: EdgeCaseFlags = Field(default_factory=EdgeCaseFlags)
    simulation_mode: SimulationMode = SimulationMode.AUTO
    records_per_source: int = Field(default=8, ge=0)
    step_delay_seconds: float = Field(default=1.5, ge=0)
    seed: Optional[int] = None


class PipelineSnapshot(BaseModel):
    """Immutable view of pipeline state at one point of a run."""
    model_config = ConfigDict(frozen=True)

    run_id: int = 0
    stage: ProcessingStage = ProcessingStage.IDLE
    progress: int = Field(default=0, ge=0, le=100)
    step_pending: bool = False
    raw: list[RawRecord] = Field(default_factory=list)
    cleaned: list[CleanedRecord] = Field(default_factory=list)
    clusters: list[IdentityCluster] = Field(default_factory=list)
    profiles: list[UnifiedProfile] = Field(default_factory=list)
    quality: Optional[QualityReport] = None
    message: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.stage == ProcessingStage.COMPLETE


class PipelineOrchestrator:
    """Drives one pipeline run at a time over a PipelineContext.

    Each stage transition is a suspension point: auto mode sleeps for the
    configured delay, step mode waits until ``advance()`` is called. Starting
    a new run supersedes the previous one, which stops at its next
    suspension point without emitting further snapshots.
    """

    def __init__(self, context: PipelineContext):
        self.context = context
        self._scorer = DataQualityScorer()
        self._state = PipelineSnapshot()
        self._run_id = 0
        self._advance_event: Optional[asyncio.Event] = None

    def snapshot(self) -> PipelineSnapshot:
        """Current pipeline state."""
        return self._state

    def advance(self) -> bool:
        """Release a run waiting in step mode.

        Returns:
            True if a step was pending and has been released
        """
        if not self._state.step_pending or self._advance_event is None:
            return False
        self._advance_event.set()
        return True

    def _is_current(self, run_id: int) -> bool:
        return run_id == self._run_id

    def _enter(self, run_id: int, stage: ProcessingStage, **data) -> PipelineSnapshot:
        """Move to ``stage`` with any new stage data and refresh narration and quality."""
        state = self._state.model_copy(update=data)
        quality = None
        if state.raw:
            quality = self._scorer.score(state.raw, state.cleaned, state.profiles, stage)

        self._state = state.model_copy(update={
            "stage": stage,
            "progress": STAGE_PROGRESS[stage],
            "step_pending": (
                self.context.simulation_mode == SimulationMode.STEP
                and stage != ProcessingStage.COMPLETE
            ),
            "quality": quality,
            "message": stage_message(
                stage,
                raw=state.raw,
                cleaned=state.cleaned,
                clusters=state.clusters,
                profiles=state.profiles,
                source_count=len(self.context.selected_sources),
            ),
        })
        logger.info(f"Run {run_id}: {stage.value} ({self._state.progress}%)")
        return self._state

    async def _suspend(self, run_id: int, event: asyncio.Event, step: bool) -> bool:
        """Wait at a stage boundary of run ``run_id``.

        ``event`` and ``step`` belong to that run, so a superseded run never
        consumes an advance meant for its successor.

        Returns:
            False if the run was superseded before or while waiting
        """
        if not self._is_current(run_id):
            logger.debug(f"Run {run_id} superseded by run {self._run_id}")
            return False

        if step:
            await event.wait()
            event.clear()
        else:
            await asyncio.sleep(self.context.step_delay_seconds)

        if not self._is_current(run_id):
            logger.debug(f"Run {run_id} superseded by run {self._run_id}")
            return False

        if step:
            self._state = self._state.model_copy(update={"step_pending": False})
        return True

    async def run(self) -> AsyncIterator[PipelineSnapshot]:
        """Execute a full run, yielding a snapshot as each stage is entered.

        With no selected sources nothing is yielded and the pipeline stays
        idle.
        """
        ctx = self.context
        if not ctx.selected_sources:
            logger.warning("No sources selected, pipeline stays idle")
            return

        self._run_id += 1
        run_id = self._run_id

        event = asyncio.Event()
        # Wake a waiter of the superseded run so it can observe the new run id
        if self._advance_event is not None:
            self._advance_event.set()
        self._advance_event = event

        rng = random.Random(ctx.seed)
        self._state = PipelineSnapshot(run_id=run_id)

        raw = ingest_sources(
            ctx.selected_sources,
            count=ctx.records_per_source,
            edge_cases=ctx.edge_cases,
            rng=rng,
        )
        snapshot = self._enter(run_id, ProcessingStage.INGESTING, raw=raw)
        yield snapshot
        if not await self._suspend(run_id, event, snapshot.step_pending):
            return

        cleaned = apply_hygiene(raw, ctx.hygiene_rules)
        snapshot = self._enter(run_id, ProcessingStage.HYGIENE, cleaned=cleaned)
        yield snapshot
        if not await self._suspend(run_id, event, snapshot.step_pending):
            return

        clusters = resolve_identities(cleaned, ctx.identity_mode)
        # Snapshots hold their own cluster copies, detached from later mutation
        snapshot = self._enter(
            run_id,
            ProcessingStage.IDENTITY,
            clusters=[c.model_copy(update={"records": list(c.records)}) for c in clusters],
        )
        yield snapshot
        if not await self._suspend(run_id, event, snapshot.step_pending):
            return

        profiles = build_profiles(clusters, raw, rng=rng)
        snapshot = self._enter(run_id, ProcessingStage.PROFILING, profiles=profiles)
        yield snapshot
        if not await self._suspend(run_id, event, snapshot.step_pending):
            return

        for stage in (ProcessingStage.MEASUREMENT, ProcessingStage.ACTIVATING):
            snapshot = self._enter(run_id, stage)
            yield snapshot
            if not await self._suspend(run_id, event, snapshot.step_pending):
                return

        yield self._enter(run_id, ProcessingStage.COMPLETE)
        logger.info(f"Run {run_id} complete: {len(raw)} records -> {len(profiles)} profiles")

    async def run_to_completion(self) -> list[UnifiedProfile]:
        """Consume a whole run and return its profiles.

        In step mode every stage is advanced as soon as it is reached.
        """
        profiles: list[UnifiedProfile] = []
        async for snapshot in self.run():
            profiles = snapshot.profiles
            if snapshot.step_pending:
                self.advance()
        return profiles


async def run_pipeline(
    source_ids: Iterable[str | SourceId],
    rules: Optional[HygieneRules] = None,
    mode: IdentityMode | str = IdentityMode.DETERMINISTIC,
    edge_cases: Optional[EdgeCaseFlags] = None,
    records_per_source: int = 8,
    step_delay_seconds: float = 0.0,
    seed: Optional[int] = None,
) -> AsyncIterator[PipelineSnapshot]:
    """Run the pipeline in auto mode, yielding a snapshot per stage.

    The last snapshot carries the unified profiles.
    """
    context = PipelineContext(
        selected_sources=list(source_ids),
        hygiene_rules=rules or HygieneRules(),
        identity_mode=mode,
        edge_cases=edge_cases or EdgeCaseFlags(),
        records_per_source=records_per_source,
        step_delay_seconds=step_delay_seconds,
        seed=seed,
    )
    async for snapshot in PipelineOrchestrator(context).run():
        yield snapshot
