"""
Tests for Pipeline Orchestration
"""

import asyncio

import pytest
from pydantic import ValidationError

from golden_record.models.entities import IdentityMode, ProcessingStage, SimulationMode, SourceId
from golden_record.pipeline.hygiene import HygieneRules
from golden_record.pipeline.ingest import EdgeCaseFlags
from golden_record.pipeline.narration import source_selection_message, stage_message
from golden_record.pipeline.orchestrator import (
    STAGE_PROGRESS,
    PipelineContext,
    PipelineOrchestrator,
    run_pipeline,
)

STAGES = [
    ProcessingStage.INGESTING,
    ProcessingStage.HYGIENE,
    ProcessingStage.IDENTITY,
    ProcessingStage.PROFILING,
    ProcessingStage.MEASUREMENT,
    ProcessingStage.ACTIVATING,
    ProcessingStage.COMPLETE,
]


def _context(**overrides) -> PipelineContext:
    settings = {
        "selected_sources": [SourceId.CRM, SourceId.GA4, SourceId.POS],
        "step_delay_seconds": 0,
        "seed": 1,
    }
    settings.update(overrides)
    return PipelineContext(**settings)


async def _collect(orchestrator: PipelineOrchestrator) -> list:
    return [snapshot async for snapshot in orchestrator.run()]


class TestAutoMode:
    """Tests for timer-driven runs."""

    def test_stages_in_order_with_progress(self):
        """Test the linear stage sequence and progress values."""
        snapshots = asyncio.run(_collect(PipelineOrchestrator(_context())))

        assert [s.stage for s in snapshots] == STAGES
        assert [s.progress for s in snapshots] == [0, 25, 50, 65, 80, 90, 100]
        assert all(STAGE_PROGRESS[s.stage] == s.progress for s in snapshots)
        assert not any(s.step_pending for s in snapshots)

    def test_stage_data_accumulates(self):
        """Test each stage carries its own results forward."""
        snapshots = asyncio.run(_collect(PipelineOrchestrator(_context())))
        by_stage = {s.stage: s for s in snapshots}

        assert by_stage[ProcessingStage.INGESTING].raw
        assert by_stage[ProcessingStage.INGESTING].cleaned == []
        assert len(by_stage[ProcessingStage.HYGIENE].cleaned) == len(by_stage[ProcessingStage.HYGIENE].raw)
        assert by_stage[ProcessingStage.IDENTITY].clusters
        assert by_stage[ProcessingStage.IDENTITY].profiles == []
        final = by_stage[ProcessingStage.COMPLETE]
        assert len(final.profiles) == len(final.clusters)
        assert final.is_complete

    def test_snapshots_are_immutable(self):
        """Test that snapshots reject attribute assignment."""
        snapshot = asyncio.run(_collect(PipelineOrchestrator(_context())))[-1]
        with pytest.raises(ValidationError):
            snapshot.stage = ProcessingStage.IDLE

    def test_quality_and_narration_attached(self):
        """Test every snapshot carries a message and quality report."""
        snapshots = asyncio.run(_collect(PipelineOrchestrator(_context())))

        assert all(s.message for s in snapshots)
        assert all(s.quality is not None for s in snapshots)
        assert snapshots[0].quality.after_score == snapshots[0].quality.before_score
        assert snapshots[-1].quality.after_score > snapshots[-1].quality.before_score

    def test_no_sources_stays_idle(self):
        """Test that an empty selection yields nothing."""
        orchestrator = PipelineOrchestrator(_context(selected_sources=[]))
        snapshots = asyncio.run(_collect(orchestrator))

        assert snapshots == []
        assert orchestrator.snapshot().stage == ProcessingStage.IDLE

    def test_run_to_completion_returns_profiles(self):
        """Test the convenience consumer."""
        orchestrator = PipelineOrchestrator(_context())
        profiles = asyncio.run(orchestrator.run_to_completion())

        assert profiles
        assert profiles == orchestrator.snapshot().profiles

    def test_rerun_resets_state(self):
        """Test that a new run starts from empty state with a new run id."""
        orchestrator = PipelineOrchestrator(_context())
        first = asyncio.run(_collect(orchestrator))
        second = asyncio.run(_collect(orchestrator))

        assert first[-1].run_id == 1
        assert second[0].run_id == 2
        assert second[0].cleaned == [] and second[0].profiles == []

    def test_rules_read_when_hygiene_runs(self):
        """Test that toggling a rule during ingestion affects the run."""
        context = _context(selected_sources=[SourceId.CRM])
        orchestrator = PipelineOrchestrator(context)

        async def scenario():
            snapshots = []
            async for snapshot in orchestrator.run():
                if snapshot.stage == ProcessingStage.INGESTING:
                    context.hygiene_rules = HygieneRules(normalize_phone=False)
                snapshots.append(snapshot)
            return snapshots

        snapshots = asyncio.run(scenario())
        hygiene = next(s for s in snapshots if s.stage == ProcessingStage.HYGIENE)

        assert [r.phone for r in hygiene.cleaned] == [r.phone for r in hygiene.raw]


class TestStepMode:
    """Tests for externally gated runs."""

    def test_waits_for_advance(self):
        """Test that a step-mode run does not progress on its own."""
        orchestrator = PipelineOrchestrator(_context(simulation_mode=SimulationMode.STEP))

        async def scenario():
            run = orchestrator.run()
            first = await run.__anext__()
            assert first.step_pending

            pending = asyncio.ensure_future(run.__anext__())
            await asyncio.sleep(0.05)
            assert not pending.done()

            assert orchestrator.advance()
            second = await asyncio.wait_for(pending, timeout=1)
            await run.aclose()
            return first, second

        first, second = asyncio.run(scenario())

        assert first.stage == ProcessingStage.INGESTING
        assert second.stage == ProcessingStage.HYGIENE

    def test_advance_without_pending_step_is_ignored(self):
        """Test that advancing an idle pipeline does nothing."""
        assert PipelineOrchestrator(_context(simulation_mode=SimulationMode.STEP)).advance() is False

    def test_run_to_completion_advances_itself(self):
        """Test the consumer drives a step-mode run to the end."""
        orchestrator = PipelineOrchestrator(_context(simulation_mode=SimulationMode.STEP))
        profiles = asyncio.run(orchestrator.run_to_completion())

        assert profiles
        assert orchestrator.snapshot().stage == ProcessingStage.COMPLETE
        assert orchestrator.snapshot().step_pending is False

    def test_new_run_supersedes_waiting_run(self):
        """Test a waiting run stops once a new run starts."""
        orchestrator = PipelineOrchestrator(_context(simulation_mode=SimulationMode.STEP))

        async def scenario():
            old = orchestrator.run()
            await old.__anext__()
            waiting = asyncio.ensure_future(old.__anext__())
            await asyncio.sleep(0)

            new = orchestrator.run()
            fresh = await new.__anext__()

            with pytest.raises(StopAsyncIteration):
                await asyncio.wait_for(waiting, timeout=1)
            await new.aclose()
            return fresh

        fresh = asyncio.run(scenario())

        assert fresh.run_id == 2
        assert orchestrator.snapshot().run_id == 2
        assert orchestrator.snapshot().stage == ProcessingStage.INGESTING

    def test_superseded_run_does_not_take_new_runs_advance(self):
        """Test resuming a stale consumer leaves the new run's advance intact."""
        orchestrator = PipelineOrchestrator(_context(simulation_mode=SimulationMode.STEP))

        async def scenario():
            old = orchestrator.run()
            await old.__anext__()

            new = orchestrator.run()
            await new.__anext__()
            assert orchestrator.advance()

            with pytest.raises(StopAsyncIteration):
                await old.__anext__()

            second = await asyncio.wait_for(new.__anext__(), timeout=1)
            await new.aclose()
            return second

        second = asyncio.run(scenario())

        assert second.run_id == 2
        assert second.stage == ProcessingStage.HYGIENE

    def test_snapshot_clusters_detached_from_pipeline(self):
        """Test that mutating an emitted cluster does not change later stages."""
        orchestrator = PipelineOrchestrator(_context())

        async def scenario():
            snapshots = []
            async for snapshot in orchestrator.run():
                if snapshot.stage == ProcessingStage.IDENTITY:
                    snapshot.clusters[0].records.append(snapshot.cleaned[0])
                snapshots.append(snapshot)
            return snapshots

        snapshots = asyncio.run(scenario())
        final = snapshots[-1]

        assert sum(p.record_count for p in final.profiles) == len(final.raw)


class TestRunPipeline:
    """Tests for the convenience generator."""

    def test_terminates_with_profiles(self):
        """Test the stream ends at complete with profiles."""
        async def scenario():
            return [
                s async for s in run_pipeline(
                    ["crm", "ga4"],
                    rules=HygieneRules(),
                    mode=IdentityMode.PROBABILISTIC,
                    edge_cases=EdgeCaseFlags(duplicate_crm=True),
                    seed=3,
                )
            ]

        snapshots = asyncio.run(scenario())

        assert snapshots[-1].stage == ProcessingStage.COMPLETE
        assert snapshots[-1].profiles
        assert sum(p.record_count for p in snapshots[-1].profiles) == len(snapshots[-1].raw)

    def test_unknown_sources_ingest_nothing(self):
        """Test unknown catalog keys are tolerated."""
        async def scenario():
            return [s async for s in run_pipeline(["fax"], seed=1)]

        snapshots = asyncio.run(scenario())

        assert snapshots[0].raw == []
        assert snapshots[-1].profiles == []


class TestNarration:
    """Tests for stage narration."""

    def test_idle_has_no_message(self):
        """Test idle narration is empty."""
        assert stage_message(ProcessingStage.IDLE) is None

    def test_measurement_quotes_average_ltv(self):
        """Test the measurement message quotes real numbers."""
        orchestrator = PipelineOrchestrator(_context())
        snapshots = asyncio.run(_collect(orchestrator))
        measurement = next(s for s in snapshots if s.stage == ProcessingStage.MEASUREMENT)

        average = round(sum(p.ltv for p in measurement.profiles) / len(measurement.profiles))
        assert f"${average:,}" in measurement.message

    def test_source_selection_summary(self):
        """Test realtime and batch groupings."""
        message = source_selection_message(["crm", "ga4", "pos"])

        assert "3 source(s)" in message
        assert "Realtime ingestion: GA4" in message
        assert "Batch ingestion: Salesforce CRM, Shopify POS" in message

    def test_empty_selection_summary(self):
        """Test the prompt for an empty selection."""
        assert "No data sources selected" in source_selection_message([])
