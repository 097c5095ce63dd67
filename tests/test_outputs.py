"""
Tests for Output Generation
"""

import asyncio
import json

import pandas as pd
import pytest

from golden_record.models.entities import SourceId
from golden_record.pipeline.orchestrator import PipelineContext, PipelineOrchestrator
from golden_record.pipeline.outputs import OutputGenerator, generate_outputs


@pytest.fixture
def final_snapshot():
    """Completed run over three sources."""
    context = PipelineContext(
        selected_sources=[SourceId.CRM, SourceId.GA4, SourceId.POS],
        step_delay_seconds=0,
        seed=4,
    )
    orchestrator = PipelineOrchestrator(context)
    asyncio.run(orchestrator.run_to_completion())
    return orchestrator.snapshot()


class TestOutputGenerator:
    """Tests for OutputGenerator."""

    def test_writes_all_formats(self, tmp_path, final_snapshot):
        """Test csv, markdown and json outputs."""
        files = generate_outputs(final_snapshot, output_dir=tmp_path, timestamp_filenames=False)

        assert set(files) == {"csv", "markdown", "json"}
        assert files["csv"] == tmp_path / "golden_records.csv"
        assert all(path.exists() for path in files.values())

    def test_csv_one_row_per_profile(self, tmp_path, final_snapshot):
        """Test the CSV rows match the profiles."""
        files = generate_outputs(final_snapshot, output_dir=tmp_path, formats=["csv"], timestamp_filenames=False)
        frame = pd.read_csv(files["csv"])

        assert len(frame) == len(final_snapshot.profiles)
        assert frame["record_count"].sum() == len(final_snapshot.raw)
        assert set(frame["match_confidence"]) <= {"high", "medium", "low"}

    def test_json_contains_profiles_and_quality(self, tmp_path, final_snapshot):
        """Test the JSON payload."""
        files = generate_outputs(final_snapshot, output_dir=tmp_path, formats=["json"], timestamp_filenames=False)
        payload = json.loads(files["json"].read_text())

        assert payload["stage"] == "complete"
        assert len(payload["profiles"]) == len(final_snapshot.profiles)
        assert payload["quality"]["after_score"] == final_snapshot.quality.after_score

    def test_markdown_report_sections(self, tmp_path, final_snapshot):
        """Test the report headings."""
        files = generate_outputs(final_snapshot, output_dir=tmp_path, formats=["markdown"], timestamp_filenames=False)
        report = files["markdown"].read_text()

        assert report.startswith("# Golden Record Run Report")
        assert "## Data Quality" in report
        assert "### Per-Source Quality" in report
        assert "## Top Profiles by LTV" in report

    def test_timestamped_filenames(self, tmp_path):
        """Test timestamp suffixes."""
        generator = OutputGenerator(output_dir=tmp_path, timestamp_filenames=True)
        path = generator._get_filename("golden_records", "csv")

        assert path.name.startswith("golden_records_")
        assert path.suffix == ".csv"

    def test_creates_output_dir(self, tmp_path):
        """Test nested output directories are created."""
        target = tmp_path / "nested" / "out"
        OutputGenerator(output_dir=target)
        assert target.is_dir()

    def test_report_limits_top_profiles(self, tmp_path, final_snapshot):
        """Test max_items_per_section caps the top profiles table."""
        files = generate_outputs(
            final_snapshot,
            output_dir=tmp_path,
            formats=["markdown"],
            timestamp_filenames=False,
            max_items_per_section=2,
        )
        section = files["markdown"].read_text().split("## Top Profiles by LTV", 1)[1]
        rows = [line for line in section.splitlines() if line.startswith("| ")]

        assert len(final_snapshot.profiles) > 2
        assert len(rows) == 1 + 2
