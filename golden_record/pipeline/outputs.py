"""
Output Generation

Writes golden records and a run report as CSV, Markdown and JSON.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from golden_record.models.entities import UnifiedProfile
from golden_record.models.quality import QualityReport
from golden_record.pipeline.orchestrator import PipelineSnapshot

logger = logging.getLogger(__name__)


class OutputGenerator:
    """Generates output files from a finished pipeline snapshot."""

    def __init__(
        self,
        output_dir: str | Path = "./outputs",
        formats: Optional[list[str]] = None,
        timestamp_filenames: bool = True,
        max_items_per_section: int = 20,
    ):
        """Initialize output generator.

        Args:
            output_dir: Directory for output files
            formats: List of formats to generate (csv, markdown, json)
            timestamp_filenames: Whether to include timestamp in filenames
            max_items_per_section: Maximum profiles listed in the report
        """
        self.output_dir = Path(output_dir)
        self.formats = formats or ["csv", "markdown", "json"]
        self.timestamp_filenames = timestamp_filenames
        self.max_items_per_section = max_items_per_section

        self.output_dir.mkdir(parents=True, exist_ok=True)

    def _get_filename(self, base_name: str, extension: str) -> Path:
        """Generate output filename."""
        if self.timestamp_filenames:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filename = f"{base_name}_{timestamp}.{extension}"
        else:
            filename = f"{base_name}.{extension}"
        return self.output_dir / filename

    def _profiles_to_frame(self, profiles: list[UnifiedProfile]) -> pd.DataFrame:
        """Flatten profiles into one row each."""
        rows = [
            {
                "id": p.id,
                "first_name": p.first_name,
                "last_name": p.last_name,
                "email": p.email or "",
                "phone": p.phone or "",
                "city": p.city or "",
                "state": p.state or "",
                "crm_id": p.crm_id or "",
                "customer_id": p.customer_id or "",
                "loyalty_id": p.loyalty_id or "",
                "lead_score": p.lead_score,
                "status": p.status,
                "total_spend": p.total_spend,
                "ltv": p.ltv,
                "record_count": p.record_count,
                "sources": "; ".join(p.sources),
                "match_confidence": p.match_confidence.value,
            }
            for p in profiles
        ]
        return pd.DataFrame(rows)

    def _generate_report_md(
        self,
        snapshot: PipelineSnapshot,
        quality: Optional[QualityReport],
    ) -> str:
        """Generate the run report in markdown."""
        profiles = snapshot.profiles
        lines = [
            "# Golden Record Run Report\n",
            f"*Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}*\n",
            "## Summary\n",
            f"- **Stage**: {snapshot.stage.value}",
            f"- **Raw records**: {len(snapshot.raw)}",
            f"- **Identity clusters**: {len(snapshot.clusters)}",
            f"- **Unified profiles**: {len(profiles)}",
        ]
        if profiles:
            avg_ltv = round(sum(p.ltv for p in profiles) / len(profiles))
            lines.append(f"- **Average LTV**: ${avg_ltv:,}")
        lines.append("")

        if quality is not None:
            lines.extend([
                "## Data Quality\n",
                f"- **Before**: {quality.before_score}",
                f"- **After**: {quality.after_score}",
                f"- **Improvement**: +{quality.improvement}\n",
            ])

            if quality.per_source:
                lines.extend([
                    "### Per-Source Quality\n",
                    "| Source | Records | Phone | Email | Name | Quality |",
                    "|--------|---------|-------|-------|------|---------|",
                ])
                for s in quality.per_source:
                    lines.append(
                        f"| {s.source} | {s.records} | {s.phone_issues} | "
                        f"{s.email_issues} | {s.name_issues} | {s.quality_pct}% |"
                    )
                lines.append("")

        if profiles:
            top = sorted(profiles, key=lambda p: p.ltv, reverse=True)[: self.max_items_per_section]
            lines.extend([
                "## Top Profiles by LTV\n",
                "| Name | Email | Records | Sources | LTV | Confidence |",
                "|------|-------|---------|---------|-----|------------|",
            ])
            for p in top:
                lines.append(
                    f"| {p.display_name} | {p.email or '-'} | {p.record_count} | "
                    f"{len(p.sources)} | ${p.ltv:,} | {p.match_confidence.value} |"
                )

        return "\n".join(lines)

    def generate_golden_records(self, snapshot: PipelineSnapshot) -> dict[str, Path]:
        """Write profiles and the run report in the configured formats."""
        generated = {}

        if "csv" in self.formats:
            filepath = self._get_filename("golden_records", "csv")
            self._profiles_to_frame(snapshot.profiles).to_csv(filepath, index=False)
            generated["csv"] = filepath

        if "markdown" in self.formats:
            md_content = self._generate_report_md(snapshot, snapshot.quality)
            filepath = self._get_filename("run_report", "md")
            filepath.write_text(md_content)
            generated["markdown"] = filepath

        if "json" in self.formats:
            json_data = {
                "generated_at": datetime.now().isoformat(),
                "stage": snapshot.stage.value,
                "raw_records": len(snapshot.raw),
                "quality": snapshot.quality.model_dump() if snapshot.quality else None,
                "profiles": [p.model_dump(mode="json") for p in snapshot.profiles],
            }
            filepath = self._get_filename("golden_records", "json")
            filepath.write_text(json.dumps(json_data, indent=2, default=str))
            generated["json"] = filepath

        logger.info(f"Generated golden record outputs: {list(generated.keys())}")
        return generated


def generate_outputs(
    snapshot: PipelineSnapshot,
    output_dir: str | Path = "./outputs",
    formats: Optional[list[str]] = None,
    timestamp_filenames: bool = True,
    max_items_per_section: int = 20,
) -> dict[str, Path]:
    """Convenience function to write every output for a snapshot.

    Returns:
        Dictionary of format -> filepath
    """
    generator = OutputGenerator(
        output_dir=output_dir,
        formats=formats,
        timestamp_filenames=timestamp_filenames,
        max_items_per_section=max_items_per_section,
    )
    return generator.generate_golden_records(snapshot)
