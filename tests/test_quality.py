"""
Tests for Data Quality Scoring
"""

import pytest

from golden_record.models.entities import ProcessingStage, SourceId
from golden_record.models.quality import DataQualityScorer, QualityReport, SourceQuality
from golden_record.pipeline.hygiene import apply_hygiene
from golden_record.pipeline.identity import resolve_identities
from golden_record.pipeline.profiles import build_profiles


class TestBeforeScore:
    """Tests for the raw-data score."""

    def test_empty_batch_scores_floor(self):
        """Test that no data gives the minimum score."""
        assert DataQualityScorer().before_score([]) == 20

    def test_clean_complete_data_hits_ceiling(self, make_raw):
        """Test complete, well-formed records score 55 at most."""
        records = [
            make_raw(first_name="Jane", email=f"u{i}@x.com", phone="(555) 123-4567")
            for i in range(4)
        ]
        # completeness 50, no penalty -> 70, clamped
        assert DataQualityScorer().before_score(records) == 55

    def test_messy_data_is_penalized(self, make_raw):
        """Test the messiness penalty."""
        records = [
            make_raw(first_name="Jane", email=" U@X.com", phone="555.123.4567")
            for _ in range(4)
        ]
        # completeness 50, penalty round(8 / 4 * 30) = 60 -> 0 + 20
        assert DataQualityScorer().before_score(records) == 20

    def test_incomplete_data_scores_lower(self, make_raw):
        """Test partial completeness without messiness."""
        records = [make_raw(email="a@x.com"), make_raw(phone="(555) 123-4567")]
        # 2 of 6 fields filled -> round(2 / 6 * 50) = 17 -> 37
        assert DataQualityScorer().before_score(records) == 37


class TestAfterScore:
    """Tests for the unified-data score."""

    @pytest.mark.parametrize("stage", [
        ProcessingStage.INGESTING,
        ProcessingStage.HYGIENE,
        ProcessingStage.IDENTITY,
        ProcessingStage.PROFILING,
    ])
    def test_equals_before_until_measurement(self, stage):
        """Test no lift is reported before measurement."""
        assert DataQualityScorer().after_score(40, 100, 60, stage) == 40

    def test_dedup_bonus(self):
        """Test the lift from collapsing records into profiles."""
        # 100 records into 50 profiles: round(0.5 * 30) = 15
        assert DataQualityScorer().after_score(30, 100, 50, ProcessingStage.MEASUREMENT) == 80

    def test_capped(self):
        """Test the 98 ceiling."""
        assert DataQualityScorer().after_score(55, 100, 1, ProcessingStage.COMPLETE) == 98


class TestPerSource:
    """Tests for per-source issue breakdowns."""

    def test_counts_changed_fields(self, make_raw):
        """Test issue counting by field and worst-first ordering."""
        raw = [
            make_raw(first_name="JANE", email=" A@X.com", phone="555.123.4567"),
            make_raw(first_name="Jane", email="b@x.com", phone="(555) 123-4567"),
            make_raw(source="GA4", source_id=SourceId.GA4, email="c@x.com"),
        ]
        cleaned = apply_hygiene(raw)
        rows = DataQualityScorer().per_source(raw, cleaned)

        assert [r.source_id for r in rows] == ["crm", "ga4"]
        crm = rows[0]
        assert crm.records == 2
        assert (crm.phone_issues, crm.email_issues, crm.name_issues) == (1, 1, 1)
        assert crm.quality_pct == 0
        assert rows[1].quality_pct == 100

    def test_quality_pct_floors_at_zero(self):
        """Test that more issues than records never goes negative."""
        row = SourceQuality(source_id="crm", source="CRM", records=1, phone_issues=1, email_issues=1)
        assert row.quality_pct == 0


class TestScore:
    """Tests for the full report."""

    def test_report_over_pipeline(self, retail_raw, retail_cleaned):
        """Test a report over real pipeline output."""
        profiles = build_profiles(resolve_identities(retail_cleaned), retail_raw)
        report = DataQualityScorer().score(retail_raw, retail_cleaned, profiles, ProcessingStage.COMPLETE)

        assert isinstance(report, QualityReport)
        assert 20 <= report.before_score <= 55
        assert report.after_score > report.before_score
        assert report.improvement == report.after_score - report.before_score
        assert sum(r.records for r in report.per_source) == len(retail_raw)
        assert report.unified_profiles == len(profiles)

    def test_no_per_source_before_hygiene(self, retail_raw):
        """Test per-source rows need cleaned data."""
        report = DataQualityScorer().score(retail_raw, [], [], ProcessingStage.INGESTING)
        assert report.per_source == []
        assert report.after_score == report.before_score
