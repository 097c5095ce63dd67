"""
Data Quality Scoring

Before/after quality scores for a pipeline run and per-source issue
breakdowns, computed over the raw and cleaned batches with pandas.
"""

import logging
import re
from typing import Sequence

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from golden_record.models.entities import (
    CleanedRecord,
    ProcessingStage,
    RawRecord,
    UnifiedProfile,
)

logger = logging.getLogger(__name__)

_CANONICAL_PHONE = re.compile(r"^\(\d{3}\) \d{3}-\d{4}$")

# Stages at which the unified data counts towards the after score
MEASURED_STAGES = {
    ProcessingStage.MEASUREMENT,
    ProcessingStage.ACTIVATING,
    ProcessingStage.COMPLETE,
}


class SourceQuality(BaseModel):
    """Hygiene issue counts for one source."""
    model_config = ConfigDict(frozen=True)

    source_id: str
    source: str
    records: int
    phone_issues: int = 0
    email_issues: int = 0
    name_issues: int = 0

    @property
    def issues(self) -> int:
        return self.phone_issues + self.email_issues + self.name_issues

    @property
    def quality_pct(self) -> int:
        """Share of records without issues, as a rounded percentage (floored at 0)."""
        return max(0, round((self.records - self.issues) / max(self.records, 1) * 100))


class QualityReport(BaseModel):
    """Quality scores for one snapshot of a run."""
    model_config = ConfigDict(frozen=True)

    before_score: int = Field(ge=0, le=100)
    after_score: int = Field(ge=0, le=100)
    raw_records: int = 0
    unified_profiles: int = 0
    per_source: list[SourceQuality] = Field(default_factory=list)

    @property
    def improvement(self) -> int:
        return self.after_score - self.before_score


def _is_messy_email(email: str) -> bool:
    return " " in email or email != email.lower()


def _is_messy_phone(phone: str) -> bool:
    return bool(phone) and _CANONICAL_PHONE.match(phone) is None


class DataQualityScorer:
    """Scores raw data completeness and messiness and the lift from unification.

    The before score starts from key-field completeness (email, phone, first
    name; worth up to 50), subtracts a messiness penalty (up to 30) and is
    offset by 20, clamped to 20..55. The after score adds 35 plus a dedup
    bonus of up to 30, capped at 98.
    """

    def _frame(self, raw: Sequence[RawRecord]) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "source_id": r.source_id.value,
                    "source": r.source,
                    "email": r.email,
                    "phone": r.phone,
                    "first_name": r.first_name,
                }
                for r in raw
            ],
            columns=["source_id", "source", "email", "phone", "first_name"],
        )

    def before_score(self, raw: Sequence[RawRecord]) -> int:
        if not raw:
            return 20

        df = self._frame(raw)
        filled = int(df[["email", "phone", "first_name"]].fillna("").ne("").to_numpy().sum())
        completeness = round(filled / (len(df) * 3) * 50)

        messy_emails = int(df["email"].dropna().map(_is_messy_email).sum())
        messy_phones = int(df["phone"].dropna().map(_is_messy_phone).sum())
        penalty = round((messy_emails + messy_phones) / len(df) * 30)

        messiness = max(0, completeness - penalty)
        return max(20, min(55, messiness + 20))

    def after_score(
        self,
        before: int,
        raw_count: int,
        profile_count: int,
        stage: ProcessingStage,
    ) -> int:
        if stage not in MEASURED_STAGES:
            return before
        dedup_bonus = 0
        if raw_count > 0 and profile_count > 0:
            dedup_bonus = round((1 - profile_count / raw_count) * 30)
        return min(98, before + 35 + dedup_bonus)

    def per_source(
        self,
        raw: Sequence[RawRecord],
        cleaned: Sequence[CleanedRecord],
    ) -> list[SourceQuality]:
        """Count fields hygiene had to change, grouped by source.

        Records are paired by position; a raw record without a cleaned
        counterpart is compared against itself.
        """
        if not raw:
            return []

        rows = []
        for i, before in enumerate(raw):
            after = cleaned[i] if i < len(cleaned) else before
            rows.append({
                "source_id": before.source_id.value,
                "source": before.source,
                "phone_issue": bool(before.phone) and before.phone != after.phone,
                "email_issue": bool(before.email) and before.email != after.email,
                "name_issue": (
                    bool(before.first_name) and bool(after.first_name)
                    and before.first_name != after.first_name
                ),
            })

        grouped = (
            pd.DataFrame(rows)
            .groupby(["source_id", "source"], sort=False)
            .agg(
                records=("phone_issue", "size"),
                phone_issues=("phone_issue", "sum"),
                email_issues=("email_issue", "sum"),
                name_issues=("name_issue", "sum"),
            )
            .reset_index()
        )

        results = [
            SourceQuality(
                source_id=row.source_id,
                source=row.source,
                records=int(row.records),
                phone_issues=int(row.phone_issues),
                email_issues=int(row.email_issues),
                name_issues=int(row.name_issues),
            )
            for row in grouped.itertuples(index=False)
        ]
        results.sort(key=lambda s: s.quality_pct)
        return results

    def score(
        self,
        raw: Sequence[RawRecord],
        cleaned: Sequence[CleanedRecord],
        profiles: Sequence[UnifiedProfile],
        stage: ProcessingStage,
    ) -> QualityReport:
        before = self.before_score(raw)
        after = self.after_score(before, len(raw), len(profiles), stage)

        report = QualityReport(
            before_score=before,
            after_score=after,
            raw_records=len(raw),
            unified_profiles=len(profiles),
            per_source=self.per_source(raw, cleaned) if cleaned else [],
        )
        logger.debug(f"Quality at {stage.value}: before={before}, after={after}")
        return report
