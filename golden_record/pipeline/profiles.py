"""
Unified Profile Building

Aggregates each identity cluster into a Golden Record with derived metrics,
touchpoints, hygiene lineage and identity-link explanations.
"""

import logging
import random
from typing import Any, Callable, Optional, Sequence

from golden_record.models.entities import (
    IDENTITY_KEY_FIELDS,
    CleanedRecord,
    IdentityCluster,
    IdentityLink,
    HygieneExample,
    MatchConfidence,
    RawRecord,
    SourceId,
    Touchpoint,
    UnifiedProfile,
)
from golden_record.pipeline.ingest import CITIES, STATES

logger = logging.getLogger(__name__)


def classify_match_confidence(identity_key_count: int) -> MatchConfidence:
    """Map a count of distinct identity keys to a confidence tier."""
    if identity_key_count >= 4:
        return MatchConfidence.HIGH
    if identity_key_count >= 2:
        return MatchConfidence.MEDIUM
    return MatchConfidence.LOW


def _first(records: Sequence[CleanedRecord], field: str) -> Any:
    """First non-empty value of ``field`` in cluster order."""
    for record in records:
        value = getattr(record, field)
        if value is not None and value != "":
            return value
    return None


def _attr(record: RawRecord, name: str, default: Any = None) -> Any:
    return record.attributes.get(name, default)


def _web(r: RawRecord) -> Touchpoint:
    page = _attr(r, "last_page") or _attr(r, "page_url") or "/home"
    return Touchpoint(channel="Web", detail=f"Visited {page}, {_attr(r, 'page_views') or 1} page views")


def _paid(r: RawRecord) -> Touchpoint:
    return Touchpoint(channel="Paid", detail=f"Clicked {_attr(r, 'campaign')} on {_attr(r, 'ad_platform')}")


def _email(r: RawRecord) -> Touchpoint:
    opens = _attr(r, "email_opens") or _attr(r, "opens") or 0
    campaign = _attr(r, "last_campaign") or _attr(r, "campaign_id") or "N/A"
    return Touchpoint(channel="Email", detail=f"{opens} opens, campaign: {campaign}")


def _crm(r: RawRecord) -> Touchpoint:
    return Touchpoint(channel="CRM", detail=f"Status: {r.status}, Lead Score: {r.lead_score}")


def _commerce(r: RawRecord) -> Touchpoint:
    total = _attr(r, "total_spend", sum(p.price for p in r.purchases))
    return Touchpoint(channel="Commerce", detail=f"{len(r.purchases)} purchases, ${total:g} total")


def _mobile(r: RawRecord) -> Touchpoint:
    return Touchpoint(
        channel="Mobile",
        detail=f"{_attr(r, 'action')} on {_attr(r, 'screen_name')} ({_attr(r, 'os')})",
    )


def _support(r: RawRecord) -> Touchpoint:
    return Touchpoint(
        channel="Support",
        detail=f"Ticket: {_attr(r, 'subject')} ({_attr(r, 'priority')}), CSAT: {_attr(r, 'csat_score')}",
    )


def _call_center(r: RawRecord) -> Touchpoint:
    minutes = round((_attr(r, "call_duration") or 0) / 60)
    return Touchpoint(channel="Call Center", detail=f"{_attr(r, 'disposition')}, {minutes}min call")


def _loyalty(r: RawRecord) -> Touchpoint:
    return Touchpoint(channel="Loyalty", detail=f"{_attr(r, 'tier')} tier, {_attr(r, 'points_balance')} points")


TOUCHPOINT_BUILDERS: dict[SourceId, Callable[[RawRecord], Touchpoint]] = {
    SourceId.GA4: _web,
    SourceId.WEB_APP_EVENTS: _web,
    SourceId.PAID_SOCIAL: _paid,
    SourceId.MARKETO: _email,
    SourceId.EMAIL_ENGAGEMENT: _email,
    SourceId.CRM: _crm,
    SourceId.POS: _commerce,
    SourceId.MOBILE_APP_EVENTS: _mobile,
    SourceId.SUPPORT: _support,
    SourceId.CALL_CENTER: _call_center,
    SourceId.LOYALTY: _loyalty,
}


def derive_touchpoints(records: Sequence[RawRecord]) -> list[Touchpoint]:
    """One touchpoint per record from a known channel source."""
    touchpoints = []
    for record in records:
        builder = TOUCHPOINT_BUILDERS.get(record.source_id)
        if builder is not None:
            touchpoints.append(builder(record))
    return touchpoints


def derive_hygiene_examples(
    records: Sequence[CleanedRecord],
    raw_records: Sequence[RawRecord],
) -> list[HygieneExample]:
    """Before/after pairs for fields hygiene actually changed.

    First-name changes are found through the raw record sharing a
    cross-system ID with each cleaned record.
    """
    lineage = []
    for record in records:
        raw = next((r for r in raw_records if r.shares_system_id(record)), None)
        lineage.append(raw or record)

    examples = []
    for record in records:
        if record.original_phone and record.phone and record.original_phone != record.phone:
            examples.append(HygieneExample(
                field="Phone", before=record.original_phone, after=record.phone, source=record.source,
            ))
        if record.original_email and record.email and record.original_email != record.email:
            examples.append(HygieneExample(
                field="Email", before=record.original_email, after=record.email, source=record.source,
            ))
        if record.first_name:
            raw = next(
                (r for r in lineage if r.first_name and r.first_name != record.first_name),
                None,
            )
            if raw is not None:
                examples.append(HygieneExample(
                    field="First Name", before=raw.first_name, after=record.first_name, source=record.source,
                ))
    return examples


def derive_identity_links(fields: dict[str, Any]) -> list[IdentityLink]:
    """Illustrative link explanations for the identifier pairs present."""
    rules = [
        ("crm_id", "CRM ID", "email", "Email", "Email Match"),
        ("cookie_id", "Cookie", "email", "Email", "Login Event"),
        ("device_id", "Device", "crm_id", "CRM", "Deterministic ID Stitch"),
        ("marketo_id", "Marketo", "email", "Email", "Email Match"),
        ("loyalty_id", "Loyalty", "email", "Email", "Email Match"),
        ("master_id", "MDM", "crm_id", "CRM", "Master ID Link"),
    ]
    links = []
    for left, left_label, right, right_label, method in rules:
        if fields.get(left) and fields.get(right):
            links.append(IdentityLink(
                source=f"{left_label}: {fields[left]}",
                target=f"{right_label}: {fields[right]}",
                method=method,
            ))
    return links


def _unique(values: Sequence[Any]) -> list[Any]:
    return list(dict.fromkeys(v for v in values if v))


class ProfileBuilder:
    """Builds one UnifiedProfile per identity cluster.

    Scalar fields take the first non-empty value in cluster order. Spend,
    lead score, and missing city/state fall back to random placeholders.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def build_profile(self, cluster: IdentityCluster, raw_records: Sequence[RawRecord]) -> UnifiedProfile:
        records = cluster.records

        fields: dict[str, Any] = {name: _first(records, name) for name in IDENTITY_KEY_FIELDS}

        purchases = [p for r in records for p in r.purchases]
        total_spend = sum(p.price for p in purchases) or self._rng.randint(50, 2000)
        ltv = total_spend * (1 + self._rng.random() * 2)

        profile = UnifiedProfile(
            id=cluster.id,
            first_name=_first(records, "first_name") or "Unknown",
            last_name=_first(records, "last_name") or "Profile",
            city=_first(records, "city") or self._rng.choice(CITIES),
            state=_first(records, "state") or self._rng.choice(STATES),
            lead_score=_first(records, "lead_score") or self._rng.randint(30, 80),
            status=_first(records, "status") or "Customer",
            purchases=purchases,
            total_spend=total_spend,
            ltv=round(ltv),
            record_count=len(records),
            touchpoints=derive_touchpoints(records),
            sources=_unique([r.source for r in records]),
            ingestion_types=_unique([r.ingestion_type for r in records]),
            data_classes=_unique([r.data_class for r in records]),
            hygiene_examples=derive_hygiene_examples(records, raw_records),
            identity_links=derive_identity_links(fields),
            match_confidence=classify_match_confidence(sum(1 for v in fields.values() if v)),
            **fields,
        )
        return profile

    def build(
        self,
        clusters: Sequence[IdentityCluster],
        raw_records: Sequence[RawRecord],
    ) -> list[UnifiedProfile]:
        profiles = [self.build_profile(cluster, raw_records) for cluster in clusters if cluster.records]

        tiers = {tier: 0 for tier in MatchConfidence}
        for profile in profiles:
            tiers[profile.match_confidence] += 1
        logger.info(
            f"Built {len(profiles)} unified profiles "
            f"(high={tiers[MatchConfidence.HIGH]}, medium={tiers[MatchConfidence.MEDIUM]}, "
            f"low={tiers[MatchConfidence.LOW]})"
        )
        return profiles


def build_profiles(
    clusters: Sequence[IdentityCluster],
    raw_records: Sequence[RawRecord],
    rng: Optional[random.Random] = None,
) -> list[UnifiedProfile]:
    """Aggregate every cluster into a Golden Record."""
    return ProfileBuilder(rng=rng).build(clusters, raw_records)
