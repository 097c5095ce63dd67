"""
Synthetic Source Ingestion

Generates messy per-source customer records tagged with lineage, and injects
optional edge cases before hygiene runs.
"""

import logging
import math
import random
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Optional

from pydantic import BaseModel, ConfigDict

from golden_record.models.entities import (
    DataClass,
    IngestionType,
    Purchase,
    RawRecord,
    SourceId,
)

logger = logging.getLogger(__name__)


FIRST_NAMES = ["Jane", "Marcus", "Priya", "Alejandro", "Mei-Lin", "Darius", "Sofia", "Tomasz", "Aisha", "Liam"]
LAST_NAMES = ["Doe", "Rivera", "Sharma", "Chen", "Williams", "Novak", "Okafor", "Kim", "Petrov", "Garcia"]
DOMAINS = ["gmail.com", "outlook.com", "yahoo.com", "hotmail.com", "icloud.com"]
CITIES = ["New York", "Los Angeles", "Chicago", "Houston", "Phoenix", "San Diego", "Dallas", "Austin", "Denver", "Seattle"]
STATES = ["NY", "CA", "IL", "TX", "AZ", "CA", "TX", "TX", "CO", "WA"]
PRODUCTS = [
    ('4K OLED TV 65"', 1299),
    ("Wireless Noise-Cancelling Headphones", 349),
    ("Smart Home Hub Pro", 199),
    ("Running Shoes Ultra Boost", 189),
    ("Espresso Machine Deluxe", 599),
    ("Organic Skincare Bundle", 89),
    ("Fitness Tracker Band", 129),
    ("Bluetooth Speaker Waterproof", 79),
    ("Laptop Stand Ergonomic", 59),
    ("Meal Prep Container Set", 34),
]

DAY_MS = 86_400_000


class SourceDefinition(BaseModel):
    """Catalog entry describing one data source."""
    model_config = ConfigDict(frozen=True)

    id: SourceId
    name: str
    category: str
    ingestion_type: IngestionType
    data_class: DataClass


def _source(
    source_id: SourceId,
    name: str,
    category: str,
    ingestion_type: IngestionType,
    data_class: DataClass,
) -> SourceDefinition:
    return SourceDefinition(
        id=source_id,
        name=name,
        category=category,
        ingestion_type=ingestion_type,
        data_class=data_class,
    )


_RT, _BATCH = IngestionType.REALTIME, IngestionType.BATCH

SOURCE_CATALOG: dict[SourceId, SourceDefinition] = {
    s.id: s
    for s in [
        # Digital properties
        _source(SourceId.WEB_APP_EVENTS, "Web/App Events", "Digital Property", _RT, DataClass.BEHAVIORAL),
        _source(SourceId.MOBILE_APP_EVENTS, "Mobile App", "Digital Property", _RT, DataClass.BEHAVIORAL),
        _source(SourceId.PRODUCT_TELEMETRY, "Product Telemetry", "Digital Property", _BATCH, DataClass.BEHAVIORAL),
        # Data infrastructure
        _source(SourceId.EDW, "EDW", "Data Infrastructure", _BATCH, DataClass.TRANSACTIONAL),
        _source(SourceId.DATA_LAKE, "Data Lake", "Data Infrastructure", _BATCH, DataClass.BEHAVIORAL),
        _source(SourceId.LOYALTY, "Loyalty System", "Data Infrastructure", _BATCH, DataClass.TRANSACTIONAL),
        _source(SourceId.CUSTOMER_MDM, "Customer MDM", "Data Infrastructure", _BATCH, DataClass.TRANSACTIONAL),
        _source(SourceId.BILLING, "Billing", "Data Infrastructure", _BATCH, DataClass.TRANSACTIONAL),
        _source(SourceId.OMS, "OMS", "Data Infrastructure", _BATCH, DataClass.TRANSACTIONAL),
        # Customer-centric
        _source(SourceId.CRM, "Salesforce CRM", "Customer Centric", _BATCH, DataClass.TRANSACTIONAL),
        _source(SourceId.POS, "Shopify POS", "Customer Centric", _BATCH, DataClass.TRANSACTIONAL),
        _source(SourceId.SUPPORT, "Zendesk Support", "Customer Centric", _BATCH, DataClass.EVENT),
        _source(SourceId.CALL_CENTER, "Call Center", "Customer Centric", _BATCH, DataClass.EVENT),
        # Marketing and advertising
        _source(SourceId.EMAIL_ENGAGEMENT, "Email Engagement", "Marketing", _BATCH, DataClass.MARKETING),
        _source(SourceId.PAID_SOCIAL, "Paid Social/Search", "Marketing", _RT, DataClass.MARKETING),
        _source(SourceId.AD_IMPRESSIONS, "Ad Impressions", "Marketing", _RT, DataClass.MARKETING),
        _source(SourceId.OFFLINE_CAMPAIGNS, "Offline Campaign", "Marketing", _BATCH, DataClass.MARKETING),
        _source(SourceId.MARKETO, "Marketo", "Marketing", _BATCH, DataClass.MARKETING),
        # Identity and enrichment
        _source(SourceId.IDENTITY_GRAPH, "ID Graph", "Identity & Enrichment", _BATCH, DataClass.EVENT),
        _source(SourceId.ENRICHMENT, "ZoomInfo Enrichment", "Identity & Enrichment", _BATCH, DataClass.EVENT),
        _source(SourceId.CLEAN_ROOM, "Clean Room", "Identity & Enrichment", _BATCH, DataClass.EVENT),
        # Analytics and measurement
        _source(SourceId.GA4, "GA4", "Analytics & Measurement", _RT, DataClass.BEHAVIORAL),
        _source(SourceId.ATTRIBUTION, "Attribution Logs", "Analytics & Measurement", _BATCH, DataClass.EVENT),
        _source(SourceId.EXPERIMENTATION, "A/B Tests", "Analytics & Measurement", _BATCH, DataClass.EVENT),
    ]
}

SCENARIO_PRESETS: dict[str, list[SourceId]] = {
    "retail": [
        SourceId.WEB_APP_EVENTS, SourceId.GA4, SourceId.POS, SourceId.CRM,
        SourceId.LOYALTY, SourceId.EMAIL_ENGAGEMENT, SourceId.PAID_SOCIAL,
    ],
    "b2bSaas": [
        SourceId.WEB_APP_EVENTS, SourceId.PRODUCT_TELEMETRY, SourceId.CRM, SourceId.BILLING,
        SourceId.MARKETO, SourceId.ENRICHMENT, SourceId.ATTRIBUTION,
    ],
    "healthcare": [
        SourceId.CRM, SourceId.CALL_CENTER, SourceId.SUPPORT, SourceId.CUSTOMER_MDM,
        SourceId.EDW, SourceId.OFFLINE_CAMPAIGNS,
    ],
    "media": [
        SourceId.WEB_APP_EVENTS, SourceId.MOBILE_APP_EVENTS, SourceId.GA4, SourceId.AD_IMPRESSIONS,
        SourceId.PAID_SOCIAL, SourceId.IDENTITY_GRAPH, SourceId.EXPERIMENTATION,
    ],
}


def get_preset(name: str) -> list[SourceId]:
    """Return the source list for a scenario preset.

    Raises:
        KeyError: If the preset is unknown
    """
    if name not in SCENARIO_PRESETS:
        raise KeyError(f"Unknown scenario preset: {name}")
    return list(SCENARIO_PRESETS[name])


def parse_source_id(value: str | SourceId) -> Optional[SourceId]:
    """Map a catalog key to a SourceId, or None if it is not in the catalog."""
    if isinstance(value, SourceId):
        return value
    try:
        return SourceId(value)
    except ValueError:
        return None


class EdgeCaseFlags(BaseModel):
    """Optional data-quality problems injected after generation."""
    missing_email: bool = False
    duplicate_crm: bool = False
    mismatched_phones: bool = False


class RecordGenerator:
    """Produces synthetic raw records per source type.

    Names, emails and domains are picked by record index so that the same
    person shows up across sources; phone, email and name formatting is
    randomly messy so hygiene has work to do.
    """

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random(seed)
        self._templates: dict[SourceId, Callable[[int, int], dict[str, Any]]] = {
            SourceId.WEB_APP_EVENTS: self._web_app_events,
            SourceId.MOBILE_APP_EVENTS: self._mobile_app_events,
            SourceId.PRODUCT_TELEMETRY: self._product_telemetry,
            SourceId.EDW: self._edw,
            SourceId.DATA_LAKE: self._data_lake,
            SourceId.LOYALTY: self._loyalty,
            SourceId.CUSTOMER_MDM: self._customer_mdm,
            SourceId.BILLING: self._billing,
            SourceId.OMS: self._oms,
            SourceId.CRM: self._crm,
            SourceId.POS: self._pos,
            SourceId.SUPPORT: self._support,
            SourceId.CALL_CENTER: self._call_center,
            SourceId.EMAIL_ENGAGEMENT: self._email_engagement,
            SourceId.PAID_SOCIAL: self._paid_social,
            SourceId.AD_IMPRESSIONS: self._ad_impressions,
            SourceId.OFFLINE_CAMPAIGNS: self._offline_campaigns,
            SourceId.MARKETO: self._marketo,
            SourceId.IDENTITY_GRAPH: self._identity_graph,
            SourceId.ENRICHMENT: self._enrichment,
            SourceId.CLEAN_ROOM: self._clean_room,
            SourceId.GA4: self._ga4,
            SourceId.ATTRIBUTION: self._attribution,
            SourceId.EXPERIMENTATION: self._experimentation,
        }

    def generate(self, source_id: str | SourceId, count: int = 8) -> list[RawRecord]:
        """Generate ``count`` raw records for a source.

        Unknown source ids yield an empty list.
        """
        resolved = parse_source_id(source_id)
        if resolved is None:
            logger.warning(f"Unknown source id, no records generated: {source_id}")
            return []
        if count <= 0:
            return []

        template = self._templates[resolved]
        records = [self._build(resolved, template(i, count)) for i in range(count)]
        logger.debug(f"Generated {len(records)} records for {resolved.value}")
        return records

    # Helpers

    def _build(self, source_id: SourceId, fields: dict[str, Any]) -> RawRecord:
        definition = SOURCE_CATALOG[source_id]
        typed = {k: v for k, v in fields.items() if k in RawRecord.model_fields}
        attributes = {k: v for k, v in fields.items() if k not in RawRecord.model_fields}
        return RawRecord(
            source=definition.name,
            source_id=source_id,
            source_category=definition.category,
            ingestion_type=definition.ingestion_type,
            data_class=definition.data_class,
            attributes=attributes,
            **typed,
        )

    def _pick(self, options: list[Any]) -> Any:
        return self._rng.choice(options)

    def _randint(self, low: int, high: int) -> int:
        return self._rng.randint(low, high)

    def _uuid(self) -> str:
        return f"{self._rng.getrandbits(32):08x}-{self._rng.getrandbits(16):04x}-4{self._rng.getrandbits(12):03x}"

    def _timestamp(self, max_days: int) -> str:
        offset = timedelta(milliseconds=self._randint(0, max_days * DAY_MS))
        return (datetime.now() - offset).isoformat()

    def _person(self, i: int) -> tuple[str, str]:
        return FIRST_NAMES[i % len(FIRST_NAMES)], LAST_NAMES[i % len(LAST_NAMES)]

    def messy_phone(self) -> str:
        area, mid, last = self._randint(200, 999), self._randint(100, 999), self._randint(1000, 9999)
        return self._pick([
            f"({area}) {mid}-{last}",
            f"{area}.{mid}.{last}",
            f"{area}{mid}{last}",
            f"+1 {area}-{mid}-{last}",
            f"  {area} {mid} {last}  ",
        ])

    def messy_email(self, first: str, last: str, i: int) -> str:
        domain = DOMAINS[i % len(DOMAINS)]
        return self._pick([
            f"{first}.{last}@{domain}",
            f"{first.lower()}{last.upper()}@{domain}",
            f" {first.lower()}.{last.lower()}@{domain} ",
            f"  {first}.{last}@{domain}",
        ])

    def messy_name(self, name: str) -> str:
        return self._pick([
            name.upper(),
            name.lower(),
            name[0] + name[1:].lower(),
            f"  {name}  ",
            name,
        ])

    def _named(self, i: int) -> dict[str, Any]:
        first, last = self._person(i)
        return {"first_name": self.messy_name(first), "last_name": self.messy_name(last)}

    def _email(self, i: int) -> str:
        first, last = self._person(i)
        return self.messy_email(first, last, i)

    # Digital properties

    def _web_app_events(self, i: int, count: int) -> dict[str, Any]:
        fields = {
            "device_id": f"web_{self._uuid()}",
            "cookie_id": f"_wa_{self._randint(100000, 999999)}",
            "event_name": self._pick(["click", "scroll", "form_submit", "page_view", "add_to_cart"]),
            "page_url": self._pick(["/products", "/checkout", "/blog", "/account", "/pricing"]),
            "timestamp": self._timestamp(7),
        }
        if i < math.ceil(count * 0.6):
            fields["email"] = self._email(i)
        return fields

    def _mobile_app_events(self, i: int, count: int) -> dict[str, Any]:
        fields = {
            "device_id": f"mob_{self._uuid()}",
            "push_token": f"pt_{self._uuid()}",
            "screen_name": self._pick(["Home", "Feed", "Profile", "Settings", "Cart"]),
            "action": self._pick(["tap", "swipe", "purchase", "share", "bookmark"]),
            "os": self._pick(["iOS 17", "Android 14"]),
            "timestamp": self._timestamp(7),
        }
        if i < math.ceil(count * 0.5):
            fields["email"] = self._email(i)
        return fields

    def _product_telemetry(self, i: int, count: int) -> dict[str, Any]:
        return {
            "user_id": f"usr_{10000 + i * 111}",
            "email": self._email(i),
            "feature_name": self._pick(["Dashboard", "Reports", "API", "Integrations", "Settings"]),
            "usage_count": self._randint(1, 500),
            "session_duration": self._randint(30, 3600),
            "plan_tier": self._pick(["Free", "Pro", "Enterprise"]),
        }

    # Data infrastructure

    def _edw(self, i: int, count: int) -> dict[str, Any]:
        return {
            "customer_id": f"EDW-{10000 + i * 111}",
            "email": self._email(i),
            **self._named(i),
            "revenue": self._randint(100, 50000),
            "segment": self._pick(["Enterprise", "Mid-Market", "SMB"]),
            "region": self._pick(["AMER", "EMEA", "APAC"]),
        }

    def _data_lake(self, i: int, count: int) -> dict[str, Any]:
        return {
            "cookie_id": f"_dl_{self._randint(100000, 999999)}",
            "device_id": f"dl_{self._uuid()}",
            "event_type": self._pick(["impression", "click", "conversion", "video_view"]),
            "utm_source": self._pick(["google", "facebook", "email", "direct"]),
            "timestamp": self._timestamp(14),
        }

    def _loyalty(self, i: int, count: int) -> dict[str, Any]:
        return {
            "loyalty_id": f"LYL-{10000 + i * 111}",
            "email": self._email(i),
            "phone": self.messy_phone(),
            **self._named(i),
            "points_balance": self._randint(100, 50000),
            "tier": self._pick(["Bronze", "Silver", "Gold", "Platinum"]),
        }

    def _customer_mdm(self, i: int, count: int) -> dict[str, Any]:
        ci = i % len(CITIES)
        return {
            "master_id": f"MDM-{10000 + i * 111}",
            "crm_id": f"SF-{100000 + i * 1111}",
            "email": self._email(i),
            "phone": self.messy_phone(),
            **self._named(i),
            "city": CITIES[ci],
            "state": STATES[ci],
            "lifecycle_stage": self._pick(["Prospect", "Customer", "Advocate", "At-Risk"]),
        }

    def _billing(self, i: int, count: int) -> dict[str, Any]:
        return {
            "customer_id": f"BIL-{10000 + i * 111}",
            "email": self._email(i),
            "plan_name": self._pick(["Starter", "Growth", "Enterprise"]),
            "mrr": self._randint(29, 999),
            "payment_status": self._pick(["Active", "Past Due", "Cancelled"]),
        }

    def _oms(self, i: int, count: int) -> dict[str, Any]:
        return {
            "order_id": f"ORD-{10000 + i * 111}",
            "customer_id": f"OMS-{10000 + i * 111}",
            "email": self._email(i),
            **self._named(i),
            "order_total": self._randint(20, 2000),
            "order_status": self._pick(["Pending", "Shipped", "Delivered", "Returned"]),
        }

    # Customer-centric

    def _crm(self, i: int, count: int) -> dict[str, Any]:
        ci = i % len(CITIES)
        return {
            "crm_id": f"SF-{100000 + i * 1111}",
            **self._named(i),
            "email": self._email(i),
            "phone": self.messy_phone(),
            "lead_score": self._randint(10, 100),
            "status": self._pick(["Lead", "MQL", "SQL", "Customer", "Churned"]),
            "city": CITIES[ci],
            "state": STATES[ci],
        }

    def _pos(self, i: int, count: int) -> dict[str, Any]:
        purchases = []
        for _ in range(self._randint(1, 4)):
            product, price = self._pick(PRODUCTS)
            date = (datetime.now() - timedelta(milliseconds=self._randint(0, 90 * DAY_MS))).date()
            purchases.append(Purchase(product=product, price=price, date=date.isoformat()))
        return {
            "customer_id": f"SHOP-{10000 + i * 111}",
            **self._named(i),
            "email": self._email(i),
            "phone": self.messy_phone(),
            "purchases": purchases,
            "total_spend": sum(p.price for p in purchases),
        }

    def _support(self, i: int, count: int) -> dict[str, Any]:
        return {
            "email": self._email(i),
            "phone": self.messy_phone(),
            "customer_id": f"ZD-{10000 + i * 111}",
            "ticket_id": f"TKT-{self._randint(10000, 99999)}",
            "subject": self._pick(["Order issue", "Billing question", "Product defect", "Returns", "Account access"]),
            "priority": self._pick(["Low", "Medium", "High", "Urgent"]),
            "csat_score": self._randint(1, 5),
        }

    def _call_center(self, i: int, count: int) -> dict[str, Any]:
        return {
            "phone": self.messy_phone(),
            "customer_id": f"CC-{10000 + i * 111}",
            "call_duration": self._randint(30, 1800),
            "disposition": self._pick(["Resolved", "Escalated", "Callback", "Abandoned"]),
            "agent_id": f"AGT-{self._randint(100, 999)}",
            "queue_time": self._randint(5, 300),
        }

    # Marketing and advertising

    def _email_engagement(self, i: int, count: int) -> dict[str, Any]:
        return {
            "email": self._email(i),
            "subscriber_id": f"SUB-{10000 + i * 111}",
            "campaign_id": self._pick(["Welcome", "Product Launch", "Newsletter", "Winback"]),
            "opens": self._randint(0, 30),
            "clicks": self._randint(0, 10),
            "bounced": self._rng.random() > 0.9,
        }

    def _paid_social(self, i: int, count: int) -> dict[str, Any]:
        return {
            "click_id": f"gclid_{self._uuid()}",
            "device_id": f"ps_{self._uuid()}",
            "campaign": self._pick(["Summer Sale 2024", "Black Friday Blitz", "New Arrivals Q1", "Retargeting"]),
            "ad_platform": self._pick(["Google Ads", "Meta Ads", "LinkedIn Ads"]),
            "spend": round(self._rng.random() * 50 + 0.5, 2),
            "impressions": self._randint(100, 10000),
            "clicks": self._randint(1, 200),
        }

    def _ad_impressions(self, i: int, count: int) -> dict[str, Any]:
        return {
            "device_id": f"ai_{self._uuid()}",
            "cookie_id": f"_ai_{self._randint(100000, 999999)}",
            "creative_id": f"CR-{self._randint(1000, 9999)}",
            "placement": self._pick(["Banner", "Interstitial", "Native", "Video"]),
            "viewability": self._randint(40, 100),
            "ctr": round(self._rng.random() * 5, 2),
        }

    def _offline_campaigns(self, i: int, count: int) -> dict[str, Any]:
        return {
            "email": self._email(i),
            "phone": self.messy_phone(),
            **self._named(i),
            "campaign_name": self._pick(["Direct Mail Q1", "Trade Show NYC", "Sponsorship Event", "Print Ad"]),
            "response_flag": self._rng.random() > 0.7,
        }

    def _marketo(self, i: int, count: int) -> dict[str, Any]:
        return {
            "marketo_id": f"MKT-{10000 + i * 111}",
            **self._named(i),
            "email": self._email(i),
            "email_opens": self._randint(0, 40),
            "email_clicks": self._randint(0, 15),
            "last_campaign": self._pick(["Welcome Series", "Product Launch", "Re-engagement", "Loyalty Rewards"]),
            "subscribed": self._rng.random() > 0.2,
        }

    # Identity and enrichment

    def _identity_graph(self, i: int, count: int) -> dict[str, Any]:
        return {
            "hashed_email": f"sha256_{self._uuid()}",
            "device_id": f"ig_{self._uuid()}",
            "email": self._email(i),
            "id_cluster": f"CLU-{self._randint(1000, 9999)}",
            "confidence": self._pick(["high", "medium", "low"]),
            "link_type": self._pick(["deterministic", "probabilistic"]),
        }

    def _enrichment(self, i: int, count: int) -> dict[str, Any]:
        return {
            "email": self._email(i),
            "domain": DOMAINS[i % len(DOMAINS)],
            "company_name": self._pick(["Acme Corp", "TechFlow Inc", "Global Retail", "CloudNine"]),
            "industry": self._pick(["SaaS", "Retail", "Finance", "Healthcare"]),
            "employee_count": self._pick(["1-50", "51-200", "201-1000", "1000+"]),
        }

    def _clean_room(self, i: int, count: int) -> dict[str, Any]:
        return {
            "hashed_email": f"sha256_{self._uuid()}",
            "segment_id": f"SEG-{self._randint(1000, 9999)}",
            "partner_name": self._pick(["Retail Partner", "Media Co", "Financial Services"]),
            "audience_segment": self._pick(["High-Value Shoppers", "Auto Intenders", "Frequent Travelers"]),
            "overlap_count": self._randint(1000, 50000),
            "match_rate": self._randint(30, 90),
        }

    # Analytics and measurement

    def _ga4(self, i: int, count: int) -> dict[str, Any]:
        fields = {
            "device_id": f"ga_{self._uuid()}",
            "cookie_id": f"_ga_{self._randint(100000, 999999)}",
            "ip_address": (
                f"{self._randint(10, 250)}.{self._randint(0, 255)}."
                f"{self._randint(0, 255)}.{self._randint(1, 254)}"
            ),
            "page_views": self._randint(1, 50),
            "session_duration": self._randint(10, 600),
            "last_page": self._pick(["/products/tv", "/products/headphones", "/checkout", "/blog/deals", "/account/login"]),
            "timestamp": self._timestamp(7),
        }
        if i < math.ceil(count * 0.6):
            fields["email"] = self._email(i)
        return fields

    def _attribution(self, i: int, count: int) -> dict[str, Any]:
        return {
            "customer_id": f"ATT-{10000 + i * 111}",
            "click_id": f"attr_{self._uuid()}",
            "model_type": self._pick(["Last Touch", "First Touch", "Linear", "Data-Driven"]),
            "channel_credit": round(self._rng.random() * 100, 1),
            "conversion_id": f"CONV-{self._randint(10000, 99999)}",
        }

    def _experimentation(self, i: int, count: int) -> dict[str, Any]:
        return {
            "user_id": f"exp_{10000 + i * 111}",
            "device_id": f"exp_{self._uuid()}",
            "experiment_id": self._pick(["EXP-001", "EXP-002", "EXP-003"]),
            "variant": self._pick(["Control", "Variant A", "Variant B"]),
            "metric_value": round(self._rng.random() * 10, 2),
            "significance": self._pick(["significant", "not significant", "trending"]),
        }


def generate(
    source_id: str | SourceId,
    count: int = 8,
    rng: Optional[random.Random] = None,
) -> list[RawRecord]:
    """Generate raw records for one source."""
    return RecordGenerator(rng=rng).generate(source_id, count)


def apply_edge_cases(
    records: list[RawRecord],
    flags: EdgeCaseFlags,
    rng: Optional[random.Random] = None,
) -> list[RawRecord]:
    """Post-process a generated batch with the enabled edge cases.

    Returns a new list; the input records are never modified.
    """
    rng = rng or random.Random()
    result = list(records)

    if flags.missing_email:
        result = [
            r.model_copy(update={"email": None}) if i % 3 == 0 else r
            for i, r in enumerate(result)
        ]

    if flags.duplicate_crm:
        crm_records = [r for r in result if r.source_id == SourceId.CRM]
        dupes = [
            r.model_copy(update={
                "crm_id": f"{r.crm_id}-DUP",
                "first_name": r.first_name.upper() if r.first_name else r.first_name,
            })
            for r in crm_records[:math.ceil(len(crm_records) * 0.3)]
        ]
        result.extend(dupes)
        logger.debug(f"Injected {len(dupes)} duplicate CRM records")

    if flags.mismatched_phones:
        reshaped = []
        for r in result:
            if r.phone:
                digits = "".join(ch for ch in r.phone if ch.isdigit())
                phone = rng.choice([
                    f"+1-{digits}",
                    f"   {digits}   ",
                    f"({digits[:3]}){digits[3:6]}{digits[6:]}",
                ])
                r = r.model_copy(update={"phone": phone})
            reshaped.append(r)
        result = reshaped

    return result


def ingest_sources(
    source_ids: Iterable[str | SourceId],
    count: int = 8,
    edge_cases: Optional[EdgeCaseFlags] = None,
    rng: Optional[random.Random] = None,
) -> list[RawRecord]:
    """Generate every selected source in order and apply edge cases.

    Args:
        source_ids: Catalog keys of the selected sources
        count: Records per source
        edge_cases: Edge cases to inject (none by default)
        rng: Random source shared by generation and injection

    Returns:
        The combined raw record batch
    """
    rng = rng or random.Random()
    generator = RecordGenerator(rng=rng)

    records: list[RawRecord] = []
    for source_id in source_ids:
        records.extend(generator.generate(source_id, count))

    if edge_cases is not None:
        records = apply_edge_cases(records, edge_cases, rng=rng)

    logger.info(f"Ingested {len(records)} raw records")
    return records
