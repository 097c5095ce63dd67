"""
Core Data Models

Pydantic models for source records, identity clusters and unified profiles.
"""

import uuid
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class SourceId(str, Enum):
    """Catalog keys of the simulated data sources."""
    WEB_APP_EVENTS = "webAppEvents"
    MOBILE_APP_EVENTS = "mobileAppEvents"
    PRODUCT_TELEMETRY = "productTelemetry"
    EDW = "edw"
    DATA_LAKE = "dataLake"
    LOYALTY = "loyalty"
    CUSTOMER_MDM = "customerMDM"
    BILLING = "billing"
    OMS = "oms"
    CRM = "crm"
    POS = "pos"
    SUPPORT = "support"
    CALL_CENTER = "callCenter"
    EMAIL_ENGAGEMENT = "emailEngagement"
    PAID_SOCIAL = "paidSocial"
    AD_IMPRESSIONS = "adImpressions"
    OFFLINE_CAMPAIGNS = "offlineCampaigns"
    MARKETO = "marketo"
    IDENTITY_GRAPH = "identityGraph"
    ENRICHMENT = "enrichment"
    CLEAN_ROOM = "cleanRoom"
    GA4 = "ga4"
    ATTRIBUTION = "attribution"
    EXPERIMENTATION = "experimentation"


class IngestionType(str, Enum):
    """How a source delivers its records."""
    REALTIME = "Realtime"
    BATCH = "Batch"


class DataClass(str, Enum):
    """Broad class of data a source contributes."""
    BEHAVIORAL = "behavioral"
    TRANSACTIONAL = "transactional"
    MARKETING = "marketing"
    EVENT = "event"


class IdentityMode(str, Enum):
    """Matching strategy used by the identity resolver."""
    DETERMINISTIC = "deterministic"
    PROBABILISTIC = "probabilistic"


class SimulationMode(str, Enum):
    """How the orchestrator advances between stages."""
    AUTO = "auto"
    STEP = "step"


class MatchConfidence(str, Enum):
    """Coarse strength of a unified profile's identity links."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ProcessingStage(str, Enum):
    """Pipeline stages, in execution order."""
    IDLE = "idle"
    INGESTING = "ingesting"
    HYGIENE = "hygiene"
    IDENTITY = "identity"
    PROFILING = "profiling"
    MEASUREMENT = "measurement"
    ACTIVATING = "activating"
    COMPLETE = "complete"


# Identity keys counted towards match confidence, in profile field order
IDENTITY_KEY_FIELDS = (
    "email",
    "phone",
    "crm_id",
    "customer_id",
    "marketo_id",
    "cookie_id",
    "device_id",
    "loyalty_id",
    "master_id",
)


class Purchase(BaseModel):
    """A single purchase line item."""
    model_config = ConfigDict(frozen=True)

    product: str
    price: float
    date: str


class RawRecord(BaseModel):
    """A record as produced by a source, tagged with its lineage.

    Shared identity fields and cross-system IDs are typed; the remaining
    source-specific payload lives in ``attributes``.
    """
    model_config = ConfigDict(frozen=True)

    # Lineage
    source: str = Field(description="Display name of the source")
    source_id: SourceId
    source_category: str
    ingestion_type: IngestionType
    data_class: DataClass

    # Identity fields
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None

    # Cross-system IDs
    crm_id: Optional[str] = None
    customer_id: Optional[str] = None
    marketo_id: Optional[str] = None
    cookie_id: Optional[str] = None
    device_id: Optional[str] = None
    loyalty_id: Optional[str] = None
    master_id: Optional[str] = None

    # CRM and commerce fields consumed by profile building
    lead_score: Optional[int] = None
    status: Optional[str] = None
    purchases: list[Purchase] = Field(default_factory=list)

    attributes: dict[str, Any] = Field(default_factory=dict)

    def shares_system_id(self, other: "RawRecord") -> bool:
        """True if both records carry the same CRM, customer, Marketo, cookie or device ID."""
        for field in ("crm_id", "customer_id", "marketo_id", "cookie_id", "device_id"):
            value = getattr(self, field)
            if value and value == getattr(other, field):
                return True
        return False


class CleanedRecord(RawRecord):
    """A raw record after hygiene, keeping the pre-hygiene email and phone."""
    original_email: Optional[str] = None
    original_phone: Optional[str] = None
    hygiene_applied: bool = True


class IdentityCluster(BaseModel):
    """Working set of cleaned records judged to be the same customer."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    records: list[CleanedRecord] = Field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.records)


class Touchpoint(BaseModel):
    """A channel interaction derived from a source record."""
    model_config = ConfigDict(frozen=True)

    channel: str
    detail: str


class HygieneExample(BaseModel):
    """Before/after pair showing a hygiene change."""
    model_config = ConfigDict(frozen=True)

    field: str
    before: str
    after: str
    source: str


class IdentityLink(BaseModel):
    """Illustrative explanation of how two identifiers were linked."""
    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    method: str


class UnifiedProfile(BaseModel):
    """The Golden Record built from one identity cluster."""
    model_config = ConfigDict(frozen=True)

    id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None

    crm_id: Optional[str] = None
    customer_id: Optional[str] = None
    marketo_id: Optional[str] = None
    cookie_id: Optional[str] = None
    device_id: Optional[str] = None
    loyalty_id: Optional[str] = None
    master_id: Optional[str] = None

    lead_score: int
    status: str

    # Derived metrics
    purchases: list[Purchase] = Field(default_factory=list)
    total_spend: float = 0.0
    ltv: int = 0
    record_count: int = Field(ge=1)

    touchpoints: list[Touchpoint] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=list)
    ingestion_types: list[IngestionType] = Field(default_factory=list)
    data_classes: list[DataClass] = Field(default_factory=list)
    hygiene_examples: list[HygieneExample] = Field(default_factory=list)
    identity_links: list[IdentityLink] = Field(default_factory=list)

    match_confidence: MatchConfidence

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def identity_key_count(self) -> int:
        """Number of distinct non-empty identity keys on the profile."""
        return sum(1 for field in IDENTITY_KEY_FIELDS if getattr(self, field))
