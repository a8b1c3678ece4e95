"""Input schemas for tip verification: tips, cases, leads, tipsters, patterns, rules.

These are the engine-side models. Storage rows use different column names and
are converted by tip_triage.data_management.mappers, so nothing in the scoring
code depends on storage naming.

Tips and attachments are frozen: verification attaches a record to a tip and
never mutates it.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BaseModel, Field


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CasePriority(str, Enum):
    """Priority level of the missing-person case a tip refers to.

    CRITICAL and HIGH count as "high case priority" for triage.
    """

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    ROUTINE = "routine"

    @property
    def rank(self) -> int:
        """Urgency rank, higher is more urgent."""
        return _CASE_PRIORITY_RANK[self]

    @property
    def is_high(self) -> bool:
        return self in (CasePriority.CRITICAL, CasePriority.HIGH)


_CASE_PRIORITY_RANK = {
    CasePriority.ROUTINE: 0,
    CasePriority.LOW: 1,
    CasePriority.MEDIUM: 2,
    CasePriority.HIGH: 3,
    CasePriority.CRITICAL: 4,
}


class ReliabilityTier(str, Enum):
    NEW = "new"
    UNRATED = "unrated"
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERIFIED_SOURCE = "verified_source"


class Attachment(BaseModel):
    """Photo or file attached to a tip, with extracted metadata and detector flags."""

    id: str = Field(..., description="Attachment identifier")
    file_name: str = Field(default="", description="Original file name")
    mime_type: str = Field(default="application/octet-stream", description="MIME type")
    file_url: Optional[str] = Field(default=None, description="Storage URL for the file")
    file_size: Optional[int] = Field(default=None, ge=0, description="Size in bytes")
    capture_timestamp: Optional[UtcDatetime] = Field(
        default=None, description="Capture time reported by the device"
    )
    exif_data: dict[str, Any] = Field(
        default_factory=dict, description="Raw EXIF tags as extracted at upload"
    )
    gps_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    gps_longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    device_make: Optional[str] = None
    device_model: Optional[str] = None
    is_manipulated: bool = Field(default=False, description="Manipulation detector flag")
    manipulation_confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    is_ai_generated: bool = Field(default=False, description="AI-generation detector flag")
    is_stock_photo: bool = Field(default=False, description="Reverse image search hit")
    faces_detected: Optional[int] = Field(default=None, ge=0)
    matches_missing_person: Optional[bool] = Field(
        default=None, description="Face match against the case subject"
    )

    model_config = {"frozen": True}

    @property
    def is_image(self) -> bool:
        return self.mime_type.lower().startswith("image/")

    @property
    def has_exif(self) -> bool:
        return bool(self.exif_data) or bool(self.device_make or self.device_model)

    @property
    def has_gps(self) -> bool:
        return self.gps_latitude is not None and self.gps_longitude is not None


class Tip(BaseModel):
    """Citizen-submitted tip about a case."""

    id: str = Field(..., description="Tip identifier")
    case_id: str = Field(..., description="Case this tip refers to")
    content: str = Field(default="", description="Free-text tip content")
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    location_text: Optional[str] = Field(default=None, description="Free-text location")
    sighting_time: Optional[UtcDatetime] = Field(
        default=None, description="When the tipster claims the sighting happened"
    )
    created_at: UtcDatetime = Field(default_factory=utc_now)
    is_anonymous: bool = Field(default=False)
    tipster_id: Optional[str] = Field(default=None, description="TipsterProfile reference")
    attachments: tuple[Attachment, ...] = Field(default=())

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "example": {
                "id": "tip-001",
                "case_id": "case-042",
                "content": "Saw a girl in a red jacket at the bus stop on Main Street around 3:15 pm",
                "latitude": 40.7128,
                "longitude": -74.006,
                "sighting_time": "2024-05-01T15:15:00Z",
                "is_anonymous": True,
            }
        },
    }

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def event_time(self) -> datetime:
        """Sighting time when known, otherwise submission time."""
        return self.sighting_time or self.created_at

    @property
    def image_attachments(self) -> list[Attachment]:
        return [a for a in self.attachments if a.is_image]


class TipsterProfile(BaseModel):
    """Aggregate submission history for a tipster; read-only input."""

    id: str
    reliability_score: float = Field(default=50.0, ge=0, le=100)
    reliability_tier: ReliabilityTier = ReliabilityTier.UNRATED
    total_tips: int = Field(default=0, ge=0)
    verified_tips: int = Field(default=0, ge=0)
    false_tips: int = Field(default=0, ge=0)
    spam_tips: int = Field(default=0, ge=0)
    is_blocked: bool = False
    provides_photos: bool = False
    provides_detailed_info: bool = False
    consistent_location_reporting: bool = False


class KnownLocation(BaseModel):
    """Place associated with the subject (home, school, workplace)."""

    label: str
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class CaseContext(BaseModel):
    """The parts of a case the engine needs to score a tip."""

    id: str
    priority: CasePriority = CasePriority.MEDIUM
    last_seen_at: Optional[UtcDatetime] = None
    last_known_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    last_known_longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    last_known_location_text: Optional[str] = None
    physical_description: Optional[str] = None
    suspect_description: Optional[str] = None
    vehicle_description: Optional[str] = None
    known_locations: list[KnownLocation] = Field(default_factory=list)
    jurisdiction: Optional[str] = None
    created_at: UtcDatetime = Field(default_factory=utc_now)

    @property
    def reference_time(self) -> datetime:
        """Last-seen time, falling back to when the case was opened."""
        return self.last_seen_at or self.created_at


class Lead(BaseModel):
    """Investigator-curated lead for a case."""

    id: str
    case_id: str
    title: str = ""
    description: str = ""
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    location_text: Optional[str] = None
    occurred_at: Optional[UtcDatetime] = None
    status: str = "open"

    @property
    def text(self) -> str:
        return f"{self.title} {self.description}".strip()


class ScamPattern(BaseModel):
    """Known fraud signature.

    pattern_data keys:
        phrases: exact phrases (substring match, confidence 1.0)
        regex: regular expressions (confidence 0.9)
        keywords: keyword set (confidence = fraction present)
    """

    id: str
    name: str
    pattern_type: str = Field(default="text", description="text, structure or metadata")
    pattern_data: dict[str, list[str]] = Field(default_factory=dict)
    confidence_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    is_active: bool = True
    version: int = Field(default=1, ge=1)
    times_detected: int = Field(default=0, ge=0)
    last_detected_at: Optional[UtcDatetime] = None


class RuleType(str, Enum):
    """THRESHOLD rules tune TriageConfig before scoring; ROUTING rules adjust the decision."""

    THRESHOLD = "threshold"
    ROUTING = "routing"


class VerificationRule(BaseModel):
    """Named condition -> action mapping for jurisdiction-specific tuning."""

    id: str
    name: str
    rule_type: RuleType = RuleType.ROUTING
    conditions: dict[str, Any] = Field(default_factory=dict)
    actions: dict[str, Any] = Field(default_factory=dict)
    score_weight: float = Field(default=0.0, description="Audit weight reported with the rule action")
    priority: int = Field(default=100, description="Lower runs first")
    is_active: bool = True
    jurisdiction: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": "rule-7",
                "name": "tight_duplicate_radius_downtown",
                "rule_type": "threshold",
                "conditions": {"field": "case_priority", "operator": "in", "value": ["critical", "high"]},
                "actions": {"thresholds": {"duplicate_distance_km": 0.3}},
            }
        }
    }


__all__ = [
    "UtcDatetime",
    "utc_now",
    "CasePriority",
    "ReliabilityTier",
    "Attachment",
    "Tip",
    "TipsterProfile",
    "KnownLocation",
    "CaseContext",
    "Lead",
    "ScamPattern",
    "RuleType",
    "VerificationRule",
]
