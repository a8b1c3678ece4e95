"""Shared builders and fixtures for tip verification tests.

All timestamps hang off T0 so scores are reproducible; MutableClock is
injected wherever the code asks for "now".
"""

from datetime import datetime, timedelta, timezone

import pytest

from tip_triage.data_management.case_repository import InMemoryCaseRepository
from tip_triage.data_management.schemas import (
    Attachment,
    CaseContext,
    CasePriority,
    PriorityBucket,
    QueueItem,
    QueueType,
    Tip,
    VerificationContext,
    VerificationRecord,
)

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

# 6371 km * pi / 180: one degree of latitude along a meridian
KM_PER_DEGREE_LAT = 111.19492664455873

LAST_SEEN = (40.0, -74.0)

PHOTO_TIP_CONTENT = (
    "Saw a girl in a red jacket with a blue backpack at the bus stop on Main Street "
    "around 3:15 pm, walking towards the park."
)


def north_of(km: float, origin=LAST_SEEN) -> tuple[float, float]:
    """Point km kilometres due north of origin."""
    return origin[0] + km / KM_PER_DEGREE_LAT, origin[1]


class MutableClock:
    """Injectable clock whose time tests move explicitly."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now += timedelta(**delta)


def make_attachment(**overrides) -> Attachment:
    data = {
        "id": "att-1",
        "file_name": "IMG_0001.jpg",
        "mime_type": "image/jpeg",
    }
    data.update(overrides)
    return Attachment(**data)


def make_tip(**overrides) -> Tip:
    data = {
        "id": "tip-001",
        "case_id": "case-001",
        "content": "Saw a girl near the bus stop on Main Street",
        "created_at": T0 + timedelta(hours=1),
        "is_anonymous": True,
    }
    data.update(overrides)
    return Tip(**data)


def make_case(**overrides) -> CaseContext:
    data = {
        "id": "case-001",
        "priority": CasePriority.MEDIUM,
        "created_at": T0,
        "last_seen_at": T0,
        "last_known_latitude": LAST_SEEN[0],
        "last_known_longitude": LAST_SEEN[1],
    }
    data.update(overrides)
    return CaseContext(**data)


def make_context(tip=None, case=None, **fields) -> VerificationContext:
    return VerificationContext(tip=tip or make_tip(), case=case or make_case(), **fields)


def make_record(**overrides) -> VerificationRecord:
    data = {
        "tip_id": "tip-001",
        "case_id": "case-001",
        "photo_verification_score": 50,
        "location_verification_score": 50,
        "time_plausibility_score": 50,
        "text_analysis_score": 50,
        "cross_reference_score": 50,
        "tipster_reliability_score": 50,
        "credibility_score": 50,
        "priority_bucket": PriorityBucket.STANDARD,
        "review_priority": 5,
        "review_deadline": T0 + timedelta(hours=24),
        "verified_at": T0,
    }
    data.update(overrides)
    return VerificationRecord(**data)


def make_queue_item(**overrides) -> QueueItem:
    data = {
        "tip_id": "tip-001",
        "verification_id": "ver-001",
        "case_id": "case-001",
        "queue_type": QueueType.STANDARD,
        "priority": 5,
        "sla_deadline": T0 + timedelta(hours=24),
        "created_at": T0,
    }
    data.update(overrides)
    return QueueItem(**data)


def sample_rows() -> dict:
    """Storage rows for three independent cases, one per example scenario."""
    photo_lat, photo_lon = north_of(2.0)
    vague_lat, vague_lon = north_of(52.0)
    return {
        "cases": [
            {
                "id": "case-001",
                "priority_level": "p0_critical",
                "created_at": T0.isoformat(),
                "last_seen_date": T0.isoformat(),
                "last_seen_latitude": LAST_SEEN[0],
                "last_seen_longitude": LAST_SEEN[1],
                "physical_description": "14 year old girl with long brown hair, red jacket and blue backpack",
                "jurisdiction": "NY",
            },
            {
                "id": "case-002",
                "priority_level": "p2_medium",
                "created_at": T0.isoformat(),
                "last_seen_latitude": LAST_SEEN[0],
                "last_seen_longitude": LAST_SEEN[1],
            },
            {
                "id": "case-003",
                "priority_level": "p2_medium",
                "created_at": T0.isoformat(),
            },
        ],
        "tips": [
            {
                "id": "tip-photo",
                "case_id": "case-001",
                "content": PHOTO_TIP_CONTENT,
                "latitude": photo_lat,
                "longitude": photo_lon,
                "sighting_date": (T0 + timedelta(hours=1)).isoformat(),
                "created_at": (T0 + timedelta(hours=1)).isoformat(),
                "is_anonymous": False,
                "tipster_profile_id": "tipster-reliable",
                "attachments": [
                    {
                        "id": "att-photo",
                        "file_name": "IMG_2231.jpg",
                        "mime_type": "image/jpeg",
                        "capture_timestamp": (T0 + timedelta(hours=1)).isoformat(),
                        "exif_data": {"Make": "Apple", "Model": "iPhone 13"},
                        "gps_latitude": photo_lat,
                        "gps_longitude": photo_lon,
                        "faces_detected": 1,
                        "matches_missing_person": True,
                    }
                ],
            },
            {
                "id": "tip-vague",
                "case_id": "case-002",
                "content": "thought I saw someone similar",
                "latitude": vague_lat,
                "longitude": vague_lon,
                "sighting_date": (T0 + timedelta(hours=72)).isoformat(),
                "created_at": (T0 + timedelta(hours=72, minutes=30)).isoformat(),
                "is_anonymous": True,
            },
            {
                "id": "tip-scam",
                "case_id": "case-003",
                "content": "I know where she is. Send money for travel expenses and I will bring her home.",
                "created_at": (T0 + timedelta(hours=2)).isoformat(),
                "is_anonymous": True,
            },
        ],
        "leads": [],
        "tipsters": [
            {
                "id": "tipster-reliable",
                "reliability_score": 80,
                "reliability_tier": "high",
                "total_tips": 12,
                "verified_tips": 9,
                "provides_photos": True,
                "provides_detailed_info": True,
                "consistent_location_reporting": True,
            }
        ],
        "scam_patterns": [
            {
                "id": "scam-travel",
                "pattern_name": "travel_expenses_scam",
                "pattern_type": "text",
                "pattern_data": {"phrases": ["send money for travel expenses"]},
                "confidence_threshold": 0.8,
                "is_active": True,
            }
        ],
        "rules": [],
    }


@pytest.fixture
def clock():
    return MutableClock()


@pytest.fixture
def repository():
    return InMemoryCaseRepository(sample_rows())
