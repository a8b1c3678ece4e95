"""Boundary mapping between storage rows and engine models.

Storage rows follow the case-management database's column naming
(``sighting_date``, ``tipster_profile_id``, ``priority_level = "p0_critical"``,
``photo_score`` ...). The engine uses its own names (``sighting_time``,
``tipster_id``, ``CasePriority.CRITICAL``, ``photo_verification_score`` ...).
Everything that crosses the boundary goes through this module so scoring code
never sees a storage column name.

Usage:
    from tip_triage.data_management import mappers

    tip = mappers.tip_from_row(row)
    row = mappers.record_to_row(record)
"""

from typing import Any, Mapping

from tip_triage.data_management.schemas import (
    Attachment,
    CaseContext,
    CasePriority,
    Lead,
    QueueItem,
    ScamPattern,
    Tip,
    TipsterProfile,
    VerificationRecord,
    VerificationRule,
)

Row = Mapping[str, Any]

# storage column -> engine field; unlisted columns pass through unchanged
TIP_FIELDS = {
    "location": "location_text",
    "sighting_date": "sighting_time",
    "tipster_profile_id": "tipster_id",
}
CASE_FIELDS = {
    "priority_level": "priority",
    "last_seen_date": "last_seen_at",
    "last_seen_latitude": "last_known_latitude",
    "last_seen_longitude": "last_known_longitude",
    "last_seen_location": "last_known_location_text",
}
LEAD_FIELDS = {
    "location": "location_text",
    "lead_date": "occurred_at",
}
SCAM_PATTERN_FIELDS = {"pattern_name": "name"}
RULE_FIELDS = {"rule_name": "name"}
RECORD_FIELDS = {
    "photo_score": "photo_verification_score",
    "location_score": "location_verification_score",
    "time_score": "time_plausibility_score",
    "text_score": "text_analysis_score",
    "cross_reference_score": "cross_reference_score",
    "tipster_score": "tipster_reliability_score",
    "review_due_at": "review_deadline",
    "verification_status": "status",
    "ai_summary": "summary",
    "override_score": "reviewer_credibility_override",
}
QUEUE_FIELDS = {"tip_verification_id": "verification_id"}

# Case-management priority codes
CASE_PRIORITY_CODES = {
    "p0_critical": CasePriority.CRITICAL,
    "p1_high": CasePriority.HIGH,
    "p2_medium": CasePriority.MEDIUM,
    "p3_low": CasePriority.LOW,
    "p4_routine": CasePriority.ROUTINE,
}
_PRIORITY_CODE_BY_LEVEL = {level: code for code, level in CASE_PRIORITY_CODES.items()}


def _rename(row: Row, mapping: Mapping[str, str]) -> dict[str, Any]:
    return {mapping.get(key, key): value for key, value in row.items()}


def _invert(mapping: Mapping[str, str]) -> dict[str, str]:
    return {engine: column for column, engine in mapping.items()}


def parse_case_priority(value: Any) -> CasePriority:
    """Accept storage codes (``p0_critical``) or plain level names (``critical``)."""
    if isinstance(value, CasePriority):
        return value
    text = str(value).strip().lower()
    if text in CASE_PRIORITY_CODES:
        return CASE_PRIORITY_CODES[text]
    return CasePriority(text)


def attachment_from_row(row: Row) -> Attachment:
    return Attachment.model_validate(dict(row))


def tip_from_row(row: Row) -> Tip:
    data = _rename(row, TIP_FIELDS)
    data["attachments"] = [attachment_from_row(a) for a in data.get("attachments") or []]
    return Tip.model_validate({k: v for k, v in data.items() if k in Tip.model_fields})


def case_from_row(row: Row) -> CaseContext:
    data = _rename(row, CASE_FIELDS)
    if data.get("priority") is not None:
        data["priority"] = parse_case_priority(data["priority"])
    return CaseContext.model_validate(
        {k: v for k, v in data.items() if k in CaseContext.model_fields}
    )


def case_priority_code(priority: CasePriority) -> str:
    return _PRIORITY_CODE_BY_LEVEL[priority]


def lead_from_row(row: Row) -> Lead:
    data = _rename(row, LEAD_FIELDS)
    return Lead.model_validate({k: v for k, v in data.items() if k in Lead.model_fields})


def tipster_from_row(row: Row) -> TipsterProfile:
    return TipsterProfile.model_validate(
        {k: v for k, v in row.items() if k in TipsterProfile.model_fields}
    )


def scam_pattern_from_row(row: Row) -> ScamPattern:
    return ScamPattern.model_validate(_rename(row, SCAM_PATTERN_FIELDS))


def scam_pattern_to_row(pattern: ScamPattern) -> dict[str, Any]:
    return _rename(pattern.model_dump(mode="json"), _invert(SCAM_PATTERN_FIELDS))


def rule_from_row(row: Row) -> VerificationRule:
    return VerificationRule.model_validate(_rename(row, RULE_FIELDS))


def record_from_row(row: Row) -> VerificationRecord:
    return VerificationRecord.model_validate(_rename(row, RECORD_FIELDS))


def record_to_row(record: VerificationRecord) -> dict[str, Any]:
    return _rename(record.model_dump(mode="json"), _invert(RECORD_FIELDS))


def queue_item_from_row(row: Row) -> QueueItem:
    return QueueItem.model_validate(_rename(row, QUEUE_FIELDS))


def queue_item_to_row(item: QueueItem) -> dict[str, Any]:
    return _rename(item.model_dump(mode="json"), _invert(QUEUE_FIELDS))


def tip_summary(row: Row) -> dict[str, Any]:
    """Compact tip view joined onto verification listings."""
    content = str(row.get("content") or "")
    return {
        "id": row.get("id"),
        "case_id": row.get("case_id"),
        "content_preview": content[:140],
        "location_text": row.get("location"),
        "sighting_time": row.get("sighting_date"),
        "is_anonymous": bool(row.get("is_anonymous", False)),
        "attachment_count": len(row.get("attachments") or []),
    }


__all__ = [
    "CASE_PRIORITY_CODES",
    "parse_case_priority",
    "case_priority_code",
    "attachment_from_row",
    "tip_from_row",
    "case_from_row",
    "lead_from_row",
    "tipster_from_row",
    "scam_pattern_from_row",
    "scam_pattern_to_row",
    "rule_from_row",
    "record_from_row",
    "record_to_row",
    "queue_item_from_row",
    "queue_item_to_row",
    "tip_summary",
]
