"""Triage decision table and verification rule strategy."""

from tip_triage.sifters.triage.rule_engine import RuleSet, evaluate_condition, pre_score_facts
from tip_triage.sifters.triage.triage_engine import (
    AUTO_VERIFIED,
    SUSPECTED_HOAX,
    TriageDecision,
    TriageEngine,
)

__all__ = [
    "RuleSet",
    "evaluate_condition",
    "pre_score_facts",
    "TriageEngine",
    "TriageDecision",
    "AUTO_VERIFIED",
    "SUSPECTED_HOAX",
]
