"""Verification rules as an injected strategy.

Rules never touch the base sub-score weights. They come in two kinds:

- THRESHOLD rules run before the evaluators. Their ``actions["thresholds"]``
  mapping overrides TriageConfig fields for this verification only.
- ROUTING rules run after triage. ``actions["require_review"]`` forces human
  review; ``actions["review_priority"]`` lowers the review priority number
  (the minimum of current and rule value wins).

Conditions are nested dicts::

    {"all": [cond, ...]}
    {"any": [cond, ...]}
    {"field": "case_priority", "operator": "in", "value": ["critical", "high"]}

Operators: = != > < >= <= in not_in. A condition on a fact that is absent
is false. An empty condition always matches. Rules apply in ascending
``priority``, then name.
"""

from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from tip_triage.config.triage_config import (
    BUCKET_THRESHOLD_FIELDS,
    DEFAULT_TRIAGE_CONFIG,
    TriageConfig,
)
from tip_triage.data_management.schemas import (
    RuleType,
    VerificationContext,
    VerificationRule,
    VerificationStatus,
)
from tip_triage.sifters.triage.triage_engine import AUTO_VERIFIED, TriageDecision

OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "=": lambda actual, expected: actual == expected,
    "!=": lambda actual, expected: actual != expected,
    ">": lambda actual, expected: actual > expected,
    "<": lambda actual, expected: actual < expected,
    ">=": lambda actual, expected: actual >= expected,
    "<=": lambda actual, expected: actual <= expected,
    "in": lambda actual, expected: actual in expected,
    "not_in": lambda actual, expected: actual not in expected,
}


def pre_score_facts(context: VerificationContext) -> Dict[str, Any]:
    """Facts available to THRESHOLD rules, before any scoring."""
    tip, case = context.tip, context.case
    facts: Dict[str, Any] = {
        "case_priority": case.priority.value,
        "is_anonymous": tip.is_anonymous,
        "has_photo": bool(tip.image_attachments),
        "has_location": tip.has_coordinates or bool(tip.location_text),
        "jurisdiction": case.jurisdiction,
    }
    if context.tipster is not None:
        facts["tipster_reliability_tier"] = context.tipster.reliability_tier.value
    return {k: v for k, v in facts.items() if v is not None}


def condition_fields(condition: Mapping[str, Any]) -> Set[str]:
    """Names of every fact a nested condition reads."""
    if not condition:
        return set()
    for key in ("all", "any"):
        if key in condition:
            return set().union(*(condition_fields(c) for c in condition[key]))
    name = condition.get("field")
    return {name} if name is not None else set()


def evaluate_condition(condition: Mapping[str, Any], facts: Mapping[str, Any]) -> bool:
    """Evaluate a nested all/any/leaf condition against a fact mapping."""
    if not condition:
        return True
    if "all" in condition:
        return all(evaluate_condition(c, facts) for c in condition["all"])
    if "any" in condition:
        return any(evaluate_condition(c, facts) for c in condition["any"])

    name = condition.get("field")
    operator = OPERATORS.get(condition.get("operator", "="))
    if name is None or operator is None or name not in facts:
        return False

    actual, expected = facts[name], condition.get("value")
    if hasattr(actual, "value"):
        actual = actual.value
    try:
        return bool(operator(actual, expected))
    except TypeError:
        return False


class RuleSet:
    """
    Active verification rules for one verification, applied as a strategy.

    Usage:
        rules = RuleSet(context.rules)
        config, applied = rules.resolve_config(pre_score_facts(context))
        ...
        decision, routed = rules.apply_routing(decision, facts)
    """

    def __init__(self, rules: Iterable[VerificationRule] = ()):
        self.rules = sorted(
            (r for r in rules if r.is_active),
            key=lambda r: (r.priority, r.name),
        )
        self._logger = logger.bind(component="RuleSet")

    def __len__(self) -> int:
        return len(self.rules)

    def _matching(self, rule_type: RuleType, facts: Mapping[str, Any]) -> List[VerificationRule]:
        jurisdiction = facts.get("jurisdiction")
        return [
            rule
            for rule in self.rules
            if rule.rule_type == rule_type
            and (rule.jurisdiction is None or rule.jurisdiction == jurisdiction)
            and evaluate_condition(rule.conditions, facts)
        ]

    def resolve_config(
        self,
        facts: Mapping[str, Any],
        base: TriageConfig = DEFAULT_TRIAGE_CONFIG,
    ) -> Tuple[TriageConfig, List[VerificationRule]]:
        """Apply matching THRESHOLD rules on top of base.

        A rule whose overrides fail validation is skipped with a warning and
        does not count as applied. Bucket thresholds are shared by every case
        priority, so a rule that conditions on ``case_priority`` and moves one
        is skipped the same way.
        """
        config = base
        applied: List[VerificationRule] = []
        for rule in self._matching(RuleType.THRESHOLD, facts):
            overrides = rule.actions.get("thresholds") or {}
            per_priority = "case_priority" in condition_fields(rule.conditions)
            if per_priority and BUCKET_THRESHOLD_FIELDS.intersection(overrides):
                self._logger.warning(
                    f"Rule {rule.name} moves bucket thresholds for one case priority, skipped",
                    rule_id=rule.id,
                )
                continue
            try:
                config = config.with_overrides(overrides)
            except PydanticValidationError as e:
                self._logger.warning(
                    f"Rule {rule.name} has invalid threshold overrides, skipped",
                    rule_id=rule.id,
                    errors=e.error_count(),
                )
                continue
            applied.append(rule)
            self._logger.debug(f"Threshold rule {rule.name} applied", overrides=overrides)
        return config, applied

    def apply_routing(
        self,
        decision: TriageDecision,
        facts: Mapping[str, Any],
    ) -> Tuple[TriageDecision, List[VerificationRule]]:
        """Apply matching ROUTING rules to a triage decision."""
        applied: List[VerificationRule] = []
        for rule in self._matching(RuleType.ROUTING, facts):
            changed = False
            if rule.actions.get("require_review") and not decision.requires_human_review:
                decision = replace(
                    decision,
                    requires_human_review=True,
                    auto_triaged=False,
                    auto_triage_reason=(
                        None if decision.auto_triage_reason == AUTO_VERIFIED
                        else decision.auto_triage_reason
                    ),
                    status=VerificationStatus.PENDING_REVIEW,
                )
                changed = True

            priority: Optional[int] = rule.actions.get("review_priority")
            if isinstance(priority, int) and 1 <= priority < decision.review_priority:
                decision = replace(decision, review_priority=priority)
                changed = True

            if changed:
                applied.append(rule)
                self._logger.debug(f"Routing rule {rule.name} applied")
        return decision, applied


__all__ = [
    "RuleSet",
    "OPERATORS",
    "condition_fields",
    "evaluate_condition",
    "pre_score_facts",
]
