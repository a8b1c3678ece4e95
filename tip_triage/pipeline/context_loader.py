"""Context loader: gathers everything one verification needs.

| Source            | Required | On timeout / failure                          |
|-------------------|----------|-----------------------------------------------|
| tip               | yes      | PersistenceError (NotFoundError if absent)     |
| case              | yes      | PersistenceError (NotFoundError if absent)     |
| tipster history   | no       | degraded, tipster sub-score neutral           |
| leads             | no       | degraded, lead corroboration skipped          |
| case tips         | no       | degraded, duplicate check not evaluated       |
| scam patterns     | no       | degraded, heuristics only                     |
| rules             | no       | degraded, default thresholds                  |

Every call is bounded by ``settings.context_timeout_seconds``. Optional
sources load concurrently once the tip and case are known.
"""

import asyncio
from typing import Any, Awaitable, Optional, TypeVar

from tip_triage.config.settings import settings
from tip_triage.data_management.case_repository import (
    CaseSource,
    InMemoryCaseRepository,
    RuleRegistry,
    ScamPatternRegistry,
    TipSource,
    TipsterHistorySource,
)
from tip_triage.data_management.schemas import VerificationContext
from tip_triage.data_management.schemas.context_schema import (
    SOURCE_CASE_TIPS,
    SOURCE_LEADS,
    SOURCE_RULES,
    SOURCE_SCAM_PATTERNS,
    SOURCE_TIPSTER,
)
from tip_triage.errors import NotFoundError, PersistenceError, TipTriageError
from tip_triage.utils.logging import get_structured_logger

T = TypeVar("T")


class ContextLoader:
    """Loads a VerificationContext from the read-side collaborators."""

    def __init__(
        self,
        tips: TipSource,
        cases: CaseSource,
        tipsters: TipsterHistorySource,
        patterns: ScamPatternRegistry,
        rules: RuleRegistry,
        timeout: float = settings.context_timeout_seconds,
    ) -> None:
        self.tips = tips
        self.cases = cases
        self.tipsters = tipsters
        self.patterns = patterns
        self.rules = rules
        self.timeout = timeout
        self._logger = get_structured_logger(__name__, component="ContextLoader")

    @classmethod
    def from_repository(
        cls,
        repository: InMemoryCaseRepository,
        timeout: float = settings.context_timeout_seconds,
    ) -> "ContextLoader":
        return cls(repository, repository, repository, repository, repository, timeout=timeout)

    async def load(self, tip_id: str, correlation_id: Optional[str] = None) -> VerificationContext:
        """Load the tip, its case and every optional source.

        Raises:
            NotFoundError: Tip or case does not exist.
            PersistenceError: Tip or case could not be loaded in time.
        """
        tip = await self._required(self.tips.get_tip(tip_id), "load_tip", tip_id)
        if tip is None:
            raise NotFoundError("Tip", tip_id)

        case = await self._required(self.cases.get_case(tip.case_id), "load_case", tip_id)
        if case is None:
            raise NotFoundError("Case", tip.case_id)

        context = VerificationContext(tip=tip, case=case, correlation_id=correlation_id)

        wants_tipster = bool(tip.tipster_id) and not tip.is_anonymous
        (tipster, leads, case_tips, patterns, rules) = await asyncio.gather(
            self._optional(
                self.tipsters.get_tipster(tip.tipster_id) if wants_tipster else _none(),
                SOURCE_TIPSTER,
                context,
            ),
            self._optional(self.cases.list_leads(case.id), SOURCE_LEADS, context),
            self._optional(self.tips.list_case_tips(case.id), SOURCE_CASE_TIPS, context),
            self._optional(self.patterns.list_active_patterns(), SOURCE_SCAM_PATTERNS, context),
            self._optional(self.rules.list_active_rules(case.jurisdiction), SOURCE_RULES, context),
        )

        context.tipster = tipster
        context.leads = list(leads or [])
        context.case_tips = [t for t in case_tips or [] if t.id != tip.id]
        context.scam_patterns = list(patterns or [])
        context.rules = list(rules or [])

        self._logger.debug(
            "context_loaded",
            tip_id=tip.id,
            case_id=case.id,
            leads=len(context.leads),
            case_tips=len(context.case_tips),
            patterns=len(context.scam_patterns),
            rules=len(context.rules),
            degraded=sorted(context.degraded_sources),
        )
        return context

    async def _required(self, call: Awaitable[T], stage: str, tip_id: str) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            self._logger.error("context_timeout", tip_id=tip_id, stage=stage, timeout=self.timeout)
            raise PersistenceError(f"Timed out during {stage}", tip_id=tip_id, stage=stage) from e
        except TipTriageError:
            raise
        except Exception as e:
            self._logger.error("context_failed", tip_id=tip_id, stage=stage, error=str(e), exc_info=True)
            raise PersistenceError(f"Failed during {stage}: {e}", tip_id=tip_id, stage=stage) from e

    async def _optional(
        self,
        call: Awaitable[Any],
        source: str,
        context: VerificationContext,
    ) -> Any:
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError:
            self._logger.warning(
                "context_source_degraded",
                tip_id=context.tip.id,
                source=source,
                reason="timeout",
            )
        except Exception as e:
            self._logger.warning(
                "context_source_degraded",
                tip_id=context.tip.id,
                source=source,
                reason="error",
                error=str(e),
                exc_info=True,
            )
        context.degraded_sources.add(source)
        return None


async def _none() -> None:
    return None


__all__ = ["ContextLoader"]
