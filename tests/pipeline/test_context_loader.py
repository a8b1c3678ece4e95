"""Tests for ContextLoader required and optional sources."""

import asyncio

import pytest

from conftest import sample_rows
from tip_triage.data_management.case_repository import InMemoryCaseRepository
from tip_triage.data_management.schemas.context_schema import (
    SOURCE_CASE_TIPS,
    SOURCE_LEADS,
    SOURCE_RULES,
    SOURCE_SCAM_PATTERNS,
    SOURCE_TIPSTER,
)
from tip_triage.errors import NotFoundError, PersistenceError
from tip_triage.pipeline import ContextLoader

TIMEOUT = 0.05


class SlowOptionalRepository(InMemoryCaseRepository):
    """Every optional source hangs past the loader timeout."""

    async def get_tipster(self, tipster_id):
        await asyncio.sleep(1)

    async def list_leads(self, case_id):
        await asyncio.sleep(1)

    async def list_case_tips(self, case_id):
        await asyncio.sleep(1)

    async def list_active_patterns(self):
        await asyncio.sleep(1)

    async def list_active_rules(self, jurisdiction):
        await asyncio.sleep(1)


class FailingPatternsRepository(InMemoryCaseRepository):
    async def list_active_patterns(self):
        raise ConnectionError("pattern registry unreachable")


class FailingTipRepository(InMemoryCaseRepository):
    async def get_tip(self, tip_id):
        raise ConnectionError("tip table unreachable")


class SlowCaseRepository(InMemoryCaseRepository):
    async def get_case(self, case_id):
        await asyncio.sleep(1)


def loader_for(repository_cls, timeout=TIMEOUT) -> ContextLoader:
    return ContextLoader.from_repository(repository_cls(sample_rows()), timeout=timeout)


class TestRequiredSources:
    @pytest.mark.asyncio
    async def test_full_context(self, repository):
        context = await ContextLoader.from_repository(repository).load("tip-photo", correlation_id="req-1")

        assert context.tip.id == "tip-photo"
        assert context.case.id == "case-001"
        assert context.tipster.id == "tipster-reliable"
        assert [p.id for p in context.scam_patterns] == ["scam-travel"]
        assert context.correlation_id == "req-1"
        assert context.degraded_sources == set()

    @pytest.mark.asyncio
    async def test_missing_tip(self, repository):
        with pytest.raises(NotFoundError):
            await ContextLoader.from_repository(repository).load("tip-missing")

    @pytest.mark.asyncio
    async def test_missing_case(self, repository):
        repository.add_row("tips", {"id": "tip-orphan", "case_id": "case-gone", "content": "x"})
        with pytest.raises(NotFoundError) as exc_info:
            await ContextLoader.from_repository(repository).load("tip-orphan")
        assert "case-gone" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_tip_source_failure(self):
        with pytest.raises(PersistenceError) as exc_info:
            await loader_for(FailingTipRepository).load("tip-photo")
        assert exc_info.value.details["stage"] == "load_tip"

    @pytest.mark.asyncio
    async def test_case_source_timeout(self):
        with pytest.raises(PersistenceError) as exc_info:
            await loader_for(SlowCaseRepository).load("tip-photo")
        assert exc_info.value.details["stage"] == "load_case"


class TestOptionalSources:
    @pytest.mark.asyncio
    async def test_timeouts_degrade(self):
        context = await loader_for(SlowOptionalRepository).load("tip-photo")

        assert context.degraded_sources == {
            SOURCE_TIPSTER,
            SOURCE_LEADS,
            SOURCE_CASE_TIPS,
            SOURCE_SCAM_PATTERNS,
            SOURCE_RULES,
        }
        assert context.tipster is None
        assert context.leads == []
        assert context.case_tips == []

    @pytest.mark.asyncio
    async def test_single_failure_degrades_only_that_source(self):
        context = await loader_for(FailingPatternsRepository).load("tip-scam")

        assert context.degraded_sources == {SOURCE_SCAM_PATTERNS}
        assert context.scam_patterns == []
        assert context.is_degraded(SOURCE_SCAM_PATTERNS)

    @pytest.mark.asyncio
    async def test_anonymous_tip_skips_tipster(self):
        # A slow tipster source never matters for anonymous tips
        context = await loader_for(SlowOptionalRepository).load("tip-vague")
        assert SOURCE_TIPSTER not in context.degraded_sources

    @pytest.mark.asyncio
    async def test_case_tips_exclude_self(self, repository):
        repository.add_row("tips", {"id": "tip-photo-2", "case_id": "case-001", "content": "Saw her too"})

        context = await ContextLoader.from_repository(repository).load("tip-photo")

        assert [t.id for t in context.case_tips] == ["tip-photo-2"]
