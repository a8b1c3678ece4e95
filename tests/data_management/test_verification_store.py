"""Tests for VerificationStore.

Tests cover:
- Save and retrieve by tip and by record id
- One record per tip; replacement keeps id and bumps version
- Update, restore and rollback on persistence failure
- Filtered listing and statistics
- JSON persistence round trip
"""

from datetime import timedelta

import pytest
import pytest_asyncio

from conftest import T0, make_record
from tip_triage.data_management.schemas import PriorityBucket, VerificationStatus
from tip_triage.data_management.verification_store import VerificationStore
from tip_triage.errors import ConflictError, NotFoundError, PersistenceError


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture
def store() -> VerificationStore:
    return VerificationStore()


# ── Save / get ────────────────────────────────────────────────────────────


class TestSave:
    @pytest.mark.asyncio
    async def test_save_and_get(self, store):
        saved, previous = await store.save(make_record())

        assert previous is None
        assert (await store.get_by_tip("tip-001")).id == saved.id
        assert (await store.get(saved.id)).tip_id == "tip-001"

    @pytest.mark.asyncio
    async def test_unknown_lookups(self, store):
        assert await store.get_by_tip("tip-missing") is None
        with pytest.raises(NotFoundError):
            await store.get("ver-missing")

    @pytest.mark.asyncio
    async def test_second_record_for_tip_conflicts(self, store):
        first, _ = await store.save(make_record())

        with pytest.raises(ConflictError) as exc_info:
            await store.save(make_record(credibility_score=90))

        assert exc_info.value.reason == "already_verified"
        assert exc_info.value.details["verification_id"] == first.id

    @pytest.mark.asyncio
    async def test_replace_keeps_id_and_bumps_version(self, store):
        first, _ = await store.save(make_record())
        second, previous = await store.save(make_record(credibility_score=90), replace=True)

        assert second.id == first.id
        assert second.version == 2
        assert previous.credibility_score == 50
        assert (await store.get(first.id)).credibility_score == 90

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, store):
        saved, _ = await store.save(make_record())
        saved.credibility_score = 1
        assert (await store.get_by_tip("tip-001")).credibility_score == 50


# ── Update / restore ──────────────────────────────────────────────────────


class TestUpdateRestore:
    @pytest.mark.asyncio
    async def test_update_returns_previous(self, store):
        saved, _ = await store.save(make_record())
        saved.status = VerificationStatus.VERIFIED

        previous = await store.update(saved)

        assert previous.status == VerificationStatus.PENDING_REVIEW
        assert (await store.get(saved.id)).status == VerificationStatus.VERIFIED

    @pytest.mark.asyncio
    async def test_update_unknown_record(self, store):
        with pytest.raises(NotFoundError):
            await store.update(make_record())

    @pytest.mark.asyncio
    async def test_restore_none_removes_record(self, store):
        saved, previous = await store.save(make_record())
        await store.restore(saved.tip_id, previous)

        assert await store.get_by_tip("tip-001") is None
        with pytest.raises(NotFoundError):
            await store.get(saved.id)

    @pytest.mark.asyncio
    async def test_restore_previous_version(self, store):
        await store.save(make_record())
        replaced, previous = await store.save(make_record(credibility_score=90), replace=True)

        await store.restore(replaced.tip_id, previous)

        restored = await store.get_by_tip("tip-001")
        assert restored.version == 1
        assert restored.credibility_score == 50


# ── Listing / stats ───────────────────────────────────────────────────────


class TestListing:
    @pytest_asyncio.fixture
    async def populated(self, store):
        await store.save(make_record(tip_id="tip-a", case_id="case-1", verified_at=T0))
        await store.save(
            make_record(
                tip_id="tip-b",
                case_id="case-1",
                verified_at=T0 + timedelta(minutes=5),
                priority_bucket=PriorityBucket.LOW,
                hoax_indicators=["payment_request", "shouting"],
                spam_score=35,
                credibility_score=20,
            )
        )
        await store.save(
            make_record(
                tip_id="tip-c",
                case_id="case-2",
                verified_at=T0 + timedelta(minutes=10),
                status=VerificationStatus.AUTO_VERIFIED,
                auto_triaged=True,
                requires_human_review=False,
                credibility_score=90,
                hoax_indicators=[],
            )
        )
        return store

    @pytest.mark.asyncio
    async def test_newest_first(self, populated):
        records, total = await populated.list_records()
        assert total == 3
        assert [r.tip_id for r in records] == ["tip-c", "tip-b", "tip-a"]

    @pytest.mark.asyncio
    async def test_filters_and_paging(self, populated):
        records, total = await populated.list_records(case_id="case-1", limit=1, offset=1)
        assert total == 2
        assert [r.tip_id for r in records] == ["tip-a"]

        records, _ = await populated.list_records(requires_review=False)
        assert [r.tip_id for r in records] == ["tip-c"]

        records, _ = await populated.list_records(priority_bucket=PriorityBucket.LOW)
        assert [r.tip_id for r in records] == ["tip-b"]

    @pytest.mark.asyncio
    async def test_stats(self, populated):
        stats = await populated.get_stats()

        assert stats["total"] == 3
        assert stats["status_counts"] == {"pending_review": 2, "auto_verified": 1}
        assert stats["average_credibility"] == pytest.approx(53.3)
        assert stats["bucket_distribution"] == {"standard": 2, "low": 1}
        assert stats["auto_verified"] == 1
        assert stats["top_hoax_indicators"][0]["count"] == 1

    @pytest.mark.asyncio
    async def test_empty_stats(self, store):
        stats = await store.get_stats()
        assert stats["total"] == 0
        assert stats["average_credibility"] is None


# ── Persistence ───────────────────────────────────────────────────────────


class TestPersistence:
    @pytest.mark.asyncio
    async def test_reload_from_file(self, tmp_path):
        path = tmp_path / "records.json"
        store = VerificationStore(persistence_path=str(path))
        saved, _ = await store.save(make_record(similarity_scores={"tip:tip-9": 0.8}))

        reloaded = VerificationStore(persistence_path=str(path))
        record = await reloaded.get(saved.id)

        assert record.tip_id == "tip-001"
        assert record.similarity_scores == {"tip:tip-9": 0.8}
        assert record.review_deadline == T0 + timedelta(hours=24)

    @pytest.mark.asyncio
    async def test_failed_write_rolls_back(self, tmp_path):
        path = tmp_path / "blocked" / "records.json"
        store = VerificationStore(persistence_path=str(path))
        # Parent is a file, so the directory cannot be created
        (tmp_path / "blocked").write_text("not a directory")

        with pytest.raises(PersistenceError):
            await store.save(make_record())

        assert await store.get_by_tip("tip-001") is None

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "records.json"
        path.write_text("{not json")
        with pytest.raises(PersistenceError):
            VerificationStore(persistence_path=str(path))
