"""Tests for database repository."""

import os
import tempfile

import pytest

from dealdesk.db.repository import DealRepository
from dealdesk.errors import ConcurrentModificationError, DealNotFoundError, DuplicateDealError
from dealdesk.models import ActivityAction, ActivityEntry, Deal, DealStatus, RehabBudget


@pytest.fixture
def repo():
    """Create a temporary database for testing."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    r = DealRepository(f"sqlite:///{path}")
    yield r
    os.unlink(path)


def _make_deal(**overrides) -> Deal:
    defaults = {
        "deal_id": "DEAL-1700000000000-1",
        "address": "100 Test St",
        "created_by": "user1",
        "activity_log": [
            ActivityEntry(
                action=ActivityAction.CREATED,
                description="Deal created for 100 Test St",
                actor_id="user1",
                new_status=DealStatus.NEW_DEAL,
            )
        ],
    }
    defaults.update(overrides)
    return Deal(**defaults)


def _make_snapshot():
    from dealdesk.analysis.engine import AnalysisEngine
    from dealdesk.config import AnalysisConfig
    from dealdesk.models import ComparableSale, MarketSnapshot, PropertyFacts

    facts = PropertyFacts(address="100 Test St", sqft=1500, condition="fair")
    comps = [
        ComparableSale(address="1 Comp St", price_per_sqft=196.55),
        ComparableSale(address="2 Comp St", price_per_sqft=194.08),
        ComparableSale(address="3 Comp St", price_per_sqft=185.81),
    ]
    market = MarketSnapshot(estimated_value=290_000, rent_estimate=2_200)
    return AnalysisEngine(AnalysisConfig()).run(facts, comps, market, RehabBudget.flat(35_000))


def test_add_new_deal(repo):
    stored = repo.add(_make_deal())
    assert stored.version == 1
    assert repo.count() == 1


def test_get_roundtrips_fields(repo):
    repo.add(_make_deal(assignees=["user2"], offer_amount=150_000))
    deal = repo.get("DEAL-1700000000000-1")
    assert deal.address == "100 Test St"
    assert deal.status == DealStatus.NEW_DEAL
    assert deal.offer_amount == 150_000
    assert deal.assignees == ["user2"]
    assert deal.created_by == "user1"
    assert deal.created_at.tzinfo is not None
    assert len(deal.activity_log) == 1
    assert deal.activity_log[0].action == ActivityAction.CREATED
    assert deal.activity_log[0].new_status == DealStatus.NEW_DEAL


def test_get_missing_raises(repo):
    with pytest.raises(DealNotFoundError):
        repo.get("DEAL-0-0")


def test_duplicate_address_rejected(repo):
    repo.add(_make_deal())
    with pytest.raises(DuplicateDealError):
        repo.add(_make_deal(deal_id="DEAL-1700000000000-2"))
    assert repo.count() == 1


def test_find_by_address(repo):
    repo.add(_make_deal())
    assert repo.find_by_address("100 Test St").deal_id == "DEAL-1700000000000-1"
    assert repo.find_by_address("999 Nowhere Rd") is None


def test_snapshot_persisted(repo):
    snapshot = _make_snapshot()
    repo.add(_make_deal(snapshot=snapshot))
    deal = repo.get("DEAL-1700000000000-1")
    assert deal.snapshot.snapshot_id == snapshot.snapshot_id
    assert deal.snapshot.valuation.arv == 288_220
    assert deal.snapshot.valuation.mao == 166_754
    assert deal.snapshot.rehab.net_profit == snapshot.rehab.net_profit
    assert deal.snapshot.funding == snapshot.funding


def test_update_bumps_version_and_appends_activity(repo):
    deal = repo.add(_make_deal())
    entry = ActivityEntry(
        action=ActivityAction.STATUS_UPDATE,
        description="Status changed from new_deal to offer_sent",
        actor_id="user1",
        previous_status=DealStatus.NEW_DEAL,
        new_status=DealStatus.OFFER_SENT,
    )
    changed = deal.model_copy(
        update={"status": DealStatus.OFFER_SENT, "activity_log": [*deal.activity_log, entry]}
    )
    updated = repo.update(changed)
    assert updated.version == 2

    stored = repo.get(deal.deal_id)
    assert stored.version == 2
    assert stored.status == DealStatus.OFFER_SENT
    assert [a.action for a in stored.activity_log] == [
        ActivityAction.CREATED,
        ActivityAction.STATUS_UPDATE,
    ]


def test_stale_update_rejected(repo):
    repo.add(_make_deal())
    first = repo.get("DEAL-1700000000000-1")
    second = repo.get("DEAL-1700000000000-1")

    repo.update(first.model_copy(update={"status": DealStatus.OFFER_SENT}))
    with pytest.raises(ConcurrentModificationError):
        repo.update(second.model_copy(update={"status": DealStatus.PASSED}))

    assert repo.get("DEAL-1700000000000-1").status == DealStatus.OFFER_SENT


def test_update_missing_deal_raises(repo):
    with pytest.raises(DealNotFoundError):
        repo.update(_make_deal(version=1))


def test_delete_removes_deal_and_history(repo):
    repo.add(_make_deal())
    repo.delete("DEAL-1700000000000-1")
    assert repo.count() == 0
    with pytest.raises(DealNotFoundError):
        repo.get("DEAL-1700000000000-1")
    # the address can be reused afterwards
    repo.add(_make_deal(deal_id="DEAL-1700000000000-2"))
    assert len(repo.get("DEAL-1700000000000-2").activity_log) == 1


def test_delete_missing_raises(repo):
    with pytest.raises(DealNotFoundError):
        repo.delete("DEAL-0-0")


def test_list_deals_filters(repo):
    repo.add(_make_deal(deal_id="D-1", address="1 A St", assignees=["ann"]))
    repo.add(_make_deal(deal_id="D-2", address="2 B St", status=DealStatus.OFFER_SENT))
    repo.add(_make_deal(deal_id="D-3", address="3 C St", assignees=["ann", "bob"]))

    assert len(repo.list_deals()) == 3
    assert [d.deal_id for d in repo.list_deals(status=DealStatus.OFFER_SENT)] == ["D-2"]
    assert {d.deal_id for d in repo.list_deals(assignee="ann")} == {"D-1", "D-3"}
    assert [d.deal_id for d in repo.list_deals(assignee="bob")] == ["D-3"]
    assert len(repo.list_deals(limit=2)) == 2
    assert len(repo.list_deals(limit=2, offset=2)) == 1


def test_status_counts(repo):
    repo.add(_make_deal(deal_id="D-1", address="1 A St"))
    repo.add(_make_deal(deal_id="D-2", address="2 B St"))
    repo.add(_make_deal(deal_id="D-3", address="3 C St", status=DealStatus.PASSED))
    assert repo.status_counts() == {"new_deal": 2, "passed": 1}


def test_list_deals_creation_window(repo):
    from datetime import datetime, timedelta, timezone

    jan = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
    feb = datetime(2024, 2, 15, 12, 0, tzinfo=timezone.utc)
    mar = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
    repo.add(_make_deal(deal_id="D-1", address="1 A St", created_at=jan))
    repo.add(_make_deal(deal_id="D-2", address="2 B St", created_at=feb))
    repo.add(_make_deal(deal_id="D-3", address="3 C St", created_at=mar))

    after = repo.list_deals(created_after=feb)
    assert [d.deal_id for d in after] == ["D-3", "D-2"]
    before = repo.list_deals(created_before=feb)
    assert [d.deal_id for d in before] == ["D-1"]
    window = repo.list_deals(created_after=jan + timedelta(days=1), created_before=mar)
    assert [d.deal_id for d in window] == ["D-2"]

    # same instant expressed in another offset
    eastern = timezone(timedelta(hours=-5))
    assert [d.deal_id for d in repo.list_deals(created_after=mar.astimezone(eastern))] == ["D-3"]
