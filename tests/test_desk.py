"""Tests for the DealDesk service layer."""

import os
import tempfile
from pathlib import Path

import pytest

from dealdesk.config import AppConfig, PipelineConfig
from dealdesk.db.repository import DealRepository
from dealdesk.desk import DealDesk
from dealdesk.errors import (
    DealDeskError,
    DuplicateDealError,
    InsufficientDataError,
    InvalidTransitionError,
    PropertyNotFoundError,
)
from dealdesk.events.dispatcher import EventDispatcher
from dealdesk.models import (
    ComparableSale,
    DealStatus,
    EventName,
    MarketSnapshot,
    PropertyFacts,
    RehabBudget,
)
from dealdesk.sources.static import PropertyRecord, StaticPropertySource

SAMPLE = Path(__file__).parent.parent / "samples" / "property.json"
ADDRESS = "742 Evergreen Ter"


@pytest.fixture
def repo():
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    r = DealRepository(f"sqlite:///{path}")
    yield r
    os.unlink(path)


@pytest.fixture
def source():
    return StaticPropertySource.from_json_file(SAMPLE)


@pytest.fixture
def events():
    received = []
    dispatcher = EventDispatcher()
    dispatcher.subscribe(received.append)
    dispatcher.received = received
    return dispatcher


@pytest.fixture
def desk(repo, source, events):
    return DealDesk(AppConfig(), source=source, repository=repo, events=events)


def _names(events):
    return [e.name for e in events.received]


class TestStaticSource:
    def test_loads_sample(self, source):
        assert source.addresses == [ADDRESS]
        assert source.get_facts(ADDRESS).sqft == 1500
        assert len(source.get_comparables(ADDRESS)) == 3
        assert source.get_market(ADDRESS).rent_estimate == 2200
        assert source.get_rehab(ADDRESS).total == 35_000

    def test_unknown_address(self, source):
        with pytest.raises(PropertyNotFoundError):
            source.get_facts("1 Nowhere Rd")

    def test_loads_list_of_records(self, tmp_path):
        path = tmp_path / "props.json"
        path.write_text(
            '[{"facts": {"address": "1 A St"}}, '
            '{"facts": {"address": "2 B St"}, "market": {"rent_estimate": 1500}}]'
        )
        src = StaticPropertySource.from_json_file(path)
        assert src.addresses == ["1 A St", "2 B St"]
        assert src.get_comparables("1 A St") == []
        assert src.get_rehab("1 A St") is None


class TestRunAnalysis:
    def test_example_property(self, desk, source, events):
        snapshot = desk.run_analysis(
            source.get_facts(ADDRESS),
            source.get_comparables(ADDRESS),
            source.get_market(ADDRESS),
            source.get_rehab(ADDRESS),
        )
        assert snapshot.valuation.arv == 288_220
        assert snapshot.valuation.mao == 166_754
        assert _names(events) == [EventName.ANALYSIS_COMPLETED]
        assert events.received[0].snapshot_id == snapshot.snapshot_id
        assert events.received[0].deal_id is None

    def test_default_rehab_budget(self, desk, source):
        snapshot = desk.run_analysis(
            source.get_facts(ADDRESS),
            source.get_comparables(ADDRESS),
            source.get_market(ADDRESS),
        )
        assert snapshot.rehab_budget.total == 35_000
        assert snapshot.rehab_budget.breakdown is not None

    def test_no_comps_raises_without_event(self, desk, events):
        with pytest.raises(InsufficientDataError):
            desk.run_analysis(PropertyFacts(address="1 A St", sqft=1000), [], MarketSnapshot())
        assert events.received == []


class TestDealLifecycle:
    def test_open_deal(self, desk, events):
        deal = desk.open_deal(ADDRESS, "user1", assignees=["user2"])
        assert deal.status == DealStatus.NEW_DEAL
        assert deal.snapshot.valuation.mao == 166_754
        assert deal.assignees == ["user2"]
        assert _names(events) == [EventName.ANALYSIS_COMPLETED]
        assert events.received[0].deal_id == deal.deal_id

    def test_open_duplicate_rejected(self, desk):
        desk.open_deal(ADDRESS, "user1")
        with pytest.raises(DuplicateDealError):
            desk.open_deal(ADDRESS, "user2")

    def test_open_without_source(self, repo, events):
        desk = DealDesk(AppConfig(), repository=repo, events=events)
        with pytest.raises(DealDeskError):
            desk.open_deal(ADDRESS, "user1")
        assert repo.count() == 0

    def test_submit_offer_publishes(self, desk, events):
        deal = desk.open_deal(ADDRESS, "user1")
        deal = desk.submit_offer(deal.deal_id, 150_000, "user1")
        assert deal.status == DealStatus.OFFER_SENT
        assert _names(events)[1:] == [EventName.OFFER_SUBMITTED, EventName.DEAL_STATUS_CHANGED]
        assert events.received[1].data == {"amount": "150000.00"}
        assert events.received[2].data == {"previous_status": "new_deal", "new_status": "offer_sent"}

    def test_rejected_transition_publishes_nothing(self, desk, events):
        deal = desk.open_deal(ADDRESS, "user1")
        desk.transition_deal(deal.deal_id, DealStatus.PASSED, "user1")
        count = len(events.received)
        with pytest.raises(InvalidTransitionError):
            desk.transition_deal(deal.deal_id, DealStatus.OFFER_SENT, "user1")
        assert len(events.received) == count

    def test_reanalyze_with_new_offer(self, desk, events):
        deal = desk.open_deal(ADDRESS, "user1")
        desk.transition_deal(deal.deal_id, DealStatus.OFFER_ACCEPTED, "user1")
        deal = desk.reanalyze_deal(deal.deal_id, updated_offer_amount=150_000, actor_id="user2")
        assert deal.status == DealStatus.OFFER_ACCEPTED
        assert deal.offer_amount == 150_000
        assert deal.snapshot.offer_amount == 150_000
        assert deal.snapshot.wholesale.buy_price == 150_000
        assert deal.snapshot.rehab.gross_profit == 288_220 - 150_000 - 35_000
        assert _names(events)[-1] == EventName.ANALYSIS_COMPLETED
        assert events.received[-1].snapshot_id == deal.snapshot.snapshot_id

    def test_reanalyze_picks_up_new_data(self, desk, source):
        deal = desk.open_deal(ADDRESS, "user1")
        record = source.record(ADDRESS)
        source.add(
            PropertyRecord(
                facts=record.facts,
                comparables=[*record.comparables, ComparableSale(address="9 New St", price_per_sqft=250.0)],
                market=record.market,
                rehab=RehabBudget.flat(50_000),
            )
        )
        deal = desk.reanalyze_deal(deal.deal_id)
        assert deal.snapshot.valuation.comp_count == 4
        assert deal.snapshot.rehab_budget.total == 50_000

    def test_explicit_rehab_wins(self, desk):
        deal = desk.open_deal(ADDRESS, "user1")
        deal = desk.reanalyze_deal(deal.deal_id, rehab=RehabBudget.flat(10_000))
        assert deal.snapshot.valuation.mao == 201_754 - 10_000

    def test_list_and_summary(self, desk, source):
        record = source.record(ADDRESS)
        source.add(record.model_copy(update={"facts": record.facts.model_copy(update={"address": "1 A St"})}))
        first = desk.open_deal(ADDRESS, "user1", assignees=["ann"])
        desk.open_deal("1 A St", "user1")
        desk.transition_deal(first.deal_id, DealStatus.PASSED, "user1")

        assert len(desk.list_deals()) == 2
        assert [d.deal_id for d in desk.list_deals(assignee="ann")] == [first.deal_id]

        summary = desk.pipeline_summary()
        assert summary.total_deals == 2
        assert summary.status_counts == {"new_deal": 1, "passed": 1}
        assert summary.total_wholesale_profit == 20_000
        assert summary.average_wholesale_profit == 10_000

    def test_summary_filters(self, desk, source):
        from datetime import timedelta

        from dealdesk.models import utcnow

        record = source.record(ADDRESS)
        source.add(record.model_copy(update={"facts": record.facts.model_copy(update={"address": "1 A St"})}))
        start = utcnow() - timedelta(seconds=1)
        first = desk.open_deal(ADDRESS, "user1", assignees=["ann"])
        desk.open_deal("1 A St", "user1", assignees=["bob"])
        desk.transition_deal(first.deal_id, DealStatus.PASSED, "user1")

        ann = desk.pipeline_summary(assignee="ann")
        assert ann.total_deals == 1
        assert ann.status_counts == {"passed": 1}
        assert ann.total_wholesale_profit == 10_000

        assert desk.pipeline_summary(assignee="carol").total_deals == 0
        assert desk.pipeline_summary(created_after=start).total_deals == 2
        assert desk.pipeline_summary(created_before=start).total_deals == 0
        later = desk.pipeline_summary(created_after=utcnow() + timedelta(hours=1))
        assert later.total_deals == 0
        assert later.status_counts == {}
        assert later.average_wholesale_profit == 0.0

    def test_empty_summary(self, desk):
        summary = desk.pipeline_summary()
        assert summary.total_deals == 0
        assert summary.average_wholesale_profit == 0.0

    def test_delete(self, desk):
        deal = desk.open_deal(ADDRESS, "user1")
        desk.delete_deal(deal.deal_id, "user1")
        assert desk.list_deals() == []


def test_strict_policy_from_config(repo, source, events):
    config = AppConfig(pipeline=PipelineConfig(transition_policy="strict"))
    desk = DealDesk(config, source=source, repository=repo, events=events)
    deal = desk.open_deal(ADDRESS, "user1")
    with pytest.raises(InvalidTransitionError):
        desk.transition_deal(deal.deal_id, DealStatus.SOLD, "user1")
