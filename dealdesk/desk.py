"""DealDesk service: the operations collaborators call.

Ties the analysis engine, the deal pipeline and event dispatch together.
Transport layers (CLI, chat bots, HTTP) call these methods and never touch
the pipeline or repository directly.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from typing import Iterable, Optional, Sequence

from dealdesk.analysis.engine import AnalysisEngine
from dealdesk.analysis.valuation import default_rehab_budget
from dealdesk.config import AppConfig
from dealdesk.db.repository import DealRepository
from dealdesk.errors import DealDeskError, DuplicateDealError
from dealdesk.events.dispatcher import EventDispatcher
from dealdesk.models import (
    AnalysisSnapshot,
    ComparableSale,
    Deal,
    DealStatus,
    DomainEvent,
    EventName,
    MarketSnapshot,
    PipelineSummary,
    PropertyFacts,
    RehabBudget,
)
from dealdesk.pipeline.locks import DealLockRegistry
from dealdesk.pipeline.machine import DealPipeline
from dealdesk.sources.base import PropertyDataSource

logger = logging.getLogger(__name__)


class DealDesk:
    def __init__(
        self,
        config: AppConfig,
        source: PropertyDataSource | None = None,
        repository: DealRepository | None = None,
        events: EventDispatcher | None = None,
        locks: DealLockRegistry | None = None,
    ):
        self.config = config
        self.source = source
        self.engine = AnalysisEngine(config.analysis)
        self.repo = repository or DealRepository(config.database.url)
        self.pipeline = DealPipeline(self.repo, config.pipeline, locks=locks)
        self.events = events or EventDispatcher(config.events)

    # -- analysis ----------------------------------------------------------

    def run_analysis(
        self,
        facts: PropertyFacts,
        comparables: Sequence[ComparableSale],
        market: MarketSnapshot,
        rehab: RehabBudget | None = None,
        offer_amount: float | None = None,
    ) -> AnalysisSnapshot:
        """Analyze supplied inputs without touching any deal.

        Falls back to the configured default rehab budget when ``rehab`` is
        None. Raises InsufficientDataError when no valuation is possible.
        """
        snapshot = self.engine.run(
            facts,
            comparables,
            market,
            rehab or default_rehab_budget(self.config.analysis.rehab_estimate),
            offer_amount=offer_amount,
        )
        self._publish(EventName.ANALYSIS_COMPLETED, snapshot_id=snapshot.snapshot_id)
        return snapshot

    def _analyze_address(
        self,
        address: str,
        offer_amount: float | None,
        rehab: RehabBudget | None,
    ) -> AnalysisSnapshot:
        if self.source is None:
            raise DealDeskError("No property data source configured")

        rehab = rehab or self.source.get_rehab(address)
        return self.engine.run(
            self.source.get_facts(address),
            self.source.get_comparables(address),
            self.source.get_market(address),
            rehab or default_rehab_budget(self.config.analysis.rehab_estimate),
            offer_amount=offer_amount,
        )

    # -- deals -------------------------------------------------------------

    def open_deal(
        self,
        address: str,
        actor_id: str,
        offer_amount: float | None = None,
        rehab: RehabBudget | None = None,
        assignees: Iterable[str] = (),
    ) -> Deal:
        """Analyze an address from the data source and open a deal for it."""
        if self.repo.find_by_address(address) is not None:
            raise DuplicateDealError(address)

        snapshot = self._analyze_address(address, offer_amount, rehab)
        deal = self.pipeline.create_deal(
            address,
            actor_id,
            snapshot=snapshot,
            offer_amount=offer_amount,
            assignees=assignees,
        )
        self._publish(
            EventName.ANALYSIS_COMPLETED, deal_id=deal.deal_id, snapshot_id=snapshot.snapshot_id
        )
        return deal

    def get_deal(self, deal_id: str) -> Deal:
        return self.pipeline.get(deal_id)

    def list_deals(
        self,
        status: DealStatus | None = None,
        assignee: str | None = None,
        limit: int = 20,
        offset: int = 0,
        created_after: datetime | None = None,
        created_before: datetime | None = None,
    ) -> list[Deal]:
        return self.pipeline.list_deals(
            status=status,
            assignee=assignee,
            limit=limit,
            offset=offset,
            created_after=created_after,
            created_before=created_before,
        )

    def transition_deal(
        self,
        deal_id: str,
        new_status: DealStatus | str,
        actor_id: str,
        note: Optional[str] = None,
    ) -> Deal:
        deal = self.pipeline.transition(deal_id, new_status, actor_id, note=note)
        self._status_changed(deal)
        return deal

    def submit_offer(self, deal_id: str, amount: float, actor_id: str) -> Deal:
        deal = self.pipeline.submit_offer(deal_id, amount, actor_id)
        self._publish(
            EventName.OFFER_SUBMITTED, deal_id=deal.deal_id, data={"amount": f"{amount:.2f}"}
        )
        self._status_changed(deal)
        return deal

    def reanalyze_deal(
        self,
        deal_id: str,
        updated_offer_amount: float | None = None,
        actor_id: str = "system",
        rehab: RehabBudget | None = None,
    ) -> Deal:
        """Re-run analysis for the deal's address and current (or updated) offer.

        Without an explicit ``rehab`` the data source's estimate is used,
        then the budget of the deal's previous snapshot, then the default.
        """

        def analyze(deal: Deal) -> AnalysisSnapshot:
            budget = rehab
            if budget is None and self.source is not None:
                budget = self.source.get_rehab(deal.address)
            if budget is None and deal.snapshot is not None:
                budget = deal.snapshot.rehab_budget
            return self._analyze_address(deal.address, deal.offer_amount, budget)

        deal = self.pipeline.reanalyze(
            deal_id, analyze, actor_id, offer_amount=updated_offer_amount
        )
        self._publish(
            EventName.ANALYSIS_COMPLETED,
            deal_id=deal.deal_id,
            snapshot_id=deal.snapshot.snapshot_id,
        )
        return deal

    def assign_deal(self, deal_id: str, assignee_id: str, actor_id: str) -> Deal:
        return self.pipeline.assign(deal_id, assignee_id, actor_id)

    def add_note(self, deal_id: str, description: str, actor_id: str) -> Deal:
        return self.pipeline.add_note(deal_id, description, actor_id)

    def delete_deal(self, deal_id: str, actor_id: str) -> None:
        self.pipeline.delete_deal(deal_id, actor_id)

    def pipeline_summary(
        self,
        assignee: str | None = None,
        created_after: datetime | None = None,
        created_before: datetime | None = None,
    ) -> PipelineSummary:
        """Deal counts by status and wholesale profit.

        Optionally restricted to one assignee's deals and to deals created
        in ``[created_after, created_before)``.
        """
        filtered = assignee is not None or created_after is not None or created_before is not None
        total = self.repo.count()
        deals = (
            self.repo.list_deals(
                assignee=assignee,
                limit=total,
                created_after=created_after,
                created_before=created_before,
            )
            if total
            else []
        )
        if filtered:
            status_counts = dict(Counter(d.status.value for d in deals))
        else:
            status_counts = self.repo.status_counts()

        profits = [
            d.snapshot.wholesale.profit
            for d in deals
            if d.snapshot is not None
            and d.snapshot.wholesale.available
            and d.snapshot.wholesale.profit is not None
        ]
        total_profit = sum(profits)
        return PipelineSummary(
            total_deals=len(deals),
            status_counts=status_counts,
            total_wholesale_profit=total_profit,
            average_wholesale_profit=round(total_profit / len(profits), 2) if profits else 0.0,
        )

    # -- events ------------------------------------------------------------

    def _status_changed(self, deal: Deal) -> None:
        entry = deal.activity_log[-1]
        self._publish(
            EventName.DEAL_STATUS_CHANGED,
            deal_id=deal.deal_id,
            data={
                "previous_status": entry.previous_status.value if entry.previous_status else "",
                "new_status": deal.status.value,
            },
        )

    def _publish(
        self,
        name: EventName,
        deal_id: str | None = None,
        snapshot_id: str | None = None,
        data: dict[str, str] | None = None,
    ) -> None:
        self.events.publish(
            DomainEvent(name=name, deal_id=deal_id, snapshot_id=snapshot_id, data=data or {})
        )
