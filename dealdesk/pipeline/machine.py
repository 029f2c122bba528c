"""Deal pipeline state machine."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from dealdesk.config import PipelineConfig
from dealdesk.db.repository import DealRepository
from dealdesk.errors import DuplicateDealError, InvalidTransitionError
from dealdesk.models import (
    ActivityAction,
    ActivityEntry,
    AnalysisSnapshot,
    Deal,
    DealStatus,
    utcnow,
)
from dealdesk.pipeline.ids import DealIdGenerator
from dealdesk.pipeline.locks import DealLockRegistry

logger = logging.getLogger(__name__)

PIPELINE_ORDER: tuple[DealStatus, ...] = (
    DealStatus.NEW_DEAL,
    DealStatus.OFFER_SENT,
    DealStatus.OFFER_ACCEPTED,
    DealStatus.WALKTHROUGH_SCHEDULED,
    DealStatus.WALKTHROUGH_COMPLETED,
    DealStatus.UNDER_CONTRACT,
    DealStatus.DISPOSITION,
    DealStatus.END_DEPOSIT_COLLECTED,
    DealStatus.CLEAR_TO_CLOSE,
    DealStatus.SOLD,
)

TERMINAL_STATUSES = frozenset({DealStatus.SOLD, DealStatus.PASSED})


def allowed_targets(current: DealStatus, policy: str = "permissive") -> frozenset[DealStatus]:
    """Statuses a deal in ``current`` may move to under ``policy``."""
    if current in TERMINAL_STATUSES:
        return frozenset()
    if policy == "strict":
        nxt = PIPELINE_ORDER[PIPELINE_ORDER.index(current) + 1]
        return frozenset({nxt, DealStatus.PASSED})
    return frozenset(DealStatus)


class DealPipeline:
    """Owns deal lifecycle: creation, status changes, offers and re-analysis.

    Every mutation runs under the deal's lock, reads the stored deal, builds
    a new copy with exactly one new activity entry, and writes it back with a
    version check. Anything that fails before the write leaves the stored
    deal untouched.
    """

    def __init__(
        self,
        repository: DealRepository,
        config: PipelineConfig,
        locks: DealLockRegistry | None = None,
        id_generator: DealIdGenerator | None = None,
    ):
        self.repo = repository
        self.config = config
        self.locks = locks or DealLockRegistry()
        self.ids = id_generator or DealIdGenerator(config.deal_id_prefix, start=repository.count())

    # -- queries -----------------------------------------------------------

    def get(self, deal_id: str) -> Deal:
        return self.repo.get(deal_id)

    def list_deals(
        self,
        status: DealStatus | None = None,
        assignee: str | None = None,
        limit: int = 20,
        offset: int = 0,
        created_after: datetime | None = None,
        created_before: datetime | None = None,
    ) -> list[Deal]:
        return self.repo.list_deals(
            status=status,
            assignee=assignee,
            limit=limit,
            offset=offset,
            created_after=created_after,
            created_before=created_before,
        )

    # -- mutations ---------------------------------------------------------

    def create_deal(
        self,
        address: str,
        actor_id: str,
        snapshot: AnalysisSnapshot | None = None,
        offer_amount: float | None = None,
        assignees: Iterable[str] = (),
    ) -> Deal:
        """Open a new deal in ``new_deal`` for an address not yet tracked."""
        if self.repo.find_by_address(address) is not None:
            raise DuplicateDealError(address)

        now = utcnow()
        deal = Deal(
            deal_id=self.ids.next_id(),
            address=address,
            snapshot=snapshot,
            offer_amount=offer_amount,
            created_by=actor_id,
            assignees=list(dict.fromkeys(assignees)),
            created_at=now,
            updated_at=now,
            activity_log=[
                ActivityEntry(
                    action=ActivityAction.CREATED,
                    description=f"Deal created for {address}",
                    actor_id=actor_id,
                    timestamp=now,
                    new_status=DealStatus.NEW_DEAL,
                )
            ],
        )
        deal = self.repo.add(deal)
        logger.info("Created deal %s for %s", deal.deal_id, address)
        return deal

    def transition(
        self,
        deal_id: str,
        new_status: DealStatus | str,
        actor_id: str,
        note: Optional[str] = None,
    ) -> Deal:
        """Move a deal to ``new_status``.

        Raises:
            DealNotFoundError: if the deal does not exist.
            InvalidTransitionError: if the target is not a pipeline status,
                the deal is already sold or passed, or the policy forbids it.
        """

        def change(deal: Deal) -> Deal:
            target = self._check_transition(deal, new_status)
            description = f"Status changed from {deal.status.value} to {target.value}"
            if note:
                description += f": {note}"
            return self._with_entry(
                deal,
                ActivityEntry(
                    action=ActivityAction.STATUS_UPDATE,
                    description=description,
                    actor_id=actor_id,
                    previous_status=deal.status,
                    new_status=target,
                    note=note,
                ),
                status=target,
            )

        deal = self._mutate(deal_id, change)
        logger.info("Deal %s moved to %s by %s", deal_id, deal.status.value, actor_id)
        return deal

    def submit_offer(self, deal_id: str, amount: float, actor_id: str) -> Deal:
        """Record an offer and move the deal to ``offer_sent`` in one write."""
        if amount <= 0:
            raise ValueError(f"Offer amount must be positive, got {amount}")

        def offer(deal: Deal) -> Deal:
            target = self._check_transition(deal, DealStatus.OFFER_SENT)
            return self._with_entry(
                deal,
                ActivityEntry(
                    action=ActivityAction.OFFER_MADE,
                    description=f"Offer of ${amount:,.0f} sent",
                    actor_id=actor_id,
                    previous_status=deal.status,
                    new_status=target,
                ),
                status=target,
                offer_amount=amount,
            )

        deal = self._mutate(deal_id, offer)
        logger.info("Offer of %.0f submitted on deal %s by %s", amount, deal_id, actor_id)
        return deal

    def reanalyze(
        self,
        deal_id: str,
        analyze: Callable[[Deal], AnalysisSnapshot],
        actor_id: str,
        offer_amount: float | None = None,
    ) -> Deal:
        """Replace the deal's analysis wholesale. Status is left alone.

        ``analyze`` runs under the deal's lock against the stored deal (with
        ``offer_amount`` already applied), so the snapshot always matches the
        offer it is saved next to.
        """
        if offer_amount is not None and offer_amount <= 0:
            raise ValueError(f"Offer amount must be positive, got {offer_amount}")

        def refresh(deal: Deal) -> Deal:
            if offer_amount is not None:
                deal = deal.model_copy(update={"offer_amount": offer_amount})
            snapshot = analyze(deal)
            return self._with_entry(
                deal,
                ActivityEntry(
                    action=ActivityAction.REANALYSIS,
                    description="Property re-analyzed with updated data",
                    actor_id=actor_id,
                ),
                snapshot=snapshot,
            )

        deal = self._mutate(deal_id, refresh)
        logger.info("Deal %s re-analyzed (snapshot %s)", deal_id, deal.snapshot.snapshot_id)
        return deal

    def assign(self, deal_id: str, assignee_id: str, actor_id: str) -> Deal:
        def add_assignee(deal: Deal) -> Deal:
            assignees = list(deal.assignees)
            if assignee_id not in assignees:
                assignees.append(assignee_id)
            return self._with_entry(
                deal,
                ActivityEntry(
                    action=ActivityAction.ASSIGNED,
                    description=f"Assigned to {assignee_id}",
                    actor_id=actor_id,
                ),
                assignees=assignees,
            )

        return self._mutate(deal_id, add_assignee)

    def add_note(self, deal_id: str, description: str, actor_id: str) -> Deal:
        def note(deal: Deal) -> Deal:
            return self._with_entry(
                deal,
                ActivityEntry(action=ActivityAction.NOTE, description=description, actor_id=actor_id),
            )

        return self._mutate(deal_id, note)

    def delete_deal(self, deal_id: str, actor_id: str) -> None:
        """Permanently remove a deal and its history. Cannot be undone."""
        with self.locks.hold(deal_id):
            self.repo.delete(deal_id)
        logger.warning("Deal %s deleted by %s", deal_id, actor_id)

    # -- internals ---------------------------------------------------------

    def _check_transition(self, deal: Deal, new_status: DealStatus | str) -> DealStatus:
        try:
            target = DealStatus(new_status)
        except ValueError:
            logger.warning("Rejected unknown status %r for deal %s", new_status, deal.deal_id)
            raise InvalidTransitionError(
                deal.deal_id, deal.status.value, str(new_status), "unknown status"
            ) from None

        if deal.status in TERMINAL_STATUSES:
            reason = "deal is closed"
        elif target not in allowed_targets(deal.status, self.config.transition_policy):
            reason = f"not allowed by {self.config.transition_policy} policy"
        else:
            return target

        logger.warning(
            "Rejected transition %s -> %s for deal %s: %s",
            deal.status.value,
            target.value,
            deal.deal_id,
            reason,
        )
        raise InvalidTransitionError(deal.deal_id, deal.status.value, target.value, reason)

    def _mutate(self, deal_id: str, change: Callable[[Deal], Deal]) -> Deal:
        with self.locks.hold(deal_id):
            deal = self.repo.get(deal_id)
            return self.repo.update(change(deal))

    @staticmethod
    def _with_entry(deal: Deal, entry: ActivityEntry, **updates) -> Deal:
        updates["activity_log"] = [*deal.activity_log, entry]
        updates["updated_at"] = entry.timestamp
        return deal.model_copy(update=updates)
