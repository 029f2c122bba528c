"""Database repository for storing and retrieving deals."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dealdesk.db.tables import ActivityRow, DealRow, init_db
from dealdesk.errors import ConcurrentModificationError, DealNotFoundError, DuplicateDealError
from dealdesk.models import ActivityEntry, AnalysisSnapshot, Deal, DealStatus

logger = logging.getLogger(__name__)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _utc(value: datetime) -> datetime:
    # aware values are stored in UTC; naive ones are taken to be UTC already
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DealRepository:
    """Handles all deal persistence.

    ``update`` is a compare-and-swap on the stored version: it writes only if
    nobody else has written the deal since it was read, and appends the
    activity entries the stored copy does not have yet.
    """

    def __init__(self, db_url: str = "sqlite:///dealdesk.db"):
        self._session_factory = init_db(db_url)

    def _session(self) -> Session:
        return self._session_factory()

    def add(self, deal: Deal) -> Deal:
        """Insert a new deal. Returns it with its stored version."""
        with self._session() as session:
            row = DealRow(
                deal_id=deal.deal_id,
                address=deal.address,
                status=deal.status.value,
                offer_amount=deal.offer_amount,
                snapshot=self._dump_snapshot(deal.snapshot),
                created_by=deal.created_by,
                assignees=list(deal.assignees),
                created_at=_utc(deal.created_at),
                updated_at=_utc(deal.updated_at),
                version=1,
            )
            session.add(row)
            try:
                session.flush()
                self._append_activity(session, row.id, 0, deal.activity_log)
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise DuplicateDealError(deal.address) from e
            return deal.model_copy(update={"version": 1})

    def get(self, deal_id: str) -> Deal:
        with self._session() as session:
            row = session.query(DealRow).filter_by(deal_id=deal_id).first()
            if row is None:
                raise DealNotFoundError(deal_id)
            return self._to_deal(session, row)

    def find_by_address(self, address: str) -> Deal | None:
        with self._session() as session:
            row = session.query(DealRow).filter_by(address=address).first()
            return self._to_deal(session, row) if row else None

    def update(self, deal: Deal) -> Deal:
        """Write ``deal`` if the stored version still equals ``deal.version``.

        Raises:
            DealNotFoundError: if the deal no longer exists.
            ConcurrentModificationError: if the stored version moved on.
        """
        with self._session() as session:
            updated = (
                session.query(DealRow)
                .filter_by(deal_id=deal.deal_id, version=deal.version)
                .update(
                    {
                        "status": deal.status.value,
                        "offer_amount": deal.offer_amount,
                        "snapshot": self._dump_snapshot(deal.snapshot),
                        "assignees": list(deal.assignees),
                        "updated_at": _utc(deal.updated_at),
                        "version": deal.version + 1,
                    },
                    synchronize_session=False,
                )
            )
            if updated == 0:
                session.rollback()
                if session.query(DealRow.id).filter_by(deal_id=deal.deal_id).first() is None:
                    raise DealNotFoundError(deal.deal_id)
                raise ConcurrentModificationError(deal.deal_id, deal.version)

            deal_pk = session.query(DealRow.id).filter_by(deal_id=deal.deal_id).scalar()
            stored = (
                session.query(func.count(ActivityRow.id)).filter_by(deal_pk=deal_pk).scalar()
            )
            self._append_activity(session, deal_pk, stored, deal.activity_log[stored:])
            session.commit()
            return deal.model_copy(update={"version": deal.version + 1})

    def delete(self, deal_id: str) -> None:
        with self._session() as session:
            row = session.query(DealRow).filter_by(deal_id=deal_id).first()
            if row is None:
                raise DealNotFoundError(deal_id)
            session.query(ActivityRow).filter_by(deal_pk=row.id).delete()
            session.delete(row)
            session.commit()

    def list_deals(
        self,
        status: DealStatus | None = None,
        assignee: str | None = None,
        limit: int = 20,
        offset: int = 0,
        created_after: datetime | None = None,
        created_before: datetime | None = None,
    ) -> list[Deal]:
        """Deals newest first, optionally filtered by status, assignee or
        creation window (inclusive after, exclusive before).
        """
        with self._session() as session:
            query = session.query(DealRow)
            if status:
                query = query.filter_by(status=status.value)
            if created_after is not None:
                query = query.filter(DealRow.created_at >= _utc(created_after))
            if created_before is not None:
                query = query.filter(DealRow.created_at < _utc(created_before))
            query = query.order_by(DealRow.created_at.desc(), DealRow.id.desc())

            if assignee is None:
                rows = query.offset(offset).limit(limit).all()
            else:
                # assignees is a JSON list, filtered here rather than in SQL
                rows = [r for r in query.all() if assignee in (r.assignees or [])]
                rows = rows[offset : offset + limit]
            return [self._to_deal(session, r) for r in rows]

    def count(self) -> int:
        with self._session() as session:
            return session.query(func.count(DealRow.id)).scalar()

    def status_counts(self) -> dict[str, int]:
        with self._session() as session:
            rows = (
                session.query(DealRow.status, func.count(DealRow.id))
                .group_by(DealRow.status)
                .all()
            )
            return {status: count for status, count in rows}

    def _append_activity(
        self, session: Session, deal_pk: int, start: int, entries: list[ActivityEntry]
    ) -> None:
        for seq, entry in enumerate(entries, start):
            session.add(
                ActivityRow(
                    deal_pk=deal_pk,
                    seq=seq,
                    action=entry.action.value,
                    description=entry.description,
                    actor_id=entry.actor_id,
                    previous_status=entry.previous_status.value if entry.previous_status else None,
                    new_status=entry.new_status.value if entry.new_status else None,
                    note=entry.note,
                    timestamp=entry.timestamp,
                )
            )

    def _to_deal(self, session: Session, row: DealRow) -> Deal:
        activity = (
            session.query(ActivityRow).filter_by(deal_pk=row.id).order_by(ActivityRow.seq).all()
        )
        return Deal(
            deal_id=row.deal_id,
            address=row.address,
            status=DealStatus(row.status),
            snapshot=AnalysisSnapshot.model_validate(row.snapshot) if row.snapshot else None,
            offer_amount=row.offer_amount,
            activity_log=[
                ActivityEntry(
                    action=a.action,
                    description=a.description or "",
                    actor_id=a.actor_id,
                    timestamp=_aware(a.timestamp),
                    previous_status=a.previous_status,
                    new_status=a.new_status,
                    note=a.note,
                )
                for a in activity
            ],
            created_by=row.created_by,
            assignees=list(row.assignees or []),
            created_at=_aware(row.created_at),
            updated_at=_aware(row.updated_at),
            version=row.version,
        )

    @staticmethod
    def _dump_snapshot(snapshot: AnalysisSnapshot | None) -> dict | None:
        return snapshot.model_dump(mode="json") if snapshot else None
