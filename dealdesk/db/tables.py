"""SQLAlchemy table definitions."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    JSON,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import DeclarativeBase, sessionmaker


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class DealRow(Base):
    __tablename__ = "deals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    deal_id = Column(String(64), nullable=False, unique=True, index=True)
    address = Column(String(255), nullable=False, unique=True)
    status = Column(String(32), nullable=False, default="new_deal", index=True)
    offer_amount = Column(Float, nullable=True)
    snapshot = Column(JSON, nullable=True)
    created_by = Column(String(100), nullable=False, default="system")
    assignees = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow)
    # Bumped on every write; updates compare-and-swap on it
    version = Column(Integer, nullable=False, default=1)


class ActivityRow(Base):
    __tablename__ = "deal_activity"
    __table_args__ = (UniqueConstraint("deal_pk", "seq", name="uq_deal_activity_seq"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    deal_pk = Column(Integer, ForeignKey("deals.id", ondelete="CASCADE"), nullable=False, index=True)
    seq = Column(Integer, nullable=False)
    action = Column(String(32), nullable=False)
    description = Column(Text, default="")
    actor_id = Column(String(100), nullable=False, default="system")
    previous_status = Column(String(32), nullable=True)
    new_status = Column(String(32), nullable=True)
    note = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=_utcnow)


def init_db(db_url: str = "sqlite:///dealdesk.db") -> sessionmaker:
    """Initialize the database and return a session factory."""
    engine = create_engine(db_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
