"""Data models for DealDesk."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PropertyType(str, Enum):
    SINGLE_FAMILY = "single_family"
    MULTI_FAMILY = "multi_family"
    CONDO = "condo"
    TOWNHOUSE = "townhouse"
    LAND = "land"
    COMMERCIAL = "commercial"
    MIXED_USE = "mixed_use"


class PropertyCondition(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    NEEDS_MAJOR_REPAIR = "needs_major_repair"


class PropertyFacts(BaseModel):
    """Structural facts about the subject property. Unknown values are None."""

    model_config = ConfigDict(frozen=True)

    address: str
    city: str = ""
    state: str = ""
    zip_code: str = ""
    property_type: PropertyType = PropertyType.SINGLE_FAMILY
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    sqft: Optional[int] = None
    lot_size: Optional[float] = None  # acres
    year_built: Optional[int] = None
    condition: Optional[PropertyCondition] = None

    @property
    def full_address(self) -> str:
        parts = [p for p in (self.address, self.city, f"{self.state} {self.zip_code}".strip()) if p]
        return ", ".join(parts)


class ComparableSale(BaseModel):
    """A recently sold property used to estimate ARV."""

    model_config = ConfigDict(frozen=True)

    address: str
    sold_price: Optional[float] = None
    sold_date: Optional[date] = None
    sqft: Optional[int] = None
    distance_miles: Optional[float] = None
    days_on_market: Optional[int] = None
    price_per_sqft: float = Field(gt=0)

    @model_validator(mode="before")
    @classmethod
    def _derive_price_per_sqft(cls, data):
        if isinstance(data, dict) and not data.get("price_per_sqft"):
            sold_price = data.get("sold_price")
            sqft = data.get("sqft")
            if sold_price and sqft:
                data = {**data, "price_per_sqft": round(sold_price / sqft, 2)}
        return data


class MarketSnapshot(BaseModel):
    """Third-party market data for the subject. Every field may be unknown."""

    model_config = ConfigDict(frozen=True)

    estimated_value: Optional[float] = None
    rent_estimate: Optional[float] = None  # monthly
    list_price: Optional[float] = None
    days_on_market: Optional[int] = None
    source: str = ""


class RehabBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    kitchen: float = 0.0
    bathrooms: float = 0.0
    flooring: float = 0.0
    paint: float = 0.0
    roof: float = 0.0
    hvac: float = 0.0
    plumbing: float = 0.0
    electrical: float = 0.0
    windows: float = 0.0
    exterior: float = 0.0
    other: float = 0.0

    @property
    def total(self) -> float:
        return sum(self.model_dump().values())


class RehabBudget(BaseModel):
    """Estimated renovation cost.

    A budget built from a breakdown must total the sum of its line items.
    A flat estimate carries no breakdown and is not checked.
    """

    model_config = ConfigDict(frozen=True)

    total: float = Field(ge=0)
    breakdown: Optional[RehabBreakdown] = None

    @model_validator(mode="after")
    def _check_total(self) -> RehabBudget:
        if self.breakdown is not None and abs(self.breakdown.total - self.total) > 0.005:
            raise ValueError(
                f"Rehab total {self.total} does not match breakdown sum {self.breakdown.total}"
            )
        return self

    @classmethod
    def flat(cls, total: float) -> RehabBudget:
        return cls(total=total)

    @classmethod
    def from_breakdown(cls, breakdown: RehabBreakdown) -> RehabBudget:
        return cls(total=breakdown.total, breakdown=breakdown)


class ValuationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    arv: int
    as_is_value: float
    mao: float  # may be negative: do not pursue
    price_per_sqft: Optional[float] = None
    comp_count: int = 0
    arv_source: str = "comparables"  # comparables, market_estimate
    confidence: str = "low"  # low, medium, high


class StrategyName(str, Enum):
    WHOLESALE = "wholesale"
    REHAB = "rehab"
    BRRRR = "brrrr"
    NOVATION = "novation"


class UnavailableReason(str, Enum):
    MISSING_RENT_ESTIMATE = "missing_rent_estimate"
    MISSING_MARKET_VALUE = "missing_market_value"


class StrategyResult(BaseModel):
    """Fields shared by every strategy evaluation.

    When ``available`` is False the strategy could not be computed and
    ``unavailable_reason`` says why; its numeric fields are None.
    ``viable`` is False when the numbers say not to pursue the deal.
    """

    model_config = ConfigDict(frozen=True)

    strategy: StrategyName
    available: bool = True
    unavailable_reason: Optional[UnavailableReason] = None
    buy_price: float
    profit: Optional[float] = None
    roi: Optional[float] = None  # percentage
    viable: bool = False
    summary: str = ""


class WholesaleResult(StrategyResult):
    strategy: StrategyName = StrategyName.WHOLESALE
    wholesale_fee: Optional[float] = None


class RehabResult(StrategyResult):
    strategy: StrategyName = StrategyName.REHAB
    rehab_cost: Optional[float] = None
    arv: Optional[float] = None
    gross_profit: Optional[float] = None
    holding_costs: Optional[float] = None
    net_profit: Optional[float] = None


class BRRRRResult(StrategyResult):
    strategy: StrategyName = StrategyName.BRRRR
    rehab_cost: Optional[float] = None
    arv: Optional[float] = None
    refinance_amount: Optional[float] = None
    total_invested: Optional[float] = None
    cash_left: Optional[float] = None
    monthly_rent: Optional[float] = None
    monthly_expenses: Optional[float] = None
    monthly_cash_flow: Optional[float] = None
    annual_cash_flow: Optional[float] = None
    cash_on_cash_return: Optional[float] = None  # percentage


class NovationResult(StrategyResult):
    strategy: StrategyName = StrategyName.NOVATION
    current_value: Optional[float] = None
    potential_value: Optional[float] = None
    improvement_cost: Optional[float] = None
    timeframe_months: Optional[int] = None


class FundingChannel(BaseModel):
    model_config = ConfigDict(frozen=True)

    eligible: bool
    max_ltv: float  # percentage
    estimated_rate: float  # percentage
    max_amount: float
    terms: str = ""


class CashOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    recommended: bool
    advantages: list[str] = Field(default_factory=list)


class FundingOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    hard_money: FundingChannel
    conventional: FundingChannel
    portfolio: FundingChannel
    cash: CashOption


class AnalysisSnapshot(BaseModel):
    """Everything one analysis run saw and produced. Never mutated."""

    model_config = ConfigDict(frozen=True)

    snapshot_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    facts: PropertyFacts
    comparables: list[ComparableSale] = Field(default_factory=list)
    market: MarketSnapshot = MarketSnapshot()
    rehab_budget: RehabBudget
    offer_amount: Optional[float] = None
    valuation: ValuationResult
    wholesale: WholesaleResult
    rehab: RehabResult
    brrrr: BRRRRResult
    novation: NovationResult
    funding: FundingOptions
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def strategies(self) -> list[StrategyResult]:
        return [self.wholesale, self.rehab, self.brrrr, self.novation]


class DealStatus(str, Enum):
    NEW_DEAL = "new_deal"
    OFFER_SENT = "offer_sent"
    OFFER_ACCEPTED = "offer_accepted"
    WALKTHROUGH_SCHEDULED = "walkthrough_scheduled"
    WALKTHROUGH_COMPLETED = "walkthrough_completed"
    UNDER_CONTRACT = "under_contract"
    DISPOSITION = "disposition"
    END_DEPOSIT_COLLECTED = "end_deposit_collected"
    CLEAR_TO_CLOSE = "clear_to_close"
    SOLD = "sold"
    PASSED = "passed"


class ActivityAction(str, Enum):
    CREATED = "created"
    STATUS_UPDATE = "status_update"
    OFFER_MADE = "offer_made"
    REANALYSIS = "reanalysis"
    ASSIGNED = "assigned"
    NOTE = "note"


class ActivityEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: ActivityAction
    description: str
    actor_id: str = "system"
    timestamp: datetime = Field(default_factory=utcnow)
    previous_status: Optional[DealStatus] = None
    new_status: Optional[DealStatus] = None
    note: Optional[str] = None


class Deal(BaseModel):
    """A property moving through the acquisition pipeline.

    Mutations produce a new Deal via ``model_copy``; ``version`` is bumped by
    the repository on every successful write.
    """

    deal_id: str
    address: str
    status: DealStatus = DealStatus.NEW_DEAL
    snapshot: Optional[AnalysisSnapshot] = None
    offer_amount: Optional[float] = None
    activity_log: list[ActivityEntry] = Field(default_factory=list)
    created_by: str = "system"
    assignees: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = 0


class EventName(str, Enum):
    ANALYSIS_COMPLETED = "analysis_completed"
    DEAL_STATUS_CHANGED = "deal_status_changed"
    OFFER_SUBMITTED = "offer_submitted"


class DomainEvent(BaseModel):
    """Notification for downstream collaborators. Carries identifiers only."""

    model_config = ConfigDict(frozen=True)

    name: EventName
    deal_id: Optional[str] = None
    snapshot_id: Optional[str] = None
    data: dict[str, str] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=utcnow)


class PipelineSummary(BaseModel):
    total_deals: int = 0
    status_counts: dict[str, int] = Field(default_factory=dict)
    total_wholesale_profit: float = 0.0
    average_wholesale_profit: float = 0.0
