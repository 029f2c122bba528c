"""Tests for data models."""

import pytest
from pydantic import ValidationError

from dealdesk.models import (
    ComparableSale,
    Deal,
    DealStatus,
    MarketSnapshot,
    PropertyFacts,
    PropertyType,
    RehabBreakdown,
    RehabBudget,
)


def test_facts_full_address():
    facts = PropertyFacts(address="123 Main St", city="Austin", state="TX", zip_code="78701")
    assert facts.full_address == "123 Main St, Austin, TX 78701"


def test_facts_defaults_are_unknown():
    facts = PropertyFacts(address="456 Oak Ave")
    assert facts.sqft is None
    assert facts.bedrooms is None
    assert facts.condition is None
    assert facts.property_type == PropertyType.SINGLE_FAMILY


def test_facts_are_frozen():
    facts = PropertyFacts(address="456 Oak Ave", sqft=1200)
    with pytest.raises(ValidationError):
        facts.sqft = 1500


def test_comp_price_per_sqft_derived():
    comp = ComparableSale(address="1 Comp Ln", sold_price=300_000, sqft=1500)
    assert comp.price_per_sqft == 200.0


def test_comp_explicit_price_per_sqft_kept():
    comp = ComparableSale(address="1 Comp Ln", sold_price=285_000, sqft=1450, price_per_sqft=196.55)
    assert comp.price_per_sqft == 196.55


def test_comp_without_price_data_rejected():
    with pytest.raises(ValidationError):
        ComparableSale(address="1 Comp Ln", sold_price=300_000)


def test_market_snapshot_fields_unknown_by_default():
    market = MarketSnapshot()
    assert market.estimated_value is None
    assert market.rent_estimate is None


def test_rehab_from_breakdown_totals_line_items():
    budget = RehabBudget.from_breakdown(RehabBreakdown(kitchen=12_000, bathrooms=8_000, paint=3_000))
    assert budget.total == 23_000


def test_rehab_breakdown_mismatch_rejected():
    with pytest.raises(ValidationError):
        RehabBudget(total=10_000, breakdown=RehabBreakdown(kitchen=12_000))


def test_rehab_flat_estimate_has_no_breakdown():
    budget = RehabBudget.flat(42_000)
    assert budget.total == 42_000
    assert budget.breakdown is None


def test_rehab_total_cannot_be_negative():
    with pytest.raises(ValidationError):
        RehabBudget.flat(-1)


def test_deal_defaults():
    deal = Deal(deal_id="DEAL-1-1", address="1 Main St")
    assert deal.status == DealStatus.NEW_DEAL
    assert deal.snapshot is None
    assert deal.offer_amount is None
    assert deal.activity_log == []
    assert deal.version == 0
