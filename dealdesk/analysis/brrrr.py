"""BRRRR (Buy, Rehab, Rent, Refinance, Repeat) deal analysis."""

from __future__ import annotations

from dealdesk.config import BRRRRConfig
from dealdesk.models import (
    BRRRRResult,
    MarketSnapshot,
    RehabBudget,
    UnavailableReason,
    ValuationResult,
)


class BRRRRAnalyzer:
    """Analyze a deal for BRRRR potential.

    The BRRRR strategy buys below value, rehabs, rents the property out,
    then refinances at a share of ARV to pull the initial cash back out.
    Whatever the refinance does not cover is the cash left in the deal,
    and cash-on-cash return is measured against it.
    """

    def __init__(self, config: BRRRRConfig):
        self.cfg = config

    def analyze(
        self,
        valuation: ValuationResult,
        buy_price: float,
        rehab: RehabBudget,
        market: MarketSnapshot,
    ) -> BRRRRResult:
        monthly_rent = market.rent_estimate
        if monthly_rent is None:
            monthly_rent = self.cfg.default_monthly_rent
        if monthly_rent is None:
            return BRRRRResult(
                available=False,
                unavailable_reason=UnavailableReason.MISSING_RENT_ESTIMATE,
                buy_price=buy_price,
                summary="BRRRR: unavailable, no rent estimate",
            )

        arv = valuation.arv
        rehab_cost = rehab.total

        # Bank lends LTV% of ARV on the refinance
        refinance_amount = arv * self.cfg.refinance_ltv
        total_invested = buy_price + rehab_cost
        cash_left = max(0.0, total_invested - refinance_amount)

        # 50% rule: half the rent goes to expenses
        monthly_expenses = monthly_rent * self.cfg.expense_ratio
        monthly_cash_flow = monthly_rent - monthly_expenses
        annual_cash_flow = monthly_cash_flow * 12

        # No cash left in the deal reports 0 rather than an infinite return
        cash_on_cash = 0.0
        if cash_left > 0:
            cash_on_cash = (annual_cash_flow / cash_left) * 100

        return BRRRRResult(
            buy_price=buy_price,
            rehab_cost=rehab_cost,
            arv=arv,
            refinance_amount=round(refinance_amount, 2),
            total_invested=total_invested,
            cash_left=round(cash_left, 2),
            monthly_rent=monthly_rent,
            monthly_expenses=round(monthly_expenses, 2),
            monthly_cash_flow=round(monthly_cash_flow, 2),
            annual_cash_flow=round(annual_cash_flow, 2),
            cash_on_cash_return=round(cash_on_cash, 2),
            profit=round(annual_cash_flow, 2),
            roi=round(cash_on_cash, 2),
            viable=buy_price > 0 and monthly_cash_flow > 0,
            summary=(
                f"BRRRR: refinance ${refinance_amount:,.0f} | cash left ${cash_left:,.0f}\n"
                f"Cash flow ${monthly_cash_flow:,.0f}/mo | CoC {cash_on_cash:.1f}%"
            ),
        )
