"""Novation deal analysis."""

from __future__ import annotations

from dealdesk.config import NovationConfig
from dealdesk.models import (
    MarketSnapshot,
    NovationResult,
    RehabBudget,
    UnavailableReason,
    ValuationResult,
)


class NovationAnalyzer:
    """Value-gap arbitrage: light improvements, sell at ARV, split the gain
    with the seller. The timeframe is a configured constant.
    """

    def __init__(self, config: NovationConfig):
        self.cfg = config

    def analyze(
        self,
        valuation: ValuationResult,
        buy_price: float,
        rehab: RehabBudget,
        market: MarketSnapshot,
    ) -> NovationResult:
        arv = valuation.arv

        current_value = market.estimated_value
        if current_value is None and self.cfg.fallback == "arv_share":
            current_value = arv * self.cfg.fallback_value_pct_of_arv
        if current_value is None:
            return NovationResult(
                available=False,
                unavailable_reason=UnavailableReason.MISSING_MARKET_VALUE,
                buy_price=buy_price,
                summary="Novation: unavailable, no current market value",
            )

        profit = (arv - current_value) * self.cfg.split_factor
        improvement_cost = rehab.total * self.cfg.light_rehab_factor
        roi = (profit / improvement_cost) * 100 if improvement_cost > 0 else 0.0

        return NovationResult(
            buy_price=buy_price,
            current_value=round(current_value, 2),
            potential_value=arv,
            improvement_cost=round(improvement_cost, 2),
            timeframe_months=self.cfg.timeframe_months,
            profit=round(profit, 2),
            roi=round(roi, 2),
            viable=buy_price > 0 and profit > 0,
            summary=(
                f"Novation: value ${current_value:,.0f} -> ${arv:,.0f} | "
                f"profit ${profit:,.0f} over {self.cfg.timeframe_months} months"
            ),
        )
