"""Fix-and-flip (rehab) deal analysis."""

from __future__ import annotations

from dealdesk.config import RehabStrategyConfig
from dealdesk.models import RehabBudget, RehabResult, ValuationResult


class RehabAnalyzer:
    """Evaluates buying, renovating and reselling at ARV.

    Gross profit ignores carrying costs; net profit takes a flat share of
    ARV off for holding, closing and selling.
    """

    def __init__(self, config: RehabStrategyConfig):
        self.cfg = config

    def analyze(
        self,
        valuation: ValuationResult,
        buy_price: float,
        rehab: RehabBudget,
    ) -> RehabResult:
        arv = valuation.arv
        rehab_cost = rehab.total

        gross_profit = arv - buy_price - rehab_cost
        holding_costs = arv * self.cfg.holding_cost_rate
        net_profit = gross_profit - holding_costs

        invested = buy_price + rehab_cost
        roi = (gross_profit / invested) * 100 if invested > 0 else 0.0

        return RehabResult(
            buy_price=buy_price,
            rehab_cost=rehab_cost,
            arv=arv,
            gross_profit=gross_profit,
            holding_costs=round(holding_costs, 2),
            net_profit=round(net_profit, 2),
            profit=round(net_profit, 2),
            roi=round(roi, 2),
            viable=buy_price > 0 and net_profit > 0,
            summary=self._summary(buy_price, rehab_cost, arv, gross_profit, net_profit, roi),
        )

    def _summary(
        self,
        buy_price: float,
        rehab_cost: float,
        arv: float,
        gross_profit: float,
        net_profit: float,
        roi: float,
    ) -> str:
        parts = [
            f"Rehab: buy ${buy_price:,.0f} | rehab ${rehab_cost:,.0f} | ARV ${arv:,.0f}",
            f"Gross ${gross_profit:,.0f} | Net ${net_profit:,.0f} | ROI {roi:.1f}%",
        ]
        return "\n".join(parts)
