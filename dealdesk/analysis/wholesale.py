"""Wholesale (contract assignment) deal analysis."""

from __future__ import annotations

from dealdesk.config import WholesaleConfig
from dealdesk.models import ValuationResult, WholesaleResult


class WholesaleAnalyzer:
    """Profit on a wholesale deal is the flat assignment fee."""

    def __init__(self, config: WholesaleConfig):
        self.cfg = config

    def analyze(self, valuation: ValuationResult, buy_price: float) -> WholesaleResult:
        fee = self.cfg.fee
        roi = (fee / buy_price) * 100 if buy_price > 0 else 0.0

        return WholesaleResult(
            buy_price=buy_price,
            wholesale_fee=fee,
            profit=fee,
            roi=round(roi, 2),
            viable=buy_price > 0 and fee > 0,
            summary=(
                f"Wholesale: buy ${buy_price:,.0f} | fee ${fee:,.0f} | ROI {roi:.1f}% "
                f"(ARV ${valuation.arv:,.0f})"
            ),
        )
