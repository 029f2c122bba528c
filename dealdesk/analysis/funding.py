"""Financing channel eligibility."""

from __future__ import annotations

from typing import Optional

from dealdesk.config import FundingChannelConfig, FundingConfig
from dealdesk.models import (
    CashOption,
    FundingChannel,
    FundingOptions,
    PropertyCondition,
    ValuationResult,
)


class FundingAnalyzer:
    """Maps a valuation and the property's condition to funding options.

    Conventional lenders will not finance the worst condition tiers.
    Recommending cash for cheaper deals is a heuristic, not a rule.
    """

    def __init__(self, config: FundingConfig):
        self.cfg = config

    def analyze(
        self,
        valuation: ValuationResult,
        condition: Optional[PropertyCondition],
    ) -> FundingOptions:
        conventional_ok = (
            condition is None or condition.value not in self.cfg.conventional_ineligible_conditions
        )

        return FundingOptions(
            hard_money=self._channel(self.cfg.hard_money, valuation.arv, eligible=True),
            conventional=self._channel(
                self.cfg.conventional, valuation.arv, eligible=conventional_ok
            ),
            portfolio=self._channel(self.cfg.portfolio, valuation.arv, eligible=True),
            cash=CashOption(
                recommended=valuation.mao < self.cfg.cash_recommended_below,
                advantages=list(self.cfg.cash_advantages),
            ),
        )

    def _channel(self, cfg: FundingChannelConfig, arv: float, eligible: bool) -> FundingChannel:
        return FundingChannel(
            eligible=eligible,
            max_ltv=round(cfg.max_ltv * 100, 2),
            estimated_rate=cfg.estimated_rate,
            max_amount=round(arv * cfg.max_ltv, 2),
            terms=cfg.terms,
        )
