"""ARV and maximum allowable offer (MAO) valuation."""

from __future__ import annotations

import logging
import math
from typing import Sequence

from dealdesk.comps.sales import CompAggregator
from dealdesk.config import AnalysisConfig, RehabEstimateConfig
from dealdesk.errors import InsufficientDataError
from dealdesk.models import (
    ComparableSale,
    MarketSnapshot,
    PropertyFacts,
    RehabBreakdown,
    RehabBudget,
    ValuationResult,
)

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest whole unit, halves toward positive infinity."""
    return int(math.floor(value + 0.5))


def default_rehab_budget(cfg: RehabEstimateConfig) -> RehabBudget:
    """Build a rehab budget from the configured line-item defaults."""
    return RehabBudget.from_breakdown(RehabBreakdown(**cfg.model_dump()))


class ValuationCalculator:
    """Derives ARV, as-is value and MAO for a subject property.

    ARV comes from the average comp price per sqft applied to the subject's
    area. MAO follows the 70% rule: ``round(arv * 0.70) - rehab``. A negative
    MAO is a legitimate answer meaning the rehab eats the whole margin.
    """

    def __init__(self, config: AnalysisConfig):
        self.cfg = config.valuation
        self.aggregator = CompAggregator(config.comps)

    def calculate(
        self,
        facts: PropertyFacts,
        comps: Sequence[ComparableSale],
        market: MarketSnapshot,
        rehab: RehabBudget,
    ) -> ValuationResult:
        if comps:
            arv, ppsf = self._arv_from_comps(facts, comps)
            source = "comparables"
            confidence = self.aggregator.confidence(comps)
        elif self.cfg.fallback == "market_estimate" and market.estimated_value:
            arv = round_half_up(market.estimated_value)
            ppsf = None
            source = "market_estimate"
            confidence = "low"
            logger.info("No comps for %s, using market estimate as ARV", facts.address)
        else:
            raise InsufficientDataError(
                f"No comparable sales for {facts.address} and no fallback valuation"
            )

        mao = self.max_allowable_offer(arv, rehab)

        if market.estimated_value is not None:
            as_is_value = market.estimated_value
        else:
            as_is_value = arv * self.cfg.as_is_pct_of_arv

        return ValuationResult(
            arv=arv,
            as_is_value=as_is_value,
            mao=mao,
            price_per_sqft=ppsf,
            comp_count=len(comps),
            arv_source=source,
            confidence=confidence,
        )

    def max_allowable_offer(self, arv: int, rehab: RehabBudget) -> float:
        return round_half_up(arv * self.cfg.max_offer_pct_of_arv) - rehab.total

    def _arv_from_comps(
        self, facts: PropertyFacts, comps: Sequence[ComparableSale]
    ) -> tuple[int, float]:
        if not facts.sqft or facts.sqft <= 0:
            raise InsufficientDataError(f"Subject area unknown for {facts.address}")

        ppsf = self.aggregator.average_price_per_sqft(comps)
        return round_half_up(ppsf * facts.sqft), ppsf
