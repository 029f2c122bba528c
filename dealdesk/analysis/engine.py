"""Analysis engine that orchestrates valuation and every strategy analyzer."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from dealdesk.config import AnalysisConfig
from dealdesk.models import (
    AnalysisSnapshot,
    ComparableSale,
    MarketSnapshot,
    PropertyFacts,
    RehabBudget,
)
from dealdesk.analysis.brrrr import BRRRRAnalyzer
from dealdesk.analysis.funding import FundingAnalyzer
from dealdesk.analysis.novation import NovationAnalyzer
from dealdesk.analysis.rehab import RehabAnalyzer
from dealdesk.analysis.valuation import ValuationCalculator
from dealdesk.analysis.wholesale import WholesaleAnalyzer

logger = logging.getLogger(__name__)


class AnalysisEngine:
    """Turns property inputs into one immutable AnalysisSnapshot.

    Valuation runs once; the strategy and funding analyzers each read the
    valuation and nothing else, so none depends on another's output. The
    engine holds no per-run state and is safe to share between threads.
    """

    def __init__(self, config: AnalysisConfig):
        self.config = config
        self.valuation = ValuationCalculator(config)
        self.wholesale = WholesaleAnalyzer(config.wholesale)
        self.rehab = RehabAnalyzer(config.rehab)
        self.brrrr = BRRRRAnalyzer(config.brrrr)
        self.novation = NovationAnalyzer(config.novation)
        self.funding = FundingAnalyzer(config.funding)

    def run(
        self,
        facts: PropertyFacts,
        comparables: Sequence[ComparableSale],
        market: MarketSnapshot,
        rehab: RehabBudget,
        offer_amount: Optional[float] = None,
    ) -> AnalysisSnapshot:
        """Analyze a property with every strategy.

        Args:
            facts: Subject property facts.
            comparables: Comparable sales; may be empty only when a fallback
                valuation is configured.
            market: Third-party market data, fields may be unknown.
            rehab: Rehab budget for the subject.
            offer_amount: Offer to evaluate; defaults to the MAO.

        Raises:
            InsufficientDataError: if no valuation can be produced.
        """
        valuation = self.valuation.calculate(facts, comparables, market, rehab)
        buy_price = offer_amount if offer_amount is not None else float(valuation.mao)

        snapshot = AnalysisSnapshot(
            facts=facts,
            comparables=list(comparables),
            market=market,
            rehab_budget=rehab,
            offer_amount=offer_amount,
            valuation=valuation,
            wholesale=self.wholesale.analyze(valuation, buy_price),
            rehab=self.rehab.analyze(valuation, buy_price, rehab),
            brrrr=self.brrrr.analyze(valuation, buy_price, rehab, market),
            novation=self.novation.analyze(valuation, buy_price, rehab, market),
            funding=self.funding.analyze(valuation, facts.condition),
        )

        unavailable = [s.strategy.value for s in snapshot.strategies if not s.available]
        logger.info(
            "Analyzed %s: ARV %s, MAO %s, buy price %s%s",
            facts.address,
            valuation.arv,
            valuation.mao,
            buy_price,
            f" (unavailable: {', '.join(unavailable)})" if unavailable else "",
        )
        return snapshot
