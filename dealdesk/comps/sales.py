"""Sales comp aggregation for estimating After Repair Value (ARV).

Reduces a set of already-fetched comparable sales to a single
price-per-sqft figure. Every comp is weighted equally and no outliers are
dropped, so a single bad comp moves the average.
"""

from __future__ import annotations

import logging
from math import fsum
from typing import Sequence

from dealdesk.config import CompsConfig
from dealdesk.errors import InsufficientDataError
from dealdesk.models import ComparableSale

logger = logging.getLogger(__name__)


class CompAggregator:
    """Averages comparable sales into a price-per-sqft estimate."""

    def __init__(self, comps_config: CompsConfig):
        self.cfg = comps_config

    def average_price_per_sqft(self, comps: Sequence[ComparableSale]) -> float:
        """Mean price per sqft across all comps.

        Raises:
            InsufficientDataError: if no comps were supplied.
        """
        if not comps:
            raise InsufficientDataError("No comparable sales to aggregate")

        avg = fsum(c.price_per_sqft for c in comps) / len(comps)
        logger.debug("Aggregated %d comps: %.2f per sqft", len(comps), avg)
        return avg

    def confidence(self, comps: Sequence[ComparableSale]) -> str:
        """Grade how much to trust an ARV built from these comps."""
        if len(comps) >= self.cfg.min_comps_for_high_confidence:
            return "high"
        if len(comps) >= self.cfg.min_comps_for_medium_confidence:
            return "medium"
        return "low"
