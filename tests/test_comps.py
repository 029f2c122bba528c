"""Tests for comparable sale aggregation."""

import pytest

from dealdesk.comps.sales import CompAggregator
from dealdesk.config import CompsConfig
from dealdesk.errors import InsufficientDataError
from dealdesk.models import ComparableSale


def _make_comp(ppsf: float, **overrides) -> ComparableSale:
    defaults = {"address": f"{int(ppsf)} Comp St", "price_per_sqft": ppsf}
    defaults.update(overrides)
    return ComparableSale(**defaults)


class TestCompAggregator:
    def setup_method(self):
        self.agg = CompAggregator(CompsConfig())

    def test_average_price_per_sqft(self):
        comps = [_make_comp(196.55), _make_comp(194.08), _make_comp(185.81)]
        assert self.agg.average_price_per_sqft(comps) == pytest.approx(192.1467, abs=1e-4)

    def test_single_comp(self):
        assert self.agg.average_price_per_sqft([_make_comp(150.0)]) == 150.0

    def test_empty_comps_raise(self):
        with pytest.raises(InsufficientDataError):
            self.agg.average_price_per_sqft([])

    def test_order_does_not_matter(self):
        comps = [_make_comp(p) for p in (101.1, 250.37, 99.99, 180.42, 133.33)]
        forward = self.agg.average_price_per_sqft(comps)
        backward = self.agg.average_price_per_sqft(list(reversed(comps)))
        assert forward == backward

    def test_no_outlier_rejection(self):
        # every comp counts equally, even an extreme one
        comps = [_make_comp(100.0), _make_comp(100.0), _make_comp(400.0)]
        assert self.agg.average_price_per_sqft(comps) == 200.0

    def test_confidence_levels(self):
        assert self.agg.confidence([_make_comp(100.0)] * 2) == "low"
        assert self.agg.confidence([_make_comp(100.0)] * 3) == "medium"
        assert self.agg.confidence([_make_comp(100.0)] * 5) == "high"
