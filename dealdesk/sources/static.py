"""In-memory property data source, optionally loaded from JSON."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from dealdesk.errors import PropertyNotFoundError
from dealdesk.models import (
    ComparableSale,
    MarketSnapshot,
    PropertyFacts,
    RehabBudget,
)
from dealdesk.sources.base import PropertyDataSource


class PropertyRecord(BaseModel):
    """Everything known about one property, as stored in a data file."""

    facts: PropertyFacts
    comparables: list[ComparableSale] = Field(default_factory=list)
    market: MarketSnapshot = MarketSnapshot()
    rehab: Optional[RehabBudget] = None


class StaticPropertySource(PropertyDataSource):
    """Serves property records held in memory, keyed by address.

    A JSON data file holds either one record or a list of records::

        {"facts": {"address": "...", "sqft": 1500},
         "comparables": [{"address": "...", "price_per_sqft": 196.55}],
         "market": {"estimated_value": 290000, "rent_estimate": 2200},
         "rehab": {"total": 35000}}
    """

    SOURCE_NAME = "static"

    def __init__(self, records: list[PropertyRecord] | None = None):
        self._records: dict[str, PropertyRecord] = {}
        for record in records or []:
            self.add(record)

    @classmethod
    def from_json_file(cls, path: Path) -> StaticPropertySource:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = [data]
        return cls([PropertyRecord.model_validate(item) for item in data])

    def add(self, record: PropertyRecord) -> None:
        self._records[record.facts.address] = record

    def record(self, address: str) -> PropertyRecord:
        try:
            return self._records[address]
        except KeyError:
            raise PropertyNotFoundError(address) from None

    @property
    def addresses(self) -> list[str]:
        return list(self._records)

    def get_facts(self, address: str) -> PropertyFacts:
        return self.record(address).facts

    def get_comparables(self, address: str) -> list[ComparableSale]:
        return list(self.record(address).comparables)

    def get_market(self, address: str) -> MarketSnapshot:
        return self.record(address).market

    def get_rehab(self, address: str) -> RehabBudget | None:
        """Operator rehab estimate stored with the record, if any."""
        return self.record(address).rehab
