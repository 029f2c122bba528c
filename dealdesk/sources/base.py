"""Property data source interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from dealdesk.models import ComparableSale, MarketSnapshot, PropertyFacts, RehabBudget


class PropertyDataSource(ABC):
    """Supplies already-fetched inputs for an address.

    Implementations that talk to the network own their timeouts and retries;
    by the time data reaches the analysis engine it is plain records.
    """

    SOURCE_NAME: str = "unknown"

    @abstractmethod
    def get_facts(self, address: str) -> PropertyFacts:
        """Structural facts for the address.

        Raises:
            PropertyNotFoundError: if the source knows nothing about it.
        """
        ...

    @abstractmethod
    def get_comparables(self, address: str) -> list[ComparableSale]:
        """Comparable sales near the address. May be empty."""
        ...

    @abstractmethod
    def get_market(self, address: str) -> MarketSnapshot:
        """Market data for the address. Unknown fields are None."""
        ...

    def get_rehab(self, address: str) -> Optional[RehabBudget]:
        """Operator rehab estimate for the address, if the source has one."""
        return None
