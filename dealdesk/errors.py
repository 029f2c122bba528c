"""Exceptions raised by the DealDesk core."""

from __future__ import annotations


class DealDeskError(Exception):
    """Base class for all DealDesk errors."""


class InsufficientDataError(DealDeskError):
    """Not enough data to produce a valuation."""


class InvalidTransitionError(DealDeskError):
    """A deal status change that the pipeline does not allow."""

    def __init__(self, deal_id: str, current: str, target: str, reason: str):
        self.deal_id = deal_id
        self.current = current
        self.target = target
        self.reason = reason
        super().__init__(f"Deal {deal_id}: cannot move from {current} to {target} ({reason})")


class DealNotFoundError(DealDeskError):
    def __init__(self, deal_id: str):
        self.deal_id = deal_id
        super().__init__(f"Deal not found: {deal_id}")


class DuplicateDealError(DealDeskError):
    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Deal already exists for this address: {address}")


class ConcurrentModificationError(DealDeskError):
    """The stored deal changed between read and write."""

    def __init__(self, deal_id: str, expected_version: int):
        self.deal_id = deal_id
        self.expected_version = expected_version
        super().__init__(
            f"Deal {deal_id} was modified concurrently (expected version {expected_version})"
        )


class PropertyNotFoundError(DealDeskError):
    def __init__(self, address: str):
        self.address = address
        super().__init__(f"No property data for: {address}")
