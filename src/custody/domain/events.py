"""Domain events for the custody ledger service."""

from dataclasses import dataclass


@dataclass
class Event:
    """Base class for all domain events."""
    pass


@dataclass
class BatchRegistered(Event):
    """Event raised when a manufacturer has created a batch record."""
    identifier: str
    batch_number: str
    manufacturer: str
    timestamp: str


@dataclass
class CustodyTransferred(Event):
    """Event raised when custody of a batch moved to another party."""
    identifier: str
    from_party: str
    to_party: str
    timestamp: str


@dataclass
class BatchRecalled(Event):
    """Event raised for every recall, including repeated ones."""
    identifier: str
    regulator: str
    reason: str
    timestamp: str


@dataclass
class BatchDelivered(Event):
    identifier: str
    custodian: str
    timestamp: str
