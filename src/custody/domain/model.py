"""
Batch custody domain model.

One BatchRecord per pharmaceutical batch. Custody and status change only
through the TransitionEngine; the audit trail is an AuditLog that can grow
but never be rewritten.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Generic, Iterator, List, Tuple, TypeVar

T = TypeVar("T")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
NO_PARTY = "-"


class BatchStatus(str, Enum):
    """Lifecycle status of a batch"""
    IN_PRODUCTION = "InProduction"
    IN_TRANSIT = "InTransit"
    DELIVERED = "Delivered"
    RECALLED = "Recalled"


class EventKind(str, Enum):
    CREATED = "Created"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    RECALLED = "Recalled"


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class HistoryEntry:
    """One audit trail line, immutable once appended"""
    timestamp: str
    event_kind: EventKind
    from_party: str
    to_party: str
    detail: str = ""


class AuditLog(Generic[T]):
    """
    Write-once positional log.

    Entries are held in a tuple; append() returns a new log that shares the
    existing prefix, so a log that has been read can never change underneath
    its reader.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries=()):
        self._entries: Tuple[T, ...] = tuple(entries)

    def append(self, entry: T) -> "AuditLog[T]":
        return AuditLog(self._entries + (entry,))

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[T]:
        return iter(self._entries)

    def __getitem__(self, position):
        return self._entries[position]

    def __eq__(self, other):
        if not isinstance(other, AuditLog):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self):
        return hash(self._entries)

    def __repr__(self):
        return f"AuditLog({list(self._entries)!r})"

    def is_prefix_of(self, other: "AuditLog[T]") -> bool:
        """True when ``other`` extends this log without rewriting it"""
        return other._entries[: len(self._entries)] == self._entries


@dataclass(unsafe_hash=True)
class BatchRecord:
    identifier: str
    product_name: str
    manufacturer_name: str
    batch_number: str
    manufacture_date: str
    expiry_date: str
    composition: str
    current_custodian: str
    status: BatchStatus = BatchStatus.IN_PRODUCTION
    recalled: bool = False
    history: AuditLog = field(default_factory=AuditLog)
    inspection_notes: AuditLog = field(default_factory=AuditLog)
    events: List = field(default_factory=list, compare=False, hash=False, repr=False)

    @property
    def is_terminal(self) -> bool:
        """Recalled batches accept nothing but further recall notes"""
        return self.recalled or self.status == BatchStatus.RECALLED
