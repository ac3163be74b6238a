"""
Transition engine - decides and applies the one legal transition for
(current record, caller role, operation, arguments).

The engine never touches storage and never mutates the record it is given.
Every successful transition returns a new BatchRecord carrying exactly one
new history entry and one pending domain event in ``record.events``.
"""
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional

from custody.domain.events import (
    BatchDelivered,
    BatchRecalled,
    BatchRegistered,
    CustodyTransferred,
)
from custody.domain.exceptions import AlreadyExists, InvalidState, NotFound, Unauthorized
from custody.domain.model import (
    NO_PARTY,
    AuditLog,
    BatchRecord,
    BatchStatus,
    EventKind,
    HistoryEntry,
    format_timestamp,
)
from custody.domain.roles import Operation, RolePolicy


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TransitionEngine:

    def __init__(self, policy: RolePolicy, clock: Callable[[], datetime] = utc_now):
        self.policy = policy
        self.clock = clock

    def _timestamp(self) -> str:
        return format_timestamp(self.clock())

    def register(
        self,
        caller_role: str,
        identifier: str,
        product_name: str,
        batch_number: str,
        manufacture_date: str,
        expiry_date: str,
        composition: str,
        existing: Optional[BatchRecord] = None,
    ) -> BatchRecord:
        """
        Create the record of a new batch.

        ``existing`` is whatever the state store holds at ``identifier``; the
        caller must look it up before asking for a registration.

        Raises:
            Unauthorized: caller is not the manufacturer
            AlreadyExists: a record is already stored at ``identifier``
        """
        if not self.policy.permits(caller_role, Operation.REGISTER):
            raise Unauthorized(
                f"only {self.policy.manufacturer} (manufacturer) can register batches",
                identifier,
            )
        if existing is not None:
            raise AlreadyExists(f"batch with ID {identifier} already exists", identifier)
        if not identifier:
            raise InvalidState("batch identifier must not be empty", identifier)

        manufacturer = self.policy.manufacturer
        timestamp = self._timestamp()
        entry = HistoryEntry(
            timestamp=timestamp,
            event_kind=EventKind.CREATED,
            from_party=manufacturer,
            to_party=NO_PARTY,
            detail=f"Batch: {batch_number}",
        )
        record = BatchRecord(
            identifier=identifier,
            product_name=product_name,
            manufacturer_name=manufacturer,
            batch_number=batch_number,
            manufacture_date=manufacture_date,
            expiry_date=expiry_date,
            composition=composition,
            current_custodian=manufacturer,
            status=BatchStatus.IN_PRODUCTION,
            recalled=False,
            history=AuditLog([entry]),
            inspection_notes=AuditLog(),
        )
        record.events.append(
            BatchRegistered(
                identifier=identifier,
                batch_number=batch_number,
                manufacturer=manufacturer,
                timestamp=timestamp,
            )
        )
        return record

    def transfer_custody(
        self, record: Optional[BatchRecord], caller_role: str, destination: str, identifier: str = None
    ) -> BatchRecord:
        """Ship the batch from its current custodian to ``destination``."""
        record = self._require(record, identifier)
        if not self.policy.permits(caller_role, Operation.TRANSFER, custodian=record.current_custodian):
            raise Unauthorized("only the current custodian can ship this batch", record.identifier)
        if record.is_terminal:
            raise InvalidState(f"batch {record.identifier} has been recalled", record.identifier)
        if record.status == BatchStatus.DELIVERED:
            raise InvalidState(f"batch {record.identifier} has already been delivered", record.identifier)
        if not destination:
            raise InvalidState("destination party must not be empty", record.identifier)

        timestamp = self._timestamp()
        from_party = record.current_custodian
        entry = HistoryEntry(
            timestamp=timestamp,
            event_kind=EventKind.SHIPPED,
            from_party=from_party,
            to_party=destination,
        )
        event = CustodyTransferred(
            identifier=record.identifier,
            from_party=from_party,
            to_party=destination,
            timestamp=timestamp,
        )
        return replace(
            record,
            current_custodian=destination,
            status=BatchStatus.IN_TRANSIT,
            history=record.history.append(entry),
            events=[event],
        )

    def recall(
        self, record: Optional[BatchRecord], caller_role: str, reason: str, identifier: str = None
    ) -> BatchRecord:
        """
        Recall the batch. Independent of custodian and status; recalling an
        already recalled batch only adds another note and history entry.
        """
        if not self.policy.permits(caller_role, Operation.RECALL):
            raise Unauthorized(
                f"only {self.policy.regulator} (regulator) can recall batches",
                record.identifier if record else identifier,
            )
        record = self._require(record, identifier)

        timestamp = self._timestamp()
        regulator = self.policy.regulator
        entry = HistoryEntry(
            timestamp=timestamp,
            event_kind=EventKind.RECALLED,
            from_party=regulator,
            to_party=NO_PARTY,
            detail=f"Reason: {reason}",
        )
        event = BatchRecalled(
            identifier=record.identifier,
            regulator=regulator,
            reason=reason,
            timestamp=timestamp,
        )
        return replace(
            record,
            recalled=True,
            status=BatchStatus.RECALLED,
            inspection_notes=record.inspection_notes.append(f"{timestamp}: {reason}"),
            history=record.history.append(entry),
            events=[event],
        )

    def mark_delivered(self, record: Optional[BatchRecord], caller_role: str, identifier: str = None) -> BatchRecord:
        """Custodian confirms receipt; only a batch in transit can be delivered."""
        record = self._require(record, identifier)
        if not self.policy.permits(caller_role, Operation.DELIVER, custodian=record.current_custodian):
            raise Unauthorized("only the current custodian can confirm delivery", record.identifier)
        if record.is_terminal:
            raise InvalidState(f"batch {record.identifier} has been recalled", record.identifier)
        if record.status != BatchStatus.IN_TRANSIT:
            raise InvalidState(
                f"batch {record.identifier} is {record.status.value}, not {BatchStatus.IN_TRANSIT.value}",
                record.identifier,
            )

        timestamp = self._timestamp()
        custodian = record.current_custodian
        entry = HistoryEntry(
            timestamp=timestamp,
            event_kind=EventKind.DELIVERED,
            from_party=custodian,
            to_party=custodian,
        )
        return replace(
            record,
            status=BatchStatus.DELIVERED,
            history=record.history.append(entry),
            events=[BatchDelivered(identifier=record.identifier, custodian=custodian, timestamp=timestamp)],
        )

    def track(
        self, record: Optional[BatchRecord], caller_role: Optional[str] = None, identifier: str = None
    ) -> BatchRecord:
        """Read a batch. The policy grants tracking to every caller, anonymous ones included."""
        if not self.policy.permits(caller_role, Operation.TRACK):
            raise Unauthorized(f"{caller_role or 'anonymous caller'} may not track batches", identifier)
        return self._require(record, identifier)

    @staticmethod
    def _require(record: Optional[BatchRecord], identifier: str) -> BatchRecord:
        if record is None:
            raise NotFound(f"batch {identifier} not found", identifier)
        return record
