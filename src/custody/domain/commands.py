"""Commands for the custody ledger service."""

from dataclasses import dataclass


@dataclass
class Command:
    """Base class for all commands."""
    pass


@dataclass
class RegisterBatch(Command):
    """Command to create the ledger record of a freshly manufactured batch."""
    credential: str  # opaque caller credential, resolved to a role
    identifier: str
    product_name: str
    batch_number: str
    manufacture_date: str  # 'YYYY-MM-DD'
    expiry_date: str  # 'YYYY-MM-DD'
    composition: str


@dataclass
class TransferCustody(Command):
    """Command to ship a batch from its current custodian to another party."""
    credential: str
    identifier: str
    destination: str


@dataclass
class RecallBatch(Command):
    """Regulator command to recall a batch."""
    credential: str
    identifier: str
    reason: str


@dataclass
class MarkDelivered(Command):
    """Custodian confirms receipt of a batch in transit."""
    credential: str
    identifier: str
