"""Recognised supply-chain roles and the operations each may perform."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import config


class Operation(str, Enum):
    REGISTER = "register"
    TRANSFER = "transfer"
    RECALL = "recall"
    DELIVER = "deliver"
    TRACK = "track"


@dataclass(frozen=True)
class RolePolicy:
    """
    Role registry handed to the TransitionEngine.

    Roles are opaque organisation names compared by exact string equality.
    Transfer and delivery are gated on the batch's current custodian rather
    than a fixed role.
    """
    manufacturer: str
    regulator: str

    def __post_init__(self):
        if not self.manufacturer or not self.regulator:
            raise ValueError("manufacturer and regulator roles must be non-empty")

    def permits(self, role: str, operation: Operation, custodian: Optional[str] = None) -> bool:
        if operation == Operation.TRACK:
            return True
        if not role:
            return False
        if operation == Operation.REGISTER:
            return role == self.manufacturer
        if operation == Operation.RECALL:
            return role == self.regulator
        if operation in (Operation.TRANSFER, Operation.DELIVER):
            return custodian is not None and role == custodian
        return False

    @classmethod
    def from_config(cls) -> "RolePolicy":
        return cls(**config.get_custody_roles())
