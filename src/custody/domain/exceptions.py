"""Error taxonomy of the custody ledger."""


class CustodyError(Exception):
    """Base class; ``kind`` names the failure independent of transport."""
    kind = "CustodyError"

    def __init__(self, message: str, identifier: str = None):
        super().__init__(message)
        self.identifier = identifier


class Unauthorized(CustodyError):
    kind = "Unauthorized"


class AlreadyExists(CustodyError):
    kind = "AlreadyExists"


class NotFound(CustodyError):
    kind = "NotFound"


class InvalidState(CustodyError):
    kind = "InvalidState"


class IdentityUnavailable(CustodyError):
    kind = "IdentityUnavailable"


class StoreUnavailable(CustodyError):
    kind = "StoreUnavailable"
