"""
Views for read operations - separate from command/write path.
Reads are unrestricted: any caller may track any batch. They go through
the repository's lock-free read() so queries never hold row locks.
"""
import logging
from typing import Any, Dict, List, Optional

from custody.adapters import codec
from custody.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


def track_batch(identifier: str, uow: AbstractUnitOfWork, caller_role: Optional[str] = None) -> Dict[str, Any]:
    """
    Return the full current record of a batch verbatim.

    Raises:
        NotFound: if no record exists at ``identifier``
    """
    with uow:
        record = uow.engine.track(uow.batches.read(identifier), caller_role=caller_role, identifier=identifier)
        return codec.to_dict(record)


def batch_history(identifier: str, uow: AbstractUnitOfWork, caller_role: Optional[str] = None) -> List[Dict[str, Any]]:
    """Audit trail of a batch in commit order."""
    return track_batch(identifier, uow, caller_role=caller_role)["history"]
