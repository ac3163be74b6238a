"""
Byte encoding of BatchRecords for the key-value state store.

Records are stored as JSON documents with stable camelCase field names and
a schemaVersion tag. history and inspectionNotes are always written as
ordered lists, empty lists included.
"""

import json
import logging
from typing import Any, Dict

from custody.domain.model import AuditLog, BatchRecord, BatchStatus, EventKind, HistoryEntry

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class RecordCodecError(ValueError):
    """Raised when stored bytes are not a valid batch record document."""
    pass


def _entry_to_dict(entry: HistoryEntry) -> Dict[str, Any]:
    return {
        "timestamp": entry.timestamp,
        "eventKind": entry.event_kind.value,
        "fromParty": entry.from_party,
        "toParty": entry.to_party,
        "detail": entry.detail,
    }


def _entry_from_dict(data: Dict[str, Any]) -> HistoryEntry:
    return HistoryEntry(
        timestamp=data["timestamp"],
        event_kind=EventKind(data["eventKind"]),
        from_party=data["fromParty"],
        to_party=data["toParty"],
        detail=data.get("detail", ""),
    )


def to_dict(record: BatchRecord) -> Dict[str, Any]:
    """Serialize record to a JSON-ready dict (also used by the read views)."""
    return {
        "identifier": record.identifier,
        "productName": record.product_name,
        "manufacturerName": record.manufacturer_name,
        "batchNumber": record.batch_number,
        "manufactureDate": record.manufacture_date,
        "expiryDate": record.expiry_date,
        "composition": record.composition,
        "currentCustodian": record.current_custodian,
        "status": record.status.value,
        "recalled": record.recalled,
        "history": [_entry_to_dict(entry) for entry in record.history],
        "inspectionNotes": list(record.inspection_notes),
    }


def encode(record: BatchRecord) -> bytes:
    document = to_dict(record)
    document["schemaVersion"] = SCHEMA_VERSION
    return json.dumps(document, sort_keys=True, separators=(",", ":")).encode("utf-8")


def _require_list(data: Dict[str, Any], key: str) -> list:
    value = data[key]
    if not isinstance(value, list):
        raise TypeError(f"{key} must be a list, got {type(value).__name__}")
    return value


def decode(payload: bytes) -> BatchRecord:
    """
    Rebuild a BatchRecord from stored bytes.

    Every field written by encode() is required; recalled must be a JSON
    boolean and history/inspectionNotes must be lists.

    Raises:
        RecordCodecError: if the payload is not a batch record document
    """
    if isinstance(payload, (bytearray, memoryview)):
        payload = bytes(payload)
    try:
        data = json.loads(payload.decode("utf-8") if isinstance(payload, bytes) else payload)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise RecordCodecError(f"Stored payload is not JSON: {e}") from e

    if not isinstance(data, dict):
        raise RecordCodecError(f"Expected a JSON object, got {type(data).__name__}")

    version = data.get("schemaVersion", SCHEMA_VERSION)
    if version != SCHEMA_VERSION:
        raise RecordCodecError(f"Unsupported schemaVersion {version}")

    try:
        recalled = data["recalled"]
        if not isinstance(recalled, bool):
            raise TypeError(f"recalled must be a boolean, got {type(recalled).__name__}")
        history = _require_list(data, "history")
        notes = _require_list(data, "inspectionNotes")
        if not all(isinstance(note, str) for note in notes):
            raise TypeError("inspectionNotes must hold strings")
        if not all(isinstance(entry, dict) for entry in history):
            raise TypeError("history must hold objects")

        return BatchRecord(
            identifier=data["identifier"],
            product_name=data["productName"],
            manufacturer_name=data["manufacturerName"],
            batch_number=data["batchNumber"],
            manufacture_date=data["manufactureDate"],
            expiry_date=data["expiryDate"],
            composition=data["composition"],
            current_custodian=data["currentCustodian"],
            status=BatchStatus(data["status"]),
            recalled=recalled,
            history=AuditLog(_entry_from_dict(entry) for entry in history),
            inspection_notes=AuditLog(notes),
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.error(f"Failed to decode batch record: {e}")
        raise RecordCodecError(f"Malformed batch record: {e}") from e
