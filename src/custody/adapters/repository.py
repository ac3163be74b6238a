import abc
import logging
from typing import Dict, Optional, Set

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from custody.adapters import codec
from custody.adapters.orm import batch_records
from custody.domain.exceptions import AlreadyExists, StoreUnavailable
from custody.domain.model import BatchRecord

logger = logging.getLogger(__name__)


class AbstractRepository(abc.ABC):
    """
    State store port: per-key read and write of batch records.

    add() inserts and must fail with AlreadyExists when the key is taken,
    save() overwrites a record previously returned by get() in the same
    unit of work. read() is for queries: it takes no lock and its result
    cannot be saved.
    """

    def __init__(self):
        self.seen = set()  # type: Set[BatchRecord]

    def add(self, record: BatchRecord) -> str:
        self._add(record)
        self.seen.add(record)
        return record.identifier

    def get(self, identifier: str) -> Optional[BatchRecord]:
        record = self._get(identifier)
        if record:
            self.seen.add(record)
        return record

    def read(self, identifier: str) -> Optional[BatchRecord]:
        return self._read(identifier)

    def save(self, record: BatchRecord) -> str:
        self._save(record)
        self.seen.add(record)
        return record.identifier

    @abc.abstractmethod
    def _add(self, record: BatchRecord):
        raise NotImplementedError

    @abc.abstractmethod
    def _get(self, identifier: str) -> Optional[BatchRecord]:
        raise NotImplementedError

    @abc.abstractmethod
    def _read(self, identifier: str) -> Optional[BatchRecord]:
        raise NotImplementedError

    @abc.abstractmethod
    def _save(self, record: BatchRecord):
        raise NotImplementedError


def select_batch(identifier: str, for_update: bool):
    query = select(batch_records.c.payload, batch_records.c.version).where(
        batch_records.c.identifier == identifier
    )
    return query.with_for_update() if for_update else query


class SqlAlchemyRepository(AbstractRepository):
    def __init__(self, session):
        super().__init__()
        self.session = session
        self._versions = {}  # type: Dict[str, int]

    def _fetch(self, identifier, for_update):
        try:
            row = self.session.execute(select_batch(identifier, for_update)).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read batch {identifier}: {e}")
            raise StoreUnavailable(f"state store read failed for {identifier}", identifier) from e

        if row is None:
            return None, None
        try:
            return codec.decode(row.payload), row.version
        except codec.RecordCodecError as e:
            logger.error(f"Stored batch {identifier} is unreadable: {e}")
            raise StoreUnavailable(f"stored batch {identifier} is unreadable", identifier) from e

    def _get(self, identifier):
        record, version = self._fetch(identifier, for_update=True)
        if record is not None:
            self._versions[identifier] = version
        return record

    def _read(self, identifier):
        record, _ = self._fetch(identifier, for_update=False)
        return record

    def _add(self, record):
        try:
            self.session.execute(
                insert(batch_records).values(
                    identifier=record.identifier,
                    payload=codec.encode(record),
                    version=1,
                )
            )
        except IntegrityError as e:
            logger.warning(f"Batch {record.identifier} was created concurrently")
            raise AlreadyExists(f"batch with ID {record.identifier} already exists", record.identifier) from e
        except SQLAlchemyError as e:
            logger.error(f"Failed to insert batch {record.identifier}: {e}")
            raise StoreUnavailable(f"state store write failed for {record.identifier}", record.identifier) from e
        self._versions[record.identifier] = 1

    def _save(self, record):
        expected = self._versions.get(record.identifier)
        if expected is None:
            raise ValueError(f"batch {record.identifier} must be read before it is saved")

        try:
            result = self.session.execute(
                update(batch_records)
                .where(batch_records.c.identifier == record.identifier)
                .where(batch_records.c.version == expected)
                .values(payload=codec.encode(record), version=expected + 1)
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to update batch {record.identifier}: {e}")
            raise StoreUnavailable(f"state store write failed for {record.identifier}", record.identifier) from e

        if result.rowcount != 1:
            raise StoreUnavailable(
                f"batch {record.identifier} was modified concurrently", record.identifier
            )
        self._versions[record.identifier] = expected + 1
