# pylint: disable=redefined-outer-name
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from custody.adapters import codec, orm
from custody.adapters.identity import MappingIdentityResolver
from custody.adapters.notifier import AbstractNotifier
from custody.adapters.repository import AbstractRepository
from custody.domain.engine import TransitionEngine
from custody.domain.exceptions import AlreadyExists, StoreUnavailable
from custody.domain.roles import RolePolicy
from custody.service_layer.unit_of_work import AbstractUnitOfWork

MANUFACTURER = "Cipla"
REGULATOR = "CDSCO"

CREDENTIALS = {
    "CiplaMSP": "Cipla",
    "DistributorAMSP": "DistributorA",
    "DistributorBMSP": "DistributorB",
    "MedlifeMSP": "Medlife",
    "CDSCOMSP": "CDSCO",
}

FIXED_NOW = datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc)


class FakeRepository(AbstractRepository):
    """Holds encoded records like the real store; writes stay pending until commit."""

    def __init__(self, store):
        super().__init__()
        self.store = store
        self.pending = {}
        self.locked = []

    def _decoded(self, identifier):
        payload = self.pending.get(identifier, self.store.get(identifier))
        if payload is None:
            return None
        try:
            return codec.decode(payload)
        except codec.RecordCodecError as e:
            raise StoreUnavailable(f"stored batch {identifier} is unreadable", identifier) from e

    def _get(self, identifier):
        self.locked.append(identifier)
        return self._decoded(identifier)

    def _read(self, identifier):
        return self._decoded(identifier)

    def _add(self, record):
        if record.identifier in self.store or record.identifier in self.pending:
            raise AlreadyExists(f"batch with ID {record.identifier} already exists", record.identifier)
        self.pending[record.identifier] = codec.encode(record)

    def _save(self, record):
        self.pending[record.identifier] = codec.encode(record)


class FakeNotifier(AbstractNotifier):
    def __init__(self, fail=False):
        self.emitted = []
        self.fail = fail

    def emit(self, event_name, payload):
        if self.fail:
            raise ConnectionError("redis is down")
        self.emitted.append((event_name, payload))

    @property
    def names(self):
        return [name for name, _ in self.emitted]


class FakeUnitOfWork(AbstractUnitOfWork):
    def __init__(self, engine, notifier_impl=None):
        self.store = {}
        self.batches = FakeRepository(self.store)
        self.identities = MappingIdentityResolver(CREDENTIALS)
        self.notifier = notifier_impl or FakeNotifier()
        self.engine = engine
        self.commits = 0

    def __enter__(self):
        self.batches = FakeRepository(self.store)
        return super().__enter__()

    def _commit(self):
        self.store.update(self.batches.pending)
        self.batches.pending.clear()
        self.commits += 1

    def rollback(self):
        self.batches.pending.clear()


@pytest.fixture
def policy():
    return RolePolicy(manufacturer=MANUFACTURER, regulator=REGULATOR)


@pytest.fixture
def engine(policy):
    return TransitionEngine(policy, clock=lambda: FIXED_NOW)


@pytest.fixture
def fake_notifier():
    return FakeNotifier()


@pytest.fixture
def uow(engine, fake_notifier):
    return FakeUnitOfWork(engine, notifier_impl=fake_notifier)


@pytest.fixture
def sqlite_session_factory():
    """Create SQLite in-memory database for fast testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    orm.create_tables(engine)

    yield sessionmaker(bind=engine)

    orm.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def sqlite_file_session_factory(tmp_path):
    """File backed SQLite where each session gets its own connection."""
    engine = create_engine(f"sqlite:///{tmp_path / 'custody.db'}")
    orm.create_tables(engine)

    yield sessionmaker(bind=engine)

    engine.dispose()
