# pylint: disable=attribute-defined-outside-init
from __future__ import annotations
import abc
import logging

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session

import config
from custody.adapters import identity, notifier, repository
from custody.domain.engine import TransitionEngine
from custody.domain.exceptions import StoreUnavailable
from custody.domain.roles import RolePolicy

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(abc.ABC):
    """
    One atomic operation against one batch identifier.

    Leaving the context without commit() rolls back, so a rejected
    transition never leaves a partial write behind.
    """
    batches: repository.AbstractRepository
    identities: identity.AbstractIdentityResolver
    notifier: notifier.AbstractNotifier
    engine: TransitionEngine

    def __enter__(self) -> AbstractUnitOfWork:
        return self

    def __exit__(self, *args):
        self.rollback()

    def commit(self):
        self._commit()

    def collect_new_events(self):
        for record in self.batches.seen:
            while record.events:
                yield record.events.pop(0)

    @abc.abstractmethod
    def _commit(self):
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self):
        raise NotImplementedError


_DEFAULT_SESSION_FACTORY = None


def default_session_factory():
    global _DEFAULT_SESSION_FACTORY
    if _DEFAULT_SESSION_FACTORY is None:
        _DEFAULT_SESSION_FACTORY = sessionmaker(
            bind=create_engine(
                config.get_postgres_uri(),
                isolation_level="REPEATABLE READ",
            )
        )
    return _DEFAULT_SESSION_FACTORY


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    def __init__(
        self,
        session_factory=None,
        identity_resolver=None,
        notifier_impl=None,
        engine=None,
    ):
        self.session_factory = session_factory or default_session_factory()
        self.identities = identity_resolver or identity.MappingIdentityResolver()
        self.notifier = notifier_impl or notifier.RedisNotifier()
        self.engine = engine or TransitionEngine(RolePolicy.from_config())

    def __enter__(self):
        self.session = self.session_factory()  # type: Session
        self.batches = repository.SqlAlchemyRepository(self.session)
        return super().__enter__()

    def __exit__(self, *args):
        super().__exit__(*args)
        self.session.close()

    def _commit(self):
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Commit failed: {e}")
            raise StoreUnavailable("state store commit failed") from e

    def rollback(self):
        self.session.rollback()
