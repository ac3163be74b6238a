"""Identity resolver - maps opaque caller credentials to organisation roles."""

import abc
import logging
from typing import Dict, Optional

import config
from custody.domain.exceptions import IdentityUnavailable

logger = logging.getLogger(__name__)


class AbstractIdentityResolver(abc.ABC):

    @abc.abstractmethod
    def resolve(self, credential: str) -> str:
        """
        Resolve a caller credential to its canonical role name.

        Raises:
            IdentityUnavailable: if the credential cannot be resolved
        """
        raise NotImplementedError


class MappingIdentityResolver(AbstractIdentityResolver):
    """
    Resolver backed by an explicit credential -> role table.

    Credentials are looked up verbatim; role names are never derived from
    the credential string itself.
    """

    def __init__(self, mapping: Optional[Dict[str, str]] = None):
        self.mapping = dict(mapping if mapping is not None else config.get_identity_mapping())

    def resolve(self, credential: str) -> str:
        if not credential:
            raise IdentityUnavailable("no caller credential supplied")
        role = self.mapping.get(credential)
        if role is None:
            logger.warning(f"Unknown caller credential {credential!r}")
            raise IdentityUnavailable(f"credential {credential!r} is not registered")
        return role
