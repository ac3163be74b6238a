import logging
from sqlalchemy import (
    Table,
    Column,
    Integer,
    String,
    LargeBinary,
)
from sqlalchemy.orm import registry

logger = logging.getLogger(__name__)

mapper_registry = registry()
metadata = mapper_registry.metadata

# Key-value state store: one encoded BatchRecord per identifier.
# version is bumped on every write and guards read-modify-write cycles.
batch_records = Table(
    "batch_records",
    metadata,
    Column("identifier", String(255), primary_key=True),
    Column("payload", LargeBinary, nullable=False),
    Column("version", Integer, nullable=False, server_default="1"),
)


def create_tables(engine):
    logger.info("Creating custody tables")
    metadata.create_all(engine)
