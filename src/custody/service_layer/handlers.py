import logging

from custody.adapters.notifier import event_payload
from custody.domain.commands import MarkDelivered, RecallBatch, RegisterBatch, TransferCustody
from custody.domain.exceptions import CustodyError
from custody.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


def register_batch(
    command: RegisterBatch,
    uow: AbstractUnitOfWork
) -> str:
    """
    Register a new batch in the ledger.

    Flow:
    1. Resolve caller credential to a role
    2. Read the identifier from the state store (must be absent)
    3. Let the transition engine build the record
    4. Insert and commit

    Returns:
        identifier of the created batch

    Raises:
        IdentityUnavailable, Unauthorized, AlreadyExists, StoreUnavailable
    """
    logger.info(f"Processing RegisterBatch command for batch {command.identifier}")

    try:
        with uow:
            role = uow.identities.resolve(command.credential)
            existing = uow.batches.get(command.identifier)
            record = uow.engine.register(
                caller_role=role,
                identifier=command.identifier,
                product_name=command.product_name,
                batch_number=command.batch_number,
                manufacture_date=command.manufacture_date,
                expiry_date=command.expiry_date,
                composition=command.composition,
                existing=existing,
            )
            identifier = uow.batches.add(record)
            uow.commit()
            logger.info(f"Committed batch {identifier} ({command.batch_number}) for {role}")

        return identifier

    except CustodyError as e:
        logger.warning(f"RegisterBatch rejected for {command.identifier}: {e.kind}: {e}")
        raise


def transfer_custody(
    command: TransferCustody,
    uow: AbstractUnitOfWork
) -> str:
    """Move custody of a batch from the caller to ``command.destination``."""
    logger.info(f"Processing TransferCustody command for batch {command.identifier} to {command.destination}")

    try:
        with uow:
            role = uow.identities.resolve(command.credential)
            record = uow.batches.get(command.identifier)
            updated = uow.engine.transfer_custody(
                record, role, command.destination, identifier=command.identifier
            )
            uow.batches.save(updated)
            uow.commit()
            logger.info(f"Batch {command.identifier} shipped from {role} to {command.destination}")

        return updated.current_custodian

    except CustodyError as e:
        logger.warning(f"TransferCustody rejected for {command.identifier}: {e.kind}: {e}")
        raise


def recall_batch(
    command: RecallBatch,
    uow: AbstractUnitOfWork
) -> str:
    """Regulator recall; valid whoever holds the batch."""
    logger.info(f"Processing RecallBatch command for batch {command.identifier}")

    try:
        with uow:
            role = uow.identities.resolve(command.credential)
            record = uow.batches.get(command.identifier)
            updated = uow.engine.recall(record, role, command.reason, identifier=command.identifier)
            uow.batches.save(updated)
            uow.commit()
            logger.info(
                f"Batch {command.identifier} recalled by {role} "
                f"({len(updated.inspection_notes)} inspection notes)"
            )

        return updated.status.value

    except CustodyError as e:
        logger.warning(f"RecallBatch rejected for {command.identifier}: {e.kind}: {e}")
        raise


def mark_delivered(
    command: MarkDelivered,
    uow: AbstractUnitOfWork
) -> str:
    logger.info(f"Processing MarkDelivered command for batch {command.identifier}")

    try:
        with uow:
            role = uow.identities.resolve(command.credential)
            record = uow.batches.get(command.identifier)
            updated = uow.engine.mark_delivered(record, role, identifier=command.identifier)
            uow.batches.save(updated)
            uow.commit()
            logger.info(f"Batch {command.identifier} delivered to {role}")

        return updated.status.value

    except CustodyError as e:
        logger.warning(f"MarkDelivered rejected for {command.identifier}: {e.kind}: {e}")
        raise


def publish_event(event, uow: AbstractUnitOfWork):
    """
    Publish a committed custody event through the notifier.

    Runs after the state change is committed. Notification failures are
    logged and never undo the transition.
    """
    event_name = type(event).__name__
    logger.info(f"Publishing {event_name} event for batch {event.identifier}")
    try:
        uow.notifier.emit(event_name, event_payload(event))
        logger.info(f"Published {event_name} event for {event.identifier}")

    except Exception as e:
        logger.error(f"Failed to publish {event_name} for {event.identifier}: {e}")
        # Don't re-raise - the state change is already committed
