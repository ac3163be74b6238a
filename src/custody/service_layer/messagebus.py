# pylint: disable=broad-except
"""Message bus routing custody commands to handlers and their events to subscribers."""

from __future__ import annotations
import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Type, Union, TYPE_CHECKING

from custody.domain.commands import (
    Command,
    MarkDelivered,
    RecallBatch,
    RegisterBatch,
    TransferCustody,
)
from custody.domain.events import (
    BatchDelivered,
    BatchRecalled,
    BatchRegistered,
    CustodyTransferred,
    Event,
)
from custody.service_layer import handlers

if TYPE_CHECKING:
    from custody.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

Message = Union[Command, Event]


class MessageBus:
    """
    One handler per command type, any number of subscribers per event type.

    A command's failure propagates to the caller. Events raised while
    handling are drained from the unit of work and dispatched in order;
    a failing subscriber is logged and the rest still run.
    """

    def __init__(self):
        self.command_handlers: Dict[Type[Command], Callable] = {}
        self.event_handlers: Dict[Type[Event], List[Callable]] = {}

    def register_handler(self, command_type: Type[Command], handler: Callable):
        self.command_handlers[command_type] = handler

    def register_event_handler(self, event_type: Type[Event], handler: Callable):
        self.event_handlers.setdefault(event_type, []).append(handler)

    def handle(self, message: Message, uow: AbstractUnitOfWork) -> List[Any]:
        """Process message and every event it causes; returns the command results."""
        results = []
        pending: Deque[Message] = deque([message])

        while pending:
            current = pending.popleft()
            if isinstance(current, Command):
                results.append(self._run_command(current, uow))
            elif isinstance(current, Event):
                self._notify_subscribers(current, uow)
            else:
                raise TypeError(f"{current!r} is neither a Command nor an Event")
            pending.extend(uow.collect_new_events())

        return results

    def _run_command(self, command: Command, uow: AbstractUnitOfWork) -> Any:
        command_name = type(command).__name__
        handler = self.command_handlers.get(type(command))
        if handler is None:
            raise ValueError(f"No handler registered for command {command_name}")

        logger.debug(f"Handling command {command_name}")
        try:
            return handler(command, uow=uow)
        except Exception as e:
            logger.error(f"Error handling command {command_name}: {e}")
            raise

    def _notify_subscribers(self, event: Event, uow: AbstractUnitOfWork):
        event_name = type(event).__name__
        subscribers = self.event_handlers.get(type(event), [])
        if not subscribers:
            logger.debug(f"No handlers registered for event {event_name}")

        for subscriber in subscribers:
            try:
                subscriber(event, uow=uow)
            except Exception:
                logger.exception(f"Error handling event {event_name} with {subscriber.__name__}")


def build_bus() -> MessageBus:
    custody_bus = MessageBus()

    custody_bus.register_handler(RegisterBatch, handlers.register_batch)
    custody_bus.register_handler(TransferCustody, handlers.transfer_custody)
    custody_bus.register_handler(RecallBatch, handlers.recall_batch)
    custody_bus.register_handler(MarkDelivered, handlers.mark_delivered)

    for event_type in (BatchRegistered, CustodyTransferred, BatchRecalled, BatchDelivered):
        custody_bus.register_event_handler(event_type, handlers.publish_event)

    return custody_bus


bus = build_bus()


def handle(message: Message, uow: AbstractUnitOfWork) -> List[Any]:
    return bus.handle(message, uow)
