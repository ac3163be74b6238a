"""
Unit tests for the custody message bus.

Tests verify that:
1. Command results are returned in order and their events reach subscribers
2. A failing subscriber does not stop the others or undo the command
3. Unregistered commands and foreign messages are rejected
"""
import pytest

from custody.domain.commands import Command, RegisterBatch
from custody.domain.events import BatchRegistered, CustodyTransferred
from custody.service_layer import handlers
from custody.service_layer.messagebus import MessageBus, build_bus


def register_cmd():
    return RegisterBatch(
        credential="CiplaMSP",
        identifier="DRUG-1",
        product_name="ParacetamolX",
        batch_number="B100",
        manufacture_date="2024-01-01",
        expiry_date="2026-01-01",
        composition="Paracetamol 500mg",
    )


class TestMessageBus:
    def test_command_events_reach_every_subscriber(self, uow):
        seen = []
        bus = MessageBus()
        bus.register_handler(RegisterBatch, handlers.register_batch)
        bus.register_event_handler(BatchRegistered, lambda event, uow: seen.append(("first", event.identifier)))
        bus.register_event_handler(BatchRegistered, lambda event, uow: seen.append(("second", event.identifier)))

        results = bus.handle(register_cmd(), uow)

        assert results == ["DRUG-1"]
        assert seen == [("first", "DRUG-1"), ("second", "DRUG-1")]

    def test_failing_subscriber_is_isolated(self, uow):
        seen = []

        def broken(event, uow):
            raise RuntimeError("subscriber down")

        bus = MessageBus()
        bus.register_handler(RegisterBatch, handlers.register_batch)
        bus.register_event_handler(BatchRegistered, broken)
        bus.register_event_handler(BatchRegistered, lambda event, uow: seen.append(event.identifier))

        results = bus.handle(register_cmd(), uow)

        assert results == ["DRUG-1"]
        assert seen == ["DRUG-1"]
        assert "DRUG-1" in uow.store

    def test_event_without_subscribers_is_ignored(self, uow):
        bus = MessageBus()

        results = bus.handle(CustodyTransferred("DRUG-1", "Cipla", "DistributorA", "2024-01-15 10:30:00"), uow)

        assert results == []

    def test_unregistered_command_is_rejected(self, uow):
        with pytest.raises(ValueError):
            MessageBus().handle(register_cmd(), uow)

    def test_unknown_command_type_is_rejected(self, uow):
        class Unknown(Command):
            pass

        with pytest.raises(ValueError):
            build_bus().handle(Unknown(), uow)

    def test_foreign_message_is_rejected(self, uow):
        with pytest.raises(TypeError):
            build_bus().handle("RegisterBatch", uow)


def test_default_bus_routes_every_custody_command():
    bus = build_bus()

    assert set(bus.command_handlers.values()) == {
        handlers.register_batch,
        handlers.transfer_custody,
        handlers.recall_batch,
        handlers.mark_delivered,
    }
    assert all(subscribers == [handlers.publish_event] for subscribers in bus.event_handlers.values())
    assert len(bus.event_handlers) == 4
