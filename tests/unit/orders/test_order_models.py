"""Unit tests for Order, history tracking and CheckoutSession."""

from __future__ import annotations

import re

import pytest

from modules.orders.constants import CheckoutSessionStatus
from modules.orders.events import OrderPlaced
from modules.orders.models import CheckoutSession, Order, OrderStatusHistory

pytestmark = pytest.mark.unit


class TestOrderModel:
    def test_order_number_generated_on_save(self, order_factory):
        order = order_factory()
        assert re.fullmatch(r"ORD-\d{8}-[0-9A-F]{6}", order.order_number)

    def test_order_number_kept_on_resave(self, order_factory):
        order = order_factory()
        number = order.order_number
        order.fulfillment_note = "Leave at the back door"
        order.save()
        order.refresh_from_db()
        assert order.order_number == number

    def test_generation_gives_up_after_retries(self, order_factory, monkeypatch):
        existing = order_factory()
        monkeypatch.setattr(
            Order, "generate_order_number", staticmethod(lambda: existing.order_number)
        )
        with pytest.raises(RuntimeError, match="unique order_number"):
            order_factory()

    def test_defaults(self, order_factory):
        order = order_factory()
        assert order.fulfillment_status == "awaiting"
        assert order.fulfillment_date is None
        assert order.fulfillment_note == ""
        assert order.is_paid is False

    def test_item_count_sums_quantities(self, order_factory):
        order = order_factory(
            lines=[
                {"item_id": 1, "name": "A", "unit_price": 100, "quantity": 2},
                {"item_id": 2, "name": "B", "unit_price": 100, "quantity": 3},
            ]
        )
        assert order.item_count == 5

    def test_uuid7_ids_sort_by_creation(self, order_factory):
        first = order_factory()
        second = order_factory()
        assert first.id.version == 7
        assert first.id < second.id


class TestStatusHistory:
    def test_creation_recorded(self, order_factory):
        order = order_factory()
        (entry,) = OrderStatusHistory.objects.filter(order=order)
        assert entry.old_status is None
        assert entry.new_status == "awaiting"
        assert entry.notes == "Order created"

    def test_status_change_recorded_with_actor(self, order_factory, admin_user):
        order = order_factory()
        order.fulfillment_status = "preparing"
        order._status_changed_by = admin_user
        order.save()

        entry = OrderStatusHistory.objects.get(order=order, new_status="preparing")
        assert entry.old_status == "awaiting"
        assert entry.user == admin_user

    def test_unchanged_status_not_recorded(self, order_factory):
        order = order_factory()
        order.fulfillment_note = "Ring the bell"
        order.save()
        assert OrderStatusHistory.objects.filter(order=order).count() == 1

    def test_partial_save_without_status_skips_history(self, order_factory):
        order = order_factory()
        order.payment_status = "paid"
        order.save(update_fields=["payment_status"])
        assert OrderStatusHistory.objects.filter(order=order).count() == 1


class TestDomainEvents:
    def test_pull_returns_and_clears(self, order_factory):
        order = order_factory()
        event = OrderPlaced(aggregate_id=order.id)
        order.add_domain_event(event)

        assert order.domain_events == [event]
        assert event.event_name == "OrderPlaced"
        assert order.pull_domain_events() == [event]
        assert order.domain_events == []


class TestCheckoutSessionTransitions:
    def _session(self, user, status):
        return CheckoutSession.objects.create(
            gateway_session_id=f"cs_{status}",
            owner=user,
            lines=[],
            total_amount=100,
            delivery_method="collect",
            status=status,
        )

    @pytest.mark.parametrize(
        ("current", "target", "allowed"),
        [
            ("created", "confirmed", True),
            ("created", "abandoned", True),
            ("created", "recorded", False),
            ("abandoned", "confirmed", True),
            ("confirmed", "recorded", True),
            ("confirmed", "abandoned", False),
            ("recorded", "confirmed", False),
        ],
    )
    def test_transitions(self, user, current, target, allowed):
        session = self._session(user, current)
        assert session.can_transition_to(target) is allowed

    def test_default_status_is_created(self, user):
        session = CheckoutSession.objects.create(
            gateway_session_id="cs_default",
            owner=user,
            total_amount=100,
            delivery_method="collect",
        )
        assert session.status == CheckoutSessionStatus.CREATED
