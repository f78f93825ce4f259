"""Concurrent ledger writes serialise.

Placement locks the owner row in ``create_or_reuse`` and admin updates lock
the order row, so identical submissions collapse to one order and two
admins cannot both set a fulfillment date.  On SQLite the same guarantee
comes from ``BEGIN IMMEDIATE`` transactions (see ``DATABASES`` settings).

Uses ``TransactionTestCase`` so each thread sees committed data.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from django.contrib.auth import get_user_model
from django.db import connections
from django.test import TransactionTestCase

from modules.accounts.repositories.django_repository import AccountDjangoRepository
from modules.orders.exceptions import DateAlreadySet
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService

NUM_WORKERS = 8
ITEMS = [{"item_id": 1, "name": "Dog Collar", "unit_price": 1299, "quantity": 1}]


def _service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        account_repository=AccountDjangoRepository(),
    )


class TestConcurrentPlacement(TransactionTestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username="race@example.com", email="race@example.com", password="race-pass"
        )

    def _place(self, _worker: int) -> bool:
        try:
            result = _service().create_direct_order(self.user, ITEMS, 1299)
            return not result.deduped
        finally:
            connections.close_all()

    def test_identical_submissions_create_one_order(self):
        with ThreadPoolExecutor(max_workers=NUM_WORKERS) as pool:
            created = list(pool.map(self._place, range(NUM_WORKERS)))

        self.assertEqual(created.count(True), 1)
        self.assertEqual(Order.objects.filter(owner=self.user).count(), 1)


class TestConcurrentFulfillmentDate(TransactionTestCase):
    def setUp(self):
        self.admin = get_user_model().objects.create_user(
            username="owner@example.com",
            email="owner@example.com",
            password="admin-pass",
            is_staff=True,
        )
        customer = get_user_model().objects.create_user(
            username="jo@example.com", email="jo@example.com", password="s3cret-pass"
        )
        self.order = Order.objects.create(
            owner=customer,
            lines=ITEMS,
            total_amount=1299,
            delivery_method="collect",
            dedup_key="race-date",
        )

    def _set_date(self, day: int) -> str:
        try:
            _service().update_fulfillment(
                self.order.id,
                {"fulfillment_date": f"2026-11-{day:02d}"},
                acting_user=self.admin,
            )
            return f"2026-11-{day:02d}"
        except DateAlreadySet:
            return "conflict"
        finally:
            connections.close_all()

    def test_only_one_date_wins(self):
        days = range(1, NUM_WORKERS + 1)
        with ThreadPoolExecutor(max_workers=NUM_WORKERS) as pool:
            results = list(pool.map(self._set_date, days))

        winners = [r for r in results if r != "conflict"]
        self.assertEqual(len(winners), 1)
        self.assertEqual(results.count("conflict"), NUM_WORKERS - 1)

        self.order.refresh_from_db()
        self.assertEqual(self.order.fulfillment_date.isoformat(), winners[0])
