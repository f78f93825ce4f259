import hashlib
import hmac
import json
import time
import uuid
from typing import Dict, List, Optional, Tuple

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.accounts.models import Account
from modules.catalog.models import Item
from modules.delivery.geo import Coordinates
from modules.delivery.geocoding import normalize_postcode
from modules.delivery.services import DeliveryAreaService
from modules.payments.exceptions import PaymentGatewayError
from modules.payments.gateway import GatewayLineItem, GatewaySession, PaymentGateway

SHOP_POSTCODE = "LA11 7EZ"
NEARBY_POSTCODE = "LA9 4DT"
FAR_POSTCODE = "SW1A 1AA"
WEBHOOK_SECRET = "whsec_testsecret"

POSTCODE_COORDINATES = {
    "LA117EZ": Coordinates(latitude=54.1925, longitude=-2.9157),
    "LA94DT": Coordinates(latitude=54.3280, longitude=-2.7463),
    "SW1A1AA": Coordinates(latitude=51.5010, longitude=-0.1416),
}


class FakeGeocoder:
    """In-memory geocoder keyed by normalised postcode."""

    def __init__(self, known: Optional[Dict[str, Coordinates]] = None) -> None:
        self.known = dict(POSTCODE_COORDINATES if known is None else known)
        self.lookups: List[str] = []

    def resolve(self, postcode: str) -> Optional[Coordinates]:
        key = normalize_postcode(postcode)
        self.lookups.append(key)
        return self.known.get(key)


class FakePaymentGateway(PaymentGateway):
    """Records session requests; can be told to fail."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: List[Tuple[List[GatewayLineItem], Dict[str, str], Optional[str]]] = []

    def create_session(self, line_items, metadata, customer_email=None):
        self.calls.append((list(line_items), dict(metadata), customer_email))
        if self.fail:
            raise PaymentGatewayError("Request timed out")
        number = len(self.calls)
        return GatewaySession(
            id=f"cs_test_{number:04d}",
            url=f"https://checkout.example.test/pay/cs_test_{number:04d}",
        )

    def verify_event(self, payload, signature):
        raise NotImplementedError


def stripe_signature(payload: str, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    """Build a ``Stripe-Signature`` header for *payload*."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def completed_event(
    session_id: str,
    user_id=None,
    amount_total=None,
    items=None,
    delivery_method: str = "collect",
    event_type: str = "checkout.session.completed",
) -> str:
    metadata = {"delivery_method": delivery_method}
    if user_id is not None:
        metadata["user_id"] = str(user_id)
    if items is not None:
        metadata["items_json"] = json.dumps(items, separators=(",", ":"))
    return json.dumps(
        {
            "id": f"evt_{session_id}",
            "object": "event",
            "type": event_type,
            "data": {
                "object": {
                    "id": session_id,
                    "object": "checkout.session",
                    "amount_total": amount_total,
                    "metadata": metadata,
                }
            },
        }
    )


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters and geocoder results live in the cache."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def user():
    return get_user_model().objects.create_user(
        username="jo@example.com", email="jo@example.com", password="s3cret-pass"
    )


@pytest.fixture()
def account(user):
    return Account.objects.create(
        user=user,
        name="Jo Bloggs",
        address_line1="1 Main Street",
        city="Kendal",
        postcode=NEARBY_POSTCODE,
        country="United Kingdom",
    )


@pytest.fixture()
def admin_user():
    return get_user_model().objects.create_user(
        username="owner@example.com",
        email="owner@example.com",
        password="admin-pass",
        is_staff=True,
    )


@pytest.fixture()
def auth_client(api_client, user):
    api_client.force_authenticate(user=user)
    return api_client


@pytest.fixture()
def admin_client(api_client, admin_user):
    api_client.force_authenticate(user=admin_user)
    return api_client


@pytest.fixture()
def catalog():
    return {
        "collar": Item.objects.create(name="Dog Collar", price_cents=1299),
        "bone": Item.objects.create(name="Beef Chew Bone", price_cents=799),
        "treats": Item.objects.create(name="Salmon Treats", price_cents=499),
    }


@pytest.fixture()
def geocoder():
    return FakeGeocoder()


@pytest.fixture()
def delivery_area(geocoder, monkeypatch):
    """Route every delivery-area check through the in-memory geocoder."""
    service = DeliveryAreaService(
        geocoder=geocoder, origin_postcode=SHOP_POSTCODE, radius_miles=15.0
    )
    monkeypatch.setattr(
        "modules.delivery.services.get_delivery_area_service", lambda: service
    )
    return service


@pytest.fixture()
def payment_gateway(monkeypatch):
    gateway = FakePaymentGateway()
    monkeypatch.setattr("modules.payments.gateway.get_payment_gateway", lambda: gateway)
    return gateway


@pytest.fixture()
def webhook_secret(settings):
    settings.STRIPE_WEBHOOK_SECRET = WEBHOOK_SECRET
    return WEBHOOK_SECRET


@pytest.fixture()
def sign_payload(webhook_secret):
    """Callable producing a valid ``Stripe-Signature`` header for a body."""
    return lambda payload, **kwargs: stripe_signature(payload, webhook_secret, **kwargs)


@pytest.fixture()
def make_completed_event():
    return completed_event


@pytest.fixture()
def order_factory(user):
    """Create ledger rows directly, bypassing placement rules."""
    from modules.orders.models import Order

    def _make(**overrides):
        values = {
            "owner": user,
            "lines": [
                {"item_id": 1, "name": "Dog Collar", "unit_price": 1299, "quantity": 1}
            ],
            "total_amount": 1299,
            "delivery_method": "collect",
            "payment_status": "placed",
            "address_snapshot": {"name": "Jo Bloggs", "postcode": NEARBY_POSTCODE},
            "dedup_key": uuid.uuid4().hex,
        }
        values.update(overrides)
        return Order.objects.create(**values)

    return _make
