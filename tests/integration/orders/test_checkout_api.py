"""Gateway checkout: session creation is gated and priced from the catalog."""

import json

import pytest

from modules.orders.models import CheckoutSession, Order

pytestmark = pytest.mark.integration

URL = "/api/v1/checkout/"


@pytest.fixture()
def checkout_client(auth_client, account, catalog, delivery_area, payment_gateway):
    return auth_client


class TestCreateCheckoutSession:
    def test_session_priced_from_catalog(
        self, checkout_client, catalog, payment_gateway, user
    ):
        bone = catalog["bone"]
        response = checkout_client.post(
            URL,
            {
                "items": [
                    {"item_id": bone.id, "quantity": 2, "unit_price": 1, "name": "cheap"}
                ]
            },
            format="json",
        )

        assert response.status_code == 201
        body = response.json()
        assert body["session_id"] == "cs_test_0001"
        assert body["url"].endswith("cs_test_0001")

        ((line_items, metadata, email),) = payment_gateway.calls
        assert [(li.name, li.unit_amount, li.quantity) for li in line_items] == [
            ("Beef Chew Bone", 799, 2)
        ]
        assert email == "jo@example.com"
        assert metadata["user_id"] == str(user.pk)
        assert metadata["delivery_method"] == "collect"
        assert json.loads(metadata["items_json"]) == [
            {"item_id": bone.id, "name": "Beef Chew Bone", "unit_price": 799, "quantity": 2}
        ]

    def test_session_recorded_locally_without_an_order(self, checkout_client, catalog):
        checkout_client.post(
            URL,
            {
                "items": [
                    {"item_id": catalog["collar"].id, "quantity": 1},
                    {"item_id": catalog["treats"].id, "quantity": 3},
                ],
                "delivery_method": "deliver",
            },
            format="json",
        )

        session = CheckoutSession.objects.get()
        assert session.status == "created"
        assert session.total_amount == 1299 + 3 * 499
        assert session.delivery_method == "deliver"
        assert len(session.lines) == 2
        assert Order.objects.count() == 0

    def test_large_cart_omits_items_metadata(self, checkout_client, payment_gateway):
        from modules.catalog.models import Item

        items = [
            Item.objects.create(name=f"Chew toy number {i}", price_cents=300)
            for i in range(20)
        ]
        response = checkout_client.post(
            URL, {"items": [{"item_id": i.id, "quantity": 1} for i in items]}, format="json"
        )

        assert response.status_code == 201
        ((_, metadata, _),) = payment_gateway.calls
        assert "items_json" not in metadata
        assert len(CheckoutSession.objects.get().lines) == 20

    def test_missing_address(self, api_client, user, catalog, delivery_area, payment_gateway):
        api_client.force_authenticate(user=user)
        response = api_client.post(
            URL, {"items": [{"item_id": catalog["bone"].id, "quantity": 1}]}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["code"] == "missing_address"
        assert payment_gateway.calls == []

    def test_blank_postcode_counts_as_missing(self, checkout_client, account, catalog):
        account.postcode = "  "
        account.save()
        response = checkout_client.post(
            URL, {"items": [{"item_id": catalog["bone"].id, "quantity": 1}]}, format="json"
        )
        assert response.json()["code"] == "missing_address"

    def test_outside_service_area(self, checkout_client, account, catalog, payment_gateway):
        account.postcode = "SW1A 1AA"
        account.save()

        response = checkout_client.post(
            URL, {"items": [{"item_id": catalog["bone"].id, "quantity": 1}]}, format="json"
        )

        assert response.status_code == 403
        assert response.json()["code"] == "out_of_service_area"
        assert payment_gateway.calls == []
        assert CheckoutSession.objects.count() == 0
        assert Order.objects.count() == 0

    def test_unknown_item(self, checkout_client, catalog, payment_gateway):
        response = checkout_client.post(
            URL,
            {
                "items": [
                    {"item_id": catalog["bone"].id, "quantity": 1},
                    {"item_id": 999999, "quantity": 1},
                ]
            },
            format="json",
        )

        assert response.status_code == 404
        assert response.json()["code"] == "item_not_found"
        assert payment_gateway.calls == []

    def test_delivery_below_minimum(self, checkout_client, catalog, payment_gateway):
        response = checkout_client.post(
            URL,
            {
                "items": [{"item_id": catalog["treats"].id, "quantity": 1}],
                "delivery_method": "deliver",
            },
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["code"] == "below_delivery_minimum"
        assert payment_gateway.calls == []

    @pytest.mark.parametrize(
        "payload",
        [
            {"items": []},
            {"items": [{"item_id": 1, "quantity": 0}]},
            {"items": [{"item_id": 1, "quantity": 1}], "delivery_method": "post"},
        ],
    )
    def test_invalid_payload(self, checkout_client, payment_gateway, payload):
        response = checkout_client.post(URL, payload, format="json")

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_payload"
        assert payment_gateway.calls == []

    def test_gateway_failure(self, checkout_client, catalog, payment_gateway):
        payment_gateway.fail = True

        response = checkout_client.post(
            URL, {"items": [{"item_id": catalog["bone"].id, "quantity": 1}]}, format="json"
        )

        assert response.status_code == 502
        assert response.json()["code"] == "payment_gateway_unavailable"
        assert CheckoutSession.objects.count() == 0
        assert Order.objects.count() == 0

    def test_requires_authentication(self, api_client, payment_gateway):
        response = api_client.post(URL, {"items": []}, format="json")
        assert response.status_code == 401
        assert payment_gateway.calls == []
