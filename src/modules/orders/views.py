"""Order API views.

Exposes ``OrderService`` and ``CheckoutService`` over HTTP.
Domain exceptions are caught and translated into HTTP status codes with a
``{"detail", "code"}`` body.  The webhook endpoint always acknowledges.
"""

from __future__ import annotations

from typing import Any

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from modules.accounts.repositories.django_repository import AccountDjangoRepository
from modules.catalog.exceptions import ItemNotFound
from modules.catalog.repositories.django_repository import ItemDjangoRepository
from modules.delivery import services as delivery_services
from modules.delivery.exceptions import OutOfServiceArea
from modules.orders.checkout import CheckoutService
from modules.orders.exceptions import (
    DateAlreadySet,
    InvalidPayload,
    MissingAddress,
    MissingDate,
    OrderNotFound,
    ServerFault,
    Unauthenticated,
)
from modules.orders.filters import AdminOrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import (
    CheckoutSessionDjangoRepository,
    OrderDjangoRepository,
)
from modules.orders.serializers import AdminOrderSerializer, OrderSerializer
from modules.orders.services import OrderService
from modules.payments import gateway as payment_gateway


def _error(exc: Any, http_status: int) -> Response:
    return Response(
        {"detail": str(exc), "code": getattr(exc, "code", "error")},
        status=http_status,
    )


def _order_service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        account_repository=AccountDjangoRepository(),
    )


def _checkout_service() -> CheckoutService:
    return CheckoutService(
        order_repository=OrderDjangoRepository(),
        session_repository=CheckoutSessionDjangoRepository(),
        account_repository=AccountDjangoRepository(),
        item_repository=ItemDjangoRepository(),
        delivery_area=delivery_services.get_delivery_area_service(),
        gateway=payment_gateway.get_payment_gateway(),
    )


class OrderViewSet(GenericViewSet):
    """Customer orders: direct placement and own-order list.

    Does **not** extend ``ModelViewSet``; all ORM access goes through the
    service/repository layer.
    """

    queryset = Order.objects.none()
    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _order_service()

    def get_throttles(self) -> list[BaseThrottle]:
        if self.action == "create":
            self.throttle_scope = "order_creation"
        elif self.action == "list":
            self.throttle_scope = "order_listing"
        return super().get_throttles()

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        201 for a new order, 200 with ``deduped=true`` when an identical
        order was already recorded.  Honours ``Idempotency-Key``.
        """
        data = request.data if isinstance(request.data, dict) else {}
        try:
            result = self._service.create_direct_order(
                user=request.user,
                raw_items=data.get("items"),
                raw_total=data.get("total_amount", data.get("total_cents")),
                delivery_method=data.get("delivery_method"),
                idempotency_key=request.headers.get("Idempotency-Key"),
            )
        except Unauthenticated as exc:
            return _error(exc, status.HTTP_401_UNAUTHORIZED)
        except InvalidPayload as exc:
            return _error(exc, status.HTTP_400_BAD_REQUEST)

        body = dict(OrderSerializer(result.order).data)
        body["deduped"] = result.deduped
        return Response(
            body,
            status=status.HTTP_200_OK if result.deduped else status.HTTP_201_CREATED,
        )

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/ (newest first)"""
        try:
            orders = self._service.list_for_user(request.user)
        except Unauthenticated as exc:
            return _error(exc, status.HTTP_401_UNAUTHORIZED)
        return Response(OrderSerializer(orders, many=True).data)


class CheckoutView(APIView):
    """POST /api/v1/checkout/"""

    permission_classes = [IsAuthenticated]
    throttle_scope = "checkout"

    def post(self, request: Request) -> Response:
        data = request.data if isinstance(request.data, dict) else {}
        try:
            result = _checkout_service().create_payment_session(
                user=request.user,
                raw_items=data.get("items"),
                delivery_method=data.get("delivery_method"),
            )
        except Unauthenticated as exc:
            return _error(exc, status.HTTP_401_UNAUTHORIZED)
        except (InvalidPayload, MissingAddress) as exc:
            return _error(exc, status.HTTP_400_BAD_REQUEST)
        except OutOfServiceArea as exc:
            return _error(exc, status.HTTP_403_FORBIDDEN)
        except ItemNotFound as exc:
            return _error(exc, status.HTTP_404_NOT_FOUND)
        except ServerFault as exc:
            return _error(exc, status.HTTP_502_BAD_GATEWAY)

        return Response(result.model_dump(), status=status.HTTP_201_CREATED)


class PaymentWebhookView(APIView):
    """POST /api/v1/payment/webhook/

    Reads the raw body for signature verification.  Always answers 200 so
    the gateway does not enter a redelivery storm; the outcome is logged.
    """

    permission_classes = [AllowAny]
    authentication_classes: list = []
    throttle_classes: list = []

    def post(self, request: Request) -> Response:
        outcome = _checkout_service().process_gateway_event(
            request.body,
            request.headers.get("Stripe-Signature", ""),
        )
        return Response({"received": True, "outcome": outcome.value})


class AdminOrderViewSet(GenericViewSet):
    """Admin order console: partitioned listing and fulfillment updates."""

    serializer_class = AdminOrderSerializer
    permission_classes = [IsAdminUser]
    filterset_class = AdminOrderFilter
    filter_backends = [DjangoFilterBackend]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._repo = OrderDjangoRepository()
        self._service = OrderService(
            order_repository=self._repo,
            account_repository=AccountDjangoRepository(),
        )

    def get_queryset(self):
        return self._repo.admin_queryset()

    def list(self, request: Request) -> Response:
        """GET /api/v1/admin/orders/ -> ``{"active": [...], "archived": [...]}``"""
        queryset = self.filter_queryset(self.get_queryset())
        listing = self._service.list_for_admin(queryset)
        return Response(
            {
                "active": AdminOrderSerializer(listing.active, many=True).data,
                "archived": AdminOrderSerializer(listing.archived, many=True).data,
            }
        )

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/admin/orders/{pk}/"""
        data = request.data if isinstance(request.data, dict) else {}
        payload = {
            key: data[key]
            for key in ("fulfillment_status", "fulfillment_date", "fulfillment_note")
            if key in data
        }
        try:
            order = self._service.update_fulfillment(pk, payload, acting_user=request.user)
        except InvalidPayload as exc:
            return _error(exc, status.HTTP_400_BAD_REQUEST)
        except MissingDate as exc:
            return _error(exc, status.HTTP_400_BAD_REQUEST)
        except OrderNotFound as exc:
            return _error(exc, status.HTTP_404_NOT_FOUND)
        except DateAlreadySet as exc:
            return _error(exc, status.HTTP_409_CONFLICT)

        return Response(AdminOrderSerializer(order).data)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/admin/orders/{pk}/"""
        return self.update(request, pk)
