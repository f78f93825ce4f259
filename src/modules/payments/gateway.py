"""Payment gateway capability.

``PaymentGateway`` is what the checkout orchestration depends on:
``create_session`` opens a hosted checkout and ``verify_event`` turns a
signed webhook delivery into a plain ``dict``.  ``StripePaymentGateway`` is
the production implementation on top of the ``stripe`` SDK.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import stripe
import structlog
from django.conf import settings

from modules.payments.exceptions import InvalidSignature, PaymentGatewayError

logger = structlog.get_logger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


@dataclass(frozen=True)
class GatewayLineItem:
    name: str
    unit_amount: int
    quantity: int


@dataclass(frozen=True)
class GatewaySession:
    id: str
    url: str


class PaymentGateway(ABC):
    """Capability consumed by the checkout service."""

    @abstractmethod
    def create_session(
        self,
        line_items: List[GatewayLineItem],
        metadata: Dict[str, str],
        customer_email: Optional[str] = None,
    ) -> GatewaySession:
        """Create a hosted checkout session.

        Raises:
            PaymentGatewayError: on timeout, network or API failure.
        """

    @abstractmethod
    def verify_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """Verify a webhook delivery and return the decoded event.

        Raises:
            InvalidSignature: if the signature header does not match.
        """


class StripePaymentGateway(PaymentGateway):
    """Stripe Checkout implementation.

    Each instance owns a ``StripeClient`` with a bounded-timeout HTTP client
    and no automatic retries, so a slow gateway surfaces as a clean failure.
    The SDK's module-level configuration is never touched.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        currency: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> None:
        self._secret_key = (
            secret_key if secret_key is not None else settings.STRIPE_SECRET_KEY
        )
        self._webhook_secret = (
            webhook_secret
            if webhook_secret is not None
            else settings.STRIPE_WEBHOOK_SECRET
        )
        self._currency = currency or settings.STRIPE_CURRENCY
        self._timeout = timeout if timeout is not None else settings.PAYMENT_GATEWAY_TIMEOUT
        self._client: Optional[stripe.StripeClient] = None

    def _stripe_client(self) -> stripe.StripeClient:
        if self._client is None:
            self._client = stripe.StripeClient(
                self._secret_key,
                http_client=stripe.RequestsClient(timeout=self._timeout),
                max_network_retries=0,
            )
        return self._client

    def create_session(
        self,
        line_items: List[GatewayLineItem],
        metadata: Dict[str, str],
        customer_email: Optional[str] = None,
    ) -> GatewaySession:
        if not self._secret_key:
            logger.error("payments.gateway_unconfigured")
            raise PaymentGatewayError("Payment gateway is not configured.")

        params: Dict[str, Any] = {
            "mode": "payment",
            "line_items": [
                {
                    "price_data": {
                        "currency": self._currency,
                        "product_data": {"name": item.name},
                        "unit_amount": item.unit_amount,
                    },
                    "quantity": item.quantity,
                }
                for item in line_items
            ],
            "metadata": metadata,
            "success_url": settings.CHECKOUT_SUCCESS_URL,
            "cancel_url": settings.CHECKOUT_CANCEL_URL,
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = self._stripe_client().checkout.sessions.create(params=params)
        except stripe.StripeError as exc:
            logger.error(
                "payments.session_create_failed",
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise PaymentGatewayError(str(exc)) from exc

        logger.info("payments.session_created", session_id=session.id)
        return GatewaySession(id=session.id, url=session.url)

    def verify_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        if not self._webhook_secret:
            logger.error("payments.webhook_secret_missing")
            raise InvalidSignature("Webhook secret is not configured.")
        try:
            stripe.Webhook.construct_event(payload, signature or "", self._webhook_secret)
        except (stripe.SignatureVerificationError, ValueError) as exc:
            raise InvalidSignature() from exc
        # construct_event returns a StripeObject; callers want plain JSON.
        return json.loads(payload)


def get_payment_gateway() -> PaymentGateway:
    """Build the production gateway from settings."""
    return StripePaymentGateway()
