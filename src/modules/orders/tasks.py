"""Background jobs for the Orders module."""

import structlog
from celery import shared_task
from django.utils import timezone

from modules.orders.constants import STALE_CHECKOUT_AGE
from modules.orders.repositories.django_repository import (
    CheckoutSessionDjangoRepository,
)

logger = structlog.get_logger(__name__)


@shared_task(name="orders.abandon_stale_checkout_sessions")
def abandon_stale_checkout_sessions():
    """Mark checkout sessions that never completed as abandoned."""
    cutoff = timezone.now() - STALE_CHECKOUT_AGE
    count = CheckoutSessionDjangoRepository().abandon_stale(cutoff)
    logger.info("checkout.stale_sweep_completed", abandoned=count)
    return {"abandoned": count}
