"""Delivery-area service (postcode geofence).

Answers "is this postcode within the service radius of the shop?".
Used to gate both account registration and checkout.  The check fails
closed: when either the shop origin or the target postcode cannot be
resolved, the answer is ``False``.
"""

from __future__ import annotations

from typing import Optional

import structlog
from django.conf import settings

from modules.delivery.geo import Coordinates, haversine_miles
from modules.delivery.geocoding import Geocoder, PostcodesIoGeocoder

logger = structlog.get_logger(__name__)


class DeliveryAreaService:
    """Geofence check against a fixed origin postcode.

    Receives a ``Geocoder`` via constructor injection.
    """

    def __init__(
        self,
        geocoder: Geocoder,
        origin_postcode: Optional[str] = None,
        radius_miles: Optional[float] = None,
    ) -> None:
        self._geocoder = geocoder
        self._origin_postcode = origin_postcode or settings.SHOP_ORIGIN_POSTCODE
        self._radius_miles = (
            radius_miles if radius_miles is not None else settings.SERVICE_RADIUS_MILES
        )

    @property
    def radius_miles(self) -> float:
        return self._radius_miles

    def is_within_service_radius(self, postcode: str) -> bool:
        """Return ``True`` when *postcode* is at most ``radius_miles`` away.

        The boundary is inclusive.  Any resolution failure returns ``False``.
        """
        if not postcode or not postcode.strip():
            return False

        origin = self._resolve(self._origin_postcode)
        if origin is None:
            logger.warning(
                "delivery.origin_unresolved", origin=self._origin_postcode
            )
            return False

        target = self._resolve(postcode)
        if target is None:
            logger.info("delivery.target_unresolved")
            return False

        distance = haversine_miles(origin, target)
        allowed = distance <= self._radius_miles
        logger.info(
            "delivery.radius_checked",
            distance_miles=round(distance, 3),
            radius_miles=self._radius_miles,
            allowed=allowed,
        )
        return allowed

    def _resolve(self, postcode: str) -> Optional[Coordinates]:
        try:
            return self._geocoder.resolve(postcode)
        except Exception as exc:
            logger.error(
                "delivery.geocoder_error",
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return None


def get_delivery_area_service() -> DeliveryAreaService:
    """Build the production service (postcodes.io geocoder)."""
    return DeliveryAreaService(geocoder=PostcodesIoGeocoder())
