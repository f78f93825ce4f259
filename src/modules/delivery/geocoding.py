"""Postcode → coordinates lookup.

``Geocoder`` is the capability consumed by the delivery-area check.
``PostcodesIoGeocoder`` implements it against the postcodes.io REST API
using ``httpx`` with a bounded timeout.  Every failure mode (unknown
postcode, HTTP error, timeout, malformed body) resolves to ``None`` so the
caller can fail closed.
"""

from __future__ import annotations

import math
import re
from typing import Optional, Protocol
from urllib.parse import quote

import httpx
import structlog
from django.conf import settings
from django.core.cache import cache

from modules.delivery.geo import Coordinates

logger = structlog.get_logger(__name__)

_CACHE_PREFIX = "geocode:"


def normalize_postcode(postcode: str) -> str:
    """Upper-case and strip all whitespace (``"la11 7ez"`` → ``"LA117EZ"``)."""
    return re.sub(r"\s+", "", postcode or "").upper()


class Geocoder(Protocol):
    def resolve(self, postcode: str) -> Optional[Coordinates]: ...


class PostcodesIoGeocoder:
    """Geocoder backed by https://api.postcodes.io.

    Successful look-ups are cached (``GEOCODER_CACHE_TTL``) so the fixed
    shop origin and repeat customers do not hit the public rate limit.
    Failures are never cached.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        cache_ttl: Optional[int] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._base_url = (base_url or settings.GEOCODER_BASE_URL).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.GEOCODER_TIMEOUT
        self._cache_ttl = (
            cache_ttl if cache_ttl is not None else settings.GEOCODER_CACHE_TTL
        )
        self._client = client

    def resolve(self, postcode: str) -> Optional[Coordinates]:
        key = normalize_postcode(postcode)
        if not key:
            return None

        cached = cache.get(_CACHE_PREFIX + key)
        if cached is not None:
            return Coordinates(latitude=cached[0], longitude=cached[1])

        coords = self._fetch(key)
        if coords is not None:
            cache.set(
                _CACHE_PREFIX + key,
                (coords.latitude, coords.longitude),
                self._cache_ttl,
            )
        return coords

    def _fetch(self, postcode: str) -> Optional[Coordinates]:
        url = f"{self._base_url}/postcodes/{quote(postcode)}"
        log = logger.bind(postcode=postcode)
        try:
            if self._client is not None:
                response = self._client.get(url, timeout=self._timeout)
            else:
                response = httpx.get(url, timeout=self._timeout)
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            log.warning("geocode.lookup_failed", error=str(exc))
            return None

        if not isinstance(body, dict):
            log.warning("geocode.malformed_response")
            return None
        if response.status_code != 200 or body.get("status") != 200:
            log.info("geocode.postcode_unknown", status_code=response.status_code)
            return None

        result = body.get("result") or {}
        try:
            latitude = result.get("latitude")
            longitude = result.get("longitude")
            if latitude is None or longitude is None:
                log.info("geocode.postcode_without_coordinates")
                return None
            coords = Coordinates(latitude=float(latitude), longitude=float(longitude))
        except (AttributeError, TypeError, ValueError) as exc:
            log.warning("geocode.malformed_result", error=str(exc))
            return None

        if not (math.isfinite(coords.latitude) and math.isfinite(coords.longitude)):
            log.warning("geocode.malformed_result", error="non-finite coordinates")
            return None
        return coords
