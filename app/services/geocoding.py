"""
Google Geocoding lookups for technician and job addresses.
"""

import logging
from typing import Optional, Tuple
import httpx
from app.core.config import settings

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


def geocode_address(
    address: Optional[str],
    city: Optional[str],
    state: Optional[str],
    api_key: Optional[str] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Optional[Tuple[float, float]]:
    """
    Resolve an address to (lat, lng).

    Uses "address, city, state" when an address is given, otherwise
    "city, state". Returns None when no key is configured or nothing matches.
    """
    api_key = api_key if api_key is not None else settings.GOOGLE_MAPS_API_KEY
    if not api_key:
        logger.warning("Google Maps API key not configured, skipping geocoding")
        return None

    parts = [part for part in (address, city, state) if part]
    if not parts:
        return None

    try:
        with httpx.Client(transport=transport or httpx.HTTPTransport(retries=2), timeout=10.0) as client:
            response = client.get(GEOCODE_URL, params={"address": ", ".join(parts), "key": api_key})
            response.raise_for_status()
            data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Geocoding request failed: {e}")
        return None

    if data.get("status") != "OK" or not data.get("results"):
        logger.warning(f"Geocoding returned {data.get('status')} for '{', '.join(parts)}'")
        return None

    location = data["results"][0]["geometry"]["location"]
    return location["lat"], location["lng"]
