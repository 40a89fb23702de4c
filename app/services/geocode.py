import logging
import os
from typing import Optional

import requests

from app.core.config import settings

logger = logging.getLogger("rollout.maps")

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


def reverse_geocode(lat: float, lng: float, timeout: Optional[float] = None) -> dict:
    """Street address for a coordinate pair.

    Returns {"status": "OK", "address": "<formatted address>"} or
    {"status": "ERROR", "error": <reason>}. Network and API failures are reported, never raised.
    """
    api_key = os.getenv("GOOGLE_MAPS_API_KEY")
    if not api_key:
        return {"status": "ERROR", "error": "MISSING_KEY"}
    params = {"latlng": f"{lat},{lng}", "key": api_key, "language": "pt-BR"}
    try:
        resp = requests.get(GEOCODE_URL, params=params, timeout=timeout or settings.GEOCODE_TIMEOUT_SECONDS)
        resp.raise_for_status()
        payload = resp.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("reverse geocode failed lat=%s lng=%s: %s", lat, lng, exc)
        return {"status": "ERROR", "error": "REQUEST_FAILED"}

    api_status = payload.get("status")
    if api_status != "OK":
        logger.info("reverse geocode lat=%s lng=%s status=%s", lat, lng, api_status)
        return {"status": "ERROR", "error": api_status or "NO_RESULTS"}
    formatted = next(
        (item["formatted_address"] for item in payload.get("results") or [] if item.get("formatted_address")),
        None,
    )
    if not formatted:
        return {"status": "ERROR", "error": "NO_RESULTS"}
    return {"status": "OK", "address": formatted}
