"""Mapbox geocoding and distance helpers"""

import json
import logging
import math
import os
from dataclasses import asdict, dataclass
from typing import Optional
from urllib.parse import quote

import httpx

from ..config import DEFAULT_STATE, MAPBOX_TOKEN
from ..rate_limiter import get_redis_client_or_none

logger = logging.getLogger(__name__)

MAPBOX_GEOCODING_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"

CACHE_SECONDS = int(os.getenv("GEOCODING_CACHE_SECONDS", "86400"))

EARTH_RADIUS_MILES = 3959


@dataclass
class GeocodeResult:
    latitude: float
    longitude: float
    formatted_address: Optional[str] = None


def build_full_address(
    address: Optional[str], city: Optional[str], state: Optional[str], zip_code: Optional[str]
) -> str:
    return ", ".join(part for part in (address, city, state, zip_code) if part)


async def geocode_address(
    address: Optional[str],
    city: Optional[str],
    state: Optional[str] = DEFAULT_STATE,
    zip_code: Optional[str] = None,
) -> Optional[GeocodeResult]:
    """
    Geocode an address with the Mapbox Geocoding API.
    Returns None on any failure; callers keep whatever coordinates they had.
    """
    if not MAPBOX_TOKEN:
        logger.error("❌ Mapbox token not configured")
        return None

    full_address = build_full_address(address, city, state, zip_code)
    if not full_address:
        return None

    cache_key = f"geo:mapbox:{full_address.lower()}"
    redis = get_redis_client_or_none()
    if redis is not None:
        try:
            cached = redis.get(cache_key)
            if cached:
                return GeocodeResult(**json.loads(cached))
        except Exception as e:
            logger.warning(f"⚠️ Geocode cache read failed: {e}")

    url = f"{MAPBOX_GEOCODING_URL}/{quote(full_address)}.json"
    params = {"access_token": MAPBOX_TOKEN, "country": "US", "limit": 1}

    try:
        async with httpx.AsyncClient(timeout=8.0) as client:
            resp = await client.get(url, params=params)
            if resp.status_code >= 400:
                logger.warning(f"Mapbox error {resp.status_code}: {resp.text[:200]}")
                return None
            data = resp.json()
    except Exception as e:
        logger.error(f"Geocoding error for '{full_address}': {e}")
        return None

    features = data.get("features") or []
    if not features:
        logger.info(f"ℹ️ No geocoding match for '{full_address}'")
        return None

    longitude, latitude = features[0]["center"]
    result = GeocodeResult(
        latitude=latitude,
        longitude=longitude,
        formatted_address=features[0].get("place_name"),
    )

    if redis is not None:
        try:
            redis.setex(cache_key, CACHE_SECONDS, json.dumps(asdict(result)))
        except Exception as e:
            logger.warning(f"⚠️ Geocode cache write failed: {e}")

    return result


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in miles, rounded to one decimal"""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_MILES * c, 1)
