"""Listing search - filtering and distance ranking over active listings"""

from dataclasses import dataclass, field
from typing import Optional

from ...models import Provider
from ...services.geocoding import calculate_distance

# Distance filtering only kicks in below this radius; 200 means "any distance"
MAX_DISTANCE_MILES = 200


@dataclass
class SearchFilters:
    q: Optional[str] = None
    services: list[str] = field(default_factory=list)
    waivers: list[str] = field(default_factory=list)
    city: Optional[str] = None
    available_only: bool = False
    lat: Optional[float] = None
    lon: Optional[float] = None
    max_distance: float = MAX_DISTANCE_MILES

    @property
    def has_location(self) -> bool:
        return self.lat is not None and self.lon is not None


@dataclass
class SearchHit:
    provider: Provider
    distance: Optional[float] = None


def matches_query(provider: Provider, q: str) -> bool:
    """Free-text match on name, city and address; ZIP codes match by prefix"""
    q = q.strip().lower()
    if not q:
        return True
    for value in (provider.business_name, provider.city, provider.address):
        if value and q in value.lower():
            return True
    return bool(provider.zip_code and provider.zip_code.startswith(q))


def has_open_spots(provider: Provider) -> bool:
    return (
        (provider.current_capacity or 0) < (provider.total_capacity or 0)
        and not provider.is_at_capacity
        and not provider.is_ghosted
    )


def _any_match(wanted: list[str], offered: Optional[list[str]]) -> bool:
    if not wanted:
        return True
    offered = offered or []
    return any(item in offered for item in wanted)


def distance_to(provider: Provider, lat: float, lon: float) -> Optional[float]:
    if provider.latitude is None or provider.longitude is None:
        return None
    return calculate_distance(lat, lon, provider.latitude, provider.longitude)


def search_providers(providers: list[Provider], filters: SearchFilters) -> list[SearchHit]:
    """
    Apply filters to listings (already ordered newest first).
    With a location, hits are ranked by distance and unknown distances go last.
    """
    hits = []
    for provider in providers:
        if filters.q and not matches_query(provider, filters.q):
            continue
        if not _any_match(filters.services, provider.service_types):
            continue
        if not _any_match(filters.waivers, provider.accepted_waivers):
            continue
        if filters.city and filters.city.strip().lower() not in (provider.city or "").lower():
            continue
        if filters.available_only and not has_open_spots(provider):
            continue

        distance = None
        if filters.has_location:
            distance = distance_to(provider, filters.lat, filters.lon)
            # Providers without coordinates stay in the results
            if (
                filters.max_distance < MAX_DISTANCE_MILES
                and distance is not None
                and distance > filters.max_distance
            ):
                continue

        hits.append(SearchHit(provider=provider, distance=distance))

    if filters.has_location:
        hits.sort(key=lambda hit: (hit.distance is None, hit.distance or 0))
    return hits
