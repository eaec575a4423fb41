"""
delivery.py — Delivery Distance and Fee Tiers

Distance between the store and the customer is measured with the haversine
formula. The distance is classified into a pricing tier; the tier names a
delivery-fee item in the catalog, which carries the actual price.
"""

import logging
import math
from typing import Optional, Tuple

from .config import StoreConfig
from .errors import GeocodeError
from .models import (Catalog, CatalogItem, DeliveryAddress, DeliveryFeeTier, DeliveryQuote,
                     StoreLocation, Variation)

log = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3959


def haversine_miles(origin: Tuple[float, float], destination: Tuple[float, float]) -> float:
    """
    Great-circle distance between two (latitude, longitude) pairs in degrees.

    Returns:
        float: Distance in miles, rounded to one decimal place.
    """
    lat1, lon1 = origin
    lat2, lon2 = destination
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    # Rounding can push a just past 1 for antipodal points
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_MILES * c, 1)


def distance_from_store(location: StoreLocation, lat: float, lng: float) -> float:
    return haversine_miles((location.lat, location.lng), (lat, lng))


def resolve_delivery_tier(distance_miles: float, config: StoreConfig) -> Optional[DeliveryFeeTier]:
    """
    Classifies a distance into the tier with the smallest upper bound >= distance.

    Args:
        distance_miles (float): Distance from the store.
        config (StoreConfig): Provides the ordered delivery tiers.

    Returns:
        DeliveryFeeTier | None: The tier, or None when the address lies
        outside the delivery radius.
    """
    for tier in sorted(config.delivery_tiers, key=lambda t: t.upperBoundMiles):
        if distance_miles <= tier.upperBoundMiles:
            return tier
    log.info(f"Entfernung {distance_miles} mi liegt außerhalb des Lieferradius ({config.max_delivery_radius} mi).")
    return None


def delivery_fee_line(tier: DeliveryFeeTier, catalog: Catalog) -> Optional[Tuple[CatalogItem, Variation]]:
    """
    Looks up the fee item for a tier by its reserved name.

    Returns:
        tuple | None: The fee item and its first variation, or None if the
        catalog carries no such item.
    """
    item = catalog.find_item_by_name(tier.feeItemName)
    if not item or not item.variations:
        log.warning(f"Lieferartikel '{tier.feeItemName}' nicht im Katalog gefunden.")
        return None
    return item, item.variations[0]


async def quote_delivery(address: DeliveryAddress, location: StoreLocation, geocoder,
                         config: StoreConfig, catalog: Catalog = None) -> DeliveryQuote:
    """
    Prices a delivery from a store to a customer address.

    Args:
        address (DeliveryAddress): Customer address.
        location (StoreLocation): Store the delivery starts from.
        geocoder: Object with ``async geocode(address: str) -> (lat, lng)``.
        config (StoreConfig): Delivery tiers.
        catalog (Catalog): If given, the tier's fee is looked up in it.

    Returns:
        DeliveryQuote: Distance, tier and (optionally) fee.

    Raises:
        GeocodeError: If the address cannot be resolved or is outside the delivery radius.
    """
    lat, lng = await geocoder.geocode(address.one_line())
    distance = distance_from_store(location, lat, lng)
    log.info(f"[Delivery: {location.id}] Entfernung berechnet: {distance} mi.")

    tier = resolve_delivery_tier(distance, config)
    if tier is None:
        radius = config.max_delivery_radius
        raise GeocodeError(
            f"Sorry, we only deliver within {radius:g} miles of our location.",
            f"Address is {distance} miles from {location.name}",
        )

    fee = None
    if catalog is not None:
        line = delivery_fee_line(tier, catalog)
        if line:
            fee = line[1].price
    return DeliveryQuote(distanceMiles=distance, tier=tier, fee=fee)
