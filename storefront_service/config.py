"""
config.py — Store Configuration

The storefront core never reads environment variables or module globals on
its own. A ``StoreConfig`` is built once at the edge (``StoreConfig.from_env()``
in the API, explicit instances in tests) and handed to every component.
"""

import os
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from .errors import ConfigurationError
from .models import DeliveryFeeTier, StoreLocation

SANDBOX_API_URL = "https://connect.squareupsandbox.com"
PRODUCTION_API_URL = "https://connect.squareup.com"
GEOCODING_API_URL = "https://maps.googleapis.com"


def default_delivery_tiers() -> Tuple[DeliveryFeeTier, ...]:
    # Fee item names are the reserved catalog names maintained by the shop operators
    names = [
        'DELIVERY-UNDER-1',  # $20.00
        'DELIVERY-1-MILE',   # $22.50
        'DELIVERY-2-MILE',   # $25.00
        'DELIVERY-3-MILE',   # $27.50
        'DELIVERY-4-MILE',   # $30.00
        'DELIVERY-5-MILE',   # $32.50
        'DELIVERY-6-MILE',   # $35.00
        'DELIVERY-7-MILE',   # $37.50
    ]
    return tuple(
        DeliveryFeeTier(key=f"<={bound}", upperBoundMiles=bound, feeItemName=name)
        for bound, name in enumerate(names, start=1)
    )


def default_locations() -> List[StoreLocation]:
    return [
        StoreLocation(
            id='los-angeles',
            name='Los Angeles',
            providerLocationId='L5BQY108WBHK4',
            lat=34.044227,
            lng=-118.272217,
            formattedAddress="1360 S Figueroa St, Los Angeles, CA 90015",
        ),
        StoreLocation(
            id='altadena',
            name='Altadena',
            providerLocationId='LR7THQ45Q4P0V',
            lat=34.190141,
            lng=-118.158531,
            formattedAddress="2308 N. Lincoln Ave, Altadena, CA 91001",
        ),
    ]


class StoreHours(BaseModel):
    open: int = 9    # 9 AM
    close: int = 21  # 9 PM, last slot is 6-9 PM


class StoreConfig(BaseModel):
    """
    Everything the storefront needs to know about the shop and its collaborators.

    Attributes:
        target_category_id (str): Vendor category whose items are sold online.
        delivery_item_prefix (str): Name prefix of delivery-fee items; they bypass the category filter.
        tree_keyword (str): Name keyword that marks a tree product.
        stand_keyword (str): Name keyword of the companion stand product.
        locations (list): Store locations offering pickup and delivery.
        hours (StoreHours): Opening hours used to build time slots.
        delivery_tiers (tuple): Ordered delivery pricing bands.
        access_token (str): Provider access token (catalog and payments).
        environment (str): 'sandbox' or 'production'.
        public_base_url (str): Base URL of the storefront for the post-payment redirect.
        geocoding_api_key (str): Key for the geocoding service.
        vendor_api_url (str): Base URL of the catalog/payment provider.
        geocoding_api_url (str): Base URL of the geocoding service.
    """
    target_category_id: str = 'IQ6T2GWVZQBH33LUA7NLBG46'
    delivery_item_prefix: str = 'DELIVERY-'
    tree_keyword: str = 'tree'
    stand_keyword: str = 'stand'
    locations: List[StoreLocation] = Field(default_factory=default_locations)
    hours: StoreHours = Field(default_factory=StoreHours)
    delivery_tiers: Tuple[DeliveryFeeTier, ...] = Field(default_factory=default_delivery_tiers)

    access_token: str = ""
    environment: str = "sandbox"
    public_base_url: str = "http://localhost:3000"
    geocoding_api_key: str = ""
    vendor_api_url: Optional[str] = None
    geocoding_api_url: str = GEOCODING_API_URL

    @property
    def max_delivery_radius(self) -> float:
        return max(t.upperBoundMiles for t in self.delivery_tiers)

    @property
    def provider_api_url(self) -> str:
        if self.vendor_api_url:
            return self.vendor_api_url
        return PRODUCTION_API_URL if self.environment == "production" else SANDBOX_API_URL

    def get_location(self, location_id: str) -> Optional[StoreLocation]:
        return next((loc for loc in self.locations if loc.id == location_id), None)

    def require_credentials(self):
        """
        Raises:
            ConfigurationError: If the provider access token is missing.
        """
        if not self.access_token:
            raise ConfigurationError("Server configuration error", "SQUARE_ACCESS_TOKEN is not set")

    def require_geocoding(self):
        if not self.geocoding_api_key:
            raise ConfigurationError("Server configuration error", "GOOGLE_MAPS_API_KEY is not set")

    @classmethod
    def from_env(cls, environ=None) -> "StoreConfig":
        """
        Builds the configuration from environment variables (normally set by Docker/Kubernetes).

        Args:
            environ (Mapping): Variable source, ``os.environ`` by default.

        Returns:
            StoreConfig: Configuration with provider location ids and credentials applied.
        """
        env = os.environ if environ is None else environ
        locations = default_locations()
        overrides = {
            'los-angeles': env.get("SQUARE_LOCATION_ID_LA"),
            'altadena': env.get("SQUARE_LOCATION_ID_ALTADENA"),
        }
        locations = [
            loc.model_copy(update={"providerLocationId": overrides[loc.id]}) if overrides.get(loc.id) else loc
            for loc in locations
        ]
        return cls(
            locations=locations,
            target_category_id=env.get("CATALOG_CATEGORY_ID", 'IQ6T2GWVZQBH33LUA7NLBG46'),
            access_token=env.get("SQUARE_ACCESS_TOKEN", ""),
            environment=env.get("SQUARE_ENV", "sandbox"),
            public_base_url=env.get("PUBLIC_BASE_URL", "http://localhost:3000"),
            geocoding_api_key=env.get("GOOGLE_MAPS_API_KEY", ""),
            vendor_api_url=env.get("VENDOR_API_URL") or None,
            geocoding_api_url=env.get("GEOCODING_API_URL", GEOCODING_API_URL),
        )
