"""
models.py — Data Models of the Storefront

This module defines the domain catalog, cart lines, store locations and the
delivery pricing types. Pydantic guarantees type safety for everything that
crosses the HTTP boundary; field names follow the JSON the storefront
exchanges with its clients (camelCase).

Models:
    - Money, Variation, CatalogItem, Image, Category, Catalog: normalized catalog.
    - CartItem: one line of the shopping cart.
    - StoreLocation, DeliveryAddress, DeliveryFeeTier: fulfillment data.
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class Money(BaseModel):
    """
    An amount of money in minor currency units.

    Attributes:
        amount (int): Amount in cents (never negative).
        currency (str): ISO 4217 currency code.
    """
    amount: int = Field(0, ge=0)
    currency: str = "USD"


class Variation(BaseModel):
    """
    A purchasable variant of a catalog item (e.g. a tree height).

    Attributes:
        id (str): Vendor id of the variation, used as catalog reference at checkout.
        name (str): Display name, e.g. "6-7 ft".
        price (Money): Unit price.
        itemId (str): Id of the owning CatalogItem.
        ordinal (int): Display order.
        available (bool): False when the vendor soft-deleted the variation.
    """
    id: str
    name: str = ""
    price: Money = Field(default_factory=Money)
    itemId: str
    ordinal: int = 0
    available: bool = True


class CatalogItem(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    variations: List[Variation] = Field(default_factory=list)
    imageIds: Optional[List[str]] = None
    category: Optional[str] = None

    def find_variation(self, variation_id: str) -> Optional[Variation]:
        return next((v for v in self.variations if v.id == variation_id), None)


class Image(BaseModel):
    id: str
    url: str


class Category(BaseModel):
    id: str
    name: str
    ordinal: int = 0


class Catalog(BaseModel):
    """
    The normalized catalog as served by ``GET /catalog``.

    Only eligible records survive normalization, so every image is referenced
    by an item and ``categories`` holds at most the configured target category.
    """
    items: List[CatalogItem] = Field(default_factory=list)
    images: List[Image] = Field(default_factory=list)
    categories: List[Category] = Field(default_factory=list)

    def find_item(self, item_id: str) -> Optional[CatalogItem]:
        return next((i for i in self.items if i.id == item_id), None)

    def find_item_by_name(self, name: str) -> Optional[CatalogItem]:
        """Exact name match. The first item wins if names are not unique."""
        return next((i for i in self.items if i.name == name), None)

    def find_variation(self, item_id: str, variation_id: str) -> Optional[Variation]:
        item = self.find_item(item_id)
        return item.find_variation(variation_id) if item else None

    def image_url(self, image_id: str) -> Optional[str]:
        return next((img.url for img in self.images if img.id == image_id), None)

    def category_name(self, category_id: Optional[str]) -> Optional[str]:
        return next((c.name for c in self.categories if c.id == category_id), None)


class CartItem(BaseModel):
    """
    A single line of the shopping cart.

    Attributes:
        itemId (str): CatalogItem id.
        variationId (str): Variation id; together with itemId the unique cart key.
        quantity (int): Number of units, at least one.
    """
    itemId: str
    variationId: str
    quantity: int = Field(..., gt=0)

    @property
    def key(self) -> tuple:
        return (self.itemId, self.variationId)


class StoreLocation(BaseModel):
    """
    A physical store that serves pickups and is the origin of deliveries.

    Attributes:
        id (str): Storefront id of the location (e.g. 'los-angeles').
        name (str): Display name.
        providerLocationId (str): Location id at the payment provider.
        lat (float): Latitude in degrees.
        lng (float): Longitude in degrees.
        formattedAddress (str): Postal address for display.
    """
    id: str
    name: str
    providerLocationId: str = ""
    lat: float
    lng: float
    formattedAddress: str = ""


class DeliveryAddress(BaseModel):
    addressLine1: str = Field(..., min_length=1)
    addressLine2: Optional[str] = None
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip: str = Field(..., min_length=1)

    def one_line(self) -> str:
        """Joins the non-empty address parts for the geocoder."""
        parts = [self.addressLine1, self.addressLine2, self.city, self.state, self.zip]
        return ", ".join(p for p in parts if p)


class DeliveryFeeTier(BaseModel):
    """
    A delivery pricing band.

    The resolver only classifies distance; the price is the first variation
    of the catalog item named ``feeItemName``.

    Attributes:
        key (str): Opaque tier key, e.g. '<=3'.
        upperBoundMiles (float): Inclusive upper bound of the band.
        feeItemName (str): Reserved catalog item name, e.g. 'DELIVERY-2-MILE'.
    """
    key: str
    upperBoundMiles: float
    feeItemName: str


class DeliveryQuote(BaseModel):
    """
    Result of pricing a delivery address.

    Attributes:
        distanceMiles (float): Distance from the chosen store.
        tier (DeliveryFeeTier): Resolved pricing band.
        fee (Money | None): Price of the tier's fee item, None if the catalog was not consulted.
    """
    distanceMiles: float
    tier: DeliveryFeeTier
    fee: Optional[Money] = None


class DeliveryQuoteRequest(BaseModel):
    locationId: str
    deliveryAddress: DeliveryAddress
