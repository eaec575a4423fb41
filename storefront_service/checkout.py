"""
checkout.py — Checkout Request Assembly and Checkout Flow

This module contains the last step before the customer leaves the storefront:

    1. Precondition checks (time slot for pickup, resolved tier for delivery)
    2. Assembly of the request for the payment provider (idempotency key,
       line items, fulfillment details, redirect URL)
    3. The checkout flow DETAILS → SUMMARY → REDIRECTED, which keeps the
       delivery-fee line in the cart in step with the chosen fulfillment

The HTTP call itself lives in ``clients.PaymentClient``.
"""

import logging
import secrets
import string
import time
from datetime import date, timedelta
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from .cart import CartSession, CartState
from .config import StoreConfig
from .delivery import delivery_fee_line, quote_delivery
from .errors import ConfigurationError, StorefrontError, ValidationError
from .models import CartItem, Catalog, DeliveryAddress, DeliveryFeeTier

log = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


class FulfillmentType(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


class LineItem(BaseModel):
    catalogObjectId: str
    quantity: int = Field(..., gt=0)


class PickupDetails(BaseModel):
    pickupDate: str
    pickupTime: str


class DeliveryDetails(BaseModel):
    address: DeliveryAddress
    tier: DeliveryFeeTier


class CheckoutRequest(BaseModel):
    """
    A precondition-validated request for a hosted payment link.

    Attributes:
        idempotencyKey (str): Unique per submission attempt.
        locationId (str): Location id at the payment provider.
        fulfillmentType (FulfillmentType): Pickup or delivery.
        lineItems (List[LineItem]): One per cart line; prices are resolved by the provider.
        pickup (PickupDetails): Set for pickups.
        delivery (DeliveryDetails): Set for deliveries.
        redirectUrl (str): Where the provider sends the customer after payment.
    """
    idempotencyKey: str
    locationId: str
    fulfillmentType: FulfillmentType
    lineItems: List[LineItem]
    pickup: Optional[PickupDetails] = None
    delivery: Optional[DeliveryDetails] = None
    redirectUrl: str

    def metadata(self) -> dict:
        # Provider metadata only accepts string values
        data = {"fulfillment_type": self.fulfillmentType.value}
        if self.pickup:
            data["pickup_date"] = self.pickup.pickupDate
            data["pickup_time"] = self.pickup.pickupTime
        if self.delivery:
            data["delivery_address"] = self.delivery.address.one_line()
            data["delivery_tier"] = self.delivery.tier.key
        return data

    def to_provider_payload(self) -> dict:
        return {
            "idempotency_key": self.idempotencyKey,
            "order": {
                "location_id": self.locationId,
                "line_items": [
                    {"quantity": str(li.quantity), "catalog_object_id": li.catalogObjectId}
                    for li in self.lineItems
                ],
                "metadata": self.metadata(),
            },
            "checkout_options": {
                "redirect_url": self.redirectUrl,
            },
        }


class CheckoutPayload(BaseModel):
    """
    Body of ``POST /checkout`` as sent by the storefront page.

    Attributes:
        cartItems (List[CartItem]): Cart contents, including a delivery-fee line for deliveries.
        locationId (str): Storefront location id (e.g. 'los-angeles').
        fulfillmentType (FulfillmentType): 'pickup' or 'delivery'.
        pickupDate (str): ISO date, defaults to tomorrow.
        pickupTime (str): Selected slot start, e.g. '09:00'.
        deliveryAddress (DeliveryAddress): Required for deliveries.
    """
    cartItems: List[CartItem]
    locationId: str
    fulfillmentType: FulfillmentType
    pickupDate: Optional[str] = None
    pickupTime: Optional[str] = None
    deliveryAddress: Optional[DeliveryAddress] = None


def new_idempotency_key(now: float = None) -> str:
    """Epoch milliseconds plus eight random base36 characters."""
    millis = int((time.time() if now is None else now) * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(8))
    return f"{millis}-{suffix}"


def next_day_date(today: date = None) -> str:
    return ((today or date.today()) + timedelta(days=1)).isoformat()


def delivery_time_slots(config: StoreConfig) -> List[dict]:
    """
    Three-hour slots within opening hours.

    Returns:
        list[dict]: ``{"value": "09:00", "label": "9:00 AM - 12:00 PM"}`` entries.
    """
    slots = []
    for hour in range(config.hours.open, config.hours.close - 3 + 1, 3):
        start_hour = hour % 12 or 12
        end_hour = (hour + 3) % 12 or 12
        start_period = "AM" if hour < 12 else "PM"
        end_period = "AM" if hour + 3 < 12 else "PM"
        slots.append({
            "value": f"{hour:02d}:00",
            "label": f"{start_hour}:00 {start_period} - {end_hour}:00 {end_period}",
        })
    return slots


def validate_fulfillment(fulfillment_type: FulfillmentType, pickup_time: Optional[str],
                         delivery_address: Optional[DeliveryAddress],
                         delivery_tier: Optional[DeliveryFeeTier]):
    """
    Raises:
        ValidationError: If the chosen fulfillment is missing what it needs.
    """
    if fulfillment_type == FulfillmentType.DELIVERY:
        if delivery_address is None:
            raise ValidationError("Please enter a delivery address")
        if delivery_tier is None:
            raise ValidationError("Please enter a valid delivery address")
    elif not pickup_time:
        raise ValidationError("Please select a pickup time")


def check_delivery_fee_line(cart_items: List[CartItem], delivery_tier: DeliveryFeeTier,
                            catalog: Catalog, config: StoreConfig):
    """
    Checks that the cart carries exactly the fee line of the resolved tier.

    Raises:
        ValidationError: If a fee line is missing, belongs to another tier
            or appears with a quantity other than one.
    """
    fee_lines = []
    for cart_item in cart_items:
        item = catalog.find_item(cart_item.itemId)
        if item and item.name.startswith(config.delivery_item_prefix):
            fee_lines.append((cart_item.itemId, cart_item.variationId, cart_item.quantity))

    line = delivery_fee_line(delivery_tier, catalog)
    expected = [(line[0].id, line[1].id, 1)] if line else []
    if fee_lines != expected:
        log.warning(f"[Checkout] Lieferpauschale passt nicht zur Stufe {delivery_tier.key}: {fee_lines}")
        raise ValidationError("Delivery fee does not match the delivery address",
                              f"Expected {delivery_tier.feeItemName} for tier {delivery_tier.key}")


def assemble_checkout_request(cart_items: Union[CartState, List[CartItem]], location_id: str,
                              fulfillment_type, config: StoreConfig,
                              pickup_date: str = None, pickup_time: str = None,
                              delivery_address: DeliveryAddress = None,
                              delivery_tier: DeliveryFeeTier = None,
                              today: date = None) -> CheckoutRequest:
    """
    Validates the checkout preconditions and builds the payment provider request.

    Args:
        cart_items (CartState | list[CartItem]): Lines to pay for.
        location_id (str): Storefront location id.
        fulfillment_type (FulfillmentType | str): 'pickup' or 'delivery'.
        config (StoreConfig): Locations and public base URL.
        pickup_date (str): ISO date of the pickup, tomorrow if omitted.
        pickup_time (str): Selected pickup slot.
        delivery_address (DeliveryAddress): Delivery destination.
        delivery_tier (DeliveryFeeTier): Resolved tier of the delivery address.
        today (date): Clock override for the default pickup date.

    Returns:
        CheckoutRequest: Ready to hand to ``PaymentClient.create_payment_link``.

    Raises:
        ValidationError: Missing time slot or tier, unknown location, empty cart.
        ConfigurationError: The location has no provider id configured.
    """
    try:
        fulfillment_type = FulfillmentType(fulfillment_type)
    except ValueError:
        raise ValidationError(f"Unknown fulfillment type: {fulfillment_type}")

    validate_fulfillment(fulfillment_type, pickup_time, delivery_address, delivery_tier)

    location = config.get_location(location_id)
    if location is None:
        raise ValidationError("Invalid store location")
    if not location.providerLocationId:
        raise ConfigurationError("Server configuration error", f"No provider location id for '{location_id}'")

    items = cart_items.items if isinstance(cart_items, CartState) else cart_items
    if not items:
        raise ValidationError("Your cart is empty")

    if fulfillment_type == FulfillmentType.DELIVERY:
        pickup = None
        delivery = DeliveryDetails(address=delivery_address, tier=delivery_tier)
    else:
        pickup = PickupDetails(pickupDate=pickup_date or next_day_date(today), pickupTime=pickup_time)
        delivery = None

    return CheckoutRequest(
        idempotencyKey=new_idempotency_key(),
        locationId=location.providerLocationId,
        fulfillmentType=fulfillment_type,
        lineItems=[LineItem(catalogObjectId=i.variationId, quantity=i.quantity) for i in items],
        pickup=pickup,
        delivery=delivery,
        redirectUrl=f"{config.public_base_url.rstrip('/')}/order-confirmation",
    )


class CheckoutStep(str, Enum):
    DETAILS = "details"
    SUMMARY = "summary"
    REDIRECTED = "redirected"


class CheckoutFlow:
    """
    The checkout dialog of one shopper.

    DETAILS collects the fulfillment choice; moving to SUMMARY puts the
    delivery-fee line into the cart, going back takes the same line out again.
    Submitting hands the request to the payment provider and ends in REDIRECTED.
    Recoverable problems are kept in ``error`` instead of being raised.
    """

    def __init__(self, cart: CartSession, catalog: Catalog, config: StoreConfig, location_id: str):
        self.cart = cart
        self.catalog = catalog
        self.config = config
        self.location_id = location_id
        self.step = CheckoutStep.DETAILS
        self.fulfillment_type = FulfillmentType.PICKUP
        self.pickup_date = next_day_date()
        self.pickup_time = None
        self.delivery_address = None
        self.delivery_tier = None
        self.distance_miles = None
        self.error = None
        self.payment_url = None
        self._fee_line = None

    def choose_fulfillment(self, fulfillment_type):
        if self.step == CheckoutStep.SUMMARY:
            self.back_to_details()
        self.fulfillment_type = FulfillmentType(fulfillment_type)
        if self.fulfillment_type == FulfillmentType.PICKUP:
            self.delivery_tier = None
            self.distance_miles = None

    def select_pickup_time(self, pickup_time: str, pickup_date: str = None):
        self.pickup_time = pickup_time
        if pickup_date:
            self.pickup_date = pickup_date

    async def update_delivery_address(self, address: DeliveryAddress, geocoder) -> Optional[DeliveryFeeTier]:
        """
        Geocodes the address and resolves its delivery tier.

        A later call overwrites the result of an earlier one, whatever order
        the geocoder answers in.

        A new address in SUMMARY takes the flow back to DETAILS, so the old
        fee line leaves the cart before the new tier is resolved.

        Returns:
            DeliveryFeeTier | None: The tier, or None with ``error`` set.
        """
        if self.step == CheckoutStep.SUMMARY:
            self.back_to_details()
        self.delivery_address = address
        location = self.config.get_location(self.location_id)
        if location is None:
            self.error = "Invalid store location"
            self.delivery_tier = None
            return None
        try:
            quote = await quote_delivery(address, location, geocoder, self.config)
        except StorefrontError as e:
            log.info(f"[Checkout] Lieferadresse abgelehnt: {e.message}")
            self.error = e.message
            self.delivery_tier = None
            self.distance_miles = None
            return None
        self.error = None
        self.delivery_tier = quote.tier
        self.distance_miles = quote.distanceMiles
        return quote.tier

    def delivery_fee_amount(self) -> int:
        if self.fulfillment_type != FulfillmentType.DELIVERY or self.delivery_tier is None:
            return 0
        line = delivery_fee_line(self.delivery_tier, self.catalog)
        return line[1].price.amount if line else 0

    def total(self) -> int:
        """Cart subtotal plus the delivery fee unless it is already a cart line."""
        subtotal = self.cart.state.subtotal(self.catalog)
        if self._fee_line is not None:
            return subtotal
        return subtotal + self.delivery_fee_amount()

    def proceed_to_summary(self) -> bool:
        if self.step != CheckoutStep.DETAILS:
            return False
        try:
            validate_fulfillment(self.fulfillment_type, self.pickup_time, self.delivery_address, self.delivery_tier)
        except ValidationError as e:
            self.error = e.message
            return False

        if self.fulfillment_type == FulfillmentType.DELIVERY:
            line = delivery_fee_line(self.delivery_tier, self.catalog)
            if line:
                item, variation = line
                if not self.cart.state.find(item.id, variation.id):
                    self.cart.add(item.id, variation.id, 1)
                    self._fee_line = (item.id, variation.id)

        self.error = None
        self.step = CheckoutStep.SUMMARY
        return True

    def back_to_details(self):
        if self.step != CheckoutStep.SUMMARY:
            return
        if self._fee_line is not None:
            self.cart.remove(*self._fee_line)
            self._fee_line = None
        self.step = CheckoutStep.DETAILS

    def build_request(self) -> CheckoutRequest:
        return assemble_checkout_request(
            self.cart.state,
            self.location_id,
            self.fulfillment_type,
            self.config,
            pickup_date=self.pickup_date,
            pickup_time=self.pickup_time,
            delivery_address=self.delivery_address,
            delivery_tier=self.delivery_tier,
        )

    async def submit(self, payment_client) -> Optional[str]:
        """
        Sends the checkout to the payment provider.

        Args:
            payment_client: Object with ``async create_payment_link(request) -> dict``.

        Returns:
            str | None: The hosted payment URL, or None with ``error`` set.
        """
        if self.step != CheckoutStep.SUMMARY:
            self.error = "Please review your order before checking out"
            return None
        try:
            request = self.build_request()
            result = await payment_client.create_payment_link(request)
        except StorefrontError as e:
            log.error(f"[Checkout] Checkout fehlgeschlagen: {e.message} ({e.details})")
            self.error = e.message
            return None

        self.payment_url = result["payment_link"]["url"]
        self.cart.clear()
        self._fee_line = None
        self.error = None
        self.step = CheckoutStep.REDIRECTED
        log.info(f"[Checkout: {request.idempotencyKey}] Weiterleitung zur Zahlungsseite.")
        return self.payment_url
