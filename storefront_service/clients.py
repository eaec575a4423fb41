"""
This module provides communication clients for the external systems used by the storefront:
- Vendor Catalog (REST API, paginated listing)
- Geocoding Service (REST API)
- Payment Provider (REST API, hosted payment links)
Each class encapsulates its protocol logic and error handling, and maps failures
onto the storefront's error taxonomy.
"""

import logging
from typing import List, Tuple

import httpx

from .config import StoreConfig
from .errors import GeocodeError, PaymentProviderError, UpstreamDataError

PROVIDER_API_VERSION = "2024-01-18"

log = logging.getLogger(__name__)


def _provider_headers(config: StoreConfig) -> dict:
    return {
        "Authorization": f"Bearer {config.access_token}",
        "Square-Version": PROVIDER_API_VERSION,
        "Content-Type": "application/json",
    }


def _error_details(response: httpx.Response) -> str:
    """Extracts the provider's error list, falling back to the raw body."""
    try:
        errors = response.json().get("errors") or []
    except ValueError:
        return response.text
    return "; ".join(e.get("detail") or e.get("code", "") for e in errors if isinstance(e, dict)) or response.text


# --- Vendor Catalog Client (REST) ---
class VendorCatalogClient:
    """
    Client for the vendor's catalog listing.
    Fetches every ITEM, IMAGE and CATEGORY object, following pagination cursors.
    """

    def __init__(self, config: StoreConfig, transport: httpx.AsyncBaseTransport = None):
        """
        Args:
            config (StoreConfig): Provider URL and access token.
            transport (httpx.AsyncBaseTransport): Optional transport (mock services, tests).
        """
        self.client = httpx.AsyncClient(
            base_url=config.provider_api_url,
            headers=_provider_headers(config),
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self.client.aclose()

    async def list_catalog(self, types: str = "ITEM,IMAGE,CATEGORY") -> List[dict]:
        """
        Lists all raw catalog objects of the given types.

        Returns:
            list[dict]: Raw objects in the vendor's JSON shape.

        Raises:
            UpstreamDataError: If the vendor is unreachable, answers with an error status or invalid JSON.
        """
        objects = []
        cursor = None
        page = 0
        while True:
            params = {"types": types}
            if cursor:
                params["cursor"] = cursor
            try:
                response = await self.client.get("/v2/catalog/list", params=params)
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as e:
                log.error(f"[Catalog] Vendor antwortet mit HTTP {e.response.status_code}: {_error_details(e.response)}")
                raise UpstreamDataError("Failed to fetch catalog", f"Vendor returned HTTP {e.response.status_code}") from e
            except httpx.HTTPError as e:
                log.error(f"[Catalog] Vendor nicht erreichbar: {e}")
                raise UpstreamDataError("Failed to fetch catalog", str(e)) from e
            except ValueError as e:
                raise UpstreamDataError("Failed to fetch catalog", "Vendor returned invalid JSON") from e

            page += 1
            objects.extend(data.get("objects") or [])
            cursor = data.get("cursor")
            if not cursor:
                break

        log.info(f"[Catalog] {len(objects)} Objekte in {page} Seite(n) vom Vendor geladen.")
        return objects


# --- Geocoding Client (REST) ---
class GeocodingClient:
    """
    Client for the geocoding service.
    Resolves a free-text address to coordinates of its best match.
    """

    def __init__(self, config: StoreConfig, transport: httpx.AsyncBaseTransport = None):
        self.api_key = config.geocoding_api_key
        self.client = httpx.AsyncClient(base_url=config.geocoding_api_url, transport=transport)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self.client.aclose()

    async def geocode(self, address: str) -> Tuple[float, float]:
        """
        Args:
            address (str): Free-text address, e.g. '1 Main St, Los Angeles, CA, 90012'.

        Returns:
            tuple: (latitude, longitude) in degrees.

        Raises:
            GeocodeError: If the address has no match or the service fails.
        """
        try:
            response = await self.client.get(
                "/maps/api/geocode/json", params={"address": address, "key": self.api_key}
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            log.error(f"[Geocoding] Anfrage fehlgeschlagen: {e}")
            raise GeocodeError("Error calculating delivery fee", str(e)) from e

        results = data.get("results") or []
        try:
            location = results[0]["geometry"]["location"]
            return float(location["lat"]), float(location["lng"])
        except (IndexError, KeyError, TypeError, ValueError):
            log.info(f"[Geocoding] Keine Treffer für Adresse (Status: {data.get('status')}).")
            raise GeocodeError("Invalid address", f"Geocoder status: {data.get('status', 'UNKNOWN')}")


# --- Payment Client (REST) ---
class PaymentClient:
    """
    Client for the payment provider.
    Creates hosted payment links for assembled checkout requests.
    """

    def __init__(self, config: StoreConfig, transport: httpx.AsyncBaseTransport = None):
        self.client = httpx.AsyncClient(
            base_url=config.provider_api_url,
            headers=_provider_headers(config),
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self.client.aclose()

    async def create_payment_link(self, request) -> dict:
        """
        Creates a payment link for a checkout request.

        The idempotency key travels in the request body; a retry with the same
        request object is safe on the provider side.

        Args:
            request (CheckoutRequest): Assembled, precondition-validated request.

        Returns:
            dict: Provider response containing ``payment_link`` with its ``url``.

        Raises:
            PaymentProviderError: If the provider rejects the request or cannot be reached.
        """
        log_prefix = f"[Checkout: {request.idempotencyKey}]"
        try:
            response = await self.client.post(
                "/v2/online-checkout/payment-links", json=request.to_provider_payload()
            )
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPStatusError as e:
            details = _error_details(e.response)
            log.error(f"{log_prefix} Payment Provider lehnt ab (HTTP {e.response.status_code}): {details}")
            raise PaymentProviderError("Failed to create checkout", details) from e
        except httpx.HTTPError as e:
            log.error(f"{log_prefix} Payment Provider nicht erreichbar: {e}")
            raise PaymentProviderError("Failed to create checkout", str(e)) from e
        except ValueError as e:
            raise PaymentProviderError("Failed to create checkout", "Provider returned invalid JSON") from e

        if not (result.get("payment_link") or {}).get("url"):
            raise PaymentProviderError("Failed to create checkout", "Provider response contains no payment link")

        log.info(f"{log_prefix} Payment-Link erstellt: {result['payment_link'].get('id')}")
        return result
