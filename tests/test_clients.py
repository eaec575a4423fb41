"""Tests for the HTTP clients against the mock collaborators and failing transports."""

import asyncio

import httpx
import pytest

from mock_services import mock_catalog_service, mock_geocoding_service, mock_payment_service
from storefront_service.catalog import normalize_catalog
from storefront_service.checkout import assemble_checkout_request
from storefront_service.clients import GeocodingClient, PaymentClient, VendorCatalogClient
from storefront_service.errors import GeocodeError, PaymentProviderError, UpstreamDataError
from storefront_service.models import CartItem


def _asgi(app):
    return httpx.ASGITransport(app=app)


def _failing(status_code=500, body=None):
    def handler(request):
        return httpx.Response(status_code, json=body or {"errors": [{"code": "INTERNAL", "detail": "boom"}]})
    return httpx.MockTransport(handler)


def _unreachable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.MockTransport(handler)


async def _list(config, transport):
    async with VendorCatalogClient(config, transport=transport) as client:
        return await client.list_catalog()


async def _geocode(config, transport, address):
    async with GeocodingClient(config, transport=transport) as client:
        return await client.geocode(address)


async def _pay(config, transport, request):
    async with PaymentClient(config, transport=transport) as client:
        return await client.create_payment_link(request)


class TestVendorCatalogClient:
    def test_follows_pagination(self, config):
        objects = asyncio.run(_list(config, _asgi(mock_catalog_service.app)))
        assert len(objects) == len(mock_catalog_service.seed_catalog())
        assert len(objects) > mock_catalog_service.PAGE_SIZE

    def test_listing_normalizes(self, config):
        objects = asyncio.run(_list(config, _asgi(mock_catalog_service.app)))
        catalog = normalize_catalog(objects, config)
        names = [i.name for i in catalog.items]
        assert names[:2] == ["Fraser Fir Christmas Tree", "Water Bowl & Stand"]
        assert "Noble Fir Wreath" not in names
        assert "Douglas Fir Christmas Tree" not in names
        assert len([n for n in names if n.startswith("DELIVERY-")]) == 8
        assert [img.id for img in catalog.images] == ["IMG-FRASER"]
        assert [c.name for c in catalog.categories] == ["Christmas Trees"]
        fraser = catalog.find_item("TREE-FRASER")
        assert [(v.name, v.price.amount, v.available) for v in fraser.variations] == [
            ("5-6 ft", 12000, True), ("6-7 ft", 15000, True), ("7-8 ft", 18000, False),
        ]

    def test_sends_bearer_token(self, config):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            seen["types"] = request.url.params["types"]
            return httpx.Response(200, json={"objects": []})

        asyncio.run(_list(config, httpx.MockTransport(handler)))
        assert seen == {"auth": "Bearer test-token", "types": "ITEM,IMAGE,CATEGORY"}

    def test_error_status(self, config):
        with pytest.raises(UpstreamDataError) as exc:
            asyncio.run(_list(config, _failing(500)))
        assert exc.value.details == "Vendor returned HTTP 500"

    def test_unreachable(self, config):
        with pytest.raises(UpstreamDataError):
            asyncio.run(_list(config, _unreachable()))


class TestGeocodingClient:
    def test_known_address(self, config):
        lat, lng = asyncio.run(_geocode(config, _asgi(mock_geocoding_service.app), "1111 S Figueroa St, Los Angeles"))
        assert (lat, lng) == (34.043018, -118.267254)

    def test_unknown_address(self, config):
        with pytest.raises(GeocodeError, match="Invalid address"):
            asyncio.run(_geocode(config, _asgi(mock_geocoding_service.app), "Nowhere 1"))

    def test_service_failure(self, config):
        with pytest.raises(GeocodeError, match="Error calculating delivery fee"):
            asyncio.run(_geocode(config, _unreachable(), "1111 S Figueroa St"))


class TestPaymentClient:
    def _request(self, config):
        return assemble_checkout_request(
            [CartItem(itemId="TREE-FRASER", variationId="FRASER-6-7", quantity=1)],
            "los-angeles", "pickup", config, pickup_time="09:00",
        )

    def test_creates_payment_link(self, config):
        result = asyncio.run(_pay(config, _asgi(mock_payment_service.app), self._request(config)))
        link = result["payment_link"]
        assert link["url"].startswith("https://sandbox.square.link/u/")
        order = result["related_resources"]["orders"][0]
        assert order["location_id"] == "L5BQY108WBHK4"
        assert order["line_items"] == [{"quantity": "1", "catalog_object_id": "FRASER-6-7"}]

    def test_same_idempotency_key_returns_same_link(self, config):
        request = self._request(config)
        first = asyncio.run(_pay(config, _asgi(mock_payment_service.app), request))
        second = asyncio.run(_pay(config, _asgi(mock_payment_service.app), request))
        assert first["payment_link"]["id"] == second["payment_link"]["id"]

    def test_provider_rejection(self, config):
        config.locations[0] = config.locations[0].model_copy(update={"providerLocationId": "DECLINE-1"})
        with pytest.raises(PaymentProviderError) as exc:
            asyncio.run(_pay(config, _asgi(mock_payment_service.app), self._request(config)))
        assert exc.value.details == "Location not found."
        assert exc.value.status_code == 502

    def test_missing_link_in_response(self, config):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"payment_link": {}}))
        with pytest.raises(PaymentProviderError):
            asyncio.run(_pay(config, transport, self._request(config)))

    def test_unreachable(self, config):
        with pytest.raises(PaymentProviderError):
            asyncio.run(_pay(config, _unreachable(), self._request(config)))
