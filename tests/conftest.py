import pytest

from storefront_service.config import StoreConfig
from storefront_service.models import Catalog, CatalogItem, Money, Variation


def make_variation(var_id, item_id, name, amount, ordinal=0, available=True):
    return Variation(id=var_id, name=name, price=Money(amount=amount), itemId=item_id,
                     ordinal=ordinal, available=available)


@pytest.fixture()
def config():
    return StoreConfig(
        access_token="test-token",
        geocoding_api_key="test-key",
        public_base_url="https://shop.example.com",
        vendor_api_url="http://vendor.test",
        geocoding_api_url="http://geo.test",
    )


@pytest.fixture()
def catalog():
    """One tree, the stand in three sizes and two delivery fee items."""
    return Catalog(items=[
        CatalogItem(id="TREE", name="Noble Fir Christmas Tree", variations=[
            make_variation("TREE-5-6", "TREE", "5-6 ft", 12000, 1),
            make_variation("TREE-6-7", "TREE", "6-7 ft", 15000, 2),
        ]),
        CatalogItem(id="STAND", name="Water Bowl & Stand", variations=[
            make_variation("STAND-S", "STAND", "small", 2500, 1),
            make_variation("STAND-M", "STAND", "medium", 3000, 2),
            make_variation("STAND-L", "STAND", "large", 3500, 3),
        ]),
        CatalogItem(id="FEE-1", name="DELIVERY-UNDER-1", variations=[
            make_variation("FEE-1-V", "FEE-1", "Regular", 2000),
        ]),
        CatalogItem(id="FEE-3", name="DELIVERY-2-MILE", variations=[
            make_variation("FEE-3-V", "FEE-3", "Regular", 2500),
        ]),
    ])


class FakeGeocoder:
    """Answers every address with fixed coordinates, or fails with the given error."""

    def __init__(self, lat=34.044227, lng=-118.272217, error=None):
        self.lat = lat
        self.lng = lng
        self.error = error
        self.addresses = []

    async def geocode(self, address):
        self.addresses.append(address)
        if self.error:
            raise self.error
        return self.lat, self.lng


class FakePaymentClient:
    def __init__(self, error=None):
        self.error = error
        self.requests = []

    async def create_payment_link(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return {"payment_link": {"id": "PL-1", "url": "https://pay.example.com/PL-1"}}


@pytest.fixture()
def geocoder():
    return FakeGeocoder()


@pytest.fixture()
def payment_client():
    return FakePaymentClient()
