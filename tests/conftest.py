"""
Pytest configuration and fixtures for shipping-core tests.
"""
import json
from typing import Callable, Dict, List, Tuple

import httpx
import pytest

from shipping_core.core.config import Settings
from shipping_core.models.carrier import CarrierConfig
from shipping_core.modules.shipping.carriers.base import Address, Parcel, ShipmentItem
from shipping_core.modules.shipping.carriers.shiprocket import ShiprocketCarrier


class RecordingHandler:
    """
    httpx.MockTransport handler routing on (method, path).

    Routes map to a Response or to a callable taking the request.
    Every request is recorded for assertions.
    """

    def __init__(self, routes: Dict[Tuple[str, str], object]):
        self.routes = routes
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "no route"})
        if callable(route):
            return route(request)
        return route

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def json_body(self, method: str, path: str, index: int = -1) -> dict:
        return json.loads(self.calls(method, path)[index].content)


@pytest.fixture
def make_transport() -> Callable[[Dict], Tuple[httpx.MockTransport, RecordingHandler]]:
    def _make(routes: Dict[Tuple[str, str], object]):
        handler = RecordingHandler(routes)
        return httpx.MockTransport(handler), handler
    return _make


@pytest.fixture
def carrier_config() -> CarrierConfig:
    return CarrierConfig(base_url="https://shiprocket.test", timeout_seconds=5.0)


@pytest.fixture
def make_shiprocket(carrier_config):
    """Build a ShiprocketCarrier wired to a MockTransport."""
    def _make(transport, credentials=None):
        if credentials is None:
            credentials = {"token": "abc"}
        return ShiprocketCarrier(credentials, carrier_config, transport=transport)
    return _make


@pytest.fixture
def origin() -> Address:
    return Address(
        name="Warehouse",
        address1="12 MG Road",
        city="Bengaluru",
        state="Karnataka",
        postal_code="560001",
        country="in",
    )


@pytest.fixture
def destination() -> Address:
    return Address(
        name="Asha Rao",
        address1="4 Park Street",
        city="Kolkata",
        state="West Bengal",
        postal_code="700 016",
        country="IN",
        phone="9876543210",
        email="asha@example.in",
    )


@pytest.fixture
def small_parcel() -> Parcel:
    return Parcel(length=10, width=10, height=10, weight=1)


@pytest.fixture
def large_parcel() -> Parcel:
    return Parcel(length=30, width=20, height=15, weight=2)


@pytest.fixture
def items() -> Tuple[ShipmentItem, ...]:
    return (
        ShipmentItem(value=49900, quantity=2, sku="BOOK-1", name="Paperback"),
        ShipmentItem(value=1250, quantity=1, sku="BM-1", name="Bookmark"),
    )


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the process environment and .env."""
    return Settings(
        _env_file=None,
        SHIPPING_ENABLED_CARRIERS="SHIPROCKET,UPS",
        SHIPROCKET_EMAIL="ops@example.in",
        SHIPROCKET_PASSWORD="s3cret",
        SHIPROCKET_BASE_URL="https://shiprocket.test/",
        SHIPROCKET_PICKUP_LOCATION="Bengaluru WH",
        SHIPPING_HTTP_TIMEOUT_SECONDS=12.5,
        SHIPPING_TOKEN_TTL_HOURS=2,
    )
