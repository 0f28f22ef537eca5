"""
Tests for ShiprocketCarrier: canonical model <-> Shiprocket wire translation.
"""
import asyncio
from datetime import datetime

import httpx
import pytest

from shipping_core.core.exceptions import ErrorKind, ShippingError
from shipping_core.models.shipment import ShipmentStatus
from shipping_core.modules.shipping.carriers.base import (
    Address,
    CancelShipmentRequest,
    CreateShipmentRequest,
    Parcel,
    RateRequest,
    TrackingRequest,
)
from shipping_core.modules.shipping.carriers.shiprocket import (
    PLACEHOLDER_BUYER_PHONE,
    ShiprocketCarrier,
)
from shipping_core.services.shiprocket_client import (
    ASSIGN_AWB_PATH,
    CANCEL_ORDERS_PATH,
    CHANNELS_PATH,
    CREATE_ORDER_PATH,
    LOGIN_PATH,
    SERVICEABILITY_PATH,
    SHIPROCKET_TZ,
    TRACK_AWB_PATH,
)

SERVICEABILITY = ("GET", SERVICEABILITY_PATH)
CREATE_ORDER = ("POST", CREATE_ORDER_PATH)
ASSIGN_AWB = ("POST", ASSIGN_AWB_PATH)
CANCEL = ("POST", CANCEL_ORDERS_PATH)

COURIERS = {
    "data": {
        "available_courier_companies": [
            {
                "courier_company_id": 10,
                "courier_name": "Delhivery Surface",
                "rate": 85.5,
                "etd": "Jun 05, 2024",
                "estimated_delivery_days": "4",
            },
            {
                "courier_company_id": 51,
                "courier_name": "Xpressbees",
                "rate": "120.25",
                "etd": "3-4 Days",
            },
        ]
    }
}

TRACKING = {
    "tracking_data": {
        "track_status": 1,
        "shipment_track": [{"awb_code": "AWB123", "current_status": "In Transit"}],
        "shipment_track_activities": [
            {"date": "2024-06-01 10:00:00", "activity": "Picked Up", "location": "Bengaluru",
             "sr-status-label": "PICKED UP"},
            {"date": "2024-06-02 09:30:00", "activity": "In Transit - Hub", "location": "Hyderabad"},
            {"date": "2024-06-03 08:00:00", "activity": "Out For Delivery", "location": "Kolkata"},
        ],
        "etd": "2024-06-04 18:00:00",
    }
}


@pytest.fixture
def rate_request(origin, destination, small_parcel, large_parcel):
    return RateRequest(ship_from=origin, ship_to=destination, parcels=(small_parcel, large_parcel))


@pytest.fixture
def create_request(origin, destination, small_parcel, large_parcel, items):
    return CreateShipmentRequest(
        ship_from=origin,
        ship_to=destination,
        parcels=(small_parcel, large_parcel),
        service_code="10",
        items=items,
    )


class TestConnection:

    @pytest.mark.asyncio
    async def test_static_token_and_array_probe(self, make_transport, make_shiprocket):
        transport, handler = make_transport({("GET", CHANNELS_PATH): httpx.Response(200, json=[{"id": 1}])})
        carrier = make_shiprocket(transport, {"token": "abc"})

        result = await carrier.test_connection()
        await carrier.close()

        assert result.success is True
        assert result.error is None
        assert handler.calls("POST", LOGIN_PATH) == []

    @pytest.mark.asyncio
    async def test_unexpected_probe_body(self, make_transport, make_shiprocket):
        transport, _ = make_transport({("GET", CHANNELS_PATH): httpx.Response(200, json={"data": None})})
        carrier = make_shiprocket(transport)

        result = await carrier.test_connection()
        await carrier.close()

        assert result.success is False
        assert result.error == "Invalid response from Shiprocket API"

    @pytest.mark.asyncio
    async def test_no_credentials_does_not_raise(self, make_transport, make_shiprocket):
        transport, handler = make_transport({})
        carrier = make_shiprocket(transport, {})

        result = await carrier.test_connection()

        assert result.success is False
        assert "Settings → Shipping Integrations" in result.error
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_login_failure_reported_not_raised(self, make_transport, make_shiprocket):
        transport, _ = make_transport({("POST", LOGIN_PATH): httpx.Response(401, json={"message": "bad"})})
        carrier = make_shiprocket(transport, {"email": "ops@example.in", "password": "wrong"})

        result = await carrier.test_connection()
        await carrier.close()

        assert result.success is False
        assert result.error == "Shiprocket authentication failed"

    @pytest.mark.asyncio
    async def test_concurrent_operations_login_once(self, make_transport, make_shiprocket):
        transport, handler = make_transport({
            ("POST", LOGIN_PATH): httpx.Response(200, json={"token": "tok-1"}),
            ("GET", CHANNELS_PATH): httpx.Response(200, json={"data": []}),
        })
        carrier = make_shiprocket(transport, {"email": "ops@example.in", "password": "s3cret"})

        results = await asyncio.gather(*(carrier.test_connection() for _ in range(5)))
        await carrier.close()

        assert all(result.success for result in results)
        assert len(handler.calls("POST", LOGIN_PATH)) == 1


class TestRates:

    @pytest.mark.asyncio
    async def test_no_credentials_is_config_error(self, make_transport, make_shiprocket, rate_request):
        transport, handler = make_transport({})
        carrier = make_shiprocket(transport, {})

        with pytest.raises(ShippingError) as exc_info:
            await carrier.get_rates(rate_request)

        assert exc_info.value.kind == ErrorKind.CONFIG_ERROR
        assert exc_info.value.provider == "shiprocket"
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_rates_are_mapped(self, make_transport, make_shiprocket, rate_request):
        transport, _ = make_transport({SERVICEABILITY: httpx.Response(200, json=COURIERS)})
        carrier = make_shiprocket(transport)

        rates = await carrier.get_rates(rate_request)
        await carrier.close()

        assert [rate.service_code for rate in rates] == ["10", "51"]
        assert rates[0].service == "Delhivery Surface"
        assert rates[0].amount == 8550
        assert rates[0].currency == "INR"
        assert rates[0].estimated_days == 4
        assert rates[0].provider == "shiprocket"
        assert rates[1].amount == 12025
        assert rates[1].estimated_days == 3

    @pytest.mark.asyncio
    async def test_request_params(self, make_transport, make_shiprocket, rate_request):
        transport, handler = make_transport({SERVICEABILITY: httpx.Response(200, json=COURIERS)})
        carrier = make_shiprocket(transport)

        await carrier.get_rates(rate_request)
        await carrier.close()

        params = handler.calls(*SERVICEABILITY)[0].url.params
        assert params["pickup_postcode"] == "560001"
        assert params["delivery_postcode"] == "700016"
        # 1 kg + 2 kg
        assert float(params["weight"]) == 3.0
        # largest parcel, not the first
        assert float(params["length"]) == 30.0
        assert float(params["breadth"]) == 20.0
        assert float(params["height"]) == 15.0
        assert float(params["declared_value"]) == 100.0
        assert params["cod"] == "0"

    def test_mixed_units_are_converted(self, origin, destination, make_shiprocket, make_transport):
        transport, _ = make_transport({})
        carrier = make_shiprocket(transport)
        request = RateRequest(
            ship_from=origin,
            ship_to=destination,
            parcels=(
                Parcel(length=10, width=10, height=10, weight=500, weight_unit="g"),
                Parcel(length=12, width=10, height=5, weight=2.2046226218, dimension_unit="in", weight_unit="lb"),
            ),
        )

        params = carrier.build_rate_params(request)

        assert params["weight"] == pytest.approx(1.5)
        assert params["length"] == pytest.approx(30.48)
        assert params["height"] == pytest.approx(12.7)

    @pytest.mark.asyncio
    async def test_missing_postal_code_is_validation_error(self, make_transport, make_shiprocket, origin, small_parcel):
        transport, handler = make_transport({})
        carrier = make_shiprocket(transport)
        request = RateRequest(ship_from=origin, ship_to=Address(city="Pune", country="IN"), parcels=(small_parcel,))

        with pytest.raises(ShippingError) as exc_info:
            await carrier.get_rates(request)

        assert exc_info.value.kind == ErrorKind.VALIDATION_ERROR
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_not_serviceable_is_empty(self, make_transport, make_shiprocket, rate_request):
        transport, _ = make_transport({SERVICEABILITY: httpx.Response(200, json={"status": 404, "data": {}})})
        carrier = make_shiprocket(transport)

        assert await carrier.get_rates(rate_request) == []
        await carrier.close()

    @pytest.mark.asyncio
    async def test_server_error_is_retryable(self, make_transport, make_shiprocket, rate_request):
        transport, _ = make_transport({SERVICEABILITY: httpx.Response(503, text="upstream down")})
        carrier = make_shiprocket(transport)

        with pytest.raises(ShippingError) as exc_info:
            await carrier.get_rates(rate_request)
        await carrier.close()

        assert exc_info.value.kind == ErrorKind.TRANSIENT
        assert exc_info.value.retryable is True
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_other_client_error_is_rate_error(self, make_transport, make_shiprocket, rate_request):
        transport, _ = make_transport({SERVICEABILITY: httpx.Response(409, json={"message": "Conflict"})})
        carrier = make_shiprocket(transport)

        with pytest.raises(ShippingError) as exc_info:
            await carrier.get_rates(rate_request)
        await carrier.close()

        assert exc_info.value.kind == ErrorKind.RATE_ERROR
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_unparseable_rate_is_rate_error(self, make_transport, make_shiprocket, rate_request):
        body = {"data": {"available_courier_companies": [
            {"courier_company_id": 10, "courier_name": "Delhivery Surface", "rate": "N/A", "etd": "3 Days"},
        ]}}
        transport, _ = make_transport({SERVICEABILITY: httpx.Response(200, json=body)})
        carrier = make_shiprocket(transport)

        with pytest.raises(ShippingError) as exc_info:
            await carrier.get_rates(rate_request)
        await carrier.close()

        assert exc_info.value.kind == ErrorKind.RATE_ERROR
        assert exc_info.value.provider == "shiprocket"
        assert "N/A" in exc_info.value.message


class TestCreateShipment:

    @pytest.fixture
    def routes(self):
        return {
            CREATE_ORDER: httpx.Response(200, json={"order_id": 111, "shipment_id": 222, "status": "NEW"}),
            ASSIGN_AWB: httpx.Response(200, json={
                "awb_assign_status": 1,
                "response": {"data": {
                    "awb_code": "AWB123",
                    "shipment_id": 222,
                    "courier_company_id": 10,
                    "courier_name": "Delhivery Surface",
                    "courier_charge": 85.5,
                }},
            }),
        }

    @pytest.mark.asyncio
    async def test_create_and_assign(self, make_transport, make_shiprocket, create_request, routes):
        transport, handler = make_transport(routes)
        carrier = make_shiprocket(transport)

        result = await carrier.create_shipment(create_request)
        await carrier.close()

        assert result.id == "shiprocket-111"
        assert result.provider_shipment_id == "111"
        assert result.tracking_number == "AWB123"
        assert result.tracking_url == "https://shiprocket.in/tracking/AWB123"
        assert result.label_url == "https://shiprocket.test/v1/external/courier/generate/label?shipment_id=222"
        assert result.cost.currency == "INR"
        assert result.cost.amount == 8550
        assert result.status == ShipmentStatus.LABEL_CREATED

        assert handler.json_body(*ASSIGN_AWB) == {"shipment_id": "222", "courier_id": "10"}

    @pytest.mark.asyncio
    async def test_created_shipment_can_be_cancelled(self, make_transport, make_shiprocket, create_request, routes):
        routes[CANCEL] = httpx.Response(200, json={"status": 200, "message": "Order cancelled successfully."})
        transport, handler = make_transport(routes)
        carrier = make_shiprocket(transport)

        result = await carrier.create_shipment(create_request)
        cancelled = await carrier.cancel_shipment(
            CancelShipmentRequest(provider_shipment_id=result.provider_shipment_id)
        )
        await carrier.close()

        assert cancelled.success is True
        # order id from create, not the shipment id
        assert handler.json_body(*CANCEL) == {"ids": [111]}

    @pytest.mark.asyncio
    async def test_unparseable_charge_is_create_error(self, make_transport, make_shiprocket, create_request, routes):
        routes[ASSIGN_AWB] = httpx.Response(200, json={
            "awb_assign_status": 1,
            "response": {"data": {"awb_code": "AWB123", "shipment_id": 222, "courier_charge": "N/A"}},
        })
        transport, _ = make_transport(routes)
        carrier = make_shiprocket(transport)

        with pytest.raises(ShippingError) as exc_info:
            await carrier.create_shipment(create_request)
        await carrier.close()

        assert exc_info.value.kind == ErrorKind.CREATE_ERROR

    @pytest.mark.asyncio
    async def test_order_payload(self, make_transport, make_shiprocket, create_request, routes):
        transport, handler = make_transport(routes)
        carrier = make_shiprocket(transport)

        await carrier.create_shipment(create_request)
        await carrier.close()

        payload = handler.json_body(*CREATE_ORDER)
        assert payload["order_id"].startswith("ORDER-")
        assert payload["pickup_location"] == "Primary"
        assert payload["billing_customer_name"] == "Asha Rao"
        assert payload["billing_pincode"] == "700016"
        assert payload["billing_phone"] == "9876543210"
        assert payload["payment_method"] == "Prepaid"
        assert payload["weight"] == 3.0
        assert payload["length"] == 30.0
        assert payload["sub_total"] == 1010.5
        assert [item["selling_price"] for item in payload["order_items"]] == [499.0, 12.5]
        assert [item["units"] for item in payload["order_items"]] == [2, 1]

    def test_placeholders_only_when_missing(self, make_transport, make_shiprocket, origin, small_parcel, caplog):
        transport, _ = make_transport({})
        carrier = make_shiprocket(transport)
        request = CreateShipmentRequest(
            ship_from=origin,
            ship_to=Address(address1="1 Lake Rd", city="Pune", state="MH", postal_code="411001", country="IN"),
            parcels=(small_parcel,),
            service_code="10",
        )

        with caplog.at_level("INFO"):
            payload = carrier.build_order_payload(request, order_id="ORDER-1")

        assert payload["billing_phone"] == PLACEHOLDER_BUYER_PHONE
        assert payload["billing_email"] == "customer@example.com"
        assert payload["billing_customer_name"] == "Customer"
        assert payload["order_items"][0]["selling_price"] == 100.0
        assert "placeholder buyer phone" in caplog.text

    @pytest.mark.asyncio
    async def test_rejected_order_is_create_error(self, make_transport, make_shiprocket, create_request):
        transport, handler = make_transport({CREATE_ORDER: httpx.Response(200, json={"message": "Pickup location missing"})})
        carrier = make_shiprocket(transport)

        with pytest.raises(ShippingError) as exc_info:
            await carrier.create_shipment(create_request)
        await carrier.close()

        assert exc_info.value.kind == ErrorKind.CREATE_ERROR
        assert handler.calls(*ASSIGN_AWB) == []

    @pytest.mark.asyncio
    async def test_invalid_payload_is_validation_error(self, make_transport, make_shiprocket, create_request):
        transport, _ = make_transport({CREATE_ORDER: httpx.Response(422, json={"message": "Invalid pincode"})})
        carrier = make_shiprocket(transport)

        with pytest.raises(ShippingError) as exc_info:
            await carrier.create_shipment(create_request)
        await carrier.close()

        assert exc_info.value.kind == ErrorKind.VALIDATION_ERROR
        assert exc_info.value.message == "Invalid pincode"

    @pytest.mark.asyncio
    async def test_awb_and_order_numbers_survive_in_message(self, make_transport, make_shiprocket, create_request, caplog):
        text = "AWB 1234567890 is already assigned to order 700016"
        transport, _ = make_transport({CREATE_ORDER: httpx.Response(400, json={"message": text})})
        carrier = make_shiprocket(transport)

        with caplog.at_level("ERROR"), pytest.raises(ShippingError) as exc_info:
            await carrier.create_shipment(create_request)
        await carrier.close()

        assert exc_info.value.message == text
        assert "1234567890" not in caplog.text
        assert "700016" not in caplog.text


class TestTracking:

    @pytest.mark.asyncio
    async def test_events_most_recent_first(self, make_transport, make_shiprocket):
        transport, _ = make_transport({("GET", f"{TRACK_AWB_PATH}/AWB123"): httpx.Response(200, json=TRACKING)})
        carrier = make_shiprocket(transport)

        result = await carrier.get_tracking(TrackingRequest(tracking_number="AWB123"))
        await carrier.close()

        assert result.tracking_number == "AWB123"
        assert result.status == ShipmentStatus.IN_TRANSIT
        assert [event.description for event in result.events] == [
            "Out For Delivery",
            "In Transit - Hub",
            "Picked Up",
        ]
        timestamps = [event.timestamp for event in result.events]
        assert timestamps == sorted(timestamps, reverse=True)
        assert result.events[-1].status == ShipmentStatus.PICKED_UP
        assert result.events[-1].code == "PICKED UP"
        assert result.events[0].location == "Kolkata"
        assert result.estimated_delivery == datetime(2024, 6, 4, 18, 0, tzinfo=SHIPROCKET_TZ)
        assert result.actual_delivery is None

    @pytest.mark.asyncio
    async def test_events_sorted_whatever_the_source_order(self, make_transport, make_shiprocket):
        body = {"tracking_data": {
            "track_status": 1,
            "shipment_track": [{"awb_code": "AWB123", "current_status": "In Transit"}],
            "shipment_track_activities": [
                {"date": "2024-06-03 08:00:00", "activity": "Out For Delivery"},
                {"date": "2024-06-02 09:30:00", "activity": "In Transit - Hub"},
                {"date": "garbage", "activity": "Scan"},
                {"date": "2024-06-01 10:00:00", "activity": "Picked Up"},
            ],
        }}
        transport, _ = make_transport({("GET", f"{TRACK_AWB_PATH}/AWB123"): httpx.Response(200, json=body)})
        carrier = make_shiprocket(transport)

        result = await carrier.get_tracking(TrackingRequest(tracking_number="AWB123"))
        await carrier.close()

        assert [event.description for event in result.events] == [
            "Out For Delivery",
            "In Transit - Hub",
            "Picked Up",
            "Scan",
        ]
        assert result.events[-1].timestamp is None

    @pytest.mark.asyncio
    async def test_unknown_awb_is_track_error(self, make_transport, make_shiprocket):
        transport, _ = make_transport({
            ("GET", f"{TRACK_AWB_PATH}/MISSING"): httpx.Response(200, json={"tracking_data": None}),
        })
        carrier = make_shiprocket(transport)

        with pytest.raises(ShippingError) as exc_info:
            await carrier.get_tracking(TrackingRequest(tracking_number="MISSING"))
        await carrier.close()

        assert exc_info.value.kind == ErrorKind.TRACK_ERROR

    def test_tracking_url(self, make_transport, make_shiprocket):
        transport, _ = make_transport({})
        carrier = make_shiprocket(transport)
        assert carrier.get_tracking_url("AWB9") == "https://shiprocket.in/tracking/AWB9"


class TestCancel:

    @pytest.mark.asyncio
    async def test_cancel_success(self, make_transport, make_shiprocket):
        transport, handler = make_transport({
            CANCEL: httpx.Response(200, json={"status": 200, "message": "Order cancelled successfully."}),
        })
        carrier = make_shiprocket(transport)

        result = await carrier.cancel_shipment(CancelShipmentRequest(provider_shipment_id="111"))
        await carrier.close()

        assert result.success is True
        assert handler.json_body(*CANCEL) == {"ids": [111]}

    @pytest.mark.asyncio
    async def test_not_cancellable_is_reported(self, make_transport, make_shiprocket):
        transport, _ = make_transport({
            CANCEL: httpx.Response(400, json={"message": "Order can not be cancelled as it is already delivered"}),
        })
        carrier = make_shiprocket(transport)

        result = await carrier.cancel_shipment(CancelShipmentRequest(provider_shipment_id="111"))
        await carrier.close()

        assert result.success is False
        assert "already delivered" in result.error

    @pytest.mark.asyncio
    async def test_never_raises(self, make_transport, make_shiprocket):
        def boom(request):
            raise httpx.ConnectError("refused", request=request)

        transport, _ = make_transport({CANCEL: boom})
        carrier = make_shiprocket(transport)

        network = await carrier.cancel_shipment(CancelShipmentRequest(provider_shipment_id="111"))
        bad_id = await carrier.cancel_shipment(CancelShipmentRequest(provider_shipment_id="shiprocket-abc"))
        no_creds = await ShiprocketCarrier({}).cancel_shipment(CancelShipmentRequest(provider_shipment_id="1"))
        await carrier.close()

        assert network.success is False
        assert bad_id.success is False
        assert no_creds.success is False
