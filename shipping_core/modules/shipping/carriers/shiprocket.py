"""
Shiprocket Carrier Implementation v1.0.0

- Implements BaseCarrier interface
- Wraps ShiprocketClient for the wire calls
- Registered via @register_carrier decorator

Shiprocket quotes and bills in INR, takes one package size per order
(we send the largest parcel) and one total weight in kg.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx

from shipping_core.core.exceptions import ErrorKind, ShippingError
from shipping_core.models.carrier import CarrierCode, CarrierConfig
from shipping_core.models.shipment import DimensionUnit, ShipmentStatus, WeightUnit
from shipping_core.modules.shipping.carriers import register_carrier
from shipping_core.modules.shipping.carriers.base import (
    BaseCarrier,
    CancelShipmentRequest,
    CreateShipmentRequest,
    OperationResult,
    Parcel,
    RateRequest,
    ShipmentCost,
    ShipmentItem,
    ShipmentResult,
    ShippingRate,
    TrackingEvent,
    TrackingRequest,
    TrackingResult,
    declared_value,
    largest_parcel,
    total_weight,
)
from shipping_core.modules.shipping.carriers.status import StatusRule
from shipping_core.services.shiprocket_client import (
    ShiprocketAPIError,
    ShiprocketClient,
    ShiprocketCredentials,
    ShiprocketTracking,
)
from shipping_core.utils.sanitizer import sanitize_for_logging
from shipping_core.utils.units import to_major_units, to_minor_units

logger = logging.getLogger(__name__)

SHIPROCKET_CURRENCY = "INR"

# Shiprocket status vocabulary, most committal first
SHIPROCKET_STATUS_RULES: Tuple[StatusRule, ...] = (
    StatusRule("delivered", ShipmentStatus.DELIVERED),
    StatusRule("out for delivery", ShipmentStatus.IN_TRANSIT),
    StatusRule("in transit", ShipmentStatus.IN_TRANSIT),
    StatusRule("picked", ShipmentStatus.PICKED_UP),
    StatusRule("dispatched", ShipmentStatus.PICKED_UP),
    StatusRule("manifested", ShipmentStatus.LABEL_CREATED),
    StatusRule("ready", ShipmentStatus.LABEL_CREATED),
    StatusRule("cancel", ShipmentStatus.CANCELLED),
    StatusRule("exception", ShipmentStatus.EXCEPTION),
    StatusRule("rto", ShipmentStatus.EXCEPTION),
    StatusRule("lost", ShipmentStatus.EXCEPTION),
    StatusRule("damaged", ShipmentStatus.EXCEPTION),
)

# Placeholders for fields Shiprocket requires but the caller may not have.
# Only used when the caller supplied nothing; always logged.
PLACEHOLDER_BUYER_NAME = "Customer"
PLACEHOLDER_BUYER_PHONE = "9999999999"
PLACEHOLDER_BUYER_EMAIL = "customer@example.com"
PLACEHOLDER_ITEM = ShipmentItem(value=10000, quantity=1, sku="DEFAULT-SKU", name="Package")

# Declared value when no items are supplied for a rate quote (minor units)
DEFAULT_DECLARED_VALUE = 10000

DEFAULT_ORDER_COMMENT = "Shipment via shipping-core"


def _payload_number(value: float, places: int = 2) -> float:
    return round(float(value), places)


@register_carrier(CarrierCode.SHIPROCKET)
class ShiprocketCarrier(BaseCarrier):
    """
    Shiprocket shipping carrier implementation.

    Credentials: {"token": ...} or {"email": ..., "password": ...}
    """

    status_rules = SHIPROCKET_STATUS_RULES

    def __init__(
        self,
        credentials: Optional[Mapping[str, Any]] = None,
        config: Optional[CarrierConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(credentials, config)
        self._shiprocket_credentials = ShiprocketCredentials.from_mapping(self._credentials)
        self._client = ShiprocketClient(self._shiprocket_credentials, self._config, transport=transport)

    @property
    def carrier_code(self) -> CarrierCode:
        return CarrierCode.SHIPROCKET

    @property
    def carrier_name(self) -> str:
        return "Shiprocket"

    @property
    def client(self) -> ShiprocketClient:
        return self._client

    async def close(self) -> None:
        await self._client.close()

    def _require_configured(self) -> None:
        if not self._shiprocket_credentials.is_configured:
            raise self.error(
                ErrorKind.CONFIG_ERROR,
                f"{self.not_configured_message()} Provide either a token or email and password.",
            )

    def normalize_error(
        self,
        raw: BaseException,
        fallback_kind: ErrorKind = ErrorKind.UNKNOWN,
    ) -> ShippingError:
        """Shiprocket uses 422 for payload validation and 429 for throttling."""
        if isinstance(raw, ShiprocketAPIError):
            if raw.status_code in (400, 422):
                return self.error(
                    ErrorKind.VALIDATION_ERROR,
                    raw.message,
                    status_code=raw.status_code,
                )
            if raw.status_code == 429:
                return self.error(
                    ErrorKind.TRANSIENT,
                    "Shiprocket rate limit reached",
                    status_code=raw.status_code,
                )
        return super().normalize_error(raw, fallback_kind)

    # ==================== Connection ====================

    async def test_connection(self) -> OperationResult:
        """Authenticate, then list channels as a probe."""
        try:
            self._require_configured()
            response = await self._client.list_channels()
        except Exception as e:
            error = self.normalize_error(e)
            logger.warning(f"Shiprocket connection test failed: {error.kind.value} - {sanitize_for_logging(error.message)}")
            return OperationResult.failed(error.message)

        channels = response.get("data") if isinstance(response, dict) else response
        if isinstance(channels, list):
            return OperationResult.ok()
        return OperationResult.failed("Invalid response from Shiprocket API")

    # ==================== Rating ====================

    def _package_fields(self, parcels: Tuple[Parcel, ...]) -> Dict[str, float]:
        """Total weight in kg, plus the dimensions of the largest parcel in cm."""
        parcel = largest_parcel(parcels)

        def cm(value: float) -> float:
            return _payload_number(self.convert_dimensions(value, parcel.dimension_unit, DimensionUnit.CM))

        return {
            "weight": _payload_number(total_weight(parcels, WeightUnit.KG), 3),
            "length": cm(parcel.length),
            "breadth": cm(parcel.width),
            "height": cm(parcel.height),
        }

    def build_rate_params(self, request: RateRequest) -> Dict[str, Any]:
        ship_from = request.ship_from.formatted()
        ship_to = request.ship_to.formatted()
        value = declared_value(request.items) if request.items else DEFAULT_DECLARED_VALUE

        params: Dict[str, Any] = {
            "pickup_postcode": ship_from.postal_code,
            "delivery_postcode": ship_to.postal_code,
            "declared_value": float(to_major_units(value)),
            "cod": 0,  # prepaid only
        }
        params.update(self._package_fields(request.parcels))
        return params

    async def get_rates(self, request: RateRequest) -> List[ShippingRate]:
        """Get courier options from Shiprocket serviceability."""
        self._require_configured()
        self.validate_addresses(request.ship_from, request.ship_to)

        try:
            couriers = await self._client.get_courier_rates(self.build_rate_params(request))
            rates = [
                ShippingRate(
                    service=courier.courier_name,
                    service_code=courier.courier_company_id,
                    currency=SHIPROCKET_CURRENCY,
                    amount=to_minor_units(courier.rate),
                    estimated_days=courier.estimated_days,
                    provider=self.provider,
                )
                for courier in couriers
            ]
        except Exception as e:
            error = self.normalize_error(e, ErrorKind.RATE_ERROR)
            logger.error(f"Shiprocket get rates error: {error.kind.value} - {sanitize_for_logging(error.message)}")
            raise error from e

        logger.info(f"Shiprocket returned {len(rates)} courier option(s)")
        return rates

    # ==================== Shipping ====================

    def build_order_payload(
        self,
        request: CreateShipmentRequest,
        order_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Build the ad-hoc order body for a CreateShipmentRequest."""
        ship_to = request.ship_to.formatted()
        now = now or datetime.now(timezone.utc)
        order_id = order_id or f"ORDER-{int(time.time() * 1000)}"

        items = request.items or (PLACEHOLDER_ITEM,)
        if not request.items:
            logger.info(f"Shiprocket order {order_id}: no items supplied, using placeholder item")

        buyer_name = ship_to.name
        buyer_phone = ship_to.phone
        buyer_email = ship_to.email
        if not buyer_name:
            buyer_name = PLACEHOLDER_BUYER_NAME
            logger.info(f"Shiprocket order {order_id}: using placeholder buyer name")
        if not buyer_phone:
            buyer_phone = PLACEHOLDER_BUYER_PHONE
            logger.info(f"Shiprocket order {order_id}: using placeholder buyer phone")
        if not buyer_email:
            buyer_email = PLACEHOLDER_BUYER_EMAIL
            logger.info(f"Shiprocket order {order_id}: using placeholder buyer email")

        payload: Dict[str, Any] = {
            "order_id": order_id,
            "order_date": now.strftime("%Y-%m-%d %H:%M"),
            "pickup_location": self._config.pickup_location,
            "channel_id": "",
            "comment": request.description or request.reference or DEFAULT_ORDER_COMMENT,
            "billing_customer_name": buyer_name,
            "billing_last_name": "",
            "billing_address": ship_to.address1,
            "billing_address_2": ship_to.address2 or "",
            "billing_city": ship_to.city,
            "billing_pincode": ship_to.postal_code,
            "billing_state": ship_to.state,
            "billing_country": ship_to.country,
            "billing_email": buyer_email,
            "billing_phone": buyer_phone,
            "shipping_is_billing": True,
            "order_items": [
                {
                    "name": item.name or item.sku or "Item",
                    "sku": item.sku or "DEFAULT-SKU",
                    "units": item.quantity,
                    "selling_price": float(to_major_units(item.value)),
                    "discount": 0,
                    "tax": 0,
                    "hsn": 0,
                }
                for item in items
            ],
            "payment_method": "Prepaid",
            "sub_total": float(to_major_units(declared_value(items))),
        }
        if ship_to.company:
            payload["billing_company_name"] = ship_to.company
        payload.update(self._package_fields(request.parcels))
        return payload

    async def create_shipment(self, request: CreateShipmentRequest) -> ShipmentResult:
        """
        Create an ad-hoc order, then assign the chosen courier's AWB.

        request.service_code is the courier_company_id from get_rates().
        """
        self._require_configured()
        self.validate_addresses(request.ship_from, request.ship_to)

        try:
            order = await self._client.create_adhoc_order(self.build_order_payload(request))
            if not order.shipment_id:
                raise self.error(
                    ErrorKind.CREATE_ERROR,
                    f"Shiprocket created order {order.order_id} without a shipment id",
                )
            assignment = await self._client.assign_awb(order.shipment_id, request.service_code)
            cost = ShipmentCost(
                currency=SHIPROCKET_CURRENCY,
                amount=to_minor_units(assignment.courier_charge or 0),
            )
        except Exception as e:
            error = self.normalize_error(e, ErrorKind.CREATE_ERROR)
            logger.error(f"Shiprocket create shipment error: {error.kind.value} - {sanitize_for_logging(error.message)}")
            raise error from e

        logger.info(
            f"Shiprocket order {order.order_id} / shipment {assignment.shipment_id} "
            f"created with AWB {assignment.awb_code}"
        )

        # Cancellation is by order id, so that is the id callers keep
        return ShipmentResult(
            id=f"{self.provider}-{order.order_id}",
            provider_shipment_id=order.order_id,
            tracking_number=assignment.awb_code,
            tracking_url=self.get_tracking_url(assignment.awb_code),
            label_url=self._client.label_url(assignment.shipment_id),
            cost=cost,
            status=ShipmentStatus.LABEL_CREATED,
        )

    # ==================== Tracking ====================

    def _tracking_events(self, tracking: ShiprocketTracking) -> Tuple[TrackingEvent, ...]:
        """
        Normalize scan events, most recent first.

        Dated events are sorted newest first whatever order Shiprocket
        sent them in. Undated ones follow, in reversed source order.
        """
        events = [
            TrackingEvent(
                timestamp=activity.date,
                status=self.map_status(activity.status),
                location=activity.location or None,
                description=activity.status or "No description",
                code=activity.status_label,
            )
            for activity in tracking.activities
        ]
        events.reverse()

        dated = [event for event in events if event.timestamp is not None]
        undated = [event for event in events if event.timestamp is None]
        dated.sort(key=lambda event: event.timestamp, reverse=True)
        return tuple(dated + undated)

    async def get_tracking(self, request: TrackingRequest) -> TrackingResult:
        """Get tracking information for an AWB."""
        self._require_configured()

        try:
            tracking = await self._client.track_awb(request.tracking_number)
        except Exception as e:
            error = self.normalize_error(e, ErrorKind.TRACK_ERROR)
            logger.error(f"Shiprocket tracking error: {error.kind.value} - {sanitize_for_logging(error.message)}")
            raise error from e

        events = self._tracking_events(tracking)
        status = self.map_status(tracking.current_status)
        if not tracking.current_status and events:
            status = events[0].status

        return TrackingResult(
            tracking_number=request.tracking_number,
            status=status,
            events=events,
            estimated_delivery=tracking.etd,
            actual_delivery=tracking.delivered_date,
        )

    # ==================== Cancellation ====================

    async def cancel_shipment(self, request: CancelShipmentRequest) -> OperationResult:
        """Best-effort cancel; never raises."""
        try:
            self._require_configured()
            shipment_id = int(str(request.provider_shipment_id).strip())
        except ShippingError as e:
            return OperationResult.failed(e.message)
        except ValueError:
            return OperationResult.failed(
                f"Invalid Shiprocket shipment id: {request.provider_shipment_id!r}"
            )

        try:
            response = await self._client.cancel_orders([shipment_id])
        except Exception as e:
            error = self.normalize_error(e)
            logger.warning(f"Shiprocket cancel {shipment_id} failed: {error.kind.value} - {sanitize_for_logging(error.message)}")
            return OperationResult.failed(error.message)

        message = str(response.get("message") or "")
        if "cancelled" in message.lower() and "not" not in message.lower():
            logger.info(f"Shiprocket shipment {shipment_id} cancelled")
            return OperationResult.ok()

        logger.warning(f"Shiprocket cancel {shipment_id} returned: {message or 'no message'}")
        return OperationResult.failed(message or "Failed to cancel shipment")

    def get_tracking_url(self, tracking_number: str) -> str:
        """Get public Shiprocket tracking URL."""
        return f"https://shiprocket.in/tracking/{tracking_number}"
