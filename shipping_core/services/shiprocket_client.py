"""
Shiprocket API Client

Implements Shiprocket login and the core shipping APIs:
- Channels (connectivity probe)
- Courier serviceability (rate quotes)
- Ad-hoc order creation + AWB assignment
- AWB tracking
- Order cancellation

This module speaks Shiprocket's wire format only. Translation to and from
the canonical model lives in ShiprocketCarrier.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx

from shipping_core.core.auth import Credential, TokenAuthenticator, build_credential
from shipping_core.core.exceptions import ErrorKind, ShippingError
from shipping_core.core.utils import as_list
from shipping_core.models.carrier import CarrierConfig
from shipping_core.utils.sanitizer import sanitize_for_logging

logger = logging.getLogger(__name__)

PROVIDER = "shiprocket"

# Shiprocket API URLs
SHIPROCKET_BASE_URL = "https://apiv2.shiprocket.in"

# Auth endpoint
LOGIN_PATH = "/v1/external/auth/login"

# API endpoints
CHANNELS_PATH = "/v1/external/channels"
SERVICEABILITY_PATH = "/v1/external/courier/serviceability/"
CREATE_ORDER_PATH = "/v1/external/orders/create/adhoc"
ASSIGN_AWB_PATH = "/v1/external/courier/assign/awb"
TRACK_AWB_PATH = "/v1/external/courier/track/awb"
CANCEL_ORDERS_PATH = "/v1/external/orders/cancel"
LABEL_PATH = "/v1/external/courier/generate/label"

# Shiprocket reports times in IST without an offset
SHIPROCKET_TZ = timezone(timedelta(hours=5, minutes=30), name="IST")

_DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%d %b %Y %H:%M:%S",
    "%b %d, %Y",
)

_ETD_DAYS_RE = re.compile(r"^\s*(\d+)(?:\s*-\s*\d+)?\s*days?\b", re.IGNORECASE)


@dataclass
class ShiprocketCredentials:
    """Either a pre-issued token, or email + password to log in with."""
    email: str = ""
    password: str = ""
    token: str = ""

    @classmethod
    def from_mapping(cls, credentials: Dict[str, Any]) -> "ShiprocketCredentials":
        return cls(
            email=str(credentials.get("email") or ""),
            password=str(credentials.get("password") or ""),
            token=str(credentials.get("token") or ""),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.token or (self.email and self.password))


@dataclass
class ShiprocketCourierRate:
    """One courier option from the serviceability API."""
    courier_company_id: str
    courier_name: str
    rate: Any  # major units, as sent
    etd: Optional[str] = None
    estimated_delivery_days: Optional[int] = None
    freight_charge: Any = None
    cod_charges: Any = None

    @property
    def estimated_days(self) -> Optional[int]:
        if self.estimated_delivery_days is not None:
            return self.estimated_delivery_days
        return parse_etd_days(self.etd)


@dataclass
class ShiprocketOrder:
    """Result of ad-hoc order creation."""
    order_id: str
    shipment_id: str
    status: str = ""
    raw_response: Dict = field(default_factory=dict)


@dataclass
class ShiprocketAWBAssignment:
    """Result of assigning a courier/AWB to a shipment."""
    shipment_id: str
    awb_code: str
    courier_company_id: Optional[str] = None
    courier_name: Optional[str] = None
    courier_charge: Any = None
    raw_response: Dict = field(default_factory=dict)


@dataclass
class ShiprocketTrackingActivity:
    """One scan event."""
    status: str
    date: Optional[datetime]
    location: str = ""
    status_label: Optional[str] = None


@dataclass
class ShiprocketTracking:
    """Tracking data for one AWB. activities are in the order Shiprocket sent them."""
    awb: str
    current_status: str
    activities: List[ShiprocketTrackingActivity] = field(default_factory=list)
    etd: Optional[datetime] = None
    delivered_date: Optional[datetime] = None
    track_url: Optional[str] = None


class ShiprocketAPIError(Exception):
    """Shiprocket API error with details."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[Dict] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details or {}
        super().__init__(message)


def parse_shiprocket_datetime(value: Any) -> Optional[datetime]:
    """Parse Shiprocket's assorted date formats; naive values are IST."""
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if not text or text.upper() in ("NA", "N/A", "NULL"):
        return None

    parsed: Optional[datetime] = None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        for fmt in _DATETIME_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=SHIPROCKET_TZ)
    return parsed


def parse_etd_days(etd: Optional[str]) -> Optional[int]:
    """'3-4 Days' -> 3. Calendar dates and free text -> None."""
    if not etd:
        return None
    match = _ETD_DAYS_RE.match(str(etd))
    return int(match.group(1)) if match else None


def _optional_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


class ShiprocketClient:
    """
    Shiprocket API client with bearer token authentication.

    Owns its TokenAuthenticator; every data call goes through
    ensure_authenticated() first.
    """

    def __init__(
        self,
        credentials: ShiprocketCredentials,
        config: Optional[CarrierConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.credentials = credentials
        self.config = config or CarrierConfig()
        self.base_url = self.config.resolve_base_url(SHIPROCKET_BASE_URL)
        self.authenticator = TokenAuthenticator(PROVIDER, self._login)
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.config.timeout_seconds),
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._http_client

    async def close(self):
        """Close HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    # ==================== Authentication ====================

    async def _login(self) -> Credential:
        """Obtain a token: accept the static one, or exchange email/password."""
        ttl = self.config.token_ttl_seconds
        margin = self.config.token_refresh_margin_seconds

        if self.credentials.token:
            return build_credential(self.credentials.token, ttl, margin)

        if not (self.credentials.email and self.credentials.password):
            raise ShippingError.for_kind(
                ErrorKind.AUTH_ERROR,
                "Missing Shiprocket email/password or token. Add Shiprocket API "
                "credentials in Settings → Shipping Integrations.",
                PROVIDER,
            )

        client = await self._get_http_client()
        try:
            response = await client.post(
                LOGIN_PATH,
                json={"email": self.credentials.email, "password": self.credentials.password},
            )
        except httpx.TimeoutException:
            logger.error("Shiprocket login timed out")
            raise ShippingError.for_kind(ErrorKind.TRANSIENT, "Shiprocket login timed out", PROVIDER)
        except httpx.RequestError as e:
            logger.error(f"Shiprocket login request failed: {e.__class__.__name__}")
            raise ShippingError.for_kind(
                ErrorKind.TRANSIENT,
                f"Network error during Shiprocket authentication: {e.__class__.__name__}",
                PROVIDER,
            )

        if not response.is_success:
            logger.error(
                f"Shiprocket login failed: {response.status_code} - "
                f"{sanitize_for_logging(response.text, 200)}"
            )
            raise ShippingError.for_kind(
                ErrorKind.AUTH_ERROR,
                "Shiprocket authentication failed",
                PROVIDER,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            data = {}
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise ShippingError.for_kind(
                ErrorKind.AUTH_ERROR,
                "No token received from Shiprocket",
                PROVIDER,
                status_code=response.status_code,
            )

        return build_credential(token, ttl, margin)

    # ==================== Transport ====================

    async def _make_request(
        self,
        method: str,
        path: str,
        data: Optional[Dict] = None,
        params: Optional[Dict] = None,
    ) -> Any:
        """Make authenticated API request."""
        token = await self.authenticator.ensure_authenticated()
        client = await self._get_http_client()

        response = await client.request(
            method.upper(),
            path,
            headers={"Authorization": f"Bearer {token}"},
            json=data,
            params=params,
        )

        logger.debug(f"Shiprocket API {method.upper()} {path} -> {response.status_code}")

        if response.status_code >= 400:
            if response.status_code == 401:
                # Token revoked or expired early; log in again next time
                self.authenticator.invalidate()

            error_data: Any = {}
            try:
                error_data = response.json()
            except ValueError:
                error_data = {"raw": response.text[:500]}

            error_msg = f"HTTP {response.status_code}"
            if isinstance(error_data, dict) and error_data.get("message"):
                error_msg = str(error_data["message"])

            logger.error(f"Shiprocket API error: {response.status_code} - {sanitize_for_logging(error_msg)}")
            raise ShiprocketAPIError(
                message=error_msg[:500],
                status_code=response.status_code,
                code=str(response.status_code),
                details={"path": path},
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            raise ShiprocketAPIError(
                message="Invalid JSON response from Shiprocket",
                status_code=response.status_code,
                details={"path": path},
            )

    # ==================== Connectivity ====================

    async def list_channels(self) -> Any:
        """GET the channel list; used as a cheap authenticated probe."""
        return await self._make_request("GET", CHANNELS_PATH)

    # ==================== Rating ====================

    async def get_courier_rates(self, params: Dict[str, Any]) -> List[ShiprocketCourierRate]:
        """
        Query courier serviceability for a route.

        Returns:
            Courier options; empty when the route is not serviceable
        """
        try:
            response = await self._make_request("GET", SERVICEABILITY_PATH, params=params)
        except ShiprocketAPIError as e:
            if e.status_code == 404:
                logger.info("Shiprocket: route not serviceable")
                return []
            raise

        data = response.get("data") if isinstance(response, dict) else None
        companies = data.get("available_courier_companies") if isinstance(data, dict) else None
        if not companies:
            return []

        rates = []
        for courier in as_list(companies):
            rates.append(ShiprocketCourierRate(
                courier_company_id=str(courier.get("courier_company_id", "")),
                courier_name=courier.get("courier_name", ""),
                rate=courier.get("rate", 0),
                etd=courier.get("etd"),
                estimated_delivery_days=_optional_int(courier.get("estimated_delivery_days")),
                freight_charge=courier.get("freight_charge"),
                cod_charges=courier.get("cod_charges"),
            ))
        return rates

    # ==================== Shipping ====================

    async def create_adhoc_order(self, payload: Dict[str, Any]) -> ShiprocketOrder:
        """Create an order without a sales channel."""
        response = await self._make_request("POST", CREATE_ORDER_PATH, data=payload)

        if not isinstance(response, dict) or not response.get("order_id"):
            raise ShippingError.for_kind(
                ErrorKind.CREATE_ERROR,
                "Failed to create order with Shiprocket",
                PROVIDER,
            )

        return ShiprocketOrder(
            order_id=str(response["order_id"]),
            shipment_id=str(response.get("shipment_id") or ""),
            status=str(response.get("status") or ""),
            raw_response=response,
        )

    async def assign_awb(self, shipment_id: str, courier_id: str) -> ShiprocketAWBAssignment:
        """Assign a courier and AWB to a shipment."""
        payload = {"shipment_id": shipment_id, "courier_id": courier_id}
        response = await self._make_request("POST", ASSIGN_AWB_PATH, data=payload)

        if not isinstance(response, dict) or response.get("awb_assign_status") != 1:
            message = response.get("message") if isinstance(response, dict) else None
            raise ShippingError.for_kind(
                ErrorKind.CREATE_ERROR,
                f"Failed to assign AWB for shipment {shipment_id}"
                + (f": {str(message)[:200]}" if message else ""),
                PROVIDER,
            )

        data = (response.get("response") or {}).get("data") or {}
        awb_code = data.get("awb_code")
        if not awb_code:
            raise ShippingError.for_kind(
                ErrorKind.CREATE_ERROR,
                f"Shiprocket assigned no AWB for shipment {shipment_id}",
                PROVIDER,
            )

        return ShiprocketAWBAssignment(
            shipment_id=str(data.get("shipment_id") or shipment_id),
            awb_code=str(awb_code),
            courier_company_id=str(data.get("courier_company_id") or courier_id),
            courier_name=data.get("courier_name"),
            courier_charge=data.get("courier_charge"),
            raw_response=response,
        )

    def label_url(self, shipment_id: str) -> str:
        return f"{self.base_url}{LABEL_PATH}?shipment_id={shipment_id}"

    # ==================== Tracking ====================

    async def track_awb(self, awb: str) -> ShiprocketTracking:
        """
        Get tracking data for an AWB.

        Raises:
            ShippingError(TRACK_ERROR) when Shiprocket has nothing for it
        """
        response = await self._make_request("GET", f"{TRACK_AWB_PATH}/{awb}")

        tracking_data = response.get("tracking_data") if isinstance(response, dict) else None
        if not tracking_data:
            raise ShippingError.for_kind(
                ErrorKind.TRACK_ERROR,
                f"No tracking data found for {awb}",
                PROVIDER,
            )

        shipment_track = as_list(tracking_data.get("shipment_track"))
        raw_activities = tracking_data.get("shipment_track_activities")
        if raw_activities is None:
            raw_activities = shipment_track

        if tracking_data.get("error") and not raw_activities:
            raise ShippingError.for_kind(
                ErrorKind.TRACK_ERROR,
                str(tracking_data["error"])[:200],
                PROVIDER,
            )

        activities = []
        for activity in as_list(raw_activities):
            activities.append(ShiprocketTrackingActivity(
                status=str(
                    activity.get("activity")
                    or activity.get("current_status")
                    or activity.get("status")
                    or ""
                ),
                date=parse_shiprocket_datetime(activity.get("date") or activity.get("updated_time_stamp")),
                location=activity.get("location") or "",
                status_label=activity.get("sr-status-label") or activity.get("sr_status_label"),
            ))

        first_track = shipment_track[0] if shipment_track else {}
        current_status = (
            first_track.get("current_status")
            or tracking_data.get("shipment_status_label")
            or str(tracking_data.get("track_status") or "")
        )

        return ShiprocketTracking(
            awb=awb,
            current_status=str(current_status),
            activities=activities,
            etd=parse_shiprocket_datetime(tracking_data.get("etd") or first_track.get("edd")),
            delivered_date=parse_shiprocket_datetime(
                tracking_data.get("delivered_date") or first_track.get("delivered_date")
            ),
            track_url=tracking_data.get("track_url"),
        )

    # ==================== Cancellation ====================

    async def cancel_orders(self, order_ids: List[int]) -> Dict[str, Any]:
        """Cancel one or more orders. Returns Shiprocket's response body."""
        response = await self._make_request("POST", CANCEL_ORDERS_PATH, data={"ids": order_ids})
        return response if isinstance(response, dict) else {}
