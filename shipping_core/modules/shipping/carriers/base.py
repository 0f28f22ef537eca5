"""
Base Carrier Interface v1.0.0

- All carriers implement this interface
- Canonical request/result types shared by every carrier
- Provider-agnostic helpers (unit conversion, parcel aggregation,
  error normalization, credential checks) live on BaseCarrier so each
  carrier only writes its own wire translation
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from shipping_core.core.exceptions import ErrorKind, ShippingError, normalize_error
from shipping_core.models.carrier import CarrierCode, CarrierConfig
from shipping_core.models.shipment import DimensionUnit, ShipmentStatus, WeightUnit
from shipping_core.modules.shipping.carriers.status import StatusRule, match_status
from shipping_core.utils.units import convert_dimensions, convert_weight

logger = logging.getLogger(__name__)

# Where operators fix missing credentials
CREDENTIALS_LOCATION = "Settings → Shipping Integrations"


# =============================================================================
# Carrier-Agnostic Data Classes
# =============================================================================

@dataclass(frozen=True)
class Address:
    """Postal address. postal_code and country are required to rate or ship."""
    address1: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""  # ISO 3166-1 alpha-2
    name: Optional[str] = None
    company: Optional[str] = None
    address2: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    def formatted(self) -> "Address":
        """Copy with upper-case country and no spaces in the postal code."""
        return replace(
            self,
            country=(self.country or "").strip().upper(),
            postal_code="".join((self.postal_code or "").split()),
        )


@dataclass(frozen=True)
class Parcel:
    """Package dimensions and weight, in the units given."""
    length: float
    width: float
    height: float
    weight: float
    dimension_unit: DimensionUnit = DimensionUnit.CM
    weight_unit: WeightUnit = WeightUnit.KG

    def __post_init__(self):
        # Accept "cm" / "lb" etc.
        object.__setattr__(self, "dimension_unit", DimensionUnit(self.dimension_unit))
        object.__setattr__(self, "weight_unit", WeightUnit(self.weight_unit))
        for name in ("length", "width", "height", "weight"):
            value = getattr(self, name)
            if value is None or value <= 0:
                raise ValueError(f"Parcel {name} must be positive, got {value!r}")

    @property
    def volume(self) -> float:
        return self.length * self.width * self.height

    def volume_in(self, unit: DimensionUnit) -> float:
        return (
            convert_dimensions(self.length, self.dimension_unit, unit)
            * convert_dimensions(self.width, self.dimension_unit, unit)
            * convert_dimensions(self.height, self.dimension_unit, unit)
        )

    def weight_in(self, unit: WeightUnit) -> float:
        return convert_weight(self.weight, self.weight_unit, unit)


@dataclass(frozen=True)
class ShipmentItem:
    """Line item. value is per unit, in minor currency units."""
    value: int
    quantity: int = 1
    sku: str = ""
    name: str = ""
    weight: Optional[float] = None

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValueError(f"ShipmentItem quantity must be positive, got {self.quantity!r}")
        if int(self.value) != self.value or self.value < 0:
            raise ValueError(f"ShipmentItem value must be a non-negative integer of minor units, got {self.value!r}")


def _non_empty_parcels(parcels: Sequence[Parcel], owner: str) -> Tuple[Parcel, ...]:
    parcels = tuple(parcels)
    if not parcels:
        raise ValueError(f"{owner} needs at least one parcel")
    return parcels


@dataclass(frozen=True)
class RateRequest:
    """Request for shipping quotes."""
    ship_from: Address
    ship_to: Address
    parcels: Tuple[Parcel, ...]
    items: Optional[Tuple[ShipmentItem, ...]] = None

    def __post_init__(self):
        object.__setattr__(self, "parcels", _non_empty_parcels(self.parcels, "RateRequest"))
        if self.items is not None:
            object.__setattr__(self, "items", tuple(self.items))


@dataclass(frozen=True)
class ShippingRate:
    """Shipping rate quote. amount is in minor currency units."""
    service: str
    service_code: str
    currency: str
    amount: int
    provider: str
    estimated_days: Optional[int] = None


@dataclass(frozen=True)
class CreateShipmentRequest:
    """Request to create a shipment."""
    ship_from: Address
    ship_to: Address
    parcels: Tuple[Parcel, ...]
    service_code: str
    items: Optional[Tuple[ShipmentItem, ...]] = None
    reference: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "parcels", _non_empty_parcels(self.parcels, "CreateShipmentRequest"))
        if self.items is not None:
            object.__setattr__(self, "items", tuple(self.items))


@dataclass(frozen=True)
class ShipmentCost:
    currency: str
    amount: int  # minor units


@dataclass(frozen=True)
class ShipmentResult:
    """Result of shipment creation."""
    id: str  # "<provider>-<provider_shipment_id>"
    provider_shipment_id: str
    cost: ShipmentCost
    status: ShipmentStatus
    tracking_number: Optional[str] = None
    tracking_url: Optional[str] = None
    label_url: Optional[str] = None
    estimated_days: Optional[int] = None


@dataclass(frozen=True)
class TrackingRequest:
    tracking_number: str


@dataclass(frozen=True)
class TrackingEvent:
    """A single tracking event, already normalized."""
    timestamp: Optional[datetime]
    status: ShipmentStatus
    description: str
    location: Optional[str] = None
    code: Optional[str] = None  # provider-specific status code


@dataclass(frozen=True)
class TrackingResult:
    """Full tracking information. events are most-recent-first."""
    tracking_number: str
    status: ShipmentStatus
    events: Tuple[TrackingEvent, ...] = field(default_factory=tuple)
    estimated_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None


@dataclass(frozen=True)
class CancelShipmentRequest:
    provider_shipment_id: str


@dataclass(frozen=True)
class OperationResult:
    """Outcome of best-effort operations (connection test, cancellation)."""
    success: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "OperationResult":
        return cls(success=True)

    @classmethod
    def failed(cls, error: str) -> "OperationResult":
        return cls(success=False, error=error)


# =============================================================================
# Shared parcel / money helpers
# =============================================================================

def total_weight(parcels: Sequence[Parcel], unit: WeightUnit) -> float:
    """Sum of every parcel's weight, each converted to `unit` first."""
    return sum(parcel.weight_in(unit) for parcel in parcels)


def largest_parcel(parcels: Sequence[Parcel]) -> Parcel:
    """
    Parcel with the greatest volume (compared in cm), first one on ties.

    Used when a provider accepts a single package size: reporting anything
    smaller under-declares the shipment.
    """
    if not parcels:
        raise ValueError("largest_parcel() needs at least one parcel")
    best = parcels[0]
    best_volume = best.volume_in(DimensionUnit.CM)
    for parcel in parcels[1:]:
        volume = parcel.volume_in(DimensionUnit.CM)
        if volume > best_volume:
            best, best_volume = parcel, volume
    return best


def declared_value(items: Optional[Sequence[ShipmentItem]]) -> int:
    """Total item value in minor units."""
    if not items:
        return 0
    return sum(int(item.value) * int(item.quantity) for item in items)


# =============================================================================
# Base Carrier Interface
# =============================================================================

class BaseCarrier(ABC):
    """
    Abstract base class for all shipping carriers.

    Contract:
        - test_connection / cancel_shipment never raise; they return
          OperationResult
        - get_rates / create_shipment / get_tracking raise ShippingError
          and nothing else
    """

    # Ordered substring rules used by map_status()
    status_rules: Tuple[StatusRule, ...] = ()

    def __init__(
        self,
        credentials: Optional[Mapping[str, Any]] = None,
        config: Optional[CarrierConfig] = None,
    ):
        """
        Initialize the carrier.

        Args:
            credentials: Provider-specific credential mapping
            config: Explicit runtime configuration (base URL, timeouts, TTL)
        """
        self._credentials: Dict[str, Any] = {
            key: value for key, value in dict(credentials or {}).items() if value
        }
        self._config = config or CarrierConfig()

    @property
    @abstractmethod
    def carrier_code(self) -> CarrierCode:
        """Return the carrier code enum value."""

    @property
    @abstractmethod
    def carrier_name(self) -> str:
        """Return the human-readable carrier name."""

    @property
    def provider(self) -> str:
        return self.carrier_code.provider_id

    @property
    def config(self) -> CarrierConfig:
        return self._config

    # ----- contract -----

    @abstractmethod
    async def test_connection(self) -> OperationResult:
        """Probe credentials/connectivity. Authenticates as a side effect."""

    @abstractmethod
    async def get_rates(self, request: RateRequest) -> List[ShippingRate]:
        """
        Get shipping rates from the carrier.

        Returns:
            List of ShippingRate; empty when nothing services the route
        """

    @abstractmethod
    async def create_shipment(self, request: CreateShipmentRequest) -> ShipmentResult:
        """
        Create a shipment.

        Not idempotent: retrying after a timeout can create a second
        provider-side order. Callers deduplicate with their own key.
        """

    @abstractmethod
    async def get_tracking(self, request: TrackingRequest) -> TrackingResult:
        """Get tracking information, events most-recent-first."""

    @abstractmethod
    async def cancel_shipment(self, request: CancelShipmentRequest) -> OperationResult:
        """Best-effort cancellation."""

    @abstractmethod
    def get_tracking_url(self, tracking_number: str) -> str:
        """Public tracking page for a shipment."""

    def map_status(self, provider_status: Optional[str]) -> ShipmentStatus:
        """Map a provider status string to ShipmentStatus using status_rules."""
        return match_status(provider_status, self.status_rules)

    async def close(self) -> None:
        """Release network resources. Default: nothing to release."""

    async def __aenter__(self) -> "BaseCarrier":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ----- shared helpers -----

    def convert_weight(self, value: float, from_unit: WeightUnit, to_unit: WeightUnit) -> float:
        return convert_weight(value, from_unit, to_unit)

    def convert_dimensions(self, value: float, from_unit: DimensionUnit, to_unit: DimensionUnit) -> float:
        return convert_dimensions(value, from_unit, to_unit)

    def error(self, kind: ErrorKind, message: str, **kwargs) -> ShippingError:
        """Build a ShippingError tagged with this carrier's provider id."""
        return ShippingError.for_kind(kind, message, self.provider, **kwargs)

    def normalize_error(
        self,
        raw: BaseException,
        fallback_kind: ErrorKind = ErrorKind.UNKNOWN,
    ) -> ShippingError:
        """
        Map a raw failure to a ShippingError.

        Override to translate provider-specific codes; call super() for
        the default HTTP mapping.
        """
        return normalize_error(raw, self.provider, fallback_kind)

    def not_configured_message(self) -> str:
        return (
            f"{self.carrier_name} connector not configured. Please add your "
            f"{self.carrier_name} API credentials in {CREDENTIALS_LOCATION}."
        )

    def missing_credentials(self, required: Sequence[str]) -> List[str]:
        return [key for key in required if not self._credentials.get(key)]

    def validate_credentials(self, required: Sequence[str]) -> None:
        """Raise CONFIG_ERROR naming any missing credential keys."""
        missing = self.missing_credentials(required)
        if missing:
            raise self.error(
                ErrorKind.CONFIG_ERROR,
                f"Missing required {self.carrier_name} credentials: {', '.join(missing)}. "
                f"Add them in {CREDENTIALS_LOCATION}.",
            )

    def validate_addresses(self, *addresses: Address) -> None:
        """Postal code and country are required on every address we rate or ship."""
        for address in addresses:
            missing = [
                name for name in ("postal_code", "country")
                if not (getattr(address, name) or "").strip()
            ]
            if missing:
                raise self.error(
                    ErrorKind.VALIDATION_ERROR,
                    f"Address is missing required field(s): {', '.join(missing)}",
                )
