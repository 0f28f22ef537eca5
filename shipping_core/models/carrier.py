"""
Carrier identification and configuration for Shipping Core v1.0.0

CarrierConfig is the explicit configuration handed to every carrier at
construction time. Environment lookups happen once, in CarrierFactory,
never inside a carrier.
"""
from dataclasses import dataclass
from typing import Optional
import enum


class CarrierCode(str, enum.Enum):
    """
    Supported shipping carriers.

    Only SHIPROCKET has a full integration; the others are registered
    so callers can configure them ahead of time.
    """
    SHIPROCKET = "SHIPROCKET"
    UPS = "UPS"
    FEDEX = "FEDEX"
    DHL = "DHL"

    @property
    def provider_id(self) -> str:
        """Lower-case provider id used in results and error messages."""
        return self.value.lower()

    @classmethod
    def parse(cls, value: "str | CarrierCode") -> "CarrierCode":
        """Resolve a carrier code from an enum member or a case-insensitive name."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown carrier: {value!r}") from None


# Defaults
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_TOKEN_TTL_SECONDS = 24 * 60 * 60
DEFAULT_TOKEN_REFRESH_MARGIN_SECONDS = 5 * 60


@dataclass(frozen=True)
class CarrierConfig:
    """Per-carrier runtime configuration."""
    base_url: Optional[str] = None  # None = carrier's production default
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    token_ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS
    token_refresh_margin_seconds: int = DEFAULT_TOKEN_REFRESH_MARGIN_SECONDS
    test_mode: bool = False
    pickup_location: str = "Primary"

    def resolve_base_url(self, default: str) -> str:
        return (self.base_url or default).rstrip("/")
