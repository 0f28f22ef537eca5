"""
Application configuration

Read once, at the composition root (CarrierFactory). Carriers never look
at the environment themselves; they receive a CarrierConfig and a
credentials mapping built from these settings.
"""
import json
import logging
from functools import lru_cache
from typing import Dict, List, Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shipping_core.models.carrier import (
    CarrierCode,
    CarrierConfig,
    DEFAULT_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)

DEFAULT_ENABLED_CARRIERS = [code.value for code in CarrierCode]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Shared HTTP / auth behaviour
    SHIPPING_HTTP_TIMEOUT_SECONDS: float = DEFAULT_TIMEOUT_SECONDS
    SHIPPING_TOKEN_TTL_HOURS: int = 24
    SHIPPING_TOKEN_REFRESH_MARGIN_SECONDS: int = 300
    SHIPPING_TEST_MODE: bool = False

    # Carrier availability - accepts JSON array or comma-separated string
    SHIPPING_ENABLED_CARRIERS: Union[str, List[str]] = DEFAULT_ENABLED_CARRIERS

    @field_validator("SHIPPING_ENABLED_CARRIERS", mode="before")
    @classmethod
    def parse_enabled_carriers(cls, v):
        if isinstance(v, list):
            return [str(code).strip().upper() for code in v]
        if isinstance(v, str):
            if not v.strip():
                return []
            if v.startswith("["):
                try:
                    return [str(code).strip().upper() for code in json.loads(v)]
                except json.JSONDecodeError:
                    pass
            return [code.strip().upper() for code in v.split(",") if code.strip()]
        return v

    # Shiprocket
    SHIPROCKET_BASE_URL: str = ""
    SHIPROCKET_EMAIL: str = ""
    SHIPROCKET_PASSWORD: str = ""
    SHIPROCKET_TOKEN: str = ""
    SHIPROCKET_PICKUP_LOCATION: str = "Primary"

    # UPS (legacy access key or OAuth 2.0)
    UPS_BASE_URL: str = ""
    UPS_ACCESS_KEY: str = ""
    UPS_USERNAME: str = ""
    UPS_PASSWORD: str = ""
    UPS_CLIENT_ID: str = ""
    UPS_CLIENT_SECRET: str = ""
    UPS_ACCOUNT_NUMBER: str = ""

    # FedEx
    FEDEX_BASE_URL: str = ""
    FEDEX_ACCOUNT_NUMBER: str = ""
    FEDEX_METER_NUMBER: str = ""
    FEDEX_KEY: str = ""
    FEDEX_PASSWORD: str = ""
    FEDEX_API_KEY: str = ""
    FEDEX_SECRET_KEY: str = ""
    FEDEX_CLIENT_ID: str = ""
    FEDEX_CLIENT_SECRET: str = ""

    # DHL
    DHL_BASE_URL: str = ""
    DHL_API_KEY: str = ""
    DHL_API_SECRET: str = ""
    DHL_ACCOUNT_NUMBER: str = ""

    def is_carrier_enabled(self, carrier_code: CarrierCode) -> bool:
        return carrier_code.value in self.SHIPPING_ENABLED_CARRIERS

    def carrier_config(self, carrier_code: CarrierCode) -> CarrierConfig:
        """Build the explicit CarrierConfig for one carrier."""
        prefix = carrier_code.value
        base_url = getattr(self, f"{prefix}_BASE_URL", "") or None
        return CarrierConfig(
            base_url=base_url,
            timeout_seconds=self.SHIPPING_HTTP_TIMEOUT_SECONDS,
            token_ttl_seconds=self.SHIPPING_TOKEN_TTL_HOURS * 3600,
            token_refresh_margin_seconds=self.SHIPPING_TOKEN_REFRESH_MARGIN_SECONDS,
            test_mode=self.SHIPPING_TEST_MODE,
            pickup_location=self.SHIPROCKET_PICKUP_LOCATION,
        )

    def carrier_credentials(self, carrier_code: CarrierCode) -> Dict[str, str]:
        """
        Collect the credentials configured for a carrier.

        Keys are the lower-case setting names without the carrier prefix,
        e.g. SHIPROCKET_EMAIL -> "email". Empty values are left out.
        """
        prefix = f"{carrier_code.value}_"
        skip = {f"{prefix}BASE_URL", f"{prefix}PICKUP_LOCATION"}
        credentials: Dict[str, str] = {}
        for name, value in self.model_dump().items():
            if not name.startswith(prefix) or name in skip:
                continue
            if value:
                credentials[name[len(prefix):].lower()] = value
        return credentials


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process."""
    return Settings()


def reset_settings_cache() -> None:
    """Forget cached settings (tests, config reloads)."""
    get_settings.cache_clear()


def carrier_config_from_settings(
    carrier_code: CarrierCode,
    settings: Optional[Settings] = None,
) -> CarrierConfig:
    return (settings or get_settings()).carrier_config(carrier_code)
