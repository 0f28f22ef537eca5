"""
Carrier Registry and Factory v1.0.0

- CarrierFactory creates carrier instances based on CarrierCode
- Only returns enabled carriers (SHIPPING_ENABLED_CARRIERS)
- Settings are read here and nowhere else; carriers get an explicit
  CarrierConfig and credentials mapping
"""
from typing import Any, Dict, List, Mapping, Optional, Type, Union
import logging

from shipping_core.core.config import Settings, get_settings
from shipping_core.models.carrier import CarrierCode, CarrierConfig
from shipping_core.modules.shipping.carriers.base import BaseCarrier

logger = logging.getLogger(__name__)

# Registry of carrier implementations
_CARRIER_REGISTRY: Dict[CarrierCode, Type[BaseCarrier]] = {}


def register_carrier(carrier_code: CarrierCode):
    """
    Decorator to register a carrier implementation.

    Usage:
        @register_carrier(CarrierCode.UPS)
        class UPSCarrier(BaseCarrier):
            ...
    """
    def decorator(cls: Type[BaseCarrier]):
        _CARRIER_REGISTRY[carrier_code] = cls
        logger.debug(f"Registered carrier: {carrier_code.value} -> {cls.__name__}")
        return cls
    return decorator


class CarrierFactory:
    """
    Factory for creating carrier instances.

    Checks SHIPPING_ENABLED_CARRIERS before returning carriers.
    Returns None for disabled or unknown carriers.
    """

    @classmethod
    def get_carrier(
        cls,
        carrier_code: Union[CarrierCode, str],
        credentials: Optional[Mapping[str, Any]] = None,
        config: Optional[CarrierConfig] = None,
        settings: Optional[Settings] = None,
    ) -> Optional[BaseCarrier]:
        """
        Get a carrier instance if enabled.

        Args:
            carrier_code: CarrierCode or provider name ("shiprocket", "UPS")
            credentials: Credential mapping; defaults to the ones in settings
            config: Runtime config; defaults to one built from settings
            settings: Settings to read instead of the cached process settings

        Returns:
            BaseCarrier instance or None if disabled/not found
        """
        try:
            code = CarrierCode.parse(carrier_code)
        except ValueError:
            logger.warning(f"Unknown carrier requested: {carrier_code!r}")
            return None

        settings = settings or get_settings()

        if not settings.is_carrier_enabled(code):
            logger.debug(f"Carrier {code.value} is disabled")
            return None

        carrier_cls = _CARRIER_REGISTRY.get(code)
        if not carrier_cls:
            logger.warning(f"No implementation registered for carrier: {code.value}")
            return None

        if credentials is None:
            credentials = settings.carrier_credentials(code)
        if config is None:
            config = settings.carrier_config(code)

        return carrier_cls(credentials, config)

    @classmethod
    def get_enabled_carriers(
        cls,
        carrier_credentials: Optional[Dict[CarrierCode, Mapping[str, Any]]] = None,
        settings: Optional[Settings] = None,
    ) -> List[BaseCarrier]:
        """
        Get all enabled carrier instances.

        Args:
            carrier_credentials: Optional dict of CarrierCode -> credentials

        Returns:
            List of enabled BaseCarrier instances, in CarrierCode order
        """
        settings = settings or get_settings()
        carriers = []

        for code in CarrierCode:
            credentials = carrier_credentials.get(code) if carrier_credentials else None
            carrier = cls.get_carrier(code, credentials, settings=settings)
            if carrier:
                carriers.append(carrier)

        return carriers

    @classmethod
    def get_registered_carriers(cls) -> List[CarrierCode]:
        """Get list of all registered carrier codes."""
        return list(_CARRIER_REGISTRY.keys())


def get_carrier(
    carrier_code: Union[CarrierCode, str],
    credentials: Optional[Mapping[str, Any]] = None,
    config: Optional[CarrierConfig] = None,
) -> Optional[BaseCarrier]:
    """
    Convenience function to get a carrier.

    Equivalent to CarrierFactory.get_carrier().
    """
    return CarrierFactory.get_carrier(carrier_code, credentials, config)


# Import carriers to trigger registration
# These imports must be at the bottom to avoid circular imports
from shipping_core.modules.shipping.carriers.shiprocket import ShiprocketCarrier  # noqa: E402, F401
from shipping_core.modules.shipping.carriers.ups import UPSCarrier  # noqa: E402, F401
from shipping_core.modules.shipping.carriers.fedex import FedExCarrier  # noqa: E402, F401
from shipping_core.modules.shipping.carriers.dhl import DHLCarrier  # noqa: E402, F401
