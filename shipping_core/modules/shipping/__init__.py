"""
Shipping Module v1.0.0

- One async contract (BaseCarrier) for every carrier
- Shiprocket fully integrated; UPS, FedEx and DHL registered, pending
- CarrierFactory builds configured carriers from settings
"""
from shipping_core.modules.shipping.carriers import CarrierFactory, get_carrier
from shipping_core.modules.shipping.carriers.base import BaseCarrier

__all__ = [
    "CarrierFactory",
    "get_carrier",
    "BaseCarrier",
]
