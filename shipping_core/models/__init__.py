from shipping_core.models.carrier import CarrierCode, CarrierConfig
from shipping_core.models.shipment import DimensionUnit, ShipmentStatus, WeightUnit

__all__ = [
    "CarrierCode",
    "CarrierConfig",
    "DimensionUnit",
    "ShipmentStatus",
    "WeightUnit",
]
