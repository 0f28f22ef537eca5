"""
Shipment enums for Shipping Core v1.0.0

Canonical status vocabulary shared by every carrier, plus the unit
systems parcels can be declared in.
"""
import enum


class ShipmentStatus(str, enum.Enum):
    """
    Shipment lifecycle status.

    created -> label_created -> picked_up -> in_transit -> delivered.
    EXCEPTION and CANCELLED can be reached from any non-terminal state.
    """
    CREATED = "created"  # Order registered, nothing printed yet
    LABEL_CREATED = "label_created"  # Label ready / manifested
    PICKED_UP = "picked_up"  # Carrier has package
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    EXCEPTION = "exception"  # Delivery issue
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            ShipmentStatus.DELIVERED,
            ShipmentStatus.EXCEPTION,
            ShipmentStatus.CANCELLED,
        )


class WeightUnit(str, enum.Enum):
    """Weight units accepted on a Parcel."""
    KG = "kg"
    LB = "lb"
    G = "g"
    OZ = "oz"


class DimensionUnit(str, enum.Enum):
    """Length units accepted on a Parcel."""
    CM = "cm"
    IN = "in"
