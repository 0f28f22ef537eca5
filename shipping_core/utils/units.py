"""
Unit conversion helpers.

Pure, stateless linear conversions. Every unit is expressed as a factor
against a base unit (kg for weight, cm for length) so that converting
a -> b -> a returns the original value up to float rounding.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Union

from shipping_core.models.shipment import DimensionUnit, WeightUnit

# Kilograms per unit
_WEIGHT_FACTORS: Dict[WeightUnit, float] = {
    WeightUnit.KG: 1.0,
    WeightUnit.G: 0.001,
    WeightUnit.LB: 0.45359237,
    WeightUnit.OZ: 0.028349523125,
}

# Centimeters per unit
_DIMENSION_FACTORS: Dict[DimensionUnit, float] = {
    DimensionUnit.CM: 1.0,
    DimensionUnit.IN: 2.54,
}

WeightUnitLike = Union[WeightUnit, str]
DimensionUnitLike = Union[DimensionUnit, str]


def convert_weight(value: float, from_unit: WeightUnitLike, to_unit: WeightUnitLike) -> float:
    """
    Convert a weight between units.

    Args:
        value: Weight expressed in from_unit
        from_unit: WeightUnit or its string value ("kg", "lb", "g", "oz")
        to_unit: Target WeightUnit

    Returns:
        Weight expressed in to_unit
    """
    source = WeightUnit(from_unit)
    target = WeightUnit(to_unit)
    if source == target:
        return float(value)
    return value * _WEIGHT_FACTORS[source] / _WEIGHT_FACTORS[target]


def convert_dimensions(value: float, from_unit: DimensionUnitLike, to_unit: DimensionUnitLike) -> float:
    """Convert a length between units ("cm", "in")."""
    source = DimensionUnit(from_unit)
    target = DimensionUnit(to_unit)
    if source == target:
        return float(value)
    return value * _DIMENSION_FACTORS[source] / _DIMENSION_FACTORS[target]


def to_major_units(amount_minor: int) -> Decimal:
    """Minor currency units (cents, paise) -> major units. Payload boundary only."""
    return (Decimal(int(amount_minor)) / Decimal(100)).quantize(Decimal("0.01"))


def to_minor_units(amount_major: Union[float, str, Decimal, int, None]) -> int:
    """
    Provider amount in major units -> integer minor units.

    Goes through Decimal(str(...)) so 12.35 becomes 1235, not 1234.

    Raises:
        ValueError: amount is not a finite number ("N/A", "NaN")
    """
    if amount_major is None or amount_major == "":
        return 0
    try:
        value = Decimal(str(amount_major).strip()) * 100
    except InvalidOperation:
        raise ValueError(f"Not a monetary amount: {amount_major!r}") from None
    if not value.is_finite():
        raise ValueError(f"Not a monetary amount: {amount_major!r}")
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
