from shipping_core.utils.sanitizer import redact_secrets, sanitize_for_logging
from shipping_core.utils.units import (
    convert_dimensions,
    convert_weight,
    to_major_units,
    to_minor_units,
)

__all__ = [
    "convert_dimensions",
    "convert_weight",
    "redact_secrets",
    "sanitize_for_logging",
    "to_major_units",
    "to_minor_units",
]
