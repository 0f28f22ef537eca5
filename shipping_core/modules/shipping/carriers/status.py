"""
Provider status -> ShipmentStatus normalization.

Each carrier declares an ordered tuple of StatusRule. The first rule whose
substring occurs in the lower-cased provider string wins, so more
committal states must come first: a string like
"Cancelled - In Transit Reversal" resolves by whichever rule is listed
earlier. Unknown vocabulary maps to CREATED instead of failing.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from shipping_core.models.shipment import ShipmentStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusRule:
    """Maps any provider status containing `substring` to `status`."""
    substring: str
    status: ShipmentStatus


# Precedence every carrier's rule list follows
STATUS_PRECEDENCE = (
    ShipmentStatus.DELIVERED,
    ShipmentStatus.IN_TRANSIT,
    ShipmentStatus.PICKED_UP,
    ShipmentStatus.LABEL_CREATED,
    ShipmentStatus.CANCELLED,
    ShipmentStatus.EXCEPTION,
)


def match_status(
    provider_status: Optional[str],
    rules: Sequence[StatusRule],
    default: ShipmentStatus = ShipmentStatus.CREATED,
) -> ShipmentStatus:
    """
    Map a provider status string using ordered substring rules.

    Never raises: None, empty and unmatched strings all return `default`.
    """
    if not provider_status:
        return default

    lowered = str(provider_status).lower()
    for rule in rules:
        if rule.substring in lowered:
            return rule.status

    logger.debug(f"Unmapped provider status {provider_status!r}, defaulting to {default.value}")
    return default


def is_precedence_ordered(rules: Sequence[StatusRule]) -> bool:
    """True when rules never list a lower-precedence status before a higher one."""
    ranks = [STATUS_PRECEDENCE.index(rule.status) for rule in rules]
    return ranks == sorted(ranks)
