"""
Pending-integration carrier base v1.0.0

UPS, FedEx and DHL are registered and configurable before their APIs are
wired up. Each one only declares which credential sets make it
"configured"; the behaviour is shared:

- no usable credentials: test/cancel report "not configured",
  rate/create/track raise CONFIG_ERROR
- credentials present: test/cancel report "not yet implemented",
  rate/create/track raise NOT_IMPLEMENTED
"""
import logging
from typing import List, Tuple

from shipping_core.core.exceptions import ErrorKind, ShippingError
from shipping_core.models.shipment import ShipmentStatus
from shipping_core.modules.shipping.carriers.base import (
    BaseCarrier,
    CancelShipmentRequest,
    CreateShipmentRequest,
    OperationResult,
    RateRequest,
    ShipmentResult,
    ShippingRate,
    TrackingRequest,
    TrackingResult,
)
from shipping_core.modules.shipping.carriers.status import StatusRule

logger = logging.getLogger(__name__)

# Common English vocabulary used by the big international carriers
INTERNATIONAL_STATUS_RULES: Tuple[StatusRule, ...] = (
    StatusRule("delivered", ShipmentStatus.DELIVERED),
    StatusRule("out for delivery", ShipmentStatus.IN_TRANSIT),
    StatusRule("in transit", ShipmentStatus.IN_TRANSIT),
    StatusRule("in_transit", ShipmentStatus.IN_TRANSIT),
    StatusRule("picked up", ShipmentStatus.PICKED_UP),
    StatusRule("pickup", ShipmentStatus.PICKED_UP),
    StatusRule("label created", ShipmentStatus.LABEL_CREATED),
    StatusRule("shipment information received", ShipmentStatus.LABEL_CREATED),
    StatusRule("cancel", ShipmentStatus.CANCELLED),
    StatusRule("void", ShipmentStatus.CANCELLED),
    StatusRule("exception", ShipmentStatus.EXCEPTION),
    StatusRule("returned", ShipmentStatus.EXCEPTION),
)


class PendingIntegrationCarrier(BaseCarrier):
    """
    Carrier whose provider API is not integrated yet.

    Subclasses set credential_sets: the carrier counts as configured when
    every key of at least one set is present.
    """

    status_rules = INTERNATIONAL_STATUS_RULES
    credential_sets: Tuple[Tuple[str, ...], ...] = ()

    def has_valid_credentials(self) -> bool:
        return any(
            not self.missing_credentials(required)
            for required in self.credential_sets
        )

    def accepted_credentials(self) -> List[str]:
        """Human-readable list of accepted credential sets."""
        return [" + ".join(required) for required in self.credential_sets]

    def _not_implemented_message(self, operation: str) -> str:
        return f"{self.carrier_name} {operation} is not yet implemented"

    def _unavailable(self, operation: str) -> ShippingError:
        """CONFIG_ERROR without credentials, NOT_IMPLEMENTED with them."""
        if not self.has_valid_credentials():
            return self.error(
                ErrorKind.CONFIG_ERROR,
                f"{self.not_configured_message()} Accepted credentials: "
                f"{'; or '.join(self.accepted_credentials())}.",
            )
        logger.warning(f"{self.carrier_name} {operation} requested but integration is pending")
        return self.error(ErrorKind.NOT_IMPLEMENTED, self._not_implemented_message(operation))

    async def test_connection(self) -> OperationResult:
        if not self.has_valid_credentials():
            return OperationResult.failed(self.not_configured_message())
        logger.warning(f"{self.carrier_name} connection test requested but integration is pending")
        return OperationResult.failed(f"{self.carrier_name} integration is not yet implemented")

    async def get_rates(self, request: RateRequest) -> List[ShippingRate]:
        raise self._unavailable("rate shopping")

    async def create_shipment(self, request: CreateShipmentRequest) -> ShipmentResult:
        raise self._unavailable("shipment creation")

    async def get_tracking(self, request: TrackingRequest) -> TrackingResult:
        raise self._unavailable("tracking")

    async def cancel_shipment(self, request: CancelShipmentRequest) -> OperationResult:
        if not self.has_valid_credentials():
            return OperationResult.failed(self.not_configured_message())
        logger.warning(f"{self.carrier_name} cancellation requested but integration is pending")
        return OperationResult.failed(f"{self.carrier_name} integration is not yet implemented")
