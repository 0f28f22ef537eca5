"""
UPS Carrier Implementation v1.0.0 (Pending)

- Registered so UPS credentials can be configured ahead of time
- Accepts legacy (access key + username + password) or OAuth 2.0
  (client id + client secret) credentials
- Rating, shipping, tracking and void raise NOT_IMPLEMENTED until the
  UPS APIs are wired up
"""
from shipping_core.models.carrier import CarrierCode
from shipping_core.modules.shipping.carriers import register_carrier
from shipping_core.modules.shipping.carriers.pending import PendingIntegrationCarrier

# Customer Integration Environment (test)
UPS_BASE_URL = "https://wwwcie.ups.com/api"


@register_carrier(CarrierCode.UPS)
class UPSCarrier(PendingIntegrationCarrier):
    """UPS shipping carrier (integration pending)."""

    credential_sets = (
        ("access_key", "username", "password"),
        ("client_id", "client_secret"),
    )

    @property
    def carrier_code(self) -> CarrierCode:
        return CarrierCode.UPS

    @property
    def carrier_name(self) -> str:
        return "UPS"

    @property
    def base_url(self) -> str:
        return self._config.resolve_base_url(UPS_BASE_URL)

    def get_tracking_url(self, tracking_number: str) -> str:
        """Get public UPS tracking URL."""
        return f"https://www.ups.com/track?tracknum={tracking_number}"
