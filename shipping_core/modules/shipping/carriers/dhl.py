"""
DHL Express Carrier Implementation v1.0.0 (Pending)
"""
from shipping_core.models.carrier import CarrierCode
from shipping_core.modules.shipping.carriers import register_carrier
from shipping_core.modules.shipping.carriers.pending import PendingIntegrationCarrier

# MyDHL API mock environment
DHL_BASE_URL = "https://api-mock.dhl.com/mydhlapi"


@register_carrier(CarrierCode.DHL)
class DHLCarrier(PendingIntegrationCarrier):

    credential_sets = (
        ("api_key", "api_secret", "account_number"),
    )

    @property
    def carrier_code(self) -> CarrierCode:
        return CarrierCode.DHL

    @property
    def carrier_name(self) -> str:
        return "DHL"

    @property
    def base_url(self) -> str:
        return self._config.resolve_base_url(DHL_BASE_URL)

    def get_tracking_url(self, tracking_number: str) -> str:
        return f"https://www.dhl.com/en/express/tracking.html?AWB={tracking_number}"
