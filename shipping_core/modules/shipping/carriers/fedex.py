"""
FedEx Carrier Implementation v1.0.0 (Pending)

Needs the account and meter number plus one of: legacy key/password,
REST API key/secret key, or OAuth client id/secret.
"""
from shipping_core.models.carrier import CarrierCode
from shipping_core.modules.shipping.carriers import register_carrier
from shipping_core.modules.shipping.carriers.pending import PendingIntegrationCarrier

FEDEX_BASE_URL = "https://apis-sandbox.fedex.com"

_FEDEX_ACCOUNT = ("account_number", "meter_number")


@register_carrier(CarrierCode.FEDEX)
class FedExCarrier(PendingIntegrationCarrier):
    """FedEx shipping carrier (integration pending)."""

    credential_sets = (
        _FEDEX_ACCOUNT + ("key", "password"),
        _FEDEX_ACCOUNT + ("api_key", "secret_key"),
        _FEDEX_ACCOUNT + ("client_id", "client_secret"),
    )

    @property
    def carrier_code(self) -> CarrierCode:
        return CarrierCode.FEDEX

    @property
    def carrier_name(self) -> str:
        return "FedEx"

    @property
    def base_url(self) -> str:
        return self._config.resolve_base_url(FEDEX_BASE_URL)

    def get_tracking_url(self, tracking_number: str) -> str:
        return f"https://www.fedex.com/fedextrack/?trknbr={tracking_number}"
