"""Payment-method name to rail mapping."""

from functools import partial
from typing import Callable, Mapping

from payroute.common.errors import UnknownPaymentMethod
from payroute.rails.base import PaymentRail
from payroute.rails.correspondent import SWIFT, CorrespondentRail
from payroute.rails.crypto import BITCOIN, ETHEREUM, LIGHTNING, CryptoRail
from payroute.rails.regional import (
    FASTER_PAYMENTS,
    FEDWIRE,
    SEPA_CREDIT_TRANSFER,
    SEPA_INSTANT,
    RegionalInstantRail,
)

RailFactory = Callable[[], PaymentRail]

DEFAULT_RAILS: dict[str, RailFactory] = {
    # Traditional banking, USD/EUR/GBP/JPY/CHF/CAD/AUD.
    "SWIFT Wire Transfer": partial(CorrespondentRail, SWIFT),
    "Correspondent Banking": partial(CorrespondentRail, SWIFT),
    "International ACH": partial(CorrespondentRail, SWIFT),
    "Same-Day Wire": partial(CorrespondentRail, SWIFT),
    "Overnight Express": partial(CorrespondentRail, SWIFT),
    # Regional clearing, one currency each.
    "SEPA Credit Transfer": partial(RegionalInstantRail, SEPA_CREDIT_TRANSFER),
    "SEPA Instant": partial(RegionalInstantRail, SEPA_INSTANT),
    "Faster Payments (UK)": partial(RegionalInstantRail, FASTER_PAYMENTS),
    "FedWire (Domestic)": partial(RegionalInstantRail, FEDWIRE),
    # Crypto networks, BTC/ETH.
    "Bitcoin Network": partial(CryptoRail, BITCOIN),
    "Ethereum Network": partial(CryptoRail, ETHEREUM),
    "Lightning Network": partial(CryptoRail, LIGHTNING),
}


class RailRegistry:
    """Builds a fresh rail instance for a payment-method name."""

    def __init__(self, factories: Mapping[str, RailFactory] | None = None) -> None:
        self._factories = dict(factories if factories is not None else DEFAULT_RAILS)

    def resolve(self, payment_method_name: str) -> PaymentRail:
        """Fresh rail for `payment_method_name`; unknown names are integrity errors."""

        factory = self._factories.get(payment_method_name)
        if factory is None:
            raise UnknownPaymentMethod(f"No rail found for payment method: {payment_method_name}")
        return factory()

    def names(self) -> list[str]:
        """Registered payment-method names, sorted."""

        return sorted(self._factories)
