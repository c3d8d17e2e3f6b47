"""Exchange-rate provider interface and the stubbed in-process provider."""

from decimal import Decimal
from typing import Protocol

from payroute.common.errors import RateUnavailable
from payroute.rails.base import quantize

RATE_PLACES = Decimal("0.00000001")

# Quoted pairs; everything else is crossed through USD reference values.
PAIR_RATES: dict[tuple[str, str], Decimal] = {
    ("USD", "EUR"): Decimal("0.85"),
    ("EUR", "USD"): Decimal("1.18"),
    ("USD", "GBP"): Decimal("0.73"),
    ("GBP", "USD"): Decimal("1.37"),
    ("EUR", "GBP"): Decimal("0.86"),
    ("GBP", "EUR"): Decimal("1.16"),
    ("USD", "USDC"): Decimal("1.0"),
    ("USDC", "USD"): Decimal("1.0"),
}

USD_VALUES: dict[str, Decimal] = {
    "USD": Decimal("1"),
    "EUR": Decimal("1.18"),
    "GBP": Decimal("1.37"),
    "JPY": Decimal("0.0067"),
    "CHF": Decimal("1.14"),
    "CAD": Decimal("0.74"),
    "AUD": Decimal("0.66"),
    "USDC": Decimal("1"),
    "BTC": Decimal("60000"),
    "ETH": Decimal("3000"),
}


class RateProvider(Protocol):
    def rate(self, from_currency: str, to_currency: str) -> Decimal: ...


class MockRateProvider:
    """Static rates; same-currency pairs are always exactly 1."""

    def __init__(
        self,
        pair_rates: dict[tuple[str, str], Decimal] | None = None,
        usd_values: dict[str, Decimal] | None = None,
    ) -> None:
        self.pair_rates = PAIR_RATES if pair_rates is None else pair_rates
        self.usd_values = USD_VALUES if usd_values is None else usd_values

    def rate(self, from_currency: str, to_currency: str) -> Decimal:
        """Units of `to_currency` per unit of `from_currency`."""

        if from_currency == to_currency:
            return Decimal("1")
        direct = self.pair_rates.get((from_currency, to_currency))
        if direct is not None:
            return direct
        try:
            cross = self.usd_values[from_currency] / self.usd_values[to_currency]
        except KeyError as exc:
            raise RateUnavailable(f"no exchange rate for {from_currency}->{to_currency}") from exc
        return quantize(cross, RATE_PLACES)
