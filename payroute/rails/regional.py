"""Regional single-currency transfer schemes (SEPA, Faster Payments, FedWire).

Each scheme is a configuration of the same rail: one currency, one operating
policy, fees in that currency.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from payroute.rails.base import (
    POLICY_ALWAYS,
    POLICY_BUSINESS,
    OperatingHours,
    PaymentInstruction,
    PaymentRail,
    RailOutcome,
    RandomSource,
    ValidationResult,
    quantize,
    utcnow,
)


@dataclass(frozen=True)
class RegionalScheme:
    name: str
    reference_prefix: str
    currency: str
    hours: OperatingHours
    base_hours: Decimal
    success_rate: float
    max_amount: Decimal
    base_fee: Decimal
    large_amount: Decimal = Decimal("50000")
    large_amount_fee: Decimal = Decimal("2.00")
    cross_currency_fee: Decimal = Decimal("1.00")
    currency_symbol: str = ""

    @property
    def instant(self) -> bool:
        return self.base_hours == 0


SEPA_CREDIT_TRANSFER = RegionalScheme(
    name="SEPA",
    reference_prefix="SEPA",
    currency="EUR",
    hours=OperatingHours(POLICY_BUSINESS, timezone_name="Europe/Brussels"),
    base_hours=Decimal("4"),
    success_rate=0.995,
    max_amount=Decimal("999999"),
    base_fee=Decimal("0.50"),
    currency_symbol="€",
)
SEPA_INSTANT = RegionalScheme(
    name="SEPA Instant",
    reference_prefix="SEPA_INST",
    currency="EUR",
    hours=OperatingHours(POLICY_ALWAYS),
    base_hours=Decimal("0"),
    success_rate=0.95,
    max_amount=Decimal("100000"),
    base_fee=Decimal("1.50"),
    currency_symbol="€",
)
FASTER_PAYMENTS = RegionalScheme(
    name="Faster Payments",
    reference_prefix="FPS",
    currency="GBP",
    hours=OperatingHours(POLICY_ALWAYS),
    base_hours=Decimal("0"),
    success_rate=0.97,
    max_amount=Decimal("1000000"),
    base_fee=Decimal("0.75"),
    currency_symbol="£",
)
FEDWIRE = RegionalScheme(
    name="FedWire",
    reference_prefix="FED",
    currency="USD",
    hours=OperatingHours(POLICY_BUSINESS, timezone_name="America/New_York"),
    base_hours=Decimal("1"),
    success_rate=0.99,
    max_amount=Decimal("10000000"),
    base_fee=Decimal("5.00"),
    currency_symbol="$",
)


class RegionalInstantRail(PaymentRail):
    """Domestic clearing scheme that only moves its own currency."""

    def __init__(self, scheme: RegionalScheme) -> None:
        super().__init__(scheme.name, frozenset({scheme.currency}), scheme.hours)
        self.scheme = scheme

    def validate(self, instruction: PaymentInstruction) -> ValidationResult:
        """Shared basics, then the scheme maximum."""

        basics = self.validate_basics(instruction)
        if not basics.is_valid:
            return basics

        errors = []
        if instruction.source_amount > self.scheme.max_amount:
            errors.append(f"{self.name} maximum is {self.scheme.currency_symbol}{self.scheme.max_amount}")
        return ValidationResult(is_valid=not errors, errors=tuple(errors))

    def execute(
        self,
        instruction: PaymentInstruction,
        rng: RandomSource | None = None,
        now: datetime | None = None,
    ) -> RailOutcome:
        """One success draw against the scheme success rate."""

        rng = self._rng(rng)
        now = now or utcnow()
        if rng.random() < self.scheme.success_rate:
            kind = "Instant" if self.scheme.instant else "Regular"
            return self._processing(
                self.scheme.reference_prefix,
                f"{kind} {self.name} transfer initiated",
                self.estimate_settlement(instruction, rng=rng, now=now),
                now,
            )
        return self._failed(f"{self.name} network temporarily unavailable")

    def estimate_settlement(
        self,
        instruction: PaymentInstruction,
        rng: RandomSource | None = None,
        now: datetime | None = None,
    ) -> Decimal:
        """Scheme hours plus any wait for the operating window."""

        hours = self.scheme.base_hours + self.hours_until_operating(now)
        return max(Decimal("0"), hours)

    def calculate_fees(self, instruction: PaymentInstruction, rng: RandomSource | None = None) -> Decimal:
        """Fee in the scheme currency."""

        fee = self.scheme.base_fee
        if (instruction.source_amount or 0) > self.scheme.large_amount:
            fee += self.scheme.large_amount_fee
        if instruction.source_currency != instruction.target_currency:
            fee += self.scheme.cross_currency_fee
        return quantize(fee, self.fee_places)
