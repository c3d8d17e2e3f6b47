"""Correspondent-banking wire transfer rail.

Thresholds are evaluated on the USD value of the instruction and fees are
always reported in USD, whatever the source currency.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

from payroute.rails.base import (
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

FEE_CURRENCY = "USD"


@dataclass(frozen=True)
class CorrespondentConfig:
    name: str = "SWIFT"
    reference_prefix: str = "SWIFT"
    currencies: frozenset[str] = frozenset({"USD", "EUR", "GBP", "JPY", "CHF", "CAD", "AUD"})
    hours: OperatingHours = OperatingHours(POLICY_BUSINESS)
    # Approximate USD value of one unit, used when neither leg is USD.
    usd_reference_rates: Mapping[str, Decimal] = field(
        default_factory=lambda: MappingProxyType(
            {
                "EUR": Decimal("1.18"),
                "GBP": Decimal("1.37"),
                "JPY": Decimal("0.0067"),
                "CHF": Decimal("1.14"),
                "CAD": Decimal("0.74"),
                "AUD": Decimal("0.66"),
            }
        )
    )
    min_usd: Decimal = Decimal("100")
    max_usd: Decimal = Decimal("10000000")
    base_success_rate: float = 0.98
    # (USD threshold, success rate) pairs, ascending.
    success_tiers: tuple[tuple[Decimal, float], ...] = (
        (Decimal("50000"), 0.95),
        (Decimal("500000"), 0.92),
    )
    compliance_review_usd: Decimal = Decimal("50000")
    base_hours: Decimal = Decimal("24")
    large_amount_usd: Decimal = Decimal("10000")
    large_amount_extra_hours: Decimal = Decimal("24")
    base_fee: Decimal = Decimal("15")
    large_fee_usd: Decimal = Decimal("50000")
    large_fee: Decimal = Decimal("25")
    cross_currency_fee: Decimal = Decimal("10")
    correspondent_fee_min: int = 5
    correspondent_fee_spread: int = 15


SWIFT = CorrespondentConfig()


class CorrespondentRail(PaymentRail):
    """Multi-currency wire transfer through correspondent banks."""

    def __init__(self, config: CorrespondentConfig = SWIFT) -> None:
        super().__init__(config.name, config.currencies, config.hours)
        self.config = config

    def usd_value(self, instruction: PaymentInstruction) -> Decimal:
        """Notional in USD, used for limits, tiers and fee thresholds."""

        amount = instruction.source_amount or Decimal("0")
        if instruction.source_currency == "USD":
            return amount
        if instruction.target_currency == "USD":
            return amount * instruction.exchange_rate
        rate = self.config.usd_reference_rates.get(instruction.source_currency, Decimal("1"))
        return amount * rate

    def success_probability(self, usd_amount: Decimal) -> float:
        """Success rate for the highest USD tier the amount crosses."""

        probability = self.config.base_success_rate
        for threshold, rate in self.config.success_tiers:
            if usd_amount > threshold:
                probability = rate
        return probability

    def validate(self, instruction: PaymentInstruction) -> ValidationResult:
        """Shared basics, then USD minimum and maximum."""

        basics = self.validate_basics(instruction)
        if not basics.is_valid:
            return basics

        errors = []
        usd_amount = self.usd_value(instruction)
        if usd_amount < self.config.min_usd:
            errors.append(f"{self.name} minimum amount not met ({self.config.min_usd} {FEE_CURRENCY})")
        elif usd_amount > self.config.max_usd:
            errors.append(f"{self.name} maximum amount exceeded ({self.config.max_usd} {FEE_CURRENCY})")
        return ValidationResult(is_valid=not errors, errors=tuple(errors))

    def execute(
        self,
        instruction: PaymentInstruction,
        rng: RandomSource | None = None,
        now: datetime | None = None,
    ) -> RailOutcome:
        """One success draw against the size-adjusted probability."""

        rng = self._rng(rng)
        now = now or utcnow()
        usd_amount = self.usd_value(instruction)

        if rng.random() < self.success_probability(usd_amount):
            return self._processing(
                self.config.reference_prefix,
                f"{self.name} wire transfer initiated successfully",
                self.estimate_settlement(instruction, rng=rng, now=now),
                now,
            )
        if usd_amount > self.config.compliance_review_usd:
            return self._failed("Transfer flagged for compliance review")
        return self._failed("Correspondent bank temporarily unavailable")

    def estimate_settlement(
        self,
        instruction: PaymentInstruction,
        rng: RandomSource | None = None,
        now: datetime | None = None,
    ) -> Decimal:
        """Base hours, plus the large-amount delay and any wait for business hours."""

        hours = self.config.base_hours
        if self.usd_value(instruction) > self.config.large_amount_usd:
            hours += self.config.large_amount_extra_hours
        hours += self.hours_until_operating(now)
        return max(Decimal("0"), hours)

    def calculate_fees(self, instruction: PaymentInstruction, rng: RandomSource | None = None) -> Decimal:
        """USD fee: base, large-amount, cross-currency and a random correspondent charge."""

        rng = self._rng(rng)
        fee = self.config.base_fee
        if self.usd_value(instruction) > self.config.large_fee_usd:
            fee += self.config.large_fee
        if instruction.source_currency != instruction.target_currency:
            fee += self.config.cross_currency_fee
        fee += self.config.correspondent_fee_min + int(rng.random() * self.config.correspondent_fee_spread)
        return quantize(fee, self.fee_places)
