"""Cryptocurrency network rail (Bitcoin, Ethereum, Lightning).

Amounts, limits, and fees are denominated in the network's coin and rounded
to 8 decimal places. Congestion is drawn once per call from the injected
randomness source and perturbs success rate, settlement time, and fees.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from payroute.rails.base import (
    CRYPTO_PLACES,
    POLICY_ALWAYS,
    OperatingHours,
    PaymentInstruction,
    PaymentRail,
    RailOutcome,
    RandomSource,
    ValidationResult,
    quantize,
    utcnow,
)

CONGESTION_LOW = "low"
CONGESTION_MEDIUM = "medium"
CONGESTION_HIGH = "high"

SUCCESS_ADJUSTMENT = {CONGESTION_LOW: 0.02, CONGESTION_MEDIUM: 0.0, CONGESTION_HIGH: -0.05}
FEE_MULTIPLIER = {CONGESTION_LOW: Decimal("0.7"), CONGESTION_MEDIUM: Decimal("1.0"), CONGESTION_HIGH: Decimal("2.5")}


@dataclass(frozen=True)
class NetworkConfig:
    name: str
    reference_prefix: str
    coin: str
    base_fee: Decimal
    base_hours: Decimal
    success_rate: float
    min_amount: Decimal
    max_amount: Decimal
    high_congestion_time_factor: Decimal = Decimal("1")
    medium_congestion_time_factor: Decimal = Decimal("1")
    # Extra confirmations above this amount.
    large_amount: Decimal | None = None
    large_amount_extra_hours: Decimal = Decimal("0")
    # Per-coin surcharge applied to the whole amount above this threshold.
    surcharge_threshold: Decimal | None = None
    surcharge_per_unit: Decimal = Decimal("0")
    cross_currency_fee: Decimal = Decimal("0")
    min_fee: Decimal = Decimal("0")
    micro_payment_ceiling: Decimal | None = None


BITCOIN = NetworkConfig(
    name="Bitcoin Network",
    reference_prefix="BTC",
    coin="BTC",
    base_fee=Decimal("0.00015"),
    base_hours=Decimal("2"),
    success_rate=0.92,
    min_amount=Decimal("0.0001"),
    max_amount=Decimal("100"),
    high_congestion_time_factor=Decimal("3"),
    medium_congestion_time_factor=Decimal("1.5"),
    large_amount=Decimal("10"),
    large_amount_extra_hours=Decimal("2"),
    surcharge_threshold=Decimal("1"),
    surcharge_per_unit=Decimal("0.00005"),
    cross_currency_fee=Decimal("0.0001"),
)
ETHEREUM = NetworkConfig(
    name="Ethereum Network",
    reference_prefix="ETH",
    coin="ETH",
    base_fee=Decimal("0.0025"),
    base_hours=Decimal("0.5"),
    success_rate=0.88,
    min_amount=Decimal("0.01"),
    max_amount=Decimal("1000"),
    high_congestion_time_factor=Decimal("2"),
    medium_congestion_time_factor=Decimal("1.2"),
    large_amount=Decimal("100"),
    large_amount_extra_hours=Decimal("0.5"),
    surcharge_threshold=Decimal("10"),
    surcharge_per_unit=Decimal("0.0002"),
    cross_currency_fee=Decimal("0.002"),
)
LIGHTNING = NetworkConfig(
    name="Lightning Network",
    reference_prefix="LN",
    coin="BTC",
    base_fee=Decimal("0.0000005"),
    base_hours=Decimal("0"),
    success_rate=0.96,
    min_amount=Decimal("0.00000001"),
    max_amount=Decimal("0.01"),
    min_fee=Decimal("0.00000001"),
    micro_payment_ceiling=Decimal("0.001"),
)


def congestion_level(rng: RandomSource) -> str:
    """Map one uniform draw onto low / medium / high congestion."""

    draw = rng.random()
    if draw > 0.8:
        return CONGESTION_HIGH
    if draw > 0.4:
        return CONGESTION_MEDIUM
    return CONGESTION_LOW


class CryptoRail(PaymentRail):
    """Always-on network transfer whose behavior depends on congestion."""

    fee_places = CRYPTO_PLACES

    def __init__(self, network: NetworkConfig) -> None:
        super().__init__(network.name, frozenset({"BTC", "ETH"}), OperatingHours(POLICY_ALWAYS))
        self.network = network

    def _congestion(self, rng: RandomSource | None, congestion: str | None) -> str:
        return congestion if congestion is not None else congestion_level(self._rng(rng))

    def validate(self, instruction: PaymentInstruction) -> ValidationResult:
        """Shared basics, then coin, limits and the micro-payment ceiling."""

        basics = self.validate_basics(instruction)
        if not basics.is_valid:
            return basics

        network = self.network
        amount = instruction.source_amount
        errors = []
        if instruction.source_currency != network.coin:
            errors.append(f"{self.name} requires {network.coin} currency")
        if amount < network.min_amount:
            errors.append(f"{self.name} minimum is {network.min_amount} {instruction.source_currency}")
        if amount > network.max_amount:
            errors.append(f"{self.name} maximum is {network.max_amount} {instruction.source_currency}")
        if network.micro_payment_ceiling is not None and amount > network.micro_payment_ceiling:
            errors.append(
                f"{self.name} is for micro-payments only (max {network.micro_payment_ceiling} {network.coin})"
            )
        return ValidationResult(is_valid=not errors, errors=tuple(errors))

    def execute(
        self,
        instruction: PaymentInstruction,
        rng: RandomSource | None = None,
        now: datetime | None = None,
    ) -> RailOutcome:
        """Draw congestion, then one success draw against the adjusted rate."""

        rng = self._rng(rng)
        now = now or utcnow()
        congestion = congestion_level(rng)
        probability = self.network.success_rate + SUCCESS_ADJUSTMENT[congestion]

        if rng.random() < probability:
            return self._processing(
                self.network.reference_prefix,
                f"{self.name} transaction initiated successfully",
                self.estimate_settlement(instruction, now=now, congestion=congestion),
                now,
            )
        if congestion == CONGESTION_HIGH:
            return self._failed(f"{self.name} network congested - transaction failed")
        return self._failed(f"{self.name} temporarily unavailable")

    def estimate_settlement(
        self,
        instruction: PaymentInstruction,
        rng: RandomSource | None = None,
        now: datetime | None = None,
        congestion: str | None = None,
    ) -> Decimal:
        """Base hours scaled by congestion, plus extra confirmations for large amounts."""

        network = self.network
        congestion = self._congestion(rng, congestion)
        hours = network.base_hours
        if congestion == CONGESTION_HIGH:
            hours *= network.high_congestion_time_factor
        elif congestion == CONGESTION_MEDIUM:
            hours *= network.medium_congestion_time_factor

        amount = instruction.source_amount or Decimal("0")
        if network.large_amount is not None and amount > network.large_amount:
            hours += network.large_amount_extra_hours
        return max(Decimal("0"), hours)

    def calculate_fees(
        self,
        instruction: PaymentInstruction,
        rng: RandomSource | None = None,
        congestion: str | None = None,
    ) -> Decimal:
        """Network fee in the coin, scaled by congestion and rounded to 8 places."""

        network = self.network
        congestion = self._congestion(rng, congestion)
        fee = network.base_fee * FEE_MULTIPLIER[congestion]

        amount = instruction.source_amount or Decimal("0")
        if network.surcharge_threshold is not None and amount > network.surcharge_threshold:
            fee += amount * network.surcharge_per_unit
        if instruction.source_currency != instruction.target_currency:
            fee += network.cross_currency_fee
        fee = max(network.min_fee, fee)
        return quantize(fee, self.fee_places)
