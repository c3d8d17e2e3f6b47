"""Shared rail contract, instruction/outcome types, and operating-hours policy.

A rail models one settlement mechanism. Instances are stateless: they hold an
immutable configuration and take randomness and the current time per call, so
concurrent executions never share mutable state.
"""

import math
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol
from uuid import uuid4
from zoneinfo import ZoneInfo

FIAT_PLACES = Decimal("0.01")
CRYPTO_PLACES = Decimal("0.00000001")

POLICY_ALWAYS = "24/7"
POLICY_BUSINESS = "business"
BUSINESS_DAYS = frozenset(range(0, 5))


class RandomSource(Protocol):
    """Uniform [0, 1) draws; `random.Random` satisfies this."""

    def random(self) -> float: ...


@dataclass(frozen=True)
class PaymentInstruction:
    """What a rail is asked to validate, price, or submit."""

    source_currency: str | None
    target_currency: str | None
    source_amount: Decimal | None
    payment_method_name: str
    exchange_rate: Decimal = Decimal("1")


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class RailOutcome:
    """Result of one simulated submission."""

    status: str
    reference: str | None
    message: str
    estimated_completion: datetime | None = None

    @property
    def failed(self) -> bool:
        return self.status == "failed"


@dataclass(frozen=True)
class OperatingHours:
    """When a rail accepts work: always, or Mon-Fri inside a local hour window."""

    policy: str = POLICY_ALWAYS
    open_hour: int = 9
    close_hour: int = 17
    timezone_name: str = "UTC"
    zone: ZoneInfo = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.policy not in (POLICY_ALWAYS, POLICY_BUSINESS):
            raise ValueError(f"unknown operating-hours policy: {self.policy}")
        object.__setattr__(self, "zone", ZoneInfo(self.timezone_name))

    def is_operating(self, now: datetime) -> bool:
        """Whether the window is open at `now`."""

        if self.policy == POLICY_ALWAYS:
            return True
        local = now.astimezone(self.zone)
        return local.weekday() in BUSINESS_DAYS and self.open_hour <= local.hour < self.close_hour

    def hours_until_operating(self, now: datetime) -> int:
        """Whole hours (rounded up) until the next window opens; 0 while open."""

        if self.is_operating(now):
            return 0
        local = now.astimezone(self.zone)
        candidate = local.replace(hour=self.open_hour, minute=0, second=0, microsecond=0)
        if candidate <= local:
            candidate += timedelta(days=1)
        while candidate.weekday() not in BUSINESS_DAYS:
            candidate += timedelta(days=1)
        return math.ceil((candidate - local).total_seconds() / 3600)


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""

    return datetime.now(timezone.utc)


def quantize(value: Decimal, places: Decimal) -> Decimal:
    """Round half-up to `places`."""

    return value.quantize(places, rounding=ROUND_HALF_UP)


class PaymentRail(ABC):
    """Contract every settlement mechanism implements."""

    fee_places: Decimal = FIAT_PLACES

    def __init__(self, name: str, supported_currencies: frozenset[str], operating_hours: OperatingHours) -> None:
        self.name = name
        self.supported_currencies = supported_currencies
        self.operating_hours = operating_hours

    @abstractmethod
    def validate(self, instruction: PaymentInstruction) -> ValidationResult:
        """Check shared basics, then rail-specific limits."""

    @abstractmethod
    def execute(
        self,
        instruction: PaymentInstruction,
        rng: RandomSource | None = None,
        now: datetime | None = None,
    ) -> RailOutcome:
        """Simulate submission; a failed outcome is a normal return value."""

    @abstractmethod
    def estimate_settlement(
        self,
        instruction: PaymentInstruction,
        rng: RandomSource | None = None,
        now: datetime | None = None,
    ) -> Decimal:
        """Hours until funds settle; never negative."""

    @abstractmethod
    def calculate_fees(self, instruction: PaymentInstruction, rng: RandomSource | None = None) -> Decimal:
        """Fee for the instruction, rounded to `fee_places`."""

    def validate_basics(self, instruction: PaymentInstruction) -> ValidationResult:
        """Currency, amount and support checks every rail shares."""

        errors = []
        if not instruction.source_currency:
            errors.append("Source currency is required")
        if not instruction.target_currency:
            errors.append("Target currency is required")
        if instruction.source_amount is None or instruction.source_amount <= 0:
            errors.append("Source amount must be greater than 0")
        if instruction.source_currency not in self.supported_currencies:
            errors.append(f"Source currency {instruction.source_currency} not supported by {self.name}")
        if instruction.target_currency not in self.supported_currencies:
            errors.append(f"Target currency {instruction.target_currency} not supported by {self.name}")
        return ValidationResult(is_valid=not errors, errors=tuple(errors))

    def is_operating(self, now: datetime | None = None) -> bool:
        """Whether the rail accepts work at `now` (defaults to the current time)."""

        return self.operating_hours.is_operating(now or utcnow())

    def hours_until_operating(self, now: datetime | None = None) -> int:
        """Hours until the rail next accepts work; 0 while operating."""

        return self.operating_hours.hours_until_operating(now or utcnow())

    @staticmethod
    def _rng(rng: RandomSource | None) -> RandomSource:
        # A fresh generator per call keeps concurrent submissions independent.
        return rng if rng is not None else random.Random()

    @staticmethod
    def _reference(prefix: str) -> str:
        return f"{prefix}_{uuid4().hex[:16].upper()}"

    def _processing(self, prefix: str, message: str, hours: Decimal, now: datetime) -> RailOutcome:
        return RailOutcome(
            status="processing",
            reference=self._reference(prefix),
            message=message,
            estimated_completion=now + timedelta(hours=float(hours)),
        )

    @staticmethod
    def _failed(message: str) -> RailOutcome:
        return RailOutcome(status="failed", reference=None, message=message)
