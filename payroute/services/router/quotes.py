"""Quote generation: eligibility, scoring, ranking, and atomic persistence.

Each eligible payment method is scored as a fixed-weight blend of cost and
speed, each contributing at most 50 points:

    cost_score  = clamp((1 - fee_percentage) * 50, 0, 50)
    speed_score = clamp((48 - avg_settlement_hours) / 48, 0, 1) * 50

Routes are ranked by score (desc), then settlement hours (asc), then payment
method id (asc). A quote and all of its routes are committed together.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from payroute.common.config import settings
from payroute.common.db import as_utc
from payroute.common.errors import (
    InvalidAmount,
    InvalidCurrency,
    InvalidInput,
    NoRouteAvailable,
    QuoteNotFound,
)
from payroute.common.logging import logger
from payroute.common.metrics import quote_latency_seconds, quote_requests_total, quotes_generated_total
from payroute.rails.base import quantize, utcnow
from payroute.services.router.catalog import CatalogRepository
from payroute.services.router.models import Currency, PaymentMethod, Quote, QuoteRoute
from payroute.services.router.rates import MockRateProvider, RateProvider

SPEED_REFERENCE_HOURS = Decimal("48")
FACTOR_WEIGHT = Decimal("50")
SCORE_PLACES = Decimal("0.01")
AMOUNT_PLACES = Decimal("0.00000001")
# Far beyond any method limit; keeps rounding arithmetic bounded.
MAX_AMOUNT_EXPONENT = 64


@dataclass(frozen=True)
class RouteScore:
    fee: Decimal
    total_cost: Decimal
    cost_score: Decimal
    speed_score: Decimal
    score: Decimal


@dataclass(frozen=True)
class RouteOption:
    """One ranked candidate as returned to callers."""

    payment_method_id: int
    method_name: str
    method_type: str
    estimated_cost: Decimal
    total_cost: Decimal
    estimated_time_hours: Decimal
    score: Decimal
    rank: int = 0


@dataclass(frozen=True)
class QuoteResult:
    quote_id: str
    source_currency: str
    target_currency: str
    source_amount: Decimal
    exchange_rate: Decimal
    target_amount: Decimal
    status: str
    routes: list[RouteOption]
    created_at: datetime
    expires_at: datetime


def _clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    return max(low, min(high, value))


def score_route(amount: Decimal, fee_percentage: Decimal, avg_settlement_hours: Decimal) -> RouteScore:
    """Cost, speed and blended score for moving `amount` through one method."""

    fee = amount * fee_percentage
    cost_score = _clamp((1 - fee_percentage) * FACTOR_WEIGHT, Decimal("0"), FACTOR_WEIGHT)
    speed_ratio = (SPEED_REFERENCE_HOURS - avg_settlement_hours) / SPEED_REFERENCE_HOURS
    speed_score = _clamp(speed_ratio, Decimal("0"), Decimal("1")) * FACTOR_WEIGHT
    return RouteScore(
        fee=quantize(fee, AMOUNT_PLACES),
        total_cost=quantize(amount + fee, AMOUNT_PLACES),
        cost_score=cost_score,
        speed_score=speed_score,
        score=quantize(cost_score + speed_score, SCORE_PLACES),
    )


def rank_routes(options: list[RouteOption]) -> list[RouteOption]:
    ordered = sorted(options, key=lambda o: (-o.score, o.estimated_time_hours, o.payment_method_id))
    return [replace(option, rank=position) for position, option in enumerate(ordered, start=1)]


def derived_status(quote: Quote, now: datetime) -> str:
    """Stored status, with `expired` for active quotes past their deadline."""

    if quote.status == "active" and as_utc(quote.expires_at) <= now:
        return "expired"
    return quote.status


def parse_amount(value) -> Decimal:
    if value is None or isinstance(value, bool):
        raise InvalidInput("source_amount is required")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmount(f"source_amount is not a number: {value!r}") from exc
    if not amount.is_finite():
        raise InvalidAmount("source_amount must be finite")
    if amount.adjusted() > MAX_AMOUNT_EXPONENT:
        raise InvalidAmount("source_amount is out of range")
    return amount


def round_amount(value: Decimal, places: Decimal) -> Decimal:
    """Round half-up to `places`, widening precision so large values never overflow the context."""

    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() - places.as_tuple().exponent + 2)
        return value.quantize(places, rounding=ROUND_HALF_UP)


def _places(currency: Currency) -> Decimal:
    return Decimal(1).scaleb(-currency.decimal_places)


class QuoteEngine:
    """Builds ranked, time-boxed quotes from the catalog and a rate provider."""

    def __init__(
        self,
        session_factory,
        rate_provider: RateProvider | None = None,
        ttl_seconds: int | None = None,
        clock=utcnow,
        service_name: str = "payment-router",
    ) -> None:
        self.session_factory = session_factory
        self.rate_provider = rate_provider or MockRateProvider()
        self.ttl = timedelta(seconds=ttl_seconds if ttl_seconds is not None else settings.quote_ttl_seconds)
        self.clock = clock
        self.service_name = service_name

    def _validated_currencies(self, catalog: CatalogRepository, source: str, target: str) -> dict[str, Currency]:
        currencies = {}
        for code in dict.fromkeys([source, target]):
            currency = catalog.active_currency(code)
            if currency is None:
                raise InvalidCurrency(f"Invalid or inactive currency code: {code}")
            currencies[code] = currency
        return currencies

    @staticmethod
    def _normalised_amount(amount: Decimal, currency: Currency) -> Decimal:
        """Positive amount rounded to the currency's minor unit."""

        if amount <= 0:
            raise InvalidAmount("Amount must be greater than zero")
        rounded = round_amount(amount, _places(currency))
        if rounded <= 0:
            raise InvalidAmount(f"Amount rounds to zero in {currency.code}")
        return rounded

    def _build_options(self, methods: list[PaymentMethod], amount: Decimal) -> list[RouteOption]:
        options = []
        for method in methods:
            scored = score_route(amount, method.fee_percentage, method.avg_settlement_hours)
            options.append(
                RouteOption(
                    payment_method_id=method.id,
                    method_name=method.name,
                    method_type=method.type,
                    estimated_cost=scored.fee,
                    total_cost=scored.total_cost,
                    estimated_time_hours=method.avg_settlement_hours,
                    score=scored.score,
                )
            )
        return rank_routes(options)

    def generate_quote(self, source_currency: str, target_currency: str, source_amount) -> QuoteResult:
        """Validate, price every eligible method, and persist the ranked quote."""

        quote_requests_total.labels(service=self.service_name).inc()
        if not source_currency or not target_currency:
            raise InvalidInput("source_currency and target_currency are required")
        source = source_currency.strip().upper()
        target = target_currency.strip().upper()
        amount = parse_amount(source_amount)

        with quote_latency_seconds.labels(service=self.service_name).time():
            with self.session_factory() as db:
                catalog = CatalogRepository(db)
                currencies = self._validated_currencies(catalog, source, target)
                amount = self._normalised_amount(amount, currencies[source])

                rate = Decimal("1") if source == target else self.rate_provider.rate(source, target)
                target_amount = round_amount(amount * rate, _places(currencies[target]))

                methods = catalog.eligible_methods(source, target, amount)
                if not methods:
                    raise NoRouteAvailable(f"No payment methods available for {amount} {source} -> {target}")
                options = self._build_options(methods, amount)

                created_at = self.clock()
                quote = Quote(
                    source_currency=source,
                    target_currency=target,
                    source_amount=amount,
                    exchange_rate=rate,
                    target_amount=target_amount,
                    status="active",
                    created_at=created_at,
                    expires_at=created_at + self.ttl,
                    routes=[
                        QuoteRoute(
                            payment_method_id=option.payment_method_id,
                            rank=option.rank,
                            estimated_cost=option.estimated_cost,
                            estimated_time_hours=option.estimated_time_hours,
                            score=option.score,
                        )
                        for option in options
                    ],
                )
                db.add(quote)
                db.commit()

        quotes_generated_total.labels(service=self.service_name).inc()
        logger.info(
            "quote_generated quote_id=%s pair=%s->%s amount=%s rate=%s routes=%s",
            quote.id,
            source,
            target,
            amount,
            rate,
            len(options),
        )
        return QuoteResult(
            quote_id=quote.id,
            source_currency=source,
            target_currency=target,
            source_amount=amount,
            exchange_rate=rate,
            target_amount=target_amount,
            status="active",
            routes=options,
            created_at=created_at,
            expires_at=quote.expires_at,
        )

    def get_quote(self, quote_id: str) -> QuoteResult:
        """Read a stored quote with its ranked routes and derived status."""

        with self.session_factory() as db:
            quote = db.execute(
                select(Quote)
                .options(selectinload(Quote.routes).selectinload(QuoteRoute.payment_method))
                .where(Quote.id == quote_id)
            ).scalar_one_or_none()
            if quote is None:
                raise QuoteNotFound(f"Quote {quote_id} not found")
            routes = [
                RouteOption(
                    payment_method_id=route.payment_method_id,
                    method_name=route.payment_method.name,
                    method_type=route.payment_method.type,
                    estimated_cost=route.estimated_cost,
                    total_cost=quantize(quote.source_amount + route.estimated_cost, AMOUNT_PLACES),
                    estimated_time_hours=route.estimated_time_hours,
                    score=route.score,
                    rank=route.rank,
                )
                for route in quote.routes
            ]
            return QuoteResult(
                quote_id=quote.id,
                source_currency=quote.source_currency,
                target_currency=quote.target_currency,
                source_amount=quote.source_amount,
                exchange_rate=quote.exchange_rate,
                target_amount=quote.target_amount,
                status=derived_status(quote, self.clock()),
                routes=routes,
                created_at=as_utc(quote.created_at),
                expires_at=as_utc(quote.expires_at),
            )
