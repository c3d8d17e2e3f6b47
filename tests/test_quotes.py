"""Quote generation: validation, scoring, ranking and persistence."""

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from payroute.common.errors import InvalidAmount, InvalidCurrency, NoRouteAvailable, QuoteNotFound, RateUnavailable
from payroute.services.router.models import Currency, QuoteRoute
from payroute.services.router.quotes import QuoteEngine, RouteOption, rank_routes, round_amount, score_route
from payroute.services.router.rates import MockRateProvider


def option(method_id: int, score: str, hours: str) -> RouteOption:
    return RouteOption(method_id, f"m{method_id}", "correspondent", Decimal("0"), Decimal("0"), Decimal(hours), Decimal(score))


def test_worked_example_overnight_express(quote_engine):
    """USD->EUR 1000 through a 1% / 24h method."""

    quote = quote_engine.generate_quote("USD", "EUR", Decimal("1000"))
    overnight = next(route for route in quote.routes if route.method_name == "Overnight Express")

    assert overnight.estimated_cost == Decimal("10")
    assert overnight.total_cost == Decimal("1010")
    assert overnight.score == Decimal("74.50")
    assert quote.exchange_rate == Decimal("0.85")
    assert quote.target_amount == Decimal("850.00")


def test_score_components():
    scored = score_route(Decimal("1000"), Decimal("0.01"), Decimal("24"))

    assert scored.cost_score == Decimal("49.5")
    assert scored.speed_score == Decimal("25")
    assert scored.score == Decimal("74.50")


@pytest.mark.parametrize(
    ("fee_pct", "hours", "expected"),
    [
        ("0", "0", "100.00"),
        ("1.5", "100", "0.00"),
        ("0.002", "72", "49.90"),
        ("0", "-5", "100.00"),
    ],
)
def test_score_is_clamped(fee_pct, hours, expected):
    score = score_route(Decimal("10"), Decimal(fee_pct), Decimal(hours)).score

    assert score == Decimal(expected)
    assert Decimal("0") <= score <= Decimal("100")


def test_rank_routes_tie_breaks():
    """Equal scores fall back to faster settlement, then lower method id."""

    ranked = rank_routes([option(3, "80", "24"), option(2, "80", "24"), option(1, "80", "48"), option(4, "90", "72")])

    assert [o.payment_method_id for o in ranked] == [4, 2, 3, 1]
    assert [o.rank for o in ranked] == [1, 2, 3, 4]


def test_routes_ordered_by_score(quote_engine):
    quote = quote_engine.generate_quote("USD", "EUR", "1000")
    scores = [route.score for route in quote.routes]

    assert quote.routes
    assert scores == sorted(scores, reverse=True)
    assert quote.routes[0].method_name == "Same-Day Wire"
    assert [route.rank for route in quote.routes] == list(range(1, len(quote.routes) + 1))


def test_same_currency_rate_is_exactly_one(quote_engine):
    quote = quote_engine.generate_quote("EUR", "EUR", Decimal("500"))
    names = {route.method_name for route in quote.routes}

    assert quote.exchange_rate == Decimal("1")
    assert quote.target_amount == quote.source_amount
    assert {"SEPA Instant", "SEPA Credit Transfer"} <= names


def test_currency_codes_are_normalised(quote_engine):
    quote = quote_engine.generate_quote(" usd", "eur ", "250")

    assert (quote.source_currency, quote.target_currency) == ("USD", "EUR")


def test_unknown_currency_rejected(quote_engine):
    with pytest.raises(InvalidCurrency):
        quote_engine.generate_quote("XXX", "EUR", "100")


def test_inactive_currency_rejected(quote_engine, session_factory):
    with session_factory() as db:
        db.get(Currency, "CAD").is_active = False
        db.commit()

    with pytest.raises(InvalidCurrency):
        quote_engine.generate_quote("USD", "CAD", "100")


@pytest.mark.parametrize(
    ("source", "amount"),
    [("USD", "0"), ("USD", "-5"), ("USD", "abc"), ("USD", "NaN"), ("USD", "0.004"), ("USD", "1e70")],
)
def test_invalid_amount_rejected(quote_engine, source, amount):
    with pytest.raises(InvalidAmount):
        quote_engine.generate_quote(source, "EUR", amount)


def test_no_route_for_unserved_pair(quote_engine):
    with pytest.raises(NoRouteAvailable):
        quote_engine.generate_quote("USD", "USDC", "100")


def test_no_route_above_every_limit(quote_engine):
    with pytest.raises(NoRouteAvailable):
        quote_engine.generate_quote("BTC", "BTC", "500")


def test_huge_amount_has_no_route(quote_engine):
    """Amounts past every method limit fail cleanly instead of overflowing rounding."""

    with pytest.raises(NoRouteAvailable):
        quote_engine.generate_quote("USD", "EUR", "1e30")


@pytest.mark.parametrize(
    ("source", "target", "amount", "rounded"),
    [("USD", "EUR", "1000.005", "1000.01"), ("JPY", "USD", "1500.5", "1501"), ("EUR", "EUR", "99.994", "99.99")],
)
def test_extra_decimals_round_half_up(quote_engine, source, target, amount, rounded):
    quote = quote_engine.generate_quote(source, target, amount)

    assert quote.source_amount == Decimal(rounded)
    if source == target:
        assert quote.target_amount == quote.source_amount


def test_rounding_helper_handles_large_values():
    assert round_amount(Decimal("1e30"), Decimal("0.01")) == Decimal("1e30")
    assert round_amount(Decimal("0.125"), Decimal("0.01")) == Decimal("0.13")


def test_crypto_quote_uses_network_limits(quote_engine):
    quote = quote_engine.generate_quote("BTC", "BTC", Decimal("0.0005"))

    assert {route.method_name for route in quote.routes} == {"Bitcoin Network", "Lightning Network"}


def test_missing_rate_is_reported(session_factory, clock):
    engine = QuoteEngine(session_factory, rate_provider=MockRateProvider(pair_rates={}, usd_values={}), clock=clock)

    with pytest.raises(RateUnavailable):
        engine.generate_quote("USD", "EUR", "100")


def test_quote_and_routes_persisted_together(quote_engine, session_factory, clock):
    quote = quote_engine.generate_quote("GBP", "GBP", "1200")

    with session_factory() as db:
        stored = db.execute(select(func.count()).select_from(QuoteRoute).where(QuoteRoute.quote_id == quote.quote_id))
        assert stored.scalar_one() == len(quote.routes)

    fetched = quote_engine.get_quote(quote.quote_id)
    assert fetched.status == "active"
    assert fetched.expires_at == clock.now + quote_engine.ttl
    assert [r.payment_method_id for r in fetched.routes] == [r.payment_method_id for r in quote.routes]
    assert fetched.routes[0].total_cost == quote.routes[0].total_cost


def test_quote_reads_expired_after_ttl(quote_engine, clock):
    quote = quote_engine.generate_quote("USD", "EUR", "1000")
    clock.advance(seconds=900)

    assert quote_engine.get_quote(quote.quote_id).status == "expired"


def test_unknown_quote(quote_engine):
    with pytest.raises(QuoteNotFound):
        quote_engine.get_quote("missing")
