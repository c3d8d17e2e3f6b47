"""Quote consumption, rail submission and transaction bookkeeping."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
from sqlalchemy import select

from routing_fakes import NOW, FixedRandom
from payroute.common.errors import IntegrityError, QuoteNotUsable, RailTimeout, RouteNotFound, TransactionNotFound
from payroute.rails.correspondent import CorrespondentRail
from payroute.rails.registry import RailRegistry
from payroute.services.router.execution import ExecutionEngine
from payroute.services.router.models import Quote, Transaction


def test_successful_execution(quote_engine, execution_engine, method_id):
    quote = quote_engine.generate_quote("USD", "EUR", "1000")
    overnight = method_id("Overnight Express")

    result = execution_engine.execute_payment(quote.quote_id, overnight, rng=FixedRandom(0.0))

    assert result.status == "processing"
    assert result.provider_reference.startswith("SWIFT_")
    assert result.payment_method_id == overnight
    assert result.target_amount == Decimal("850.00")
    assert result.exchange_rate == Decimal("0.85")
    assert result.estimated_completion is not None

    record = execution_engine.get_transaction(result.transaction_id)
    assert record.status == "processing"
    assert record.provider_reference == result.provider_reference
    assert record.payment_method_id == overnight
    assert record.estimated_cost == Decimal("10")
    assert record.score == Decimal("74.50")
    assert quote_engine.get_quote(quote.quote_id).status == "used"


def test_failed_rail_outcome_is_a_result(quote_engine, execution_engine, method_id):
    quote = quote_engine.generate_quote("USD", "EUR", "1000")

    result = execution_engine.execute_payment(quote.quote_id, method_id("SWIFT Wire Transfer"), rng=FixedRandom(0.99))

    assert result.status == "failed"
    assert result.provider_reference is None
    assert result.message == "Correspondent bank temporarily unavailable"
    assert execution_engine.get_transaction(result.transaction_id).status == "failed"
    # The quote is consumed even though the rail failed.
    assert quote_engine.get_quote(quote.quote_id).status == "used"


def test_rail_validation_failure_recorded_without_draw(quote_engine, execution_engine, method_id):
    """JPY 100 is above the catalog floor but far below the wire minimum in USD."""

    quote = quote_engine.generate_quote("JPY", "USD", "100")
    rng = FixedRandom(0.0)

    result = execution_engine.execute_payment(quote.quote_id, method_id("SWIFT Wire Transfer"), rng=rng)

    assert result.status == "failed"
    assert result.message == "SWIFT minimum amount not met (100 USD)"
    assert rng.calls == 0


def test_quote_cannot_be_reused(quote_engine, execution_engine, method_id):
    quote = quote_engine.generate_quote("USD", "EUR", "1000")
    swift = method_id("SWIFT Wire Transfer")
    execution_engine.execute_payment(quote.quote_id, swift, rng=FixedRandom(0.0))

    with pytest.raises(QuoteNotUsable):
        execution_engine.execute_payment(quote.quote_id, swift, rng=FixedRandom(0.0))


def test_expired_quote_is_never_executable(quote_engine, execution_engine, method_id, clock, session_factory):
    quote = quote_engine.generate_quote("USD", "EUR", "1000")
    clock.advance(seconds=901)

    with pytest.raises(QuoteNotUsable):
        execution_engine.execute_payment(quote.quote_id, method_id("SWIFT Wire Transfer"), rng=FixedRandom(0.0))

    with session_factory() as db:
        assert db.get(Quote, quote.quote_id).status == "active"
        assert db.execute(select(Transaction)).first() is None


def test_unknown_quote_is_not_usable(execution_engine):
    with pytest.raises(QuoteNotUsable):
        execution_engine.execute_payment("missing", 1)


def test_route_mismatch_keeps_quote_active(quote_engine, execution_engine, method_id):
    quote = quote_engine.generate_quote("USD", "EUR", "1000")

    with pytest.raises(RouteNotFound):
        execution_engine.execute_payment(quote.quote_id, method_id("SEPA Instant"), rng=FixedRandom(0.0))

    assert quote_engine.get_quote(quote.quote_id).status == "active"
    result = execution_engine.execute_payment(quote.quote_id, method_id("Same-Day Wire"), rng=FixedRandom(0.0))
    assert result.status == "processing"


def test_missing_rail_is_integrity_error(quote_engine, session_factory, clock, method_id):
    engine = ExecutionEngine(session_factory, registry=RailRegistry(factories={}), clock=clock)
    quote = quote_engine.generate_quote("USD", "EUR", "1000")

    with pytest.raises(IntegrityError):
        engine.execute_payment(quote.quote_id, method_id("SWIFT Wire Transfer"), rng=FixedRandom(0.0))

    assert quote_engine.get_quote(quote.quote_id).status == "active"


class SlowRail(CorrespondentRail):
    def execute(self, instruction, rng=None, now=None):
        time.sleep(0.5)
        return super().execute(instruction, rng=rng, now=now)


def test_rail_timeout_marks_transaction_failed(quote_engine, session_factory, clock, method_id):
    registry = RailRegistry(factories={"SWIFT Wire Transfer": SlowRail})
    engine = ExecutionEngine(session_factory, registry=registry, clock=clock, rail_timeout_seconds=0.05)
    quote = quote_engine.generate_quote("USD", "EUR", "1000")

    try:
        with pytest.raises(RailTimeout):
            engine.execute_payment(quote.quote_id, method_id("SWIFT Wire Transfer"), rng=FixedRandom(0.0))
    finally:
        engine.close()

    with session_factory() as db:
        transaction = db.execute(select(Transaction).where(Transaction.quote_id == quote.quote_id)).scalar_one()
        assert transaction.status == "failed"
        assert "did not respond" in transaction.message


def test_bounded_engine_builds_its_pool_once(session_factory, clock):
    """Concurrent submissions share the pool created with the engine; close() releases it."""

    engine = ExecutionEngine(session_factory, clock=clock, rail_timeout_seconds=5, rail_max_workers=2)
    pool = engine._pool

    assert pool is not None
    engine.close()
    with pytest.raises(RuntimeError):
        pool.submit(time.sleep, 0)


def test_unbounded_engine_calls_rails_inline(execution_engine):
    assert execution_engine._pool is None


def test_timed_out_rail_does_not_block_other_submissions(quote_engine, session_factory, clock, method_id):
    registry = RailRegistry(factories={"SWIFT Wire Transfer": SlowRail, "Same-Day Wire": CorrespondentRail})
    engine = ExecutionEngine(session_factory, registry=registry, clock=clock, rail_timeout_seconds=0.2, rail_max_workers=2)
    slow_quote = quote_engine.generate_quote("USD", "EUR", "1000")
    fast_quote = quote_engine.generate_quote("USD", "EUR", "1000")

    try:
        with pytest.raises(RailTimeout):
            engine.execute_payment(slow_quote.quote_id, method_id("SWIFT Wire Transfer"), rng=FixedRandom(0.0))
        result = engine.execute_payment(fast_quote.quote_id, method_id("Same-Day Wire"), rng=FixedRandom(0.0))
    finally:
        engine.close()

    assert result.status == "processing"


def test_concurrent_executions_consume_quote_once(quote_engine, execution_engine, method_id, session_factory):
    """Exactly one of many simultaneous executions of the same quote wins."""

    quote = quote_engine.generate_quote("USD", "EUR", "1000")
    swift = method_id("SWIFT Wire Transfer")
    attempts = 8
    barrier = threading.Barrier(attempts)

    def attempt():
        barrier.wait()
        try:
            return execution_engine.execute_payment(quote.quote_id, swift, rng=FixedRandom(0.0))
        except QuoteNotUsable:
            return None

    with ThreadPoolExecutor(max_workers=attempts) as pool:
        results = list(pool.map(lambda _: attempt(), range(attempts)))

    winners = [r for r in results if r is not None]
    assert len(winners) == 1
    with session_factory() as db:
        transactions = db.execute(select(Transaction).where(Transaction.quote_id == quote.quote_id)).scalars().all()
        assert [t.id for t in transactions] == [winners[0].transaction_id]


def test_transaction_timestamps_follow_clock(quote_engine, execution_engine, method_id):
    quote = quote_engine.generate_quote("EUR", "EUR", "100")
    result = execution_engine.execute_payment(quote.quote_id, method_id("SEPA Instant"), rng=FixedRandom(0.0))

    record = execution_engine.get_transaction(result.transaction_id)
    assert record.created_at == NOW
    assert result.estimated_completion == NOW


def test_unknown_transaction(execution_engine):
    with pytest.raises(TransactionNotFound):
        execution_engine.get_transaction("missing")
