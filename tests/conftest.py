"""Shared fixtures: a seeded SQLite database per test and a fixed clock."""

import pytest
from sqlalchemy import select

from payroute.common.db import Base, make_session_factory
from payroute.services.router.catalog import seed_reference_data
from payroute.services.router.execution import ExecutionEngine
from payroute.services.router.models import PaymentMethod
from payroute.services.router.quotes import QuoteEngine
from routing_fakes import FixedClock


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def session_factory(tmp_path):
    """File-backed SQLite so concurrent threads share one database."""

    engine, factory = make_session_factory(f"sqlite:///{tmp_path / 'router.db'}")
    Base.metadata.create_all(engine)
    seed_reference_data(factory, retries=1)
    yield factory
    engine.dispose()


@pytest.fixture
def quote_engine(session_factory, clock) -> QuoteEngine:
    return QuoteEngine(session_factory, ttl_seconds=900, clock=clock)


@pytest.fixture
def execution_engine(session_factory, clock):
    engine = ExecutionEngine(session_factory, clock=clock, rail_timeout_seconds=0)
    yield engine
    engine.close()


@pytest.fixture
def method_id(session_factory):
    """Look up a seeded payment-method id by name."""

    def lookup(name: str) -> int:
        with session_factory() as db:
            return db.execute(select(PaymentMethod.id).where(PaymentMethod.name == name)).scalar_one()

    return lookup
