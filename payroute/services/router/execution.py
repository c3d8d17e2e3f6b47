"""Quote consumption and rail execution.

Quote lifecycle: `active -> used` happens exactly once, through a single
conditional UPDATE guarded by `status = 'active' AND expires_at > now`. The
statement is the serialization point: concurrent executions of one quote race
on the row and every loser sees zero affected rows. `expired` is never stored.

Transaction lifecycle follows `TRANSACTION_TRANSITIONS`: the rail outcome moves
it `pending -> processing` or `pending -> failed`; both are normal results.
"""

import random
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import joinedload

from payroute.common.config import settings
from payroute.common.db import as_utc
from payroute.common.errors import (
    IntegrityError,
    QuoteNotUsable,
    RailTimeout,
    RouteNotFound,
    TransactionNotFound,
)
from payroute.common.logging import log_context, logger
from payroute.common.metrics import (
    execution_latency_seconds,
    execution_outcomes_total,
    execution_requests_total,
    quote_consumption_conflicts_total,
    rail_outcomes_total,
)
from payroute.common.state_machine import validate_transition
from payroute.common.tracing import tracer
from payroute.rails.base import PaymentInstruction, PaymentRail, RailOutcome, RandomSource, utcnow
from payroute.rails.registry import RailRegistry
from payroute.services.router.models import Quote, QuoteRoute, Route, Transaction


@dataclass(frozen=True)
class ExecutionResult:
    transaction_id: str
    status: str
    quote_id: str
    payment_method_id: int
    source_amount: Decimal
    target_amount: Decimal
    exchange_rate: Decimal
    provider_reference: str | None
    message: str
    estimated_completion: datetime | None = None


@dataclass(frozen=True)
class TransactionRecord:
    """Stored transaction joined with its selected route."""

    transaction_id: str
    quote_id: str
    status: str
    source_currency: str
    target_currency: str
    source_amount: Decimal
    target_amount: Decimal
    provider_reference: str | None
    message: str | None
    payment_method_id: int | None
    exchange_rate: Decimal | None
    estimated_cost: Decimal | None
    estimated_time_hours: Decimal | None
    score: Decimal | None
    created_at: datetime
    updated_at: datetime


class ExecutionEngine:
    """Consumes a quote once and submits the chosen route to its rail."""

    def __init__(
        self,
        session_factory,
        registry: RailRegistry | None = None,
        rng_factory=random.Random,
        clock=utcnow,
        rail_timeout_seconds: float | None = None,
        service_name: str = "payment-router",
        rail_max_workers: int | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.registry = registry or RailRegistry()
        self.rng_factory = rng_factory
        self.clock = clock
        timeout = settings.rail_timeout_seconds if rail_timeout_seconds is None else rail_timeout_seconds
        self.rail_timeout_seconds = timeout if timeout and timeout > 0 else None
        self.service_name = service_name
        # Built once up front; a timed-out rail keeps its worker until it returns.
        self._pool: ThreadPoolExecutor | None = None
        if self.rail_timeout_seconds is not None:
            self._pool = ThreadPoolExecutor(
                max_workers=rail_max_workers or settings.rail_max_workers,
                thread_name_prefix="rail",
            )

    def _consume_quote(self, db, quote_id: str, now: datetime):
        """Flip `active -> used` in one statement and return the consumed row."""

        table = Quote.__table__
        return db.execute(
            update(table)
            .where(table.c.id == quote_id, table.c.status == "active", table.c.expires_at > now)
            .values(status="used", used_at=now)
            .returning(
                table.c.id,
                table.c.source_currency,
                table.c.target_currency,
                table.c.source_amount,
                table.c.exchange_rate,
                table.c.target_amount,
            )
        ).one_or_none()

    def _submit(
        self,
        rail: PaymentRail,
        instruction: PaymentInstruction,
        rng: RandomSource,
        now: datetime,
    ) -> RailOutcome:
        with tracer.start_as_current_span("rail.submit") as span:
            span.set_attribute("rail.name", rail.name)
            span.set_attribute("payment.currency_pair", f"{instruction.source_currency}->{instruction.target_currency}")
            outcome = self._submit_bounded(rail, instruction, rng, now)
            span.set_attribute("rail.status", outcome.status)
            return outcome

    def _submit_bounded(
        self,
        rail: PaymentRail,
        instruction: PaymentInstruction,
        rng: RandomSource,
        now: datetime,
    ) -> RailOutcome:
        validation = rail.validate(instruction)
        if not validation.is_valid:
            return RailOutcome(status="failed", reference=None, message="; ".join(validation.errors))
        if self._pool is None:
            return rail.execute(instruction, rng=rng, now=now)

        future = self._pool.submit(rail.execute, instruction, rng, now)
        try:
            return future.result(timeout=self.rail_timeout_seconds)
        except FutureTimeout as exc:
            future.cancel()
            raise RailTimeout(f"{rail.name} did not respond within {self.rail_timeout_seconds}s") from exc

    def _record_outcome(self, transaction_id: str, outcome: RailOutcome) -> None:
        """Store provider reference/message and move to the rail-reported status."""

        with self.session_factory() as db:
            transaction = db.get(Transaction, transaction_id)
            validate_transition(transaction.status, outcome.status)
            values = {
                "status": outcome.status,
                "provider_reference": outcome.reference,
                "message": outcome.message,
                "updated_at": self.clock(),
            }
            result = db.execute(
                update(Transaction)
                .where(Transaction.id == transaction_id, Transaction.status == transaction.status)
                .values(**values)
            )
            if result.rowcount != 1:
                raise RuntimeError(f"concurrent status change for transaction {transaction_id}")
            db.commit()

    def execute_payment(
        self,
        quote_id: str,
        payment_method_id: int,
        rng: RandomSource | None = None,
    ) -> ExecutionResult:
        """Consume `quote_id` and submit it through the selected payment method."""

        execution_requests_total.labels(service=self.service_name).inc()
        with log_context(quote_id=quote_id), execution_latency_seconds.labels(service=self.service_name).time():
            return self._execute(quote_id, payment_method_id, rng if rng is not None else self.rng_factory())

    def _execute(self, quote_id: str, payment_method_id: int, rng: RandomSource) -> ExecutionResult:
        now = self.clock()
        with self.session_factory() as db:
            quote = self._consume_quote(db, quote_id, now)
            if quote is None:
                db.rollback()
                quote_consumption_conflicts_total.labels(service=self.service_name).inc()
                logger.info("quote_not_usable quote_id=%s", quote_id)
                raise QuoteNotUsable("Quote not found, expired, or already used")

            route = db.execute(
                select(QuoteRoute)
                .options(joinedload(QuoteRoute.payment_method))
                .where(QuoteRoute.quote_id == quote_id, QuoteRoute.payment_method_id == payment_method_id)
            ).scalar_one_or_none()
            if route is None:
                # Rolling back leaves the quote active for another selection.
                db.rollback()
                raise RouteNotFound("Selected payment method not available for this quote")

            method_name = route.payment_method.name
            try:
                rail = self.registry.resolve(method_name)
            except IntegrityError:
                db.rollback()
                logger.error(
                    "rail_resolution_failed quote_id=%s payment_method_id=%s method=%s",
                    quote_id,
                    payment_method_id,
                    method_name,
                )
                raise

            transaction = Transaction(
                quote_id=quote_id,
                source_currency=quote.source_currency,
                target_currency=quote.target_currency,
                source_amount=quote.source_amount,
                target_amount=quote.target_amount,
                status="pending",
                created_at=now,
                updated_at=now,
                route=Route(
                    payment_method_id=payment_method_id,
                    estimated_cost=route.estimated_cost,
                    estimated_time_hours=route.estimated_time_hours,
                    exchange_rate=quote.exchange_rate,
                    score=route.score,
                    is_selected=True,
                ),
            )
            db.add(transaction)
            db.commit()

        with log_context(transaction_id=transaction.id):
            logger.info(
                "quote_consumed quote_id=%s transaction_id=%s method=%s",
                quote_id,
                transaction.id,
                method_name,
            )
            instruction = PaymentInstruction(
                source_currency=quote.source_currency,
                target_currency=quote.target_currency,
                source_amount=quote.source_amount,
                payment_method_name=method_name,
                exchange_rate=quote.exchange_rate,
            )
            try:
                outcome = self._submit(rail, instruction, rng, now)
            except RailTimeout as exc:
                self._record_outcome(transaction.id, RailOutcome(status="failed", reference=None, message=str(exc)))
                rail_outcomes_total.labels(service=self.service_name, rail=rail.name, status="timeout").inc()
                logger.warning("rail_timeout transaction_id=%s rail=%s", transaction.id, rail.name)
                raise

            self._record_outcome(transaction.id, outcome)
            rail_outcomes_total.labels(service=self.service_name, rail=rail.name, status=outcome.status).inc()
            execution_outcomes_total.labels(service=self.service_name, status=outcome.status).inc()
            logger.info(
                "payment_executed transaction_id=%s rail=%s status=%s reference=%s",
                transaction.id,
                rail.name,
                outcome.status,
                outcome.reference,
            )

        return ExecutionResult(
            transaction_id=transaction.id,
            status=outcome.status,
            quote_id=quote_id,
            payment_method_id=payment_method_id,
            source_amount=quote.source_amount,
            target_amount=quote.target_amount,
            exchange_rate=quote.exchange_rate,
            provider_reference=outcome.reference,
            message=outcome.message,
            estimated_completion=outcome.estimated_completion,
        )

    def get_transaction(self, transaction_id: str) -> TransactionRecord:
        with self.session_factory() as db:
            transaction = db.execute(
                select(Transaction).options(joinedload(Transaction.route)).where(Transaction.id == transaction_id)
            ).scalar_one_or_none()
            if transaction is None:
                raise TransactionNotFound(f"Transaction {transaction_id} not found")
            route = transaction.route
            return TransactionRecord(
                transaction_id=transaction.id,
                quote_id=transaction.quote_id,
                status=transaction.status,
                source_currency=transaction.source_currency,
                target_currency=transaction.target_currency,
                source_amount=transaction.source_amount,
                target_amount=transaction.target_amount,
                provider_reference=transaction.provider_reference,
                message=transaction.message,
                payment_method_id=route.payment_method_id if route else None,
                exchange_rate=route.exchange_rate if route else None,
                estimated_cost=route.estimated_cost if route else None,
                estimated_time_hours=route.estimated_time_hours if route else None,
                score=route.score if route else None,
                created_at=as_utc(transaction.created_at),
                updated_at=as_utc(transaction.updated_at),
            )

    def close(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=False)
