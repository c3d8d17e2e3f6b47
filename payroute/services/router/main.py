"""HTTP surface for quoting, execution, and reference-data lookups."""

from contextlib import asynccontextmanager
from dataclasses import asdict
from time import perf_counter
from uuid import uuid4

from fastapi import Depends, FastAPI, HTTPException, Request

from payroute.common.config import settings
from payroute.common.db import Base, SessionLocal, engine
from payroute.common.errors import IntegrityError, PaymentRoutingError
from payroute.common.logging import configure_logging, logger, trace_id_ctx
from payroute.common.metrics import (
    http_request_duration_seconds,
    http_requests_total,
    metrics_response,
    quote_rejections_total,
)
from payroute.common.startup import log_startup_config
from payroute.common.tracing import instrument_app, setup_tracing
from payroute.services.router.catalog import CatalogRepository, seed_reference_data
from payroute.services.router.execution import ExecutionEngine
from payroute.services.router.quotes import QuoteEngine
from payroute.services.router.schemas import (
    CurrencyResponse,
    ExecuteRequest,
    ExecutionResponse,
    PaymentMethodResponse,
    QuoteCreateRequest,
    QuoteResponse,
    TransactionResponse,
)

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(settings)
quote_engine = QuoteEngine(SessionLocal, service_name=settings.service_name)
execution_engine = ExecutionEngine(SessionLocal, service_name=settings.service_name)


def get_session_factory():
    return SessionLocal


def get_quote_engine() -> QuoteEngine:
    return quote_engine


def get_execution_engine() -> ExecutionEngine:
    return execution_engine


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Seed reference data before serving; release the rail pool on shutdown."""

    # Local SQLite runs skip Alembic; other backends are migrated out of band.
    if engine.dialect.name == "sqlite":
        Base.metadata.create_all(engine)
    seed_reference_data(SessionLocal)
    yield
    execution_engine.close()


app = FastAPI(title="PayRoute Payment Router", lifespan=lifespan)
instrument_app(app)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Bind the caller's trace id and record request count and latency."""

    start = perf_counter()
    route = request.url.path
    method = request.method
    status_code = 500
    trace_id = request.headers.get("x-trace-id") or str(uuid4())
    trace_id_ctx.set(trace_id)
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["x-trace-id"] = trace_id
        route_obj = request.scope.get("route")
        if route_obj is not None and getattr(route_obj, "path", None):
            route = route_obj.path
        return response
    finally:
        elapsed = max(0.0, perf_counter() - start)
        http_request_duration_seconds.labels(
            service=settings.service_name,
            route=route,
            method=method,
        ).observe(elapsed)
        http_requests_total.labels(
            service=settings.service_name,
            route=route,
            method=method,
            status_code=str(status_code),
        ).inc()


def _routing_error(exc: PaymentRoutingError) -> HTTPException:
    """Map domain errors to HTTP errors; integrity failures hide their detail."""

    if isinstance(exc, IntegrityError):
        logger.error("integrity_error code=%s detail=%s", exc.code, exc)
        return HTTPException(status_code=500, detail={"code": IntegrityError.code, "message": "internal routing error"})
    return HTTPException(status_code=exc.status_code, detail={"code": exc.code, "message": str(exc)})


@app.post("/api/quotes", response_model=QuoteResponse)
def create_quote(req: QuoteCreateRequest, engine: QuoteEngine = Depends(get_quote_engine)):
    """Price every eligible payment method and return the ranked quote."""

    try:
        quote = engine.generate_quote(req.source_currency, req.target_currency, req.source_amount)
    except PaymentRoutingError as exc:
        quote_rejections_total.labels(service=settings.service_name, error_code=exc.code).inc()
        logger.info("quote_rejected code=%s message=%s", exc.code, exc)
        raise _routing_error(exc) from exc
    return QuoteResponse(**asdict(quote))


@app.get("/api/quotes/{quote_id}", response_model=QuoteResponse)
def get_quote(quote_id: str, engine: QuoteEngine = Depends(get_quote_engine)):
    """Fetch a quote with its routes; status reads `expired` once past its deadline."""

    try:
        quote = engine.get_quote(quote_id)
    except PaymentRoutingError as exc:
        raise _routing_error(exc) from exc
    return QuoteResponse(**asdict(quote))


@app.post("/api/execute", response_model=ExecutionResponse)
def execute_payment(req: ExecuteRequest, engine: ExecutionEngine = Depends(get_execution_engine)):
    """Consume a quote through the selected route.

    A rail-reported failure still answers 200 with `status=failed`.
    """

    try:
        result = engine.execute_payment(req.quote_id, req.payment_method_id)
    except PaymentRoutingError as exc:
        raise _routing_error(exc) from exc
    return ExecutionResponse(**asdict(result))


@app.get("/api/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(transaction_id: str, engine: ExecutionEngine = Depends(get_execution_engine)):
    try:
        record = engine.get_transaction(transaction_id)
    except PaymentRoutingError as exc:
        raise _routing_error(exc) from exc
    return TransactionResponse(**asdict(record))


@app.get("/api/currencies", response_model=list[CurrencyResponse])
def list_currencies(session_factory=Depends(get_session_factory)):
    """Active currencies from the catalog."""

    with session_factory() as db:
        return [
            CurrencyResponse(code=c.code, name=c.name, decimal_places=c.decimal_places)
            for c in CatalogRepository(db).active_currencies()
        ]


@app.get("/api/payment-methods", response_model=list[PaymentMethodResponse])
def list_payment_methods(session_factory=Depends(get_session_factory)):
    """Active payment methods with their quoting parameters."""

    with session_factory() as db:
        return [
            PaymentMethodResponse(
                id=m.id,
                name=m.name,
                type=m.type,
                min_amount=m.min_amount,
                max_amount=m.max_amount,
                avg_settlement_hours=m.avg_settlement_hours,
                fee_percentage=m.fee_percentage,
                source_currencies=m.source_currencies,
                target_currencies=m.target_currencies,
            )
            for m in CatalogRepository(db).list_methods()
        ]


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}
