"""Read-only currency / payment-method catalog and its reference seed."""

import time
from decimal import Decimal

from sqlalchemy import select

from payroute.common.logging import logger
from payroute.services.router.models import Currency, PaymentMethod

FIAT = ["USD", "EUR", "GBP", "JPY", "CHF", "CAD", "AUD"]

REFERENCE_CURRENCIES: list[tuple[str, str, int]] = [
    ("USD", "US Dollar", 2),
    ("EUR", "Euro", 2),
    ("GBP", "British Pound", 2),
    ("JPY", "Japanese Yen", 0),
    ("CHF", "Swiss Franc", 2),
    ("CAD", "Canadian Dollar", 2),
    ("AUD", "Australian Dollar", 2),
    ("BTC", "Bitcoin", 8),
    ("ETH", "Ether", 8),
    ("USDC", "USD Coin", 6),
]

# name, type, min, max, avg hours, fee %, source currencies, target currencies
REFERENCE_METHODS: list[tuple[str, str, str, str, str, str, list[str], list[str]]] = [
    ("SWIFT Wire Transfer", "correspondent", "100", "10000000", "48", "0.005", FIAT, FIAT),
    ("Correspondent Banking", "correspondent", "1000", "10000000", "72", "0.0075", FIAT, FIAT),
    ("International ACH", "correspondent", "100", "100000", "72", "0.002", FIAT, FIAT),
    ("Same-Day Wire", "correspondent", "100", "5000000", "8", "0.008", FIAT, FIAT),
    ("Overnight Express", "correspondent", "100", "1000000", "24", "0.01", FIAT, FIAT),
    ("SEPA Credit Transfer", "regional", "0.01", "999999", "24", "0.001", ["EUR"], ["EUR"]),
    ("SEPA Instant", "regional", "0.01", "100000", "0", "0.002", ["EUR"], ["EUR"]),
    ("Faster Payments (UK)", "regional", "0.01", "1000000", "0", "0.0015", ["GBP"], ["GBP"]),
    ("FedWire (Domestic)", "regional", "1", "10000000", "2", "0.003", ["USD"], ["USD"]),
    ("Bitcoin Network", "crypto", "0.0001", "100", "1", "0.01", ["BTC"], ["BTC", "ETH"]),
    ("Ethereum Network", "crypto", "0.01", "1000", "0.25", "0.005", ["ETH"], ["BTC", "ETH"]),
    ("Lightning Network", "crypto", "0.00000001", "0.001", "0", "0.001", ["BTC"], ["BTC"]),
]


class CatalogRepository:
    """Lookups over reference data inside the caller's session."""

    def __init__(self, db) -> None:
        self.db = db

    def get_currency(self, code: str) -> Currency | None:
        """Currency by code, active or not."""

        return self.db.get(Currency, code)

    def active_currency(self, code: str) -> Currency | None:
        """Currency by code, or None when unknown or inactive."""

        currency = self.get_currency(code)
        if currency is None or not currency.is_active:
            return None
        return currency

    def active_currencies(self) -> list[Currency]:
        """Active currencies ordered by code."""

        return list(
            self.db.execute(select(Currency).where(Currency.is_active.is_(True)).order_by(Currency.code)).scalars()
        )

    def get_method(self, method_id: int) -> PaymentMethod | None:
        """Payment method by id."""

        return self.db.get(PaymentMethod, method_id)

    def list_methods(self, active_only: bool = True) -> list[PaymentMethod]:
        """Payment methods ordered by id."""

        stmt = select(PaymentMethod).order_by(PaymentMethod.id)
        if active_only:
            stmt = stmt.where(PaymentMethod.is_active.is_(True))
        return list(self.db.execute(stmt).scalars())

    def eligible_methods(self, source_currency: str, target_currency: str, amount: Decimal) -> list[PaymentMethod]:
        """Active methods whose amount range covers `amount` and that support the pair."""

        candidates = self.db.execute(
            select(PaymentMethod)
            .where(
                PaymentMethod.is_active.is_(True),
                PaymentMethod.min_amount <= amount,
                PaymentMethod.max_amount >= amount,
            )
            .order_by(PaymentMethod.id)
        ).scalars()
        return [
            method
            for method in candidates
            if source_currency in (method.source_currencies or []) and target_currency in (method.target_currencies or [])
        ]


def seed_reference_data(session_factory, retries: int = 20) -> None:
    """Insert missing reference rows; retry during cold-start races."""

    for attempt in range(1, retries + 1):
        try:
            with session_factory() as db:
                for code, name, places in REFERENCE_CURRENCIES:
                    if not db.get(Currency, code):
                        db.add(Currency(code=code, name=name, decimal_places=places, is_active=True))
                existing = set(db.execute(select(PaymentMethod.name)).scalars())
                for name, kind, low, high, hours, fee, sources, targets in REFERENCE_METHODS:
                    if name in existing:
                        continue
                    db.add(
                        PaymentMethod(
                            name=name,
                            type=kind,
                            min_amount=Decimal(low),
                            max_amount=Decimal(high),
                            avg_settlement_hours=Decimal(hours),
                            fee_percentage=Decimal(fee),
                            source_currencies=list(sources),
                            target_currencies=list(targets),
                            is_active=True,
                        )
                    )
                db.commit()
                return
        except Exception as exc:
            logger.warning("catalog seed retry=%s/%s error=%s", attempt, retries, exc)
            if attempt == retries:
                raise
            time.sleep(1)
