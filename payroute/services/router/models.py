"""Router database models.

Currencies and payment methods are read-only reference data. Quotes own their
routes; transactions reference the quote they consumed and own the route that
was selected for them.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroute.common.db import Base

Amount = Numeric(24, 8)
Score = Numeric(6, 2)
JSONList = JSON().with_variant(JSONB(), "postgresql")


class Currency(Base):
    """ISO or crypto currency the catalog knows about."""

    __tablename__ = "currencies"

    code: Mapped[str] = mapped_column(String(10), primary_key=True)
    name: Mapped[str] = mapped_column(String)
    decimal_places: Mapped[int] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)


class PaymentMethod(Base):
    """Quotable payment method with its scoring inputs and eligibility limits."""

    __tablename__ = "payment_methods"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, unique=True)
    type: Mapped[str] = mapped_column(String, index=True)
    min_amount: Mapped[Decimal] = mapped_column(Amount)
    max_amount: Mapped[Decimal] = mapped_column(Amount)
    avg_settlement_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    fee_percentage: Mapped[Decimal] = mapped_column(Numeric(8, 6))
    source_currencies: Mapped[list] = mapped_column(JSONList)
    target_currencies: Mapped[list] = mapped_column(JSONList)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)


class Quote(Base):
    """Time-boxed conversion offer; consumed at most once."""

    __tablename__ = "quotes"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    source_currency: Mapped[str] = mapped_column(ForeignKey("currencies.code"))
    target_currency: Mapped[str] = mapped_column(ForeignKey("currencies.code"))
    source_amount: Mapped[Decimal] = mapped_column(Amount)
    exchange_rate: Mapped[Decimal] = mapped_column(Amount)
    target_amount: Mapped[Decimal] = mapped_column(Amount)
    status: Mapped[str] = mapped_column(String, index=True, default="active")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    routes: Mapped[list["QuoteRoute"]] = relationship(
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteRoute.rank",
    )


class QuoteRoute(Base):
    """One ranked candidate payment method for a quote."""

    __tablename__ = "quote_routes"
    __table_args__ = (UniqueConstraint("quote_id", "payment_method_id", name="uq_quote_route_method"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    quote_id: Mapped[str] = mapped_column(ForeignKey("quotes.id", ondelete="CASCADE"), index=True)
    payment_method_id: Mapped[int] = mapped_column(ForeignKey("payment_methods.id"))
    rank: Mapped[int] = mapped_column(Integer)
    estimated_cost: Mapped[Decimal] = mapped_column(Amount)
    estimated_time_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    score: Mapped[Decimal] = mapped_column(Score)

    quote: Mapped[Quote] = relationship(back_populates="routes")
    payment_method: Mapped[PaymentMethod] = relationship()


class Transaction(Base):
    """One execution attempt of a consumed quote."""

    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    quote_id: Mapped[str] = mapped_column(ForeignKey("quotes.id"), index=True)
    source_currency: Mapped[str] = mapped_column(String(10))
    target_currency: Mapped[str] = mapped_column(String(10))
    source_amount: Mapped[Decimal] = mapped_column(Amount)
    target_amount: Mapped[Decimal] = mapped_column(Amount)
    status: Mapped[str] = mapped_column(String, index=True)
    provider_reference: Mapped[str | None] = mapped_column(String, nullable=True)
    message: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    route: Mapped[Optional["Route"]] = relationship(back_populates="transaction", cascade="all, delete-orphan")


class Route(Base):
    """Immutable audit record of the path chosen for a transaction."""

    __tablename__ = "routes"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    transaction_id: Mapped[str] = mapped_column(ForeignKey("transactions.id", ondelete="CASCADE"), unique=True)
    payment_method_id: Mapped[int] = mapped_column(ForeignKey("payment_methods.id"))
    estimated_cost: Mapped[Decimal] = mapped_column(Amount)
    estimated_time_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    exchange_rate: Mapped[Decimal] = mapped_column(Amount)
    score: Mapped[Decimal] = mapped_column(Score)
    is_selected: Mapped[bool] = mapped_column(Boolean, default=True)

    transaction: Mapped[Transaction] = relationship(back_populates="route")
