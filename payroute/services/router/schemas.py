"""API request/response schemas for router endpoints."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class QuoteCreateRequest(BaseModel):
    """Quote request accepted from clients."""

    source_currency: str = Field(min_length=3, max_length=10)
    target_currency: str = Field(min_length=3, max_length=10)
    source_amount: Decimal


class RouteResponse(BaseModel):
    payment_method_id: int
    method_name: str
    method_type: str
    estimated_cost: Decimal
    total_cost: Decimal
    estimated_time_hours: Decimal
    score: Decimal
    rank: int


class QuoteResponse(BaseModel):
    quote_id: str
    source_currency: str
    target_currency: str
    source_amount: Decimal
    exchange_rate: Decimal
    target_amount: Decimal
    status: str
    routes: list[RouteResponse]
    created_at: datetime
    expires_at: datetime


class ExecuteRequest(BaseModel):
    """Route selection for a previously issued quote."""

    quote_id: str = Field(min_length=1)
    payment_method_id: int = Field(gt=0)


class ExecutionResponse(BaseModel):
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


class TransactionResponse(BaseModel):
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


class CurrencyResponse(BaseModel):
    code: str
    name: str
    decimal_places: int


class PaymentMethodResponse(BaseModel):
    id: int
    name: str
    type: str
    min_amount: Decimal
    max_amount: Decimal
    avg_settlement_hours: Decimal
    fee_percentage: Decimal
    source_currencies: list[str]
    target_currencies: list[str]
