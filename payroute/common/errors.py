"""Domain error taxonomy for quoting and execution.

Each error carries the HTTP status the API surface maps it to and a stable
machine-readable code. User-facing errors expose their message; integrity
errors are logged and surfaced without internal detail.
"""


class PaymentRoutingError(Exception):
    """Base class for every error raised by the routing core."""

    status_code = 400
    code = "routing_error"


class InvalidInput(PaymentRoutingError):
    code = "invalid_input"


class InvalidAmount(InvalidInput):
    code = "invalid_amount"


class InvalidCurrency(PaymentRoutingError):
    code = "invalid_currency"


class NoRouteAvailable(PaymentRoutingError):
    status_code = 422
    code = "no_route_available"


class RateUnavailable(PaymentRoutingError):
    status_code = 422
    code = "rate_unavailable"


class QuoteNotFound(PaymentRoutingError):
    status_code = 404
    code = "quote_not_found"


class QuoteNotUsable(PaymentRoutingError):
    """Quote is unknown, expired, or already consumed."""

    status_code = 409
    code = "quote_not_usable"


class RouteNotFound(PaymentRoutingError):
    """Selected payment method was not among the quoted routes."""

    status_code = 404
    code = "route_not_found"


class TransactionNotFound(PaymentRoutingError):
    status_code = 404
    code = "transaction_not_found"


class IntegrityError(PaymentRoutingError):
    """Catalog, quote and rail mapping disagree; never a client mistake."""

    status_code = 500
    code = "integrity_error"


class UnknownPaymentMethod(IntegrityError):
    code = "unknown_payment_method"


class RailTimeout(PaymentRoutingError):
    status_code = 504
    code = "rail_timeout"
