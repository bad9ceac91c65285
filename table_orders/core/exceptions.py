"""
Order Engine Exceptions

Every failure an order operation can report to its caller. Each kind carries
the HTTP status the API layer answers with, and a message that names the
offending entity (id or name) without exposing storage internals.

    OrderEngineError
    ├── NotFound              404  order/table/product absent
    │   └── ReferenceNotFound 400  entity referenced from a request body absent
    ├── InvalidInput          400  malformed date, empty items, bad status...
    ├── Conflict              409  single-tab table already has an open order
    ├── InsufficientStock     400  requested quantity exceeds available stock
    ├── InvalidState          400  e.g. closing an already-closed order
    └── InternalFailure       500  storage/transaction failure
"""

from typing import Optional


class OrderEngineError(Exception):
    """Base class for all order engine failures."""

    status_code: int = 500
    error: str = "OrderEngineError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        """Convert to the standard error response body."""
        return {
            "success": False,
            "error": self.error,
            "detail": self.message,
        }


class NotFound(OrderEngineError):
    status_code = 404
    error = "NotFound"


class ReferenceNotFound(NotFound):
    """A table or product named in the request body does not exist."""
    status_code = 400


class InvalidInput(OrderEngineError):
    status_code = 400
    error = "InvalidInput"


class Conflict(OrderEngineError):
    status_code = 409
    error = "Conflict"


class InsufficientStock(OrderEngineError):
    """Raised when a line asks for more units than the product has in stock."""

    status_code = 400
    error = "InsufficientStock"

    def __init__(
        self,
        product_id: int,
        product_name: str,
        requested: int,
        available: int,
        message: Optional[str] = None,
    ):
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(
            message
            or f"Insufficient stock for product {product_name}: "
               f"requested {requested}, available {available}"
        )


class InvalidState(OrderEngineError):
    status_code = 400
    error = "InvalidState"


class InternalFailure(OrderEngineError):
    status_code = 500
    error = "InternalFailure"
