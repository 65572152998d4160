"""
Domain errors raised by the store service.

Every failure is terminal for the attempted operation and leaves the
store exactly as it was. The HTTP layer maps ``code`` to a status.
"""


class StoreError(Exception):
    code = "store_error"


class InvalidInput(StoreError, ValueError):
    code = "invalid_input"


class Unauthorized(StoreError):
    code = "unauthorized"


class ProductAlreadyExists(StoreError):
    code = "already_exists"


class ProductNotFound(StoreError, LookupError):
    code = "not_found"


class AlreadyPurchased(StoreError):
    code = "already_purchased"


class OutOfStock(StoreError):
    code = "out_of_stock"


class InsufficientPayment(StoreError):
    code = "insufficient_payment"


class NoPurchaseFound(StoreError):
    code = "no_purchase_found"


class GracePeriodExpired(StoreError):
    code = "grace_period_expired"


class TransferFailed(StoreError):
    code = "transfer_failed"


class QuantityOverflow(StoreError, OverflowError):
    code = "overflow"
