"""Typed failures raised by the marketplace services.

Every expected failure derives from :class:`MarketplaceError` and carries the
HTTP status the API layer renders it with. Nothing here is retried
automatically; ``retryable`` only tells the caller whether offering a retry
to the user makes sense.
"""


class MarketplaceError(Exception):
    status = 400
    retryable = False

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        data = {"error": type(self).__name__, "retryable": self.retryable}
        data.update(self.details)
        return data


class ValidationError(MarketplaceError):
    status = 400


class PermissionDenied(MarketplaceError):
    status = 403

    def __init__(self, message="You do not have permission to perform this action", **details):
        super().__init__(message, **details)


class NotFound(MarketplaceError):
    status = 404


class OrderNotFound(NotFound):
    def __init__(self, order_id):
        super().__init__(f"Order {order_id} not found", order_id=order_id)


class ProductNotFound(NotFound):
    def __init__(self, product_id):
        super().__init__(f"Product {product_id} not found", product_id=product_id)


class InvalidTransition(MarketplaceError):
    status = 409

    def __init__(self, order_id, current_status, requested_status):
        super().__init__(
            f"Order {order_id} cannot move from {current_status} to {requested_status}",
            order_id=order_id,
            current_status=current_status,
            requested_status=requested_status,
        )


class InsufficientStock(MarketplaceError):
    status = 409

    def __init__(self, product_id, requested, available=None):
        super().__init__(
            f"Not enough stock for product {product_id}",
            product_id=product_id,
            requested=requested,
            available=available,
        )


class ConcurrentUpdate(MarketplaceError):
    status = 409
    retryable = True


class PartialCheckoutError(MarketplaceError):
    """Some seller orders were written before another one failed.

    The written orders are kept; ``created_order_ids`` lists them so the
    caller can show what went through. Ids are taken as each order commits,
    so building the error never touches the database.
    """

    status = 409

    def __init__(self, created_order_ids, failed_seller_id, cause):
        created_order_ids = list(created_order_ids)
        super().__init__(
            f"Checkout failed for seller {failed_seller_id} after "
            f"{len(created_order_ids)} order(s) were placed: {cause}",
            created_order_ids=created_order_ids,
            failed_seller_id=failed_seller_id,
        )
        self.created_order_ids = created_order_ids
        self.failed_seller_id = failed_seller_id
        self.cause = cause


class ProductInUse(MarketplaceError):
    status = 409

    def __init__(self, product_id, open_orders):
        super().__init__(
            f"Product {product_id} still has {open_orders} open order(s)",
            product_id=product_id,
            open_orders=open_orders,
        )


class TransientError(MarketplaceError):
    status = 503
    retryable = True


__all__ = [
    "MarketplaceError",
    "ValidationError",
    "PermissionDenied",
    "NotFound",
    "OrderNotFound",
    "ProductNotFound",
    "InvalidTransition",
    "InsufficientStock",
    "ConcurrentUpdate",
    "ProductInUse",
    "PartialCheckoutError",
    "TransientError",
]
