"""Exceptions raised by the billing workflow."""


class BillingError(Exception):
    """Base exception for billing errors."""
    pass


class PaymentConfigurationError(BillingError):
    """Raised when payment gateway credentials are missing."""
    pass


class InvalidPlanError(BillingError):
    """Raised when a plan or billing cycle cannot be used for the operation."""
    pass


class SubscriptionNotFoundError(BillingError):
    """Raised when a user has no subscription row."""
    pass


class SubscriptionPersistenceError(BillingError):
    """Raised when reading or writing a subscription fails at the store."""
    pass


class PaymentReplayConflictError(BillingError):
    """Raised when a processed payment is submitted again for a different request."""
    pass


class GatewayError(BillingError):
    """Raised when the payment gateway cannot be reached or answers with an error."""
    pass


class OrderMismatchError(BillingError):
    """Raised when a payment is claimed for something other than what its order was priced for."""
    pass
