"""Custom exceptions for subscription billing."""


class SubscriptionConfigError(Exception):
    """Raised when a payment provider is not configured."""
    pass


class SubscriptionProviderError(Exception):
    """Raised when PayPal or Google Play answers with an error."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class SubscriptionNotActiveError(Exception):
    """Raised when a provider reports the subscription is not active."""
    pass
