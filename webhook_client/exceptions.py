"""Custom exceptions for the webhook client."""


class WebhookError(Exception):
    """Base exception for the webhook client."""
    pass


class WebhookUrlError(WebhookError):
    """Raised when a webhook URL, id or token cannot be parsed."""
    pass


class MessageError(WebhookError):
    """Raised when message content cannot be sent as-is."""
    pass


class ClientClosedError(WebhookError):
    """Raised when sending to a closed client, or for messages dropped by close()."""
    pass


class DeliveryError(WebhookError):
    """Base exception for a message that could not be delivered."""
    pass


class HttpError(DeliveryError):
    """Raised when the webhook answers with a non-OK status."""

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"Request returned failure {status}: {body}")


class TransportError(DeliveryError):
    """Raised when the exchange with the webhook could not complete."""
    pass
