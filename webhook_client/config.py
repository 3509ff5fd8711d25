"""Default configuration for the webhook client."""

# Default timeout for a single webhook exchange in seconds
DEFAULT_TIMEOUT: int = 10

WEBHOOK_URL: str = "https://discord.com/api/v10/webhooks/{id}/{token}"

USER_AGENT: str = "WebhookClient (https://github.com/webhook-client/webhook-client, 1.0.0)"

DEFAULT_CONTENT_TYPE: str = "application/json"

# Status code the server answers with when the bucket is exhausted
RATE_LIMIT_CODE: int = 429

# Longest text content the endpoint accepts
MAX_CONTENT_LENGTH: int = 2000

# Rate limit headers
HEADER_RETRY_AFTER: str = "Retry-After"
HEADER_REMAINING: str = "X-RateLimit-Remaining"
HEADER_LIMIT: str = "X-RateLimit-Limit"
HEADER_RESET: str = "X-RateLimit-Reset"
HEADER_DATE: str = "Date"
