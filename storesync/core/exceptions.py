class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    pass

class ConfigurationError(BaseServiceError):
    """Raised when required configuration is missing or invalid."""
    pass

class ExternalAPIError(BaseServiceError):
    """Raised when a call to the external sync system fails."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

class ExternalPayloadError(ExternalAPIError):
    """Raised when the external system returns a body we cannot validate."""
    pass

class ShopifyServiceError(BaseServiceError):
    """Base exception for Shopify-specific errors."""
    pass

class ShopifyAPIError(ShopifyServiceError):
    """Raised when Shopify API calls fail."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

class ShopifyGraphQLError(ShopifyAPIError):
    """Raised when a GraphQL response carries a top-level errors list."""

    def __init__(self, errors):
        self.errors = errors
        message = "GraphQL query failed with errors:\n"
        for error in errors:
            msg = error.get('message', 'Unknown error')
            path = error.get('path', [])
            message += f"- Message: {msg}, Path: {path}\n"
        super().__init__(message)

class WebhookPayloadError(BaseServiceError):
    """Raised when a webhook body cannot be parsed into an order."""
    pass
