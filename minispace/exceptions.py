class MinispaceError(Exception):
    """Base class for all exceptions in Minispace."""


class ValidationError(MinispaceError):
    """Exception raised for malformed input to a store or fetch."""


class NotFoundError(MinispaceError):
    """Exception raised when a preview or upstream document is missing."""


class UpstreamError(MinispaceError):
    """Exception raised when the document store or auth provider fails."""


class AuthError(MinispaceError):
    """Base class for authentication failures."""


class InvalidTokenError(AuthError):
    """Exception raised when a bearer token cannot be verified."""


class InvalidSessionError(AuthError):
    """Exception raised when a session token cannot be verified."""


class NotConfiguredError(MinispaceError):
    """Exception raised when a request reaches an app without its stores."""
