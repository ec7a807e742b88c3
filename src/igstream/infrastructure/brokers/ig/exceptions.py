"""IG exceptions module"""


class IGClientError(Exception):
    """Base exception for IG client errors"""

    pass


class IGAuthenticationError(IGClientError):
    """Raised when session login or token refresh fails"""

    pass


class IGStreamingError(IGClientError):
    """Raised when a streaming connection cannot be prepared"""

    pass
