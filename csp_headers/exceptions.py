"""
Exceptions raised by the security header pipeline.
"""


class SecurityHeadersError(Exception):
    """Base class for all pipeline errors."""

    pass


class ConfigError(SecurityHeadersError):
    """Raised at startup when the header configuration is invalid."""

    pass


class EntropyError(SecurityHeadersError):
    """Raised when the random source cannot supply a request token."""

    pass


class RewriteError(SecurityHeadersError):
    """Raised when markup cannot be rewritten safely."""

    pass
