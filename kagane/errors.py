"""
Exception taxonomy for the Kagane page engine.

Every failure the engine reports for a page is terminal for that page; the
caller decides whether to refetch.
"""


class KaganeError(Exception):
    """Base class for all engine errors."""
    pass


class PayloadTooShort(KaganeError):
    """Raised when a payload is shorter than the minimum envelope size."""
    pass


class DecryptionFailed(KaganeError):
    """Raised when authenticated decryption fails for any reason."""
    pass


class UnscrambleFailed(KaganeError):
    """Raised when descrambled bytes do not form a valid image."""
    pass


class GraphInvariantViolated(KaganeError):
    """Raised when the scramble path does not cover every grid cell."""
    pass


class ConfigError(KaganeError):
    """Raised when configuration operations fail."""
    pass


class TransportError(KaganeError):
    """Raised when fetching a page from the origin fails."""
    pass
