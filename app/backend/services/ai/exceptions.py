"""
Shared exceptions for AI service modules.
"""


class AIServiceError(Exception):
    """Raised when AI service operations fail."""

    pass


class RateLimitExceededError(AIServiceError):
    """Raised when the model API keeps rate-limiting after every retry."""

    pass
