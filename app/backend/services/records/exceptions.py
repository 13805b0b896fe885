"""
Exceptions raised while turning model responses into records.
"""


class ParseError(Exception):
    """Raised when a model response cannot be decoded into records."""

    pass


class MalformedSummaryError(ParseError):
    """Raised when the summary block trailing a table is not valid JSON."""

    pass


class BatchEmptyError(Exception):
    """Raised when no document in a batch produced any record."""

    def __init__(self, failures: dict[str, str] | None = None):
        self.failures = failures or {}
        super().__init__(
            f"No records could be extracted from {len(self.failures)} document(s)"
        )
