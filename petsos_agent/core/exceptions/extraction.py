"""
Extraction-related exceptions.
"""


class ExtractionError(Exception):
    """Raised when the language-understanding call itself fails."""
    pass


class ExtractionFormatError(ExtractionError):
    """Raised when no slot array can be recovered from the completion text."""
    pass
