"""
Storage-related exceptions.
"""


class StorageError(Exception):
    """Exception raised when the persistent store rejects an operation."""
    pass
