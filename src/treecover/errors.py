"""Errors raised by the tree cover pipeline."""


class TreeCoverError(Exception):
    """Base class for conditions the pipeline reports to its caller."""

    def __init__(self, message: str) -> None:
        """
        Initialize the error with a message.

        :param message: The error message to be displayed.
        """
        super().__init__(message)


class BoundaryNotFoundError(TreeCoverError):
    """
    Exception raised when no administrative boundary matches a query.

    Raised instead of letting an empty geometry flow into clipping and export.
    """


class NoDataInRangeError(TreeCoverError):
    """
    Exception raised when the image collection has no scenes for the query.

    This covers both the date range and the spatial filter: a collection that
    has scenes in the date range but none over the region is also empty.
    """


class ExportTooLargeError(TreeCoverError):
    """Exception raised when an export would exceed its maximum pixel count."""


class ServiceUnavailableError(TreeCoverError):
    """
    Exception raised when the remote data platform keeps failing.

    Only raised after the bounded retry policy has been exhausted on transient
    failures.
    """
