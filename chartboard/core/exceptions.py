"""
Custom exception classes for the Chartboard dashboard system.
"""


class ChartboardException(Exception):
    """Base exception for the Chartboard system."""

    def __init__(self, message: str, error_code: str = None, context: dict = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}


class SettingsLoadFailure(ChartboardException):
    """Exception raised when a data source's settings could not be loaded."""
    pass


class DataFetchFailure(ChartboardException):
    """Exception raised when the remote data call for a chart failed."""
    pass


class PersistFailure(ChartboardException):
    """Exception raised when saving chart filters to the document store failed."""
    pass


class DocumentLoadFailure(ChartboardException):
    """Exception raised when a dashboard or chart document is missing or could not be read."""
    pass


class ConfigurationError(ChartboardException):
    """Exception raised for configuration issues."""
    pass


class ValidationError(ChartboardException):
    """Exception raised during filter or payload validation."""
    pass


class RPCError(ChartboardException):
    """Exception raised by remote procedure call transports."""

    def __init__(self, message: str, status_code: int = None, error_code: str = None, context: dict = None):
        super().__init__(message, error_code=error_code, context=context)
        self.status_code = status_code


class RepositoryError(ChartboardException):
    """Exception raised for document store operations."""
    pass


class RecordNotFoundError(RepositoryError):
    """Exception raised when a document is not found."""
    pass
