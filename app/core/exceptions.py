"""
Domain exceptions raised by the service layer.

Routes translate them into HTTP responses: ValidationError -> 400,
AuthenticationRequired -> 401, NotFound -> 404, StorageError -> 500.
"""


class DirectoryError(Exception):
    """
    Base class for errors raised by the directory services
    """
    status_code: int = 500

    def __init__(self, message: str = "Request failed"):
        self.message = message
        super().__init__(self.message)


class ValidationError(DirectoryError):
    """
    Exception raised when input is missing or invalid
    """
    status_code = 400

    def __init__(self, message: str = "Invalid request"):
        super().__init__(message)


class AuthenticationRequired(DirectoryError):
    """
    Exception raised when a mutation is attempted without an identity
    """
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class NotFound(DirectoryError):
    """
    Exception raised when the targeted row does not exist
    """
    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class StorageError(DirectoryError):
    """
    Exception raised when the store rejects a statement or a concurrent
    writer changed an aggregate row underneath us
    """
    status_code = 500

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message)
