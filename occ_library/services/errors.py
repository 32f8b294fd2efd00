"""
Exceptions raised by the library service layer.
Routers translate them to HTTP errors.
"""


class LibraryError(Exception):
    """Base class for service-layer errors."""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(LibraryError):
    """Requested record doesn't exist or isn't owned by the caller."""
    status_code = 404


class ValidationError(LibraryError):
    """Request data failed validation."""
    status_code = 400


class ConflictError(LibraryError):
    """Request conflicts with existing data (duplicate acronym, linked ebooks)."""
    status_code = 400
