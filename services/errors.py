"""
Exceptions raised by the repository layer.
"""


class InvalidOperationError(Exception):
    """A business rule was violated; the caller should treat it as a bad request."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(Exception):
    """Raised by HTTP helpers when a repository returned None/False."""

    def __init__(self, message: str = 'Resource not found'):
        self.message = message
        super().__init__(message)
