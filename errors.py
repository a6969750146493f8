class InventoryError(Exception):
    """Base class for errors raised by the storage layer.

    ``status_code`` is the HTTP status the API maps the error to.
    """

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(InventoryError):
    status_code = 404


class ConflictError(InventoryError):
    """Operation refused because of the current state of a row."""

    def __init__(self, message: str, *, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class InsufficientStockError(ConflictError):
    def __init__(self, requested: int, available: int):
        super().__init__(f"insufficient stock: requested {requested}, available {available}")
        self.requested = requested
        self.available = available


class LastAdminError(ConflictError):
    def __init__(self, message: str = "the last admin cannot be removed or demoted"):
        super().__init__(message)
