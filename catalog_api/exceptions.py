from typing import Optional


class ApplicationError(Exception):
    """Base class for application-specific errors."""
    pass


class ProductNotFoundError(ApplicationError):
    """
    Raised when no product row matches the requested id.

    ``operation`` names the repository call that missed (``find``, ``update``
    or ``delete``) and is part of the client-facing message.
    """

    def __init__(self, product_id: int, operation: str = "find"):
        self.product_id = product_id
        self.operation = operation
        if operation == "find":
            message = f"Product with ID {product_id} not found"
        else:
            message = f"Product with ID {product_id} not found for {operation}"
        super().__init__(message)


class DatabaseError(ApplicationError):
    """
    Raised when a statement fails inside the database driver.

    The message is for server-side logs only; handlers answer with a generic 500.
    """

    def __init__(
        self,
        operation: str,
        original_exception: Optional[BaseException] = None,
    ):
        self.operation = operation
        self.original_exception = original_exception
        detail = f": {type(original_exception).__name__}" if original_exception else ""
        super().__init__(f"Database error during {operation}{detail}")
