"""Domain exceptions raised by the stock ledger and document workflows.

Each exception carries a human-readable ``message``, the HTTP status the API
layer should answer with and a stable machine-readable ``error_code``.
"""

from fastapi import status


class StockflowError(RuntimeError):
    """Base class for errors the API turns into structured responses."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidQuantityError(StockflowError):
    """Raised when a movement quantity is negative or not an integer."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "INVALID_QUANTITY"

    def __init__(self, quantity: object):
        self.quantity = quantity
        super().__init__(f"Quantity must be a non-negative integer, got {quantity!r}")


class InvalidDocumentError(StockflowError):
    """Raised when a document payload is structurally unusable."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "INVALID_DOCUMENT"


class NotFoundError(StockflowError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: object):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class AlreadyValidatedError(StockflowError):
    """Raised when a document that is already done is validated again."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "ALREADY_VALIDATED"

    def __init__(self, document_type: str, reference: str):
        super().__init__(f"{document_type.capitalize()} {reference} already validated")


class DocumentClosedError(StockflowError):
    """Raised when a done or canceled document is edited."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "DOCUMENT_CLOSED"

    def __init__(self, document_type: str, reference: str, current_status: str):
        self.current_status = current_status
        super().__init__(
            f"{document_type.capitalize()} {reference} is {current_status} and can no longer be changed"
        )


class StorageConflictError(StockflowError):
    """Raised when the store refuses a unit of work (lock timeout, lost connection)."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "STORAGE_CONFLICT"
