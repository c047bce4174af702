"""
Domain exceptions for inventory services.

These exceptions represent business rule violations raised by the service
layer. They carry no HTTP knowledge; ``config.exceptions`` maps each
category to a status code and renders ``{"error", "code", "field"}``.

Exception Hierarchy:
    InventoryServiceError (base)
    ├── ValidationError
    ├── NotFoundError
    │   └── VehicleNotFoundError
    ├── ConflictError
    │   ├── AlreadySoldError
    │   ├── AlreadyTransferredError
    │   └── DuplicateLicenseError
    └── InvalidStateError
        ├── NotSoldError
        ├── NotInstallmentError
        ├── NotFullyPaidError
        ├── InstallmentCompleteError
        └── InconsistentSaleStateError
"""


class InventoryServiceError(Exception):
    """
    Base exception for all inventory service errors.

    ``code`` is the stable machine-readable kind; ``field`` names the input
    field at fault when the error is field specific.
    """

    code = 'inventory_error'

    def __init__(self, message='', *, field=None):
        super().__init__(message)
        self.field = field


class ValidationError(InventoryServiceError):
    """Raised when input is malformed or missing."""

    code = 'validation_error'


class NotFoundError(InventoryServiceError):
    """Raised when a referenced record does not exist."""

    code = 'not_found'


class ConflictError(InventoryServiceError):
    """Raised when a state machine guard rejects a repeated transition."""

    code = 'conflict'


class InvalidStateError(InventoryServiceError):
    """Raised when an operation is not permitted in the current state."""

    code = 'invalid_state'


class VehicleNotFoundError(NotFoundError):
    """Raised when vehicle does not exist."""

    code = 'vehicle_not_found'


class AlreadySoldError(ConflictError):
    """Raised when selling a vehicle that is no longer available."""

    code = 'already_sold'


class AlreadyTransferredError(ConflictError):
    """Raised when the owner book was already transferred."""

    code = 'already_transferred'


class DuplicateLicenseError(ConflictError):
    """Raised when another vehicle already carries the license number."""

    code = 'duplicate_license'


class NotSoldError(InvalidStateError):
    """Raised when an operation needs a sold vehicle."""

    code = 'not_sold'


class NotInstallmentError(InvalidStateError):
    """Raised when an operation needs an installment sale."""

    code = 'not_installment'


class NotFullyPaidError(InvalidStateError):
    """Raised when an installment still has a remaining balance."""

    code = 'not_fully_paid'


class InstallmentCompleteError(InvalidStateError):
    """Raised when adding a payment to a fully paid installment."""

    code = 'installment_complete'


class InconsistentSaleStateError(InvalidStateError):
    """Raised when a vehicle holds both a cash sale and an installment plan."""

    code = 'inconsistent_sale_state'
