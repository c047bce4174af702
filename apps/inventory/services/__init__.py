"""
Inventory app services layer.

Services hold the business rules for vehicles, sales, installment ledgers
and profit. All state-changing operations take an explicit ``actor`` and
run in a transaction on a locked vehicle row.
"""

from apps.inventory.exceptions import (
    InventoryServiceError,
    ValidationError,
    NotFoundError,
    ConflictError,
    InvalidStateError,
    VehicleNotFoundError,
    AlreadySoldError,
    AlreadyTransferredError,
    DuplicateLicenseError,
    NotSoldError,
    NotInstallmentError,
    NotFullyPaidError,
    InstallmentCompleteError,
    InconsistentSaleStateError,
)

from .vehicle_management import (
    vehicle_queryset,
    get_vehicle,
    filter_vehicles,
    create_vehicle,
    update_vehicle,
    add_repair,
    delete_vehicle,
)

from .sale_lifecycle import (
    mark_sold_paid,
    mark_sold_installment,
    transfer_ownership,
    relist_vehicle,
    update_sale_details,
    update_installment_details,
)

from .payment_ledger import (
    PaymentSummary,
    get_payment_summary,
    upsert_monthly_payment,
    record_payment,
)

from .profit import (
    ProfitBreakdown,
    calculate_profit,
    total_repair_cost,
)

from .image_storage import (
    upload_images,
    delete_images,
)


__all__ = [
    # Exceptions
    'InventoryServiceError',
    'ValidationError',
    'NotFoundError',
    'ConflictError',
    'InvalidStateError',
    'VehicleNotFoundError',
    'AlreadySoldError',
    'AlreadyTransferredError',
    'DuplicateLicenseError',
    'NotSoldError',
    'NotInstallmentError',
    'NotFullyPaidError',
    'InstallmentCompleteError',
    'InconsistentSaleStateError',

    # Vehicle management
    'vehicle_queryset',
    'get_vehicle',
    'filter_vehicles',
    'create_vehicle',
    'update_vehicle',
    'add_repair',
    'delete_vehicle',

    # Sale lifecycle
    'mark_sold_paid',
    'mark_sold_installment',
    'transfer_ownership',
    'relist_vehicle',
    'update_sale_details',
    'update_installment_details',

    # Payment ledger
    'PaymentSummary',
    'get_payment_summary',
    'upsert_monthly_payment',
    'record_payment',

    # Profit
    'ProfitBreakdown',
    'calculate_profit',
    'total_repair_cost',

    # Image storage
    'upload_images',
    'delete_images',
]
