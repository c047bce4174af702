"""
Sale state of a vehicle as a closed set of variants.

The relational rows (``SaleRecord``, ``InstallmentPlan``,
``OwnershipTransfer``) are folded into exactly one of:

    Available
    SoldPaid(sale, transfer)
    SoldInstallment(plan, transfer)

so callers branch on the variant instead of re-checking flags.
"""

from dataclasses import dataclass
from typing import Optional, Union

from .exceptions import InconsistentSaleStateError


class SaleStage:
    """Lifecycle stage labels (a finer view of the variant)."""

    AVAILABLE = 'Available'
    SOLD_PAID = 'SoldPaid'
    SOLD_INSTALLMENT_ACTIVE = 'SoldInstallmentActive'
    SOLD_INSTALLMENT_COMPLETE = 'SoldInstallmentComplete'
    OWNERSHIP_TRANSFERRED = 'OwnershipTransferred'


@dataclass(frozen=True)
class Available:
    is_sold = False

    @property
    def stage(self) -> str:
        return SaleStage.AVAILABLE

    @property
    def is_transferred(self) -> bool:
        return False

    @property
    def is_fully_paid(self) -> bool:
        return False


@dataclass(frozen=True)
class SoldPaid:
    sale: object
    transfer: Optional[object] = None

    is_sold = True

    @property
    def is_transferred(self) -> bool:
        return bool(self.transfer and self.transfer.transferred)

    @property
    def is_fully_paid(self) -> bool:
        return True

    @property
    def stage(self) -> str:
        if self.is_transferred:
            return SaleStage.OWNERSHIP_TRANSFERRED
        return SaleStage.SOLD_PAID


@dataclass(frozen=True)
class SoldInstallment:
    plan: object
    transfer: Optional[object] = None

    is_sold = True

    @property
    def is_transferred(self) -> bool:
        return bool(self.transfer and self.transfer.transferred)

    @property
    def is_fully_paid(self) -> bool:
        return self.plan.remaining_amount <= 0

    @property
    def stage(self) -> str:
        if self.is_transferred:
            return SaleStage.OWNERSHIP_TRANSFERRED
        if self.is_fully_paid:
            return SaleStage.SOLD_INSTALLMENT_COMPLETE
        return SaleStage.SOLD_INSTALLMENT_ACTIVE


SaleState = Union[Available, SoldPaid, SoldInstallment]


def resolve_sale_state(vehicle) -> SaleState:
    """
    Fold a vehicle's sale rows into one variant.

    Raises:
        InconsistentSaleStateError: If both a cash sale and an installment
            plan exist, or the availability flag disagrees with the rows.
    """
    sale = vehicle.sale_record
    plan = vehicle.installment_plan

    if sale is not None and plan is not None:
        raise InconsistentSaleStateError(
            f"Vehicle {vehicle.pk} has both a cash sale and an installment plan"
        )

    if sale is None and plan is None:
        if not vehicle.is_available:
            raise InconsistentSaleStateError(
                f"Vehicle {vehicle.pk} is marked sold without a sale record"
            )
        return Available()

    if vehicle.is_available:
        raise InconsistentSaleStateError(
            f"Vehicle {vehicle.pk} is marked available but has a sale record"
        )

    transfer = vehicle.ownership_transfer
    if sale is not None:
        return SoldPaid(sale=sale, transfer=transfer)
    return SoldInstallment(plan=plan, transfer=transfer)
