"""
Sale state machine.

    Available -> SoldPaid ----------------------------+
    Available -> SoldInstallmentActive                 |
                 -> SoldInstallmentComplete (derived) -+-> OwnershipTransferred

Each transition runs in one transaction on a locked vehicle row. The
``is_available`` / ``bought_type`` pair is only ever written here.
"""

import logging
from typing import Optional
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from apps.accounts.identity import require_actor, actor_user, actor_label
from apps.inventory.models import (
    Vehicle,
    BoughtType,
    SaleRecord,
    InstallmentPlan,
    OwnershipTransfer,
)
from apps.inventory.state import Available, SoldPaid, SoldInstallment
from apps.inventory.exceptions import (
    AlreadySoldError,
    AlreadyTransferredError,
    NotSoldError,
    NotInstallmentError,
    NotFullyPaidError,
    ValidationError,
)

from apps.inventory.serializers import (
    BuyerInputSerializer,
    SaleInputSerializer,
    InstallmentInputSerializer,
    EditSaleSerializer,
    EditInstallmentSerializer,
)

from .guards import lock_vehicle, commit_vehicle, provided, validate_input
from .vehicle_management import get_vehicle

logger = logging.getLogger(__name__)


def _ensure_available(vehicle):
    state = vehicle.sale_state
    if not isinstance(state, Available):
        raise AlreadySoldError(
            f"Vehicle {vehicle.pk} is not available (currently {state.stage})"
        )


def _ensure_not_transferred(vehicle, state):
    if state.is_transferred:
        raise AlreadyTransferredError(
            f"Ownership of vehicle {vehicle.pk} was already transferred"
        )


def _buyer_fields(buyer):
    """Validated buyer details as ``buyer_*`` model fields."""
    return {
        'buyer_name': buyer['name'],
        'buyer_phone': buyer.get('phone', ''),
        'buyer_email': buyer.get('email', ''),
        'buyer_passport': buyer['passport'],
    }


def _merged_buyer(buyer, existing):
    """
    Apply a partial buyer update on top of the stored details.

    Name and passport must still be present afterwards.
    """
    if not isinstance(buyer, dict):
        raise ValidationError("buyer must be an object", field='buyer')
    merged = {**existing, **provided(**buyer)}
    return _buyer_fields(validate_input(BuyerInputSerializer, merged, prefix='buyer'))


@transaction.atomic
def mark_sold_paid(
    vehicle_id: UUID,
    *,
    actor,
    price,
    sale_date,
    odometer_at_sale,
    buyer: dict,
    expected_revision: Optional[int] = None,
) -> Vehicle:
    """
    Sell an available vehicle for cash.

    Raises:
        VehicleNotFoundError: Unknown vehicle.
        AlreadySoldError: Vehicle is not available.
        ValidationError: Price <= 0, missing date, negative odometer,
            missing buyer name or passport.
    """
    require_actor(actor)
    data = validate_input(SaleInputSerializer, provided(
        price=price,
        sale_date=sale_date,
        odometer_at_sale=odometer_at_sale,
        buyer=buyer,
    ))
    price = data['price']
    odometer_at_sale = data['odometer_at_sale']

    vehicle = lock_vehicle(vehicle_id, expected_revision)
    _ensure_available(vehicle)

    SaleRecord.objects.create(
        vehicle=vehicle,
        price=price,
        sale_date=data['sale_date'],
        odometer_at_sale=odometer_at_sale,
        **_buyer_fields(data['buyer']),
    )

    vehicle.is_available = False
    vehicle.bought_type = BoughtType.PAID
    fields = ['is_available', 'bought_type']
    if odometer_at_sale > vehicle.odometer:
        vehicle.odometer = odometer_at_sale
        fields.append('odometer')
    commit_vehicle(vehicle, actor, fields)

    logger.info(
        "Vehicle %s sold for cash at %s by %s",
        vehicle.pk, price, actor_label(actor),
    )
    return get_vehicle(vehicle.pk)


@transaction.atomic
def mark_sold_installment(
    vehicle_id: UUID,
    *,
    actor,
    down_payment,
    remaining_amount,
    months,
    monthly_payment,
    buyer: dict,
    start_date=None,
    expected_revision: Optional[int] = None,
) -> Vehicle:
    """
    Sell an available vehicle on installment with an empty ledger.

    Raises:
        VehicleNotFoundError: Unknown vehicle.
        AlreadySoldError: Vehicle is not available.
        ValidationError: Negative amounts, months < 1, monthly payment <= 0,
            missing buyer name or passport.
    """
    require_actor(actor)
    terms = validate_input(InstallmentInputSerializer, provided(
        down_payment=down_payment,
        remaining_amount=remaining_amount,
        months=months,
        monthly_payment=monthly_payment,
        start_date=start_date,
        buyer=buyer,
    ))
    buyer_fields = _buyer_fields(terms.pop('buyer'))

    vehicle = lock_vehicle(vehicle_id, expected_revision)
    _ensure_available(vehicle)

    InstallmentPlan.objects.create(vehicle=vehicle, **terms, **buyer_fields)

    vehicle.is_available = False
    vehicle.bought_type = BoughtType.INSTALLMENT
    commit_vehicle(vehicle, actor, ['is_available', 'bought_type'])

    logger.info(
        "Vehicle %s sold on installment (down %s, remaining %s, %s months) by %s",
        vehicle.pk,
        terms['down_payment'],
        terms['remaining_amount'],
        terms['months'],
        actor_label(actor),
    )
    return get_vehicle(vehicle.pk)


@transaction.atomic
def transfer_ownership(
    vehicle_id: UUID,
    *,
    actor,
    notes: str = '',
    expected_revision: Optional[int] = None,
) -> Vehicle:
    """
    Record the owner-book transfer of a sold, fully paid vehicle.

    Raises:
        VehicleNotFoundError: Unknown vehicle.
        NotSoldError: Vehicle is still available.
        AlreadyTransferredError: Transfer already recorded.
        NotFullyPaidError: Installment balance is still above zero.
    """
    require_actor(actor)
    vehicle = lock_vehicle(vehicle_id, expected_revision)
    state = vehicle.sale_state

    if isinstance(state, Available):
        raise NotSoldError(
            f"Vehicle {vehicle.pk} must be sold before ownership can be transferred"
        )
    _ensure_not_transferred(vehicle, state)
    if not state.is_fully_paid:
        raise NotFullyPaidError(
            f"Vehicle {vehicle.pk} still has {state.plan.remaining_amount} outstanding"
        )

    OwnershipTransfer.objects.update_or_create(
        vehicle=vehicle,
        defaults={
            'transferred': True,
            'transfer_date': timezone.now(),
            'notes': notes or '',
            'transferred_by': actor_user(actor),
        },
    )
    commit_vehicle(vehicle, actor)

    logger.info("Vehicle %s ownership transferred by %s", vehicle.pk, actor_label(actor))
    return get_vehicle(vehicle.pk)


@transaction.atomic
def relist_vehicle(vehicle_id: UUID, *, actor) -> Vehicle:
    """
    Clear all sale state and make the vehicle available again.

    Not wired to any endpoint; kept for administrative data fixes.

    Raises:
        VehicleNotFoundError: Unknown vehicle.
        NotSoldError: Vehicle is already available.
    """
    require_actor(actor)
    vehicle = lock_vehicle(vehicle_id)
    if vehicle.is_available and not (vehicle.sale_record or vehicle.installment_plan):
        raise NotSoldError(f"Vehicle {vehicle.pk} is already available")

    SaleRecord.objects.filter(vehicle=vehicle).delete()
    InstallmentPlan.objects.filter(vehicle=vehicle).delete()
    OwnershipTransfer.objects.filter(vehicle=vehicle).delete()

    vehicle.is_available = True
    vehicle.bought_type = None
    commit_vehicle(vehicle, actor, ['is_available', 'bought_type'])

    logger.info("Vehicle %s relisted by %s", vehicle.pk, actor_label(actor))
    return get_vehicle(vehicle.pk)


@transaction.atomic
def update_sale_details(
    vehicle_id: UUID,
    *,
    actor,
    price=None,
    sale_date=None,
    odometer_at_sale=None,
    buyer: Optional[dict] = None,
    expected_revision: Optional[int] = None,
) -> Vehicle:
    """
    Correct a cash sale; only the fields given are changed.

    Raises:
        NotSoldError: Vehicle has no cash sale.
        AlreadyTransferredError: Ownership already transferred.
        ValidationError: Invalid values, or a buyer left without passport.
    """
    require_actor(actor)
    changes = validate_input(EditSaleSerializer, provided(
        price=price,
        sale_date=sale_date,
        odometer_at_sale=odometer_at_sale,
    ))

    vehicle = lock_vehicle(vehicle_id, expected_revision)
    state = vehicle.sale_state
    if not isinstance(state, SoldPaid):
        raise NotSoldError(f"Vehicle {vehicle.pk} has no cash sale to edit")
    _ensure_not_transferred(vehicle, state)

    sale = state.sale
    update_fields = ['updated_at']

    for name, value in changes.items():
        setattr(sale, name, value)
        update_fields.append(name)
    if buyer is not None:
        for name, value in _merged_buyer(buyer, sale.buyer).items():
            setattr(sale, name, value)
        update_fields.extend(['buyer_name', 'buyer_phone', 'buyer_email', 'buyer_passport'])

    sale.save(update_fields=update_fields)

    fields = []
    if sale.odometer_at_sale > vehicle.odometer:
        vehicle.odometer = sale.odometer_at_sale
        fields.append('odometer')
    commit_vehicle(vehicle, actor, fields)

    logger.info("Vehicle %s sale details updated by %s", vehicle.pk, actor_label(actor))
    return get_vehicle(vehicle.pk)


@transaction.atomic
def update_installment_details(
    vehicle_id: UUID,
    *,
    actor,
    months=None,
    monthly_payment=None,
    start_date=None,
    buyer: Optional[dict] = None,
    expected_revision: Optional[int] = None,
) -> Vehicle:
    """
    Correct installment terms or buyer details.

    Balances (down payment, remaining amount) are owned by the ledger and
    cannot be edited here.

    Raises:
        NotInstallmentError: Vehicle was not sold on installment.
        AlreadyTransferredError: Ownership already transferred.
        ValidationError: Invalid values.
    """
    require_actor(actor)
    changes = validate_input(EditInstallmentSerializer, provided(
        months=months,
        monthly_payment=monthly_payment,
        start_date=start_date,
    ))

    vehicle = lock_vehicle(vehicle_id, expected_revision)
    state = vehicle.sale_state
    if not isinstance(state, SoldInstallment):
        raise NotInstallmentError(f"Vehicle {vehicle.pk} was not sold on installment")
    _ensure_not_transferred(vehicle, state)

    plan = InstallmentPlan.objects.select_for_update().get(pk=state.plan.pk)
    update_fields = ['updated_at']

    for name, value in changes.items():
        setattr(plan, name, value)
        update_fields.append(name)
    if buyer is not None:
        for name, value in _merged_buyer(buyer, plan.buyer).items():
            setattr(plan, name, value)
        update_fields.extend(['buyer_name', 'buyer_phone', 'buyer_email', 'buyer_passport'])

    plan.save(update_fields=update_fields)
    commit_vehicle(vehicle, actor)

    logger.info("Vehicle %s installment details updated by %s", vehicle.pk, actor_label(actor))
    return get_vehicle(vehicle.pk)
