"""
Installment payment ledger.

The remaining balance is always re-derived from the contract total, never
decremented blindly::

    original_total = down_payment + remaining_amount + sum(ledger amounts)
    ...change the ledger...
    remaining_amount = max(0, original_total - down_payment - sum(ledger amounts))

``original_total`` is invariant across calls, so re-submitting a month,
correcting an earlier month after a later one, or un-marking a month and
marking it again all land on the same balance.
"""

import logging
from dataclasses import dataclass, field, asdict
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from django.db import transaction
from django.db.models import Max, Sum
from django.utils import timezone

from apps.accounts.identity import require_actor, actor_user, actor_label
from apps.inventory.models import InstallmentPlan, InstallmentPayment
from apps.inventory.state import SoldInstallment
from apps.inventory.exceptions import (
    ValidationError,
    AlreadyTransferredError,
    NotInstallmentError,
    InstallmentCompleteError,
)

from apps.inventory.serializers import MonthlyPaymentSerializer, RecordPaymentSerializer

from .guards import lock_vehicle, commit_vehicle, provided, validate_input
from .vehicle_management import get_vehicle

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


@dataclass
class PaymentSummary:
    paid_months: List[int] = field(default_factory=list)
    penalties: Dict[int, Decimal] = field(default_factory=dict)
    total_penalties: Decimal = ZERO
    total_paid: Decimal = ZERO
    down_payment: Decimal = ZERO
    remaining_amount: Decimal = ZERO
    monthly_payment: Decimal = ZERO
    months: int = 0
    is_complete: bool = False

    def as_dict(self):
        return asdict(self)


def _installment_state(vehicle):
    state = vehicle.sale_state
    if not isinstance(state, SoldInstallment):
        raise NotInstallmentError(f"Vehicle {vehicle.pk} was not sold on installment")
    return state


def _locked_plan(vehicle_id, expected_revision=None):
    """Lock vehicle and plan rows; ledger edits are frozen after transfer."""
    vehicle = lock_vehicle(vehicle_id, expected_revision)
    state = _installment_state(vehicle)
    if state.is_transferred:
        raise AlreadyTransferredError(
            f"Ownership of vehicle {vehicle.pk} was already transferred; the ledger is closed"
        )
    plan = InstallmentPlan.objects.select_for_update().get(pk=state.plan.pk)
    return vehicle, plan


def _ledger_sum(plan) -> Decimal:
    return plan.payments.aggregate(total=Sum('amount'))['total'] or ZERO


def build_summary(plan) -> PaymentSummary:
    payments = sorted(plan.payments.all(), key=lambda p: p.month_number)
    total_paid = sum((p.amount for p in payments), ZERO)
    penalties = {p.month_number: p.penalty_fee for p in payments}
    return PaymentSummary(
        paid_months=[p.month_number for p in payments],
        penalties=penalties,
        total_penalties=sum(penalties.values(), ZERO),
        total_paid=total_paid,
        down_payment=plan.down_payment,
        remaining_amount=plan.remaining_amount,
        monthly_payment=plan.monthly_payment,
        months=plan.months,
        is_complete=plan.is_complete,
    )


def get_payment_summary(vehicle_id: UUID) -> PaymentSummary:
    """
    Read the ledger summary of an installment sale.

    Raises:
        VehicleNotFoundError: Unknown vehicle.
        NotInstallmentError: Vehicle was not sold on installment.
    """
    vehicle = get_vehicle(vehicle_id)
    return build_summary(_installment_state(vehicle).plan)


@transaction.atomic
def upsert_monthly_payment(
    vehicle_id: UUID,
    *,
    actor,
    month_number,
    paid: bool,
    amount=None,
    penalty_fee=ZERO,
    payment_date=None,
    notes: str = '',
    expected_revision: Optional[int] = None,
) -> PaymentSummary:
    """
    Mark a contract month as paid (insert or overwrite) or unpaid (remove).

    Args:
        vehicle_id: Vehicle sold on installment.
        actor: Caller identity.
        month_number: 1-based contract month.
        paid: True to upsert the entry, False to remove it.
        amount: Amount paid; defaults to the plan's monthly payment.
        penalty_fee: Late fee collected with this month (>= 0).
        payment_date: Defaults to today.
        notes: Free text.

    Returns:
        PaymentSummary after the change.

    Raises:
        VehicleNotFoundError: Unknown vehicle.
        NotInstallmentError: Vehicle was not sold on installment.
        AlreadyTransferredError: Ownership already transferred.
        ValidationError: month < 1, negative penalty, amount <= 0.
    """
    require_actor(actor)
    entry = validate_input(MonthlyPaymentSerializer, provided(
        month_number=month_number,
        paid=paid,
        amount=amount,
        penalty_fee=penalty_fee,
        payment_date=payment_date,
        notes=notes,
    ))
    month_number = entry['month_number']
    paid = entry['paid']

    vehicle, plan = _locked_plan(vehicle_id, expected_revision)
    original_total = plan.down_payment + plan.remaining_amount + _ledger_sum(plan)

    if paid:
        amount = entry.get('amount', plan.monthly_payment)

        InstallmentPayment.objects.update_or_create(
            plan=plan,
            month_number=month_number,
            defaults={
                'amount': amount,
                'penalty_fee': entry.get('penalty_fee') or ZERO,
                'payment_date': entry.get('payment_date') or timezone.localdate(),
                'notes': entry.get('notes', ''),
                'recorded_by': actor_user(actor),
            },
        )
    else:
        InstallmentPayment.objects.filter(plan=plan, month_number=month_number).delete()

    plan.remaining_amount = max(ZERO, original_total - plan.down_payment - _ledger_sum(plan))
    plan.save(update_fields=['remaining_amount', 'updated_at'])
    commit_vehicle(vehicle, actor)

    logger.info(
        "Vehicle %s month %s marked %s by %s, remaining %s",
        vehicle.pk,
        month_number,
        'paid' if paid else 'unpaid',
        actor_label(actor),
        plan.remaining_amount,
    )
    return build_summary(plan)


@transaction.atomic
def record_payment(
    vehicle_id: UUID,
    *,
    actor,
    amount,
    payment_date=None,
    notes: str = '',
    expected_revision: Optional[int] = None,
) -> PaymentSummary:
    """
    Append a payment under the next free month number.

    Raises:
        VehicleNotFoundError: Unknown vehicle.
        NotInstallmentError: Vehicle was not sold on installment.
        InstallmentCompleteError: Nothing is left to pay.
        ValidationError: amount <= 0 or larger than the remaining balance.
    """
    require_actor(actor)
    entry = validate_input(RecordPaymentSerializer, provided(
        amount=amount,
        payment_date=payment_date,
        notes=notes,
    ))
    amount = entry['amount']

    vehicle, plan = _locked_plan(vehicle_id, expected_revision)
    if plan.is_complete:
        raise InstallmentCompleteError(f"Installment for vehicle {vehicle.pk} is already fully paid")
    if amount > plan.remaining_amount:
        raise ValidationError(
            f"Payment amount {amount} exceeds remaining amount {plan.remaining_amount}",
            field='amount',
        )

    last_month = plan.payments.aggregate(last=Max('month_number'))['last'] or 0
    InstallmentPayment.objects.create(
        plan=plan,
        month_number=last_month + 1,
        amount=amount,
        payment_date=entry.get('payment_date') or timezone.localdate(),
        notes=entry.get('notes', ''),
        recorded_by=actor_user(actor),
    )

    plan.remaining_amount = max(ZERO, plan.remaining_amount - amount)
    plan.save(update_fields=['remaining_amount', 'updated_at'])
    commit_vehicle(vehicle, actor)

    logger.info(
        "Vehicle %s payment of %s recorded as month %s by %s, remaining %s",
        vehicle.pk, amount, last_month + 1, actor_label(actor), plan.remaining_amount,
    )
    return build_summary(plan)
