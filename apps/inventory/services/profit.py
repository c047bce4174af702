"""
Profit calculation for sold vehicles.

Pure functions of a vehicle's current rows; nothing here writes to the
database, so profit always reflects the latest repairs and ledger.

Two figures are kept apart on purpose:

- general profit: margin on the car itself (cash price, or the asking
  price for installment sales)
- detailed profit: total economic benefit of the contract, financing
  markup included

Penalty fees are summed separately and never folded into either figure.
"""

from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Optional

from apps.inventory.models import BoughtType
from apps.inventory.state import SoldPaid, SoldInstallment

ZERO = Decimal('0.00')


@dataclass(frozen=True)
class ProfitBreakdown:
    sale_type: str
    purchase_price: Decimal
    total_repair_cost: Decimal
    total_cost: Decimal
    general_profit: Decimal
    detailed_profit: Decimal
    contract_value: Decimal
    financing_income: Decimal
    total_paid_to_date: Decimal
    total_penalty_fees: Decimal
    remaining_amount: Decimal

    def as_dict(self):
        return asdict(self)


def total_repair_cost(vehicle) -> Decimal:
    """Sum of repair costs (uses prefetched repairs when available)."""
    return sum((repair.cost for repair in vehicle.repairs.all()), ZERO)


def _ledger_totals(plan):
    amount_paid = ZERO
    penalties = ZERO
    for payment in plan.payments.all():
        amount_paid += payment.amount
        penalties += payment.penalty_fee
    return amount_paid, penalties


def calculate_profit(vehicle) -> Optional[ProfitBreakdown]:
    """
    Compute the profit breakdown of a sold vehicle.

    Args:
        vehicle: ``Vehicle`` instance; related rows should be prefetched
            when calling this in a loop.

    Returns:
        ProfitBreakdown, or None while the vehicle is still available.
    """
    state = vehicle.sale_state
    repairs = total_repair_cost(vehicle)
    total_cost = vehicle.purchase_price + repairs

    if isinstance(state, SoldPaid):
        price = state.sale.price
        profit = price - total_cost
        return ProfitBreakdown(
            sale_type=BoughtType.PAID,
            purchase_price=vehicle.purchase_price,
            total_repair_cost=repairs,
            total_cost=total_cost,
            general_profit=profit,
            detailed_profit=profit,
            contract_value=price,
            financing_income=ZERO,
            total_paid_to_date=price,
            total_penalty_fees=ZERO,
            remaining_amount=ZERO,
        )

    if isinstance(state, SoldInstallment):
        plan = state.plan
        ledger_paid, penalties = _ledger_totals(plan)
        paid_to_date = plan.down_payment + ledger_paid
        contract_value = paid_to_date + plan.remaining_amount

        general = vehicle.price_to_sell - total_cost
        detailed = contract_value - total_cost
        return ProfitBreakdown(
            sale_type=BoughtType.INSTALLMENT,
            purchase_price=vehicle.purchase_price,
            total_repair_cost=repairs,
            total_cost=total_cost,
            general_profit=general,
            detailed_profit=detailed,
            contract_value=contract_value,
            financing_income=detailed - general,
            total_paid_to_date=paid_to_date,
            total_penalty_fees=penalties,
            remaining_amount=plan.remaining_amount,
        )

    return None
