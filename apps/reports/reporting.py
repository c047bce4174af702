"""
Reports Module
==============

Read-only period reports over sold vehicles and general expenses.

Classes:
    ProfitReports: Static methods building the profit and net profit reports.

Revenue recognition:
    - cash sales count in the period containing ``sale.sale_date``
    - installment sales count in the period containing the owner book
      ``transfer_date``, and only once the contract is fully paid
      (``remaining_amount <= 0``) and ``transferred`` is set

    An installment that started this month but was transferred last month
    belongs to last month; an installment still being paid belongs to no
    period yet.

Example:
    Monthly net profit::

        from apps.reports.reporting import ProfitReports

        report = ProfitReports.net_profit_report('monthly')
        print(report['net_profit'])

Note:
    Nothing here writes to the database. Per-vehicle figures come from
    ``apps.inventory.services.calculate_profit`` so reports and the vehicle
    detail view never disagree.
"""

from decimal import Decimal

from django.db.models import Q
from django.utils import timezone

from apps.inventory.models import BoughtType
from apps.inventory.services import vehicle_queryset, calculate_profit
from apps.expenses.services import expenses_in_period
from .periods import get_period_range

ZERO = Decimal('0.00')


class ProfitReports:
    """
    Period profit queries.

    Methods:
        recognized_vehicles: Sold vehicles whose revenue falls in a window.
        profit_report: Profit totals and per-vehicle breakdown for a period.
        net_profit_report: Profit report plus general expenses and net profit.
    """

    @staticmethod
    def recognized_vehicles(start, end):
        """
        Return sold vehicles recognized within ``[start, end]``.

        Args:
            start (datetime): Aware window start.
            end (datetime): Aware window end.

        Returns:
            QuerySet: Vehicles with sale rows, repairs and ledger prefetched.
        """
        start_day = timezone.localtime(start).date()
        end_day = timezone.localtime(end).date()

        cash = Q(
            bought_type=BoughtType.PAID,
            sale__sale_date__gte=start_day,
            sale__sale_date__lte=end_day,
        )
        installment = Q(
            bought_type=BoughtType.INSTALLMENT,
            owner_book_transfer__transferred=True,
            owner_book_transfer__transfer_date__gte=start,
            owner_book_transfer__transfer_date__lte=end,
            installment__remaining_amount__lte=0,
        )
        return vehicle_queryset().filter(is_available=False).filter(cash | installment)

    @staticmethod
    def _recognized_on(vehicle):
        if vehicle.bought_type == BoughtType.PAID:
            return vehicle.sale.sale_date
        return timezone.localtime(vehicle.owner_book_transfer.transfer_date).date()

    @staticmethod
    def _vehicle_row(vehicle):
        profit = calculate_profit(vehicle)
        return {
            'vehicle_id': vehicle.pk,
            'license_no': vehicle.license_no,
            'brand': vehicle.brand,
            'model': vehicle.model,
            'sale_type': profit.sale_type,
            'recognized_on': ProfitReports._recognized_on(vehicle),
            'purchase_price': profit.purchase_price,
            'total_repair_cost': profit.total_repair_cost,
            'contract_value': profit.contract_value,
            'general_profit': profit.general_profit,
            'detailed_profit': profit.detailed_profit,
            'financing_income': profit.financing_income,
            'total_penalty_fees': profit.total_penalty_fees,
        }

    @staticmethod
    def profit_report(period, now=None):
        """
        Profit of the vehicles recognized in a period.

        Args:
            period (str): ``monthly``, ``6months`` or ``yearly``.
            now (datetime, optional): Reference time, defaults to now.

        Returns:
            dict: A dictionary containing:
                - period (str)
                - date_range (dict): ``start_date`` and ``end_date``.
                - summary (dict): vehicle counts and the sums of general
                  profit, detailed profit, financing income and penalty fees.
                - vehicles (list): per-vehicle rows, newest first.

        Raises:
            InvalidPeriodError: Unknown period.
        """
        start, end = get_period_range(period, now)
        return ProfitReports._profit_in_range(period, start, end)

    @staticmethod
    def _profit_in_range(period, start, end):
        rows = [
            ProfitReports._vehicle_row(vehicle)
            for vehicle in ProfitReports.recognized_vehicles(start, end)
        ]
        rows.sort(key=lambda row: (row['recognized_on'], str(row['vehicle_id'])), reverse=True)

        summary = {
            'vehicle_count': len(rows),
            'cash_sales_count': sum(1 for row in rows if row['sale_type'] == BoughtType.PAID),
            'installment_sales_count': sum(1 for row in rows if row['sale_type'] == BoughtType.INSTALLMENT),
            'total_general_profit': sum((row['general_profit'] for row in rows), ZERO),
            'total_detailed_profit': sum((row['detailed_profit'] for row in rows), ZERO),
            'total_financing_income': sum((row['financing_income'] for row in rows), ZERO),
            'total_penalty_fees': sum((row['total_penalty_fees'] for row in rows), ZERO),
        }

        return {
            'period': period,
            'date_range': {'start_date': start, 'end_date': end},
            'summary': summary,
            'vehicles': rows,
        }

    @staticmethod
    def net_profit_report(period, now=None):
        """
        Profit report plus the period's general expenses.

        ``net_profit = total_detailed_profit - total general expenses``.
        Penalty fees are reported but not added to net profit. Vehicles and
        expenses are read over the same window, computed once.

        Returns:
            dict: The ``profit_report`` keys plus ``expenses`` (summary and
            grouped data, see ``expenses_by_period``) and ``net_profit``.

        Raises:
            InvalidPeriodError: Unknown period.
        """
        start, end = get_period_range(period, now)
        report = ProfitReports._profit_in_range(period, start, end)
        expenses = expenses_in_period(period, start, end)

        report['expenses'] = expenses
        report['net_profit'] = (
            report['summary']['total_detailed_profit'] - expenses['summary']['total_amount']
        )
        return report
