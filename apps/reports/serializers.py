"""
Serializers for reports app.

Input Serializers:
    PeriodQuerySerializer - Validates the period selector

Response Serializers:
    ProfitReportSerializer - Profit report for a period
    NetProfitReportSerializer - Profit report with expenses and net profit
"""

from rest_framework import serializers

from apps.expenses.serializers import DateRangeSerializer, ExpensePeriodSerializer


def money_field(**kwargs):
    return serializers.DecimalField(max_digits=14, decimal_places=2, **kwargs)


# =============================================================================
# Input Serializers (Query Parameter Validation)
# =============================================================================

class PeriodQuerySerializer(serializers.Serializer):
    """
    Require the period query parameter.

    The value itself is checked by ``get_period_range`` so an unknown
    period is reported with the ``invalid_period`` error code.

    Query Parameters:
        period (str): monthly | 6months | yearly
    """

    period = serializers.CharField()


# =============================================================================
# Response Serializers
# =============================================================================

class VehicleProfitRowSerializer(serializers.Serializer):
    vehicle_id = serializers.UUIDField()
    license_no = serializers.CharField(allow_null=True)
    brand = serializers.CharField()
    model = serializers.CharField()
    sale_type = serializers.CharField()
    recognized_on = serializers.DateField()
    purchase_price = money_field()
    total_repair_cost = money_field()
    contract_value = money_field()
    general_profit = money_field()
    detailed_profit = money_field()
    financing_income = money_field()
    total_penalty_fees = money_field()


class ProfitSummarySerializer(serializers.Serializer):
    vehicle_count = serializers.IntegerField()
    cash_sales_count = serializers.IntegerField()
    installment_sales_count = serializers.IntegerField()
    total_general_profit = money_field()
    total_detailed_profit = money_field()
    total_financing_income = money_field()
    total_penalty_fees = money_field()


class ProfitReportSerializer(serializers.Serializer):
    period = serializers.CharField()
    date_range = DateRangeSerializer()
    summary = ProfitSummarySerializer()
    vehicles = VehicleProfitRowSerializer(many=True)


class NetProfitReportSerializer(ProfitReportSerializer):
    expenses = ExpensePeriodSerializer()
    net_profit = money_field()
