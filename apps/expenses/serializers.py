from rest_framework import serializers

from apps.accounts.serializers import UserMinimalSerializer
from apps.reports.periods import MONTHLY
from .models import GeneralExpense


def money_field(**kwargs):
    return serializers.DecimalField(max_digits=12, decimal_places=2, **kwargs)


# =============================================================================
# Output serializers
# =============================================================================

class GeneralExpenseSerializer(serializers.ModelSerializer):
    created_by = UserMinimalSerializer(read_only=True)

    class Meta:
        model = GeneralExpense
        fields = [
            'id',
            'title',
            'description',
            'amount',
            'expense_date',
            'created_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class ExpenseTotalsSerializer(serializers.Serializer):
    total_amount = money_field()
    count = serializers.IntegerField()


class DateRangeSerializer(serializers.Serializer):
    start_date = serializers.DateTimeField()
    end_date = serializers.DateTimeField()


class ExpenseDayGroupSerializer(serializers.Serializer):
    date = serializers.CharField()
    expenses = GeneralExpenseSerializer(many=True)


class ExpenseMonthGroupSerializer(serializers.Serializer):
    month = serializers.CharField()
    total_amount = money_field()
    count = serializers.IntegerField()


class ExpensePeriodSerializer(serializers.Serializer):
    """Grouped expenses of a reporting period."""

    period = serializers.CharField()
    date_range = DateRangeSerializer()
    summary = ExpenseTotalsSerializer()
    data = serializers.SerializerMethodField()

    def get_data(self, obj):
        if obj['period'] == MONTHLY:
            return ExpenseDayGroupSerializer(obj['data'], many=True).data
        return ExpenseMonthGroupSerializer(obj['data'], many=True).data


# =============================================================================
# Input serializers
# =============================================================================

class ExpenseInputSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    amount = money_field(min_value=0)
    expense_date = serializers.DateTimeField(required=False)


class ExpenseUpdateSerializer(ExpenseInputSerializer):
    title = serializers.CharField(max_length=200, required=False)
    amount = money_field(min_value=0, required=False)


class ExpenseFilterSerializer(serializers.Serializer):
    """Query parameters for the expense list."""

    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)

    def validate(self, attrs):
        start_date = attrs.get('start_date')
        end_date = attrs.get('end_date')
        if start_date and end_date and start_date > end_date:
            raise serializers.ValidationError({'start_date': 'start_date must be before end_date'})
        return attrs


class ExpensePeriodQuerySerializer(serializers.Serializer):
    period = serializers.CharField()
