import json

from django.utils import timezone
from rest_framework import serializers
from rest_framework.fields import empty

from apps.accounts.serializers import UserMinimalSerializer
from .models import (
    Vehicle,
    VehicleImage,
    Repair,
    SaleRecord,
    InstallmentPlan,
    InstallmentPayment,
    OwnershipTransfer,
    BoughtType,
    Transmission,
    Drivetrain,
    VEHICLE_STATUSES,
    phone_validator,
)


def money_field(**kwargs):
    return serializers.DecimalField(max_digits=12, decimal_places=2, **kwargs)


# =============================================================================
# Output serializers
# =============================================================================

class BuyerSerializer(serializers.Serializer):
    name = serializers.CharField(source='buyer_name')
    phone = serializers.CharField(source='buyer_phone')
    email = serializers.CharField(source='buyer_email')
    passport = serializers.CharField(source='buyer_passport')


class VehicleImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = VehicleImage
        fields = ['id', 'url', 'storage_id', 'position']
        read_only_fields = fields


class RepairSerializer(serializers.ModelSerializer):
    class Meta:
        model = Repair
        fields = ['id', 'description', 'repair_date', 'cost']
        read_only_fields = fields


class SaleRecordSerializer(serializers.ModelSerializer):
    buyer = BuyerSerializer(source='*', read_only=True)

    class Meta:
        model = SaleRecord
        fields = ['price', 'sale_date', 'odometer_at_sale', 'buyer']
        read_only_fields = fields


class InstallmentPaymentSerializer(serializers.ModelSerializer):
    recorded_by = UserMinimalSerializer(read_only=True)

    class Meta:
        model = InstallmentPayment
        fields = [
            'month_number',
            'amount',
            'penalty_fee',
            'payment_date',
            'notes',
            'recorded_by',
        ]
        read_only_fields = fields


class InstallmentPlanSerializer(serializers.ModelSerializer):
    buyer = BuyerSerializer(source='*', read_only=True)
    payments = InstallmentPaymentSerializer(many=True, read_only=True)
    is_complete = serializers.BooleanField(read_only=True)

    class Meta:
        model = InstallmentPlan
        fields = [
            'down_payment',
            'remaining_amount',
            'months',
            'monthly_payment',
            'start_date',
            'buyer',
            'payments',
            'is_complete',
        ]
        read_only_fields = fields


class OwnershipTransferSerializer(serializers.ModelSerializer):
    transferred_by = UserMinimalSerializer(read_only=True)

    class Meta:
        model = OwnershipTransfer
        fields = ['transferred', 'transfer_date', 'notes', 'transferred_by']
        read_only_fields = fields


class ProfitSerializer(serializers.Serializer):
    sale_type = serializers.CharField()
    purchase_price = money_field()
    total_repair_cost = money_field()
    total_cost = money_field()
    general_profit = money_field()
    detailed_profit = money_field()
    contract_value = money_field()
    financing_income = money_field()
    total_paid_to_date = money_field()
    total_penalty_fees = money_field()
    remaining_amount = money_field()


class PaymentSummarySerializer(serializers.Serializer):
    paid_months = serializers.ListField(child=serializers.IntegerField())
    penalties = serializers.SerializerMethodField()
    total_penalties = money_field()
    total_paid = money_field()
    down_payment = money_field()
    remaining_amount = money_field()
    monthly_payment = money_field()
    months = serializers.IntegerField()
    is_complete = serializers.BooleanField()

    def get_penalties(self, obj):
        """Month numbers as string keys (JSON object)."""
        return {str(month): f"{fee:.2f}" for month, fee in obj.penalties.items()}


class VehicleSerializer(serializers.ModelSerializer):
    """Full vehicle record with sale state and derived values."""

    images = VehicleImageSerializer(many=True, read_only=True)
    repairs = RepairSerializer(many=True, read_only=True)
    sale = serializers.SerializerMethodField()
    installment = serializers.SerializerMethodField()
    ownership_transfer = serializers.SerializerMethodField()
    stage = serializers.CharField(read_only=True)
    status = serializers.CharField(read_only=True)
    days_in_inventory = serializers.IntegerField(read_only=True)
    total_repair_cost = money_field(read_only=True)
    profit = serializers.SerializerMethodField()
    created_by = UserMinimalSerializer(read_only=True)
    updated_by = UserMinimalSerializer(read_only=True)

    class Meta:
        model = Vehicle
        fields = [
            'id',
            'license_no',
            'brand',
            'model',
            'year',
            'engine_power',
            'transmission',
            'color',
            'drivetrain',
            'odometer',
            'purchase_date',
            'purchase_price',
            'price_to_sell',
            'is_available',
            'bought_type',
            'stage',
            'status',
            'days_in_inventory',
            'images',
            'repairs',
            'total_repair_cost',
            'sale',
            'installment',
            'ownership_transfer',
            'profit',
            'revision',
            'created_by',
            'updated_by',
            'last_actor',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_sale(self, obj):
        sale = obj.sale_record
        return SaleRecordSerializer(sale).data if sale else None

    def get_installment(self, obj):
        plan = obj.installment_plan
        return InstallmentPlanSerializer(plan).data if plan else None

    def get_ownership_transfer(self, obj):
        transfer = obj.ownership_transfer
        return OwnershipTransferSerializer(transfer).data if transfer else None

    def get_profit(self, obj):
        breakdown = obj.profit
        return ProfitSerializer(breakdown).data if breakdown else None

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if not self._can_view_financials():
            data.pop('profit', None)
            for key in ('sale', 'installment'):
                if data.get(key):
                    data[key].pop('buyer', None)
        return data

    def _can_view_financials(self):
        request = self.context.get('request')
        if request is None:
            return True
        user = request.user
        return bool(user and user.is_authenticated and user.can_manage_inventory)


class VehicleListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for inventory listings."""

    stage = serializers.CharField(read_only=True)
    thumbnail = serializers.SerializerMethodField()

    class Meta:
        model = Vehicle
        fields = [
            'id',
            'license_no',
            'brand',
            'model',
            'year',
            'transmission',
            'drivetrain',
            'odometer',
            'price_to_sell',
            'is_available',
            'bought_type',
            'stage',
            'thumbnail',
            'created_at',
        ]
        read_only_fields = fields

    def get_thumbnail(self, obj):
        images = list(obj.images.all())
        return images[0].url if images else None


# =============================================================================
# Input serializers
# =============================================================================

class PresentBooleanField(serializers.BooleanField):
    """Boolean that stays missing when a form omits it, instead of False."""

    default_empty_html = empty


class BuyerInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    phone = serializers.CharField(
        max_length=17,
        required=False,
        allow_blank=True,
        validators=[phone_validator],
    )
    email = serializers.EmailField(required=False, allow_blank=True)
    passport = serializers.CharField(max_length=50)


class BuyerUpdateSerializer(BuyerInputSerializer):
    name = serializers.CharField(max_length=100, required=False)
    passport = serializers.CharField(max_length=50, required=False)


class RepairInputSerializer(serializers.Serializer):
    description = serializers.CharField(max_length=500)
    cost = money_field(min_value=0)
    repair_date = serializers.DateField(required=False)


class RevisionMixin(serializers.Serializer):
    """Optional optimistic concurrency token echoed from ``revision``."""

    revision = serializers.IntegerField(required=False, min_value=0)


class VehicleAttributesSerializer(serializers.Serializer):
    """Descriptive and commercial vehicle fields, shared by create and update."""

    license_no = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)
    brand = serializers.CharField(max_length=50)
    model = serializers.CharField(max_length=50, required=False, allow_blank=True)
    year = serializers.IntegerField(min_value=1900)
    engine_power = serializers.CharField(max_length=100, required=False, allow_blank=True)
    transmission = serializers.ChoiceField(choices=Transmission.choices)
    color = serializers.CharField(max_length=50, required=False, allow_blank=True)
    drivetrain = serializers.ChoiceField(choices=Drivetrain.choices)
    odometer = serializers.IntegerField(min_value=0, required=False)
    purchase_date = serializers.DateField()
    purchase_price = money_field(min_value=0)
    price_to_sell = money_field(min_value=0)

    def validate_license_no(self, value):
        """Plates are stored uppercase; blank means unregistered."""
        return value.upper() if value else None

    def validate_year(self, value):
        latest = timezone.now().year + 1
        if value > latest:
            raise serializers.ValidationError(f'Year cannot be later than {latest}')
        return value


class VehicleCreateSerializer(VehicleAttributesSerializer):
    images = serializers.ListField(child=serializers.FileField(), required=False)
    repairs = serializers.JSONField(required=False)

    def validate_repairs(self, value):
        """Accept a list, or a JSON string of a list (multipart forms)."""
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                raise serializers.ValidationError('repairs must be a JSON list')
        if not isinstance(value, list):
            raise serializers.ValidationError('repairs must be a list')
        repairs = RepairInputSerializer(data=value, many=True)
        repairs.is_valid(raise_exception=True)
        return repairs.validated_data


class VehicleUpdateSerializer(RevisionMixin, VehicleCreateSerializer):
    brand = serializers.CharField(max_length=50, required=False)
    year = serializers.IntegerField(min_value=1900, required=False)
    transmission = serializers.ChoiceField(choices=Transmission.choices, required=False)
    drivetrain = serializers.ChoiceField(choices=Drivetrain.choices, required=False)
    purchase_date = serializers.DateField(required=False)
    purchase_price = money_field(min_value=0, required=False)
    price_to_sell = money_field(min_value=0, required=False)
    images = None
    new_images = serializers.ListField(child=serializers.FileField(), required=False)
    keep_image_ids = serializers.ListField(child=serializers.CharField(), required=False)
    replace_images = serializers.BooleanField(required=False, default=True)


class SaleInputSerializer(serializers.Serializer):
    price = money_field()
    sale_date = serializers.DateField()
    odometer_at_sale = serializers.IntegerField(min_value=0)
    buyer = BuyerInputSerializer()

    def validate_price(self, value):
        if value <= 0:
            raise serializers.ValidationError('Sale price must be greater than 0')
        return value


class InstallmentInputSerializer(serializers.Serializer):
    down_payment = money_field(min_value=0)
    remaining_amount = money_field(min_value=0)
    months = serializers.IntegerField(min_value=1)
    monthly_payment = money_field()
    start_date = serializers.DateField(required=False)
    buyer = BuyerInputSerializer()

    def validate_monthly_payment(self, value):
        if value <= 0:
            raise serializers.ValidationError('Monthly payment must be greater than 0')
        return value


class SellVehicleSerializer(RevisionMixin):
    """Mark a vehicle as sold; ``bought_type`` picks the nested block."""

    bought_type = serializers.ChoiceField(choices=BoughtType.choices)
    sale = SaleInputSerializer(required=False)
    installment = InstallmentInputSerializer(required=False)

    def validate(self, attrs):
        if attrs['bought_type'] == BoughtType.PAID:
            if 'sale' not in attrs:
                raise serializers.ValidationError({'sale': 'Sale details are required for a cash sale.'})
            if 'installment' in attrs:
                raise serializers.ValidationError({'installment': 'Not allowed for a cash sale.'})
        else:
            if 'installment' not in attrs:
                raise serializers.ValidationError({'installment': 'Installment details are required.'})
            if 'sale' in attrs:
                raise serializers.ValidationError({'sale': 'Not allowed for an installment sale.'})
        return attrs


class EditSaleSerializer(RevisionMixin):
    price = money_field(required=False)
    sale_date = serializers.DateField(required=False)
    odometer_at_sale = serializers.IntegerField(min_value=0, required=False)
    buyer = BuyerUpdateSerializer(required=False)

    def validate_price(self, value):
        if value <= 0:
            raise serializers.ValidationError('Sale price must be greater than 0')
        return value


class EditInstallmentSerializer(RevisionMixin):
    months = serializers.IntegerField(min_value=1, required=False)
    monthly_payment = money_field(required=False)
    start_date = serializers.DateField(required=False)
    buyer = BuyerUpdateSerializer(required=False)

    def validate_monthly_payment(self, value):
        if value <= 0:
            raise serializers.ValidationError('Monthly payment must be greater than 0')
        return value


class MonthlyPaymentSerializer(RevisionMixin):
    month_number = serializers.IntegerField(min_value=1)
    paid = PresentBooleanField()
    amount = money_field(required=False)
    penalty_fee = money_field(min_value=0, required=False, default=0)
    payment_date = serializers.DateField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_amount(self, value):
        if value is not None and value <= 0:
            raise serializers.ValidationError('Amount must be greater than 0')
        return value


class RecordPaymentSerializer(RevisionMixin):
    amount = money_field()
    payment_date = serializers.DateField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError('Amount must be greater than 0')
        return value


class TransferOwnershipSerializer(RevisionMixin):
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class VehicleFilterSerializer(serializers.Serializer):
    """Query parameters for the inventory list."""

    status = serializers.ChoiceField(choices=VEHICLE_STATUSES, required=False)
    brand = serializers.CharField(required=False)
    year = serializers.IntegerField(required=False)
    transmission = serializers.ChoiceField(choices=Transmission.choices, required=False)
    drivetrain = serializers.ChoiceField(choices=Drivetrain.choices, required=False)
    search = serializers.CharField(required=False)
