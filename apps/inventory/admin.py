# ==========================================
# apps/inventory/admin.py
# ==========================================

from django.contrib import admin
from apps.inventory.models import (
    Vehicle,
    VehicleImage,
    Repair,
    SaleRecord,
    InstallmentPlan,
    InstallmentPayment,
    OwnershipTransfer,
)


class ReadOnlyInlineMixin:
    """Sale rows change only through the services."""

    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


class VehicleImageInline(admin.TabularInline):
    model = VehicleImage
    extra = 0
    fields = ['position', 'url', 'storage_id']
    readonly_fields = ['url', 'storage_id']


class RepairInline(admin.TabularInline):
    model = Repair
    extra = 0
    fields = ['description', 'repair_date', 'cost']


class SaleRecordInline(ReadOnlyInlineMixin, admin.StackedInline):
    model = SaleRecord
    fields = ['price', 'sale_date', 'odometer_at_sale', 'buyer_name', 'buyer_phone', 'buyer_passport']


class InstallmentPlanInline(ReadOnlyInlineMixin, admin.StackedInline):
    model = InstallmentPlan
    fields = [
        'down_payment', 'remaining_amount', 'months', 'monthly_payment',
        'start_date', 'buyer_name', 'buyer_phone', 'buyer_passport',
    ]


class OwnershipTransferInline(ReadOnlyInlineMixin, admin.StackedInline):
    model = OwnershipTransfer
    fields = ['transferred', 'transfer_date', 'notes', 'transferred_by']


@admin.register(Vehicle)
class VehicleAdmin(admin.ModelAdmin):
    """Admin interface for inventory vehicles."""

    list_display = [
        'license_no',
        'brand',
        'model',
        'year',
        'price_to_sell',
        'is_available',
        'bought_type',
        'stage_display',
        'created_at',
    ]
    list_filter = ['is_available', 'bought_type', 'transmission', 'drivetrain', 'year']
    search_fields = ['license_no', 'brand', 'model']
    readonly_fields = [
        'is_available',
        'bought_type',
        'revision',
        'created_by',
        'updated_by',
        'last_actor',
        'created_at',
        'updated_at',
    ]
    inlines = [
        VehicleImageInline,
        RepairInline,
        SaleRecordInline,
        InstallmentPlanInline,
        OwnershipTransferInline,
    ]
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    fieldsets = (
        ('Vehicle', {
            'fields': (
                'license_no', 'brand', 'model', 'year', 'engine_power',
                'transmission', 'drivetrain', 'color', 'odometer',
            )
        }),
        ('Commercial', {
            'fields': ('purchase_date', 'purchase_price', 'price_to_sell')
        }),
        ('Sale state', {
            'fields': ('is_available', 'bought_type', 'revision')
        }),
        ('Metadata', {
            'fields': ('created_by', 'updated_by', 'last_actor', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def stage_display(self, obj):
        return obj.stage
    stage_display.short_description = 'Stage'

    def get_queryset(self, request):
        """Optimize query."""
        qs = super().get_queryset(request)
        return qs.select_related('sale', 'installment', 'owner_book_transfer')


@admin.register(InstallmentPayment)
class InstallmentPaymentAdmin(admin.ModelAdmin):
    """Read-only view of installment ledgers."""

    list_display = ['plan', 'month_number', 'amount', 'penalty_fee', 'payment_date', 'recorded_by']
    list_filter = ['payment_date']
    search_fields = ['plan__vehicle__license_no', 'plan__buyer_name']
    date_hierarchy = 'payment_date'
    ordering = ['-payment_date']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def get_queryset(self, request):
        """Optimize query."""
        qs = super().get_queryset(request)
        return qs.select_related('plan', 'plan__vehicle', 'recorded_by')
