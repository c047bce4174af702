from django.db import models
from django.db.models import Q
from django.core.validators import MinValueValidator, RegexValidator
from django.utils import timezone
from decimal import Decimal
import uuid


class Transmission(models.TextChoices):
    MANUAL = 'Manual', 'Manual'
    AUTOMATIC = 'Automatic', 'Automatic'


class Drivetrain(models.TextChoices):
    FWD = 'FWD', 'Front-wheel drive'
    RWD = 'RWD', 'Rear-wheel drive'
    FOUR_WD = '4WD', 'Four-wheel drive'
    AWD = 'AWD', 'All-wheel drive'


class BoughtType(models.TextChoices):
    PAID = 'Paid', 'Paid'
    INSTALLMENT = 'Installment', 'Installment'


# Values accepted by the inventory ``status`` filter
VEHICLE_STATUSES = ('available', 'sold', 'paid', 'installment', 'transferred')


phone_validator = RegexValidator(
    regex=r'^\+?[1-9]\d{0,15}$',
    message='Please provide a valid phone number',
)


class Vehicle(models.Model):
    """
    Inventory record: the aggregate root for sale and installment state.

    ``is_available`` and ``bought_type`` are written only by the services in
    ``apps.inventory.services.sale_lifecycle``; a check constraint keeps the
    pair consistent at the database level.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Dealership-assigned plate, uppercase, immutable once set
    license_no = models.CharField(max_length=20, unique=True, null=True, blank=True)

    # Descriptive attributes
    brand = models.CharField(max_length=50)
    model = models.CharField(max_length=50, blank=True)
    year = models.PositiveIntegerField(validators=[MinValueValidator(1900)])
    engine_power = models.CharField(max_length=100, blank=True)
    transmission = models.CharField(max_length=10, choices=Transmission.choices)
    color = models.CharField(max_length=50, blank=True)
    drivetrain = models.CharField(max_length=3, choices=Drivetrain.choices)
    odometer = models.PositiveIntegerField(default=0)

    # Commercial attributes
    purchase_date = models.DateField()
    purchase_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    price_to_sell = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )

    # Lifecycle flags (derived, set by the sale services only)
    is_available = models.BooleanField(default=True)
    bought_type = models.CharField(
        max_length=12,
        choices=BoughtType.choices,
        null=True,
        blank=True,
        editable=False,
    )

    # Optimistic version counter, bumped on every state change
    revision = models.PositiveIntegerField(default=0, editable=False)

    # Audit
    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='vehicles_created'
    )
    updated_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='vehicles_updated'
    )
    last_actor = models.CharField(max_length=255, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'vehicles'
        indexes = [
            models.Index(fields=['is_available', 'created_at'], name='vehicles_avail_created_idx'),
            models.Index(fields=['brand'], name='vehicles_brand_idx'),
            models.Index(fields=['year'], name='vehicles_year_idx'),
            models.Index(fields=['bought_type'], name='vehicles_bought_type_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(is_available=True, bought_type__isnull=True) |
                    Q(is_available=False, bought_type__in=[BoughtType.PAID, BoughtType.INSTALLMENT])
                ),
                name='vehicle_availability_matches_bought_type',
            ),
        ]
        ordering = ['-created_at']

    def __str__(self):
        label = f"{self.brand} {self.model}".strip()
        return f"{label} ({self.year}) {self.license_no or 'unregistered'}"

    def save(self, *args, **kwargs):
        if self.license_no:
            self.license_no = self.license_no.strip().upper()
        super().save(*args, **kwargs)

    # -------------------------------------------------------------------------
    # Sale state
    # -------------------------------------------------------------------------

    @property
    def sale_record(self):
        """The cash sale, or None (reverse one-to-one without the exception)."""
        try:
            return self.sale
        except SaleRecord.DoesNotExist:
            return None

    @property
    def installment_plan(self):
        try:
            return self.installment
        except InstallmentPlan.DoesNotExist:
            return None

    @property
    def ownership_transfer(self):
        try:
            return self.owner_book_transfer
        except OwnershipTransfer.DoesNotExist:
            return None

    @property
    def sale_state(self):
        """Tagged union view: ``Available | SoldPaid | SoldInstallment``."""
        from .state import resolve_sale_state
        return resolve_sale_state(self)

    @property
    def stage(self):
        """One of the ``SaleStage`` values."""
        return self.sale_state.stage

    # -------------------------------------------------------------------------
    # Derived, never stored
    # -------------------------------------------------------------------------

    @property
    def total_repair_cost(self):
        from .services.profit import total_repair_cost
        return total_repair_cost(self)

    @property
    def profit(self):
        from .services.profit import calculate_profit
        return calculate_profit(self)

    @property
    def status(self):
        return 'Active' if self.is_available else 'Inactive'

    @property
    def days_in_inventory(self):
        """Days from intake to the sale date (or today while unsold)."""
        end = timezone.localdate()
        sale = self.sale_record
        plan = self.installment_plan
        if sale:
            end = sale.sale_date
        elif plan:
            end = plan.start_date
        start = timezone.localtime(self.created_at).date() if self.created_at else end
        return max(0, (end - start).days)


class VehicleImage(models.Model):
    """Stored image reference (url + blob storage id)."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    vehicle = models.ForeignKey(
        Vehicle,
        on_delete=models.CASCADE,
        related_name='images'
    )
    url = models.CharField(max_length=500)
    storage_id = models.CharField(max_length=255)
    position = models.PositiveSmallIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'vehicle_images'
        ordering = ['position', 'created_at']

    def __str__(self):
        return self.storage_id


class Repair(models.Model):
    """Repair cost entry; summed into the vehicle's cost basis."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    vehicle = models.ForeignKey(
        Vehicle,
        on_delete=models.CASCADE,
        related_name='repairs'
    )
    description = models.CharField(max_length=500)
    repair_date = models.DateField(default=timezone.localdate)
    cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'vehicle_repairs'
        ordering = ['repair_date', 'created_at']
        constraints = [
            models.CheckConstraint(condition=Q(cost__gte=0), name='repair_cost_non_negative'),
        ]

    def __str__(self):
        return f"{self.description} - {self.cost}"


class BuyerFields(models.Model):
    """Buyer identity embedded in sale and installment records."""

    buyer_name = models.CharField(max_length=100)
    buyer_phone = models.CharField(max_length=17, blank=True, validators=[phone_validator])
    buyer_email = models.EmailField(blank=True)
    buyer_passport = models.CharField(max_length=50)

    class Meta:
        abstract = True

    @property
    def buyer(self):
        return {
            'name': self.buyer_name,
            'phone': self.buyer_phone,
            'email': self.buyer_email,
            'passport': self.buyer_passport,
        }


class SaleRecord(BuyerFields):
    """Cash sale; present iff the vehicle was sold as Paid."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    vehicle = models.OneToOneField(
        Vehicle,
        on_delete=models.CASCADE,
        related_name='sale'
    )
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    sale_date = models.DateField()
    odometer_at_sale = models.PositiveIntegerField()

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'vehicle_sales'
        indexes = [
            models.Index(fields=['sale_date'], name='vehicle_sales_date_idx'),
        ]

    def __str__(self):
        return f"{self.vehicle_id} sold for {self.price} on {self.sale_date}"


class InstallmentPlan(BuyerFields):
    """Credit sale; present iff the vehicle was sold on installment."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    vehicle = models.OneToOneField(
        Vehicle,
        on_delete=models.CASCADE,
        related_name='installment'
    )
    down_payment = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    remaining_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    months = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1)]
    )
    monthly_payment = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    start_date = models.DateField(default=timezone.localdate)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'vehicle_installments'
        constraints = [
            models.CheckConstraint(
                condition=Q(remaining_amount__gte=0),
                name='installment_remaining_non_negative',
            ),
        ]

    def __str__(self):
        return f"{self.vehicle_id} installment, {self.remaining_amount} remaining"

    @property
    def is_complete(self):
        return self.remaining_amount <= 0


class InstallmentPayment(models.Model):
    """Ledger entry keyed by 1-based contract month."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    plan = models.ForeignKey(
        InstallmentPlan,
        on_delete=models.CASCADE,
        related_name='payments'
    )
    month_number = models.PositiveSmallIntegerField(validators=[MinValueValidator(1)])
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    penalty_fee = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    payment_date = models.DateField(default=timezone.localdate)
    notes = models.TextField(blank=True)

    recorded_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='installment_payments_recorded'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'installment_payments'
        ordering = ['month_number']
        constraints = [
            models.UniqueConstraint(fields=['plan', 'month_number'], name='unique_payment_month_per_plan'),
            models.CheckConstraint(condition=Q(penalty_fee__gte=0), name='payment_penalty_non_negative'),
        ]

    def __str__(self):
        return f"Month {self.month_number}: {self.amount}"


class OwnershipTransfer(models.Model):
    """Owner-book (legal title) transfer; terminal for reporting."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    vehicle = models.OneToOneField(
        Vehicle,
        on_delete=models.CASCADE,
        related_name='owner_book_transfer'
    )
    transferred = models.BooleanField(default=True)
    transfer_date = models.DateTimeField(default=timezone.now)
    notes = models.TextField(blank=True)
    transferred_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='ownership_transfers'
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'vehicle_ownership_transfers'
        indexes = [
            models.Index(fields=['transferred', 'transfer_date'], name='vehicle_transfer_date_idx'),
        ]

    def __str__(self):
        return f"{self.vehicle_id} transferred on {self.transfer_date:%Y-%m-%d}"
