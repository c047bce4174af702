# Generated manually for inventory app

import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


def money(minimum='0.00', **kwargs):
    return models.DecimalField(
        decimal_places=2,
        max_digits=12,
        validators=[django.core.validators.MinValueValidator(Decimal(minimum))],
        **kwargs,
    )


def buyer_fields():
    return [
        ('buyer_name', models.CharField(max_length=100)),
        ('buyer_phone', models.CharField(blank=True, max_length=17, validators=[django.core.validators.RegexValidator(message='Please provide a valid phone number', regex='^\\+?[1-9]\\d{0,15}$')])),
        ('buyer_email', models.EmailField(blank=True, max_length=254)),
        ('buyer_passport', models.CharField(max_length=50)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Vehicle',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('license_no', models.CharField(blank=True, max_length=20, null=True, unique=True)),
                ('brand', models.CharField(max_length=50)),
                ('model', models.CharField(blank=True, max_length=50)),
                ('year', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1900)])),
                ('engine_power', models.CharField(blank=True, max_length=100)),
                ('transmission', models.CharField(choices=[('Manual', 'Manual'), ('Automatic', 'Automatic')], max_length=10)),
                ('color', models.CharField(blank=True, max_length=50)),
                ('drivetrain', models.CharField(choices=[('FWD', 'Front-wheel drive'), ('RWD', 'Rear-wheel drive'), ('4WD', 'Four-wheel drive'), ('AWD', 'All-wheel drive')], max_length=3)),
                ('odometer', models.PositiveIntegerField(default=0)),
                ('purchase_date', models.DateField()),
                ('purchase_price', money()),
                ('price_to_sell', money()),
                ('is_available', models.BooleanField(default=True)),
                ('bought_type', models.CharField(blank=True, choices=[('Paid', 'Paid'), ('Installment', 'Installment')], editable=False, max_length=12, null=True)),
                ('revision', models.PositiveIntegerField(default=0, editable=False)),
                ('last_actor', models.CharField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='vehicles_created', to=settings.AUTH_USER_MODEL)),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='vehicles_updated', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'vehicles',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['is_available', 'created_at'], name='vehicles_avail_created_idx'),
                    models.Index(fields=['brand'], name='vehicles_brand_idx'),
                    models.Index(fields=['year'], name='vehicles_year_idx'),
                    models.Index(fields=['bought_type'], name='vehicles_bought_type_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=(
                            models.Q(is_available=True, bought_type__isnull=True) |
                            models.Q(is_available=False, bought_type__in=['Paid', 'Installment'])
                        ),
                        name='vehicle_availability_matches_bought_type',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='VehicleImage',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('url', models.CharField(max_length=500)),
                ('storage_id', models.CharField(max_length=255)),
                ('position', models.PositiveSmallIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('vehicle', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='images', to='inventory.vehicle')),
            ],
            options={
                'db_table': 'vehicle_images',
                'ordering': ['position', 'created_at'],
            },
        ),
        migrations.CreateModel(
            name='Repair',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('description', models.CharField(max_length=500)),
                ('repair_date', models.DateField(default=django.utils.timezone.localdate)),
                ('cost', money()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('vehicle', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='repairs', to='inventory.vehicle')),
            ],
            options={
                'db_table': 'vehicle_repairs',
                'ordering': ['repair_date', 'created_at'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(cost__gte=0), name='repair_cost_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SaleRecord',
            fields=buyer_fields() + [
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('price', money('0.01')),
                ('sale_date', models.DateField()),
                ('odometer_at_sale', models.PositiveIntegerField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('vehicle', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='sale', to='inventory.vehicle')),
            ],
            options={
                'db_table': 'vehicle_sales',
                'indexes': [models.Index(fields=['sale_date'], name='vehicle_sales_date_idx')],
            },
        ),
        migrations.CreateModel(
            name='InstallmentPlan',
            fields=buyer_fields() + [
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('down_payment', money()),
                ('remaining_amount', money()),
                ('months', models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('monthly_payment', money('0.01')),
                ('start_date', models.DateField(default=django.utils.timezone.localdate)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('vehicle', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='installment', to='inventory.vehicle')),
            ],
            options={
                'db_table': 'vehicle_installments',
                'constraints': [
                    models.CheckConstraint(condition=models.Q(remaining_amount__gte=0), name='installment_remaining_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='InstallmentPayment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('month_number', models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('amount', money()),
                ('penalty_fee', money(default=Decimal('0.00'))),
                ('payment_date', models.DateField(default=django.utils.timezone.localdate)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('plan', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payments', to='inventory.installmentplan')),
                ('recorded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='installment_payments_recorded', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'installment_payments',
                'ordering': ['month_number'],
                'constraints': [
                    models.UniqueConstraint(fields=('plan', 'month_number'), name='unique_payment_month_per_plan'),
                    models.CheckConstraint(condition=models.Q(penalty_fee__gte=0), name='payment_penalty_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='OwnershipTransfer',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('transferred', models.BooleanField(default=True)),
                ('transfer_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('transferred_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='ownership_transfers', to=settings.AUTH_USER_MODEL)),
                ('vehicle', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='owner_book_transfer', to='inventory.vehicle')),
            ],
            options={
                'db_table': 'vehicle_ownership_transfers',
                'indexes': [models.Index(fields=['transferred', 'transfer_date'], name='vehicle_transfer_date_idx')],
            },
        ),
    ]
