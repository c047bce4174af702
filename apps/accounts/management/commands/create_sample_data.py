"""
Management command to create sample data for trying out the API.

Usage:
    python manage.py create_sample_data

This creates:
- 3 staff users (admin, editor, viewer)
- 6 vehicles with repairs
- 2 cash sales
- 2 installment sales (one fully paid and transferred)
- General expenses for the current and previous month

All inventory and expense rows go through the service layer, so the data
obeys the same rules as data entered through the API.
"""

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone
from decimal import Decimal
from datetime import date, timedelta

from apps.accounts.models import User, UserRole
from apps.expenses.models import GeneralExpense
from apps.expenses.services import create_expense
from apps.inventory.models import Vehicle, Transmission, Drivetrain
from apps.inventory.services import (
    create_vehicle,
    add_repair,
    mark_sold_paid,
    mark_sold_installment,
    upsert_monthly_payment,
    transfer_ownership,
)


VEHICLES = [
    ('2AB1234', 'Toyota', 'Camry', 2018, Transmission.AUTOMATIC, Drivetrain.FWD, 82000, '14500.00', '19500.00'),
    ('2AB5678', 'Honda', 'CR-V', 2019, Transmission.AUTOMATIC, Drivetrain.AWD, 61000, '18000.00', '24000.00'),
    ('3CD1122', 'Lexus', 'RX350', 2016, Transmission.AUTOMATIC, Drivetrain.AWD, 98000, '26000.00', '33500.00'),
    ('3CD3344', 'Ford', 'Ranger', 2020, Transmission.MANUAL, Drivetrain.FOUR_WD, 45000, '21000.00', '27000.00'),
    ('1EF9090', 'Hyundai', 'Tucson', 2017, Transmission.AUTOMATIC, Drivetrain.FWD, 77000, '11000.00', '15500.00'),
    ('1EF7070', 'Mazda', 'CX-5', 2021, Transmission.AUTOMATIC, Drivetrain.AWD, 30000, '23000.00', '28500.00'),
]


class Command(BaseCommand):
    help = 'Create sample data for testing the API'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before creating new sample data',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self.clear_data()

        self.stdout.write('Creating sample data...')

        # Create users
        users = self.create_users()

        # Create vehicles
        vehicles = self.create_vehicles(users['editor'])

        # Create sales
        self.create_sales(users['editor'], vehicles)

        # Create expenses
        self.create_expenses(users['admin'])

        self.stdout.write(self.style.SUCCESS('Sample data created successfully!'))
        self.stdout.write('')
        self.stdout.write('Test accounts:')
        self.stdout.write('  admin@example.com / admin123 (admin)')
        self.stdout.write('  editor@example.com / password123 (editor)')
        self.stdout.write('  viewer@example.com / password123 (viewer)')

    def clear_data(self):
        """Clear all data from the database."""
        GeneralExpense.objects.all().delete()
        # Sales, ledgers, repairs and images cascade from the vehicle
        Vehicle.objects.all().delete()
        User.objects.filter(email__in=[
            'admin@example.com', 'editor@example.com', 'viewer@example.com',
        ]).delete()

    def create_users(self):
        """Create one account per role."""
        self.stdout.write('  Creating users...')

        users = {}
        for key, display_name, role, password in [
            ('admin', 'Admin User', UserRole.ADMIN, 'admin123'),
            ('editor', 'Sales Editor', UserRole.EDITOR, 'password123'),
            ('viewer', 'Front Desk', UserRole.VIEWER, 'password123'),
        ]:
            user, _ = User.objects.get_or_create(
                email=f'{key}@example.com',
                defaults={
                    'display_name': display_name,
                    'role': role,
                    'is_staff': role == UserRole.ADMIN,
                    'is_superuser': role == UserRole.ADMIN,
                },
            )
            user.set_password(password)
            user.save()
            users[key] = user

        return users

    def create_vehicles(self, editor):
        """Create inventory vehicles with a repair each."""
        self.stdout.write('  Creating vehicles...')

        today = timezone.localdate()
        vehicles = []
        for index, row in enumerate(VEHICLES):
            license_no, brand, model, year, transmission, drivetrain, odometer, cost, price = row
            if Vehicle.objects.filter(license_no=license_no).exists():
                continue
            vehicle = create_vehicle(
                actor=editor,
                license_no=license_no,
                brand=brand,
                model=model,
                year=year,
                transmission=transmission,
                drivetrain=drivetrain,
                odometer=odometer,
                color='White',
                engine_power='2.0L',
                purchase_date=today - timedelta(days=120 - index * 10),
                purchase_price=Decimal(cost),
                price_to_sell=Decimal(price),
            )
            vehicle = add_repair(
                vehicle.id,
                actor=editor,
                description='Full service and detailing',
                cost=Decimal('350.00') + index * Decimal('100.00'),
            )
            vehicles.append(vehicle)

        self.stdout.write(f'    Created {len(vehicles)} vehicles')
        return vehicles

    def create_sales(self, editor, vehicles):
        """Sell four of the vehicles; the rest stay in inventory."""
        self.stdout.write('  Creating sales...')

        if len(vehicles) < 4:
            self.stdout.write('    Skipped, sample vehicles already exist')
            return

        today = timezone.localdate()
        buyers = [
            {'name': 'Sok Dara', 'passport': 'N01234567', 'phone': '+85512345678'},
            {'name': 'Chan Vanna', 'passport': 'N07654321', 'phone': '+85598765432'},
            {'name': 'Lim Sophea', 'passport': 'N05555555'},
            {'name': 'Keo Rith', 'passport': 'N09999999', 'email': 'rith@example.com'},
        ]

        # Cash sales
        for vehicle, buyer, days_ago in [(vehicles[0], buyers[0], 3), (vehicles[1], buyers[1], 40)]:
            mark_sold_paid(
                vehicle.id,
                actor=editor,
                price=vehicle.price_to_sell - Decimal('500.00'),
                sale_date=today - timedelta(days=days_ago),
                odometer_at_sale=vehicle.odometer + 20,
                buyer=buyer,
            )

        # Installment still being paid: 2 of 12 months
        mark_sold_installment(
            vehicles[2].id,
            actor=editor,
            down_payment=Decimal('8000.00'),
            remaining_amount=Decimal('27600.00'),
            months=12,
            monthly_payment=Decimal('2300.00'),
            buyer=buyers[2],
            start_date=date(today.year, today.month, 1),
        )
        for month in (1, 2):
            upsert_monthly_payment(vehicles[2].id, actor=editor, month_number=month, paid=True)

        # Installment fully paid and transferred today
        mark_sold_installment(
            vehicles[3].id,
            actor=editor,
            down_payment=Decimal('15000.00'),
            remaining_amount=Decimal('13500.00'),
            months=3,
            monthly_payment=Decimal('4500.00'),
            buyer=buyers[3],
            start_date=today - timedelta(days=90),
        )
        for month in (1, 2, 3):
            upsert_monthly_payment(
                vehicles[3].id,
                actor=editor,
                month_number=month,
                paid=True,
                penalty_fee=Decimal('25.00') if month == 2 else Decimal('0.00'),
            )
        transfer_ownership(vehicles[3].id, actor=editor, notes='Owner book handed over')

        self.stdout.write('    Created 2 cash and 2 installment sales')

    def create_expenses(self, admin):
        """Create general expenses for this and last month."""
        self.stdout.write('  Creating expenses...')

        now = timezone.now()
        expenses = [
            ('Showroom rent', '1500.00', now),
            ('Electricity', '220.00', now),
            ('Facebook ads', '150.00', now - timedelta(days=35)),
            ('Showroom rent', '1500.00', now - timedelta(days=31)),
        ]
        for title, amount, expense_date in expenses:
            create_expense(actor=admin, title=title, amount=Decimal(amount), expense_date=expense_date)

        self.stdout.write(f'    Created {len(expenses)} expenses')
