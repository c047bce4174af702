from django.db import models
from django.core.validators import MinValueValidator
from django.utils import timezone
from decimal import Decimal
import uuid


class GeneralExpense(models.Model):
    """Dealership running cost not tied to a vehicle (rent, salaries, ads)."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200)
    description = models.TextField(max_length=1000, blank=True)
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    expense_date = models.DateTimeField(default=timezone.now)

    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='expenses_created'
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'general_expenses'
        ordering = ['-expense_date', '-created_at']
        indexes = [
            models.Index(fields=['-expense_date'], name='expenses_date_idx'),
            models.Index(fields=['-created_at'], name='expenses_created_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gte=0),
                name='expense_amount_non_negative',
            ),
        ]

    def __str__(self):
        return f"{self.title} ({self.amount})"
