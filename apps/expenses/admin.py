# ==========================================
# apps/expenses/admin.py
# ==========================================

from django.contrib import admin
from .models import GeneralExpense


@admin.register(GeneralExpense)
class GeneralExpenseAdmin(admin.ModelAdmin):
    """Admin interface for dealership running costs."""

    list_display = [
        'title',
        'amount',
        'expense_date',
        'created_by',
        'created_at',
    ]

    list_filter = [
        'expense_date',
    ]

    search_fields = [
        'title',
        'description',
    ]

    ordering = ['-expense_date']
    date_hierarchy = 'expense_date'

    readonly_fields = [
        'created_by',
        'created_at',
        'updated_at',
    ]
