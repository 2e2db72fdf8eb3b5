# ==========================================
# apps/expenses/admin.py
# ==========================================

from django.contrib import admin
from apps.expenses.models import Expense


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    """Admin interface for ledger entries."""

    list_display = ['description', 'decision', 'paid_by', 'amount', 'split_mode', 'created_at']
    list_filter = ['split_mode', 'created_at']
    search_fields = ['description', 'decision__title']
    readonly_fields = ['created_at']
    date_hierarchy = 'created_at'
