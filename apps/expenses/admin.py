"""
Admin configuration for the Expenses app.
"""
from django.contrib import admin

from apps.expenses.models import Expense, ExpenseItem, ExpenseSplit, Transaction


class ExpenseItemInline(admin.TabularInline):
    model = ExpenseItem
    extra = 0
    filter_horizontal = ['assigned_to']


class ExpenseSplitInline(admin.TabularInline):
    model = ExpenseSplit
    extra = 0
    readonly_fields = ['user', 'amount', 'is_paid', 'paid_at']
    can_delete = False


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    list_display = [
        'title',
        'amount',
        'currency',
        'category',
        'split_type',
        'status',
        'paid_by',
        'group',
        'date',
    ]
    list_filter = ['status', 'category', 'split_type', 'currency', 'date']
    search_fields = ['title', 'description', 'paid_by__email']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [ExpenseItemInline, ExpenseSplitInline]


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = [
        'from_user',
        'to_user',
        'amount',
        'currency',
        'status',
        'group',
        'created_at',
    ]
    list_filter = ['status', 'currency', 'created_at']
    search_fields = ['from_user__email', 'to_user__email', 'note']
    readonly_fields = ['created_at', 'updated_at', 'confirmed_at']
