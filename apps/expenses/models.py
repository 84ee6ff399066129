"""
Models for the Expenses app.
"""
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import ExpressionWrapper, F

from apps.expenses.services.records import ExpenseStatus, SettlementStatus, SplitPolicy
from common.models import TimestampedModel

MONEY = {'max_digits': 14, 'decimal_places': 2}


def total_payable_expression(prefix=''):
    """
    ORM expression for ``amount + tax + service_charge + tip - discount``.

    *prefix* reaches the expense through a relation, e.g. ``'expense__'``.
    """
    return ExpressionWrapper(
        F(f'{prefix}amount')
        + F(f'{prefix}tax')
        + F(f'{prefix}service_charge')
        + F(f'{prefix}tip')
        - F(f'{prefix}discount'),
        output_field=models.DecimalField(**MONEY),
    )


class Expense(TimestampedModel):
    """
    An expense paid by one member on behalf of a group.

    Shares are computed once when the expense is recorded and are not
    recomputed on later edits.
    """
    class Category(models.TextChoices):
        FOOD = 'food', 'Food & Drinks'
        GROCERIES = 'groceries', 'Groceries'
        TRANSPORT = 'transport', 'Transport'
        ACCOMMODATION = 'accommodation', 'Accommodation'
        ENTERTAINMENT = 'entertainment', 'Entertainment'
        SHOPPING = 'shopping', 'Shopping'
        UTILITIES = 'utilities', 'Utilities'
        OTHER = 'other', 'Other'

    group = models.ForeignKey(
        'groups.Group',
        on_delete=models.CASCADE,
        related_name='expenses',
    )
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default='')
    amount = models.DecimalField(
        **MONEY,
        help_text='Base amount before tax, service charge, tip and discount.',
    )
    currency = models.CharField(
        max_length=3,
        default='USD',
        help_text='ISO 4217 currency code.',
    )
    tax = models.DecimalField(**MONEY, default=Decimal('0'))
    service_charge = models.DecimalField(**MONEY, default=Decimal('0'))
    tip = models.DecimalField(**MONEY, default=Decimal('0'))
    discount = models.DecimalField(**MONEY, default=Decimal('0'))
    category = models.CharField(
        max_length=20,
        choices=Category.choices,
        default=Category.OTHER,
        db_index=True,
    )
    split_type = models.CharField(
        max_length=20,
        choices=SplitPolicy.choices,
        default=SplitPolicy.EQUAL,
    )
    paid_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='paid_expenses',
    )
    status = models.CharField(
        max_length=20,
        choices=ExpenseStatus.choices,
        default=ExpenseStatus.PENDING,
        db_index=True,
    )
    receipt_url = models.URLField(max_length=500, blank=True, default='')
    date = models.DateField()

    class Meta:
        db_table = 'expenses'
        ordering = ['-date', '-created_at']

    def __str__(self):
        return f'{self.title} - {self.currency} {self.total_payable}'

    @property
    def extra_total(self):
        return self.tax + self.service_charge + self.tip - self.discount

    @property
    def total_payable(self):
        return self.amount + self.extra_total


class ExpenseItem(TimestampedModel):
    """
    A line item on an expense, assigned to the members who consumed it.
    """
    expense = models.ForeignKey(
        Expense,
        on_delete=models.CASCADE,
        related_name='items',
    )
    position = models.PositiveIntegerField(default=0)
    name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(**MONEY, default=Decimal('0'))
    total_price = models.DecimalField(**MONEY, default=Decimal('0'))
    assigned_to = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name='assigned_expense_items',
    )

    class Meta:
        db_table = 'expense_items'
        ordering = ['position']

    def __str__(self):
        return f'{self.name} x{self.quantity} ({self.total_price})'


class ExpenseSplit(TimestampedModel):
    """
    The share of an expense owed by one member.
    """
    expense = models.ForeignKey(
        Expense,
        on_delete=models.CASCADE,
        related_name='splits',
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='expense_splits',
    )
    amount = models.DecimalField(
        **MONEY,
        help_text='Amount owed by this user for the expense.',
    )
    is_paid = models.BooleanField(default=False)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'expense_splits'
        unique_together = ['expense', 'user']
        ordering = ['created_at']

    def __str__(self):
        return f'{self.user} owes {self.amount} for {self.expense}'


class Transaction(TimestampedModel):
    """
    A payment one member records against another inside a group.

    Only confirmed transactions count towards balances. The recipient
    confirms or rejects; transactions are never deleted.
    """
    group = models.ForeignKey(
        'groups.Group',
        on_delete=models.CASCADE,
        related_name='transactions',
    )
    from_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='payments_sent',
        help_text='The user who paid.',
    )
    to_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='payments_received',
        help_text='The user who received the payment.',
    )
    amount = models.DecimalField(**MONEY)
    currency = models.CharField(
        max_length=3,
        default='USD',
        help_text='ISO 4217 currency code.',
    )
    expense = models.ForeignKey(
        Expense,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='transactions',
    )
    status = models.CharField(
        max_length=20,
        choices=SettlementStatus.choices,
        default=SettlementStatus.PENDING,
        db_index=True,
    )
    payment_method = models.CharField(max_length=50, blank=True, default='')
    note = models.CharField(max_length=500, blank=True, default='')
    confirmed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'transactions'
        ordering = ['-created_at']

    def __str__(self):
        return (
            f'{self.from_user} -> {self.to_user}: '
            f'{self.currency} {self.amount} ({self.status})'
        )
