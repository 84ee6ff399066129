"""
Models for the Activities app.
"""
from django.conf import settings
from django.db import models

from common.models import TimestampedModel


class Activity(TimestampedModel):
    """
    One entry in a group's activity feed.
    """
    class Type(models.TextChoices):
        GROUP_CREATED = 'group_created', 'Group Created'
        GROUP_UPDATED = 'group_updated', 'Group Updated'
        MEMBER_JOINED = 'member_joined', 'Member Joined'
        MEMBER_LEFT = 'member_left', 'Member Left'
        MEMBER_REMOVED = 'member_removed', 'Member Removed'
        EXPENSE_CREATED = 'expense_created', 'Expense Created'
        EXPENSE_CANCELLED = 'expense_cancelled', 'Expense Cancelled'
        PAYMENT_SENT = 'payment_sent', 'Payment Sent'
        PAYMENT_CONFIRMED = 'payment_confirmed', 'Payment Confirmed'
        PAYMENT_REJECTED = 'payment_rejected', 'Payment Rejected'

    group = models.ForeignKey(
        'groups.Group',
        on_delete=models.CASCADE,
        related_name='activities',
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='activities',
        help_text='The member who performed the action.',
    )
    type = models.CharField(max_length=30, choices=Type.choices, db_index=True)
    title = models.CharField(max_length=200)
    detail = models.CharField(max_length=500, blank=True, default='')
    amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    ref_id = models.CharField(
        max_length=64,
        blank=True,
        default='',
        help_text='ID of the expense, transaction or user the entry refers to.',
    )

    class Meta:
        db_table = 'activities'
        ordering = ['-created_at']
        verbose_name_plural = 'activities'

    def __str__(self):
        return f'{self.type}: {self.title}'
