"""
Bridges the ORM and the pure split, balance and settlement services.

This is the only module on the computation path that reads or writes the
database. Balances are cached under a key that includes a fingerprint of the
group's history, so any new or changed expense or transaction produces a
fresh key and stale entries simply expire.
"""
import logging

from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.db.models import Count, Max
from django.utils import timezone

from apps.activities.services import activity_log
from apps.expenses.models import Expense, ExpenseItem, ExpenseSplit, Transaction
from apps.expenses.services.balances import compute_group_balances
from apps.expenses.services.debt_simplifier import optimize_settlements
from apps.expenses.services.money import to_decimal
from apps.expenses.services.records import (
    Balance,
    ExpenseRecord,
    ExpenseStatus,
    ExtraCharges,
    LineItem,
    SettlementRecord,
    SettlementStatus,
    Share,
    SplitPolicy,
)
from apps.expenses.services.split_calculator import compute_split
from apps.groups.models import GroupMember

logger = logging.getLogger(__name__)

BALANCE_CACHE_PREFIX = 'group_balances'


# ------------------------------------------------------------------
# Model -> record conversion
# ------------------------------------------------------------------

def expense_to_record(expense):
    """Convert an ``Expense`` (with prefetched splits) into an ``ExpenseRecord``."""
    return ExpenseRecord(
        id=str(expense.id),
        group_id=str(expense.group_id),
        payer_id=str(expense.paid_by_id),
        amount=expense.amount,
        charges=ExtraCharges(
            tax=expense.tax,
            service_charge=expense.service_charge,
            tip=expense.tip,
            discount=expense.discount,
        ),
        split_policy=expense.split_type,
        shares=[
            Share(
                member_id=str(split.user_id),
                amount=split.amount,
                is_paid=split.is_paid,
                paid_at=split.paid_at,
            )
            for split in expense.splits.all()
        ],
        status=expense.status,
    )


def transaction_to_record(tx):
    return SettlementRecord(
        id=str(tx.id),
        group_id=str(tx.group_id),
        from_member_id=str(tx.from_user_id),
        to_member_id=str(tx.to_user_id),
        amount=tx.amount,
        status=tx.status,
        expense_id=str(tx.expense_id) if tx.expense_id else None,
    )


# ------------------------------------------------------------------
# Reads
# ------------------------------------------------------------------

def group_member_ids(group_id):
    """Return the group's member IDs as strings, in joining order."""
    return [
        str(uid)
        for uid in GroupMember.objects.filter(group_id=group_id).values_list('user_id', flat=True)
    ]


def member_directory(group_id):
    """Return ``{user_id: display name}`` for every member of the group."""
    memberships = GroupMember.objects.filter(group_id=group_id).select_related('user')
    return {str(m.user_id): m.user.display_name for m in memberships}


def load_group_history(group_id):
    """
    Fetch the records balances are derived from.

    Returns
    -------
    tuple
        ``(expenses, settlements)``: every non-cancelled expense with its
        shares, and every confirmed transaction of the group.
    """
    expenses = (
        Expense.objects.filter(group_id=group_id)
        .exclude(status=ExpenseStatus.CANCELLED)
        .prefetch_related('splits')
        .order_by('date', 'created_at')
    )
    settlements = Transaction.objects.filter(
        group_id=group_id,
        status=SettlementStatus.CONFIRMED,
    ).order_by('created_at')

    return (
        [expense_to_record(e) for e in expenses],
        [transaction_to_record(t) for t in settlements],
    )


def history_fingerprint(group_id):
    """Summarise the group's history as counts plus latest modification times."""
    expense_stats = Expense.objects.filter(group_id=group_id).aggregate(
        count=Count('id'),
        last=Max('updated_at'),
    )
    tx_stats = Transaction.objects.filter(group_id=group_id).aggregate(
        count=Count('id'),
        last=Max('updated_at'),
    )

    def stamp(value):
        return value.timestamp() if value else 0

    return (
        f'{expense_stats["count"]}-{stamp(expense_stats["last"])}:'
        f'{tx_stats["count"]}-{stamp(tx_stats["last"])}'
    )


def get_group_balances(group_id, use_cache=True):
    """
    Return the group's balances as a list of ``Balance``.
    """
    cache_key = f'{BALANCE_CACHE_PREFIX}:{group_id}:{history_fingerprint(group_id)}'

    if use_cache:
        cached = cache.get(cache_key)
        if cached is not None:
            return [Balance(member_id, to_decimal(amount)) for member_id, amount in cached]

    expenses, settlements = load_group_history(group_id)
    balances = compute_group_balances(expenses, settlements)

    logger.info(
        'Computed balances for group %s from %d expenses and %d settlements',
        group_id,
        len(expenses),
        len(settlements),
    )

    if use_cache:
        cache.set(
            cache_key,
            [(b.member_id, str(b.amount)) for b in balances],
            getattr(settings, 'BALANCE_CACHE_TTL', 120),
        )

    return balances


def get_settlement_plan(group_id):
    """Return ``(balances, suggestions)`` for the group."""
    balances = get_group_balances(group_id)
    return balances, optimize_settlements(balances)


# ------------------------------------------------------------------
# Writes
# ------------------------------------------------------------------

def record_expense(*, group, paid_by, title, amount, split_type=SplitPolicy.EQUAL,
                   charges=None, items=None, participants=None, percentages=None,
                   exact_shares=None, **fields):
    """
    Compute the shares of a new expense and persist it.

    *items* is a list of ``LineItem``; *participants* a list of member IDs
    for an equal split; *percentages* a ``{member_id: pct}`` mapping;
    *exact_shares* a list of ``Share`` for a by-amount split. Member IDs are
    strings.

    Raises
    ------
    SplitError
        If the shares cannot be computed. Nothing is written in that case.
    """
    charges = charges or ExtraCharges()
    items = items or []
    member_ids = group_member_ids(group.id)

    record = ExpenseRecord(
        group_id=str(group.id),
        payer_id=str(paid_by.id),
        amount=to_decimal(amount),
        charges=charges,
        split_policy=split_type,
        items=items,
        shares=exact_shares or [],
        percentages=percentages or {},
    )
    now = timezone.now()
    shares = compute_split(record, participants=participants, member_ids=member_ids, now=now)

    with transaction.atomic():
        expense = Expense.objects.create(
            group=group,
            paid_by=paid_by,
            title=title,
            amount=record.amount,
            tax=charges.tax,
            service_charge=charges.service_charge,
            tip=charges.tip,
            discount=charges.discount,
            split_type=SplitPolicy.parse(split_type),
            date=fields.pop('date', None) or now.date(),
            **fields,
        )

        for position, item in enumerate(items):
            expense_item = ExpenseItem.objects.create(
                expense=expense,
                position=position,
                name=item.name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.line_total,
            )
            if item.assigned_to:
                expense_item.assigned_to.set(list(item.assigned_to))

        ExpenseSplit.objects.bulk_create([
            ExpenseSplit(
                expense=expense,
                user_id=share.member_id,
                amount=share.amount,
                is_paid=share.is_paid,
                paid_at=share.paid_at,
            )
            for share in shares
        ])
        activity_log.log_expense_created(expense)

    logger.info(
        'Recorded expense %s in group %s: %s split among %d members',
        expense.id,
        group.id,
        expense.split_type,
        len(shares),
    )
    return expense
