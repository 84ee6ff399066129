"""
Net balance computation for a group.

Balances are re-derived from the full expense and settlement history on
every call; nothing is accumulated between calls.
"""
import logging

from apps.expenses.services.money import ZERO, snap_to_zero, to_decimal
from apps.expenses.services.records import Balance, SettlementStatus

logger = logging.getLogger(__name__)


def compute_group_balances(expenses, confirmed_settlements):
    """
    Compute one net balance per member from a group's history.

    Algorithm
    ---------
    1. For every non-cancelled expense, debit each non-payer by their share
       unless the share is already paid, and credit the payer with
       ``total_payable - payer's own share``.
    2. For every confirmed settlement, credit the sender and debit the
       recipient by the transferred amount.
    3. Snap balances within one cent of zero to exactly zero.

    Expenses without any shares have nothing owed on them and are skipped.

    Returns
    -------
    list[Balance]
        One entry per member seen in any expense or settlement, in order of
        first appearance, zero balances included.
        ``amount > 0`` means the member is owed money.
    """
    balances = {}

    for expense in expenses:
        if expense.is_cancelled or not expense.shares:
            continue

        payer_id = expense.payer_id
        balances.setdefault(payer_id, ZERO)
        payer_share = ZERO

        for share in expense.shares:
            if share.member_id == payer_id:
                payer_share = to_decimal(share.amount)
                continue
            balances.setdefault(share.member_id, ZERO)
            if not share.is_paid:
                balances[share.member_id] -= to_decimal(share.amount)

        balances[payer_id] += expense.total_payable - payer_share

    for record in confirmed_settlements:
        if record.status != SettlementStatus.CONFIRMED:
            continue
        amount = to_decimal(record.amount)
        balances[record.from_member_id] = balances.get(record.from_member_id, ZERO) + amount
        balances[record.to_member_id] = balances.get(record.to_member_id, ZERO) - amount

    return [Balance(member_id, snap_to_zero(amount)) for member_id, amount in balances.items()]
