"""
Debt simplification using the min-cash-flow (greedy) algorithm.

Given each member's net balance, this module greedily matches the largest
creditor with the largest debtor, producing at most ``k - 1`` transfers for
``k`` members with a non-zero balance. No member is ever asked to pay more
than their own imbalance.
"""
import logging

from apps.expenses.services.money import EPSILON, round2, to_decimal
from apps.expenses.services.records import SettlementSuggestion

logger = logging.getLogger(__name__)


def optimize_settlements(balances):
    """
    Suggest the transfers that settle every balance.

    Algorithm
    ---------
    1. Separate members into *creditors* (balance > epsilon) and *debtors*
       (balance < -epsilon); anyone within epsilon of zero is dropped.
    2. Sort creditors by balance and debtors by absolute balance, largest
       first. The sort is stable, so equal amounts keep their input order.
    3. Walk both lists with one cursor each. Transfer the smaller of the two
       remaining amounts from the current debtor to the current creditor,
       and advance whichever cursor has been brought below epsilon.
    4. Stop when either list is exhausted.

    Parameters
    ----------
    balances : iterable of Balance

    Returns
    -------
    list[SettlementSuggestion]
        Suggestions are derived on demand and never stored.
    """
    # [member_id, remaining] pairs; remaining is always positive
    creditors = []
    debtors = []

    for balance in balances:
        amount = to_decimal(balance.amount)
        if amount > EPSILON:
            creditors.append([balance.member_id, amount])
        elif amount < -EPSILON:
            debtors.append([balance.member_id, -amount])

    creditors.sort(key=lambda entry: entry[1], reverse=True)
    debtors.sort(key=lambda entry: entry[1], reverse=True)

    suggestions = []
    i = j = 0

    while i < len(creditors) and j < len(debtors):
        creditor = creditors[i]
        debtor = debtors[j]

        transfer = round2(min(creditor[1], debtor[1]))
        if transfer >= EPSILON:
            suggestions.append(
                SettlementSuggestion(
                    from_member_id=debtor[0],
                    to_member_id=creditor[0],
                    amount=transfer,
                )
            )

        creditor[1] -= transfer
        debtor[1] -= transfer

        if creditor[1] < EPSILON:
            i += 1
        if debtor[1] < EPSILON:
            j += 1

    logger.debug(
        'Settled %d creditors and %d debtors with %d transfers',
        len(creditors),
        len(debtors),
        len(suggestions),
    )
    return suggestions
