"""
Utilities for calculating how an expense is split among group members.

Every function returns a list of ``Share`` records with ``Decimal`` amounts
rounded half away from zero to two decimal places. The payer's own share is
marked paid at computation time. Shares are computed once, when the expense
is recorded.

Note that the equal split does not reconcile its rounding remainder: with
``n`` participants the shares may differ from the total by up to
``0.01 * (n - 1)``.
"""
import logging

from django.utils import timezone

from apps.expenses.exceptions import (
    InvalidParticipantSet,
    InvalidPercentages,
    MissingLineItems,
    UnresolvableMemberReference,
    UnsupportedSplitPolicy,
)
from apps.expenses.services.money import HUNDRED, ZERO, round2, to_decimal
from apps.expenses.services.records import Share, SplitPolicy

logger = logging.getLogger(__name__)


def _make_share(member_id, amount, payer_id, now):
    is_paid = payer_id is not None and member_id == payer_id
    return Share(
        member_id=member_id,
        amount=amount,
        is_paid=is_paid,
        paid_at=now if is_paid else None,
    )


def _check_members(member_ids, known_member_ids):
    if known_member_ids is None:
        return
    known = set(known_member_ids)
    for member_id in member_ids:
        if member_id not in known:
            raise UnresolvableMemberReference(member_id)


def calculate_equal_split(total_payable, participant_ids, payer_id=None,
                          known_member_ids=None, now=None):
    """
    Split *total_payable* equally among *participant_ids*.

    Parameters
    ----------
    total_payable : Decimal | str | int | float
        Base amount plus charges, minus discount.
    participant_ids : list
        Member IDs to split among. Duplicates are ignored.
    payer_id : optional
        The member who paid; their share is marked paid.
    known_member_ids : iterable, optional
        When given, every participant must be one of these.
    now : datetime, optional
        Timestamp used for the payer's ``paid_at``.

    Returns
    -------
    list[Share]

    Raises
    ------
    InvalidParticipantSet
        If *participant_ids* is empty.
    UnresolvableMemberReference
        If a participant is not a known member.
    """
    participants = list(dict.fromkeys(participant_ids or []))
    if not participants:
        raise InvalidParticipantSet()
    _check_members(participants, known_member_ids)

    now = now or timezone.now()
    per_person = round2(to_decimal(total_payable) / len(participants))

    return [_make_share(uid, per_person, payer_id, now) for uid in participants]


def calculate_item_split(items, extra_total, payer_id=None,
                         known_member_ids=None, now=None):
    """
    Split line items among their assignees, then spread the extra charges.

    Each item's line total is divided evenly among its assignees and
    accumulated per member. Items without assignees contribute nothing.
    The extra charges (tax + service + tip - discount) are then distributed
    in proportion to each member's item subtotal, and every final amount is
    rounded to two decimals.

    Shares are ordered by each member's first appearance in *items*.

    Raises
    ------
    MissingLineItems
        If *items* is empty.
    UnresolvableMemberReference
        If an assignee is not a known member.
    """
    if not items:
        raise MissingLineItems()

    known = set(known_member_ids) if known_member_ids is not None else None
    item_totals = {}

    for item in items:
        assignees = list(dict.fromkeys(item.assigned_to))
        if not assignees:
            continue
        per_person = round2(item.line_total / len(assignees))
        for uid in assignees:
            if known is not None and uid not in known:
                raise UnresolvableMemberReference(uid)
            item_totals[uid] = item_totals.get(uid, ZERO) + per_person

    subtotal = sum(item_totals.values(), ZERO)
    extra_total = to_decimal(extra_total)
    now = now or timezone.now()

    shares = []
    for uid, item_total in item_totals.items():
        amount = item_total
        if subtotal > 0 and extra_total != 0:
            amount += extra_total * item_total / subtotal
        shares.append(_make_share(uid, round2(amount), payer_id, now))

    return shares


def calculate_percentage_split(total_payable, percentages, payer_id=None,
                               known_member_ids=None, now=None):
    """
    Split *total_payable* according to the given *percentages*.

    Parameters
    ----------
    total_payable : Decimal | str | int | float
        The total amount to split.
    percentages : dict
        ``{member_id: Decimal}`` (values must sum to 100).

    Returns
    -------
    list[Share]
        The last member absorbs the rounding remainder so the shares sum
        exactly to *total_payable*.

    Raises
    ------
    InvalidPercentages
        If *percentages* is empty or does not sum to 100.
    """
    if not percentages:
        raise InvalidPercentages('percentages must not be empty.')

    total_pct = sum((to_decimal(v) for v in percentages.values()), ZERO)
    if total_pct != HUNDRED:
        raise InvalidPercentages(f'Percentages must sum to 100, got {total_pct}.')

    _check_members(percentages.keys(), known_member_ids)

    total_payable = round2(total_payable)
    now = now or timezone.now()
    entries = list(percentages.items())

    shares = []
    running_total = ZERO
    for uid, pct in entries[:-1]:
        amount = round2(total_payable * to_decimal(pct) / HUNDRED)
        running_total += amount
        shares.append(_make_share(uid, amount, payer_id, now))

    # Last member gets whatever is left to guarantee the sum is exact
    last_uid, _ = entries[-1]
    shares.append(_make_share(last_uid, total_payable - running_total, payer_id, now))

    return shares


def calculate_exact_split(shares, payer_id=None, known_member_ids=None, now=None):
    """
    Pass caller-supplied shares through, quantized to two decimals.

    The sum is not checked here; the API boundary validates it.

    Raises
    ------
    InvalidParticipantSet
        If *shares* is empty or names a member more than once.
    """
    if not shares:
        raise InvalidParticipantSet('by_amount splits must supply at least one share.')

    seen = set()
    for share in shares:
        if share.member_id in seen:
            raise InvalidParticipantSet(f'Member {share.member_id} has more than one share.')
        seen.add(share.member_id)

    _check_members((s.member_id for s in shares), known_member_ids)
    now = now or timezone.now()

    return [_make_share(s.member_id, round2(s.amount), payer_id, now) for s in shares]


def compute_split(expense, participants=None, member_ids=None, now=None):
    """
    Compute the shares for *expense* under its split policy.

    Parameters
    ----------
    expense : ExpenseRecord
        The expense; ``split_policy`` selects the calculation.
    participants : list, optional
        Explicit participants for an equal split. When omitted (or empty)
        every member in *member_ids* takes part.
    member_ids : list, optional
        The group's current members. Used as the default equal-split
        participant set and to resolve member references.
    now : datetime, optional
        Timestamp recorded on the payer's share.

    Returns
    -------
    list[Share]
    """
    policy = SplitPolicy.parse(expense.split_policy)
    now = now or timezone.now()

    if policy == SplitPolicy.EQUAL:
        shares = calculate_equal_split(
            expense.total_payable,
            participants or member_ids,
            payer_id=expense.payer_id,
            known_member_ids=member_ids,
            now=now,
        )
    elif policy == SplitPolicy.BY_ITEM:
        shares = calculate_item_split(
            expense.items,
            expense.charges.total,
            payer_id=expense.payer_id,
            known_member_ids=member_ids,
            now=now,
        )
    elif policy == SplitPolicy.BY_PERCENTAGE:
        shares = calculate_percentage_split(
            expense.total_payable,
            expense.percentages,
            payer_id=expense.payer_id,
            known_member_ids=member_ids,
            now=now,
        )
    elif policy == SplitPolicy.BY_AMOUNT:
        shares = calculate_exact_split(
            expense.shares,
            payer_id=expense.payer_id,
            known_member_ids=member_ids,
            now=now,
        )
    else:
        raise UnsupportedSplitPolicy(policy)

    logger.debug(
        'Computed %d shares for expense %s (%s)',
        len(shares),
        expense.id,
        policy.value,
    )
    return shares
