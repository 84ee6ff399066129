"""
Writes and reads the per-group activity feed.

Writers are called from the code paths that change a group's state, inside
the same transaction where there is one, so a rolled back change leaves no
entry behind.
"""
import logging

from apps.activities.models import Activity
from apps.expenses.services.records import SettlementStatus
from apps.groups.models import GroupMember

logger = logging.getLogger(__name__)

GROUP_FEED_LIMIT = 20
GROUP_FEED_MAX = 50
USER_FEED_LIMIT = 30
USER_FEED_MAX = 100


def log_activity(group, user, activity_type, title, detail='', amount=None, ref_id=''):
    activity = Activity.objects.create(
        group=group,
        user=user,
        type=activity_type,
        title=title,
        detail=detail,
        amount=amount,
        ref_id=str(ref_id) if ref_id else '',
    )
    logger.debug('Activity %s logged for group %s by %s', activity_type, group.id, user.id)
    return activity


def log_group_created(group, user):
    return log_activity(
        group, user, Activity.Type.GROUP_CREATED,
        f'{user.display_name} created {group.name}',
        ref_id=group.id,
    )


def log_group_updated(group, user, changed_fields):
    return log_activity(
        group, user, Activity.Type.GROUP_UPDATED,
        f'{user.display_name} updated {group.name}',
        detail=', '.join(sorted(changed_fields)),
        ref_id=group.id,
    )


def log_member_joined(group, user, added_by=None):
    detail = f'Added by {added_by.display_name}' if added_by and added_by != user else ''
    return log_activity(
        group, user, Activity.Type.MEMBER_JOINED,
        f'{user.display_name} joined {group.name}',
        detail=detail,
        ref_id=user.id,
    )


def log_member_left(group, user):
    return log_activity(
        group, user, Activity.Type.MEMBER_LEFT,
        f'{user.display_name} left {group.name}',
        ref_id=user.id,
    )


def log_member_removed(group, admin, member):
    return log_activity(
        group, admin, Activity.Type.MEMBER_REMOVED,
        f'{admin.display_name} removed {member.display_name}',
        ref_id=member.id,
    )


def log_expense_created(expense):
    return log_activity(
        expense.group, expense.paid_by, Activity.Type.EXPENSE_CREATED,
        f'{expense.paid_by.display_name} added "{expense.title}"',
        detail=expense.get_split_type_display(),
        amount=expense.total_payable,
        ref_id=expense.id,
    )


def log_expense_cancelled(expense, user):
    return log_activity(
        expense.group, user, Activity.Type.EXPENSE_CANCELLED,
        f'{user.display_name} cancelled "{expense.title}"',
        amount=expense.total_payable,
        ref_id=expense.id,
    )


def log_payment_sent(tx):
    return log_activity(
        tx.group, tx.from_user, Activity.Type.PAYMENT_SENT,
        f'{tx.from_user.display_name} paid {tx.to_user.display_name}',
        detail=tx.note,
        amount=tx.amount,
        ref_id=tx.id,
    )


def log_payment_resolved(tx, user):
    confirmed = tx.status == SettlementStatus.CONFIRMED
    verb = 'confirmed' if confirmed else 'rejected'
    return log_activity(
        tx.group, user,
        Activity.Type.PAYMENT_CONFIRMED if confirmed else Activity.Type.PAYMENT_REJECTED,
        f'{user.display_name} {verb} a payment from {tx.from_user.display_name}',
        amount=tx.amount,
        ref_id=tx.id,
    )


def clamp_limit(raw, default, maximum):
    """
    Parse a ``limit`` query parameter.

    Anything missing, malformed, non-positive or above *maximum* falls back
    to *default*.
    """
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        return default
    if limit <= 0 or limit > maximum:
        return default
    return limit


def group_activities(group_id, limit=GROUP_FEED_LIMIT):
    """Most recent entries of one group, newest first."""
    return list(
        Activity.objects.filter(group_id=group_id)
        .select_related('user', 'group')
        .order_by('-created_at')[:limit]
    )


def user_activities(user, limit=USER_FEED_LIMIT):
    """Most recent entries across every active group *user* belongs to."""
    group_ids = GroupMember.objects.filter(
        user=user,
        group__is_active=True,
    ).values('group_id')
    return list(
        Activity.objects.filter(group_id__in=group_ids)
        .select_related('user', 'group')
        .order_by('-created_at')[:limit]
    )
