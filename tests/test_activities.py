"""
Tests for the activity feed.
"""
from decimal import Decimal

import pytest

from apps.activities.models import Activity
from apps.activities.services import activity_log
from apps.expenses.models import Transaction
from apps.expenses.services import group_ledger
from apps.groups.models import Group, GroupMember

pytestmark = pytest.mark.django_db


def _types(group):
    return set(Activity.objects.filter(group=group).values_list('type', flat=True))


def test_recording_an_expense_logs_it(group, alice):
    expense = group_ledger.record_expense(
        group=group, paid_by=alice, title='Cabin', amount=Decimal('300'),
    )

    activity = Activity.objects.get(group=group)
    assert activity.type == Activity.Type.EXPENSE_CREATED
    assert activity.user == alice
    assert activity.amount == Decimal('300.00')
    assert activity.ref_id == str(expense.id)
    assert activity.title == 'Alice Ng added "Cabin"'


def test_rejected_expense_leaves_no_entry(client_for, group, alice, bob):
    client_for(alice).post('/api/v1/expenses/', {
        'groupId': str(group.id),
        'title': 'Dinner',
        'amount': '100.00',
        'splitType': 'by_item',
        'items': [{'name': 'pasta', 'totalPrice': '30.00', 'assignedTo': [str(bob.id)]}],
    }, format='json')

    assert not Activity.objects.exists()


def test_payment_lifecycle_is_logged(client_for, group, alice, bob):
    created = client_for(bob).post('/api/v1/expenses/transactions/', {
        'groupId': str(group.id),
        'toUserId': str(alice.id),
        'amount': '25.00',
    }, format='json')
    tx_id = created.json()['data']['id']

    client_for(alice).post(f'/api/v1/expenses/transactions/{tx_id}/confirm/')

    sent = Activity.objects.get(type=Activity.Type.PAYMENT_SENT)
    assert sent.user == bob
    assert sent.amount == Decimal('25.00')
    confirmed = Activity.objects.get(type=Activity.Type.PAYMENT_CONFIRMED)
    assert confirmed.user == alice
    assert confirmed.ref_id == tx_id


def test_rejected_payment_is_logged(client_for, group, alice, bob):
    tx = Transaction.objects.create(group=group, from_user=bob, to_user=alice, amount=Decimal('10'))

    client_for(alice).post(f'/api/v1/expenses/transactions/{tx.id}/reject/')

    assert _types(group) == {Activity.Type.PAYMENT_REJECTED}


def test_cancelling_an_expense_is_logged(client_for, group, alice):
    expense = group_ledger.record_expense(group=group, paid_by=alice, title='Fuel', amount=Decimal('30'))

    client_for(alice).delete(f'/api/v1/expenses/{expense.id}/')

    assert _types(group) == {Activity.Type.EXPENSE_CREATED, Activity.Type.EXPENSE_CANCELLED}


def test_group_creation_and_join_are_logged(client_for, alice, outsider):
    created = client_for(alice).post('/api/v1/groups/', {'name': 'Flat 4B'}, format='json')
    group = Group.objects.get(pk=created.json()['data']['id'])

    client_for(outsider).post('/api/v1/groups/join/', {'inviteCode': group.invite_code}, format='json')

    assert _types(group) == {Activity.Type.GROUP_CREATED, Activity.Type.MEMBER_JOINED}
    joined = Activity.objects.get(type=Activity.Type.MEMBER_JOINED)
    assert joined.user == outsider


def test_group_feed_endpoint(client_for, group, alice, bob):
    for title in ('Fuel', 'Snacks', 'Cabin'):
        group_ledger.record_expense(group=group, paid_by=alice, title=title, amount=Decimal('30'))

    response = client_for(bob).get(f'/api/v1/groups/{group.id}/activities/', {'limit': 2})

    assert response.status_code == 200
    data = response.json()['data']
    assert len(data) == 2
    assert data[0]['groupName'] == 'Cabin'
    assert data[0]['userName'] == 'Alice Ng'
    assert data[0]['type'] == 'expense_created'
    assert data[0]['amount'] == '30.00'
    assert data[0]['timeAgo'].endswith(' ago')


def test_group_feed_is_private(client_for, group, alice, outsider):
    group_ledger.record_expense(group=group, paid_by=alice, title='Fuel', amount=Decimal('30'))

    response = client_for(outsider).get(f'/api/v1/groups/{group.id}/activities/')

    assert response.status_code == 404


def test_my_feed_spans_groups(client_for, group, alice, bob):
    other = Group.objects.create(name='Book club', invite_code='BOOKS001', created_by=bob)
    GroupMember.objects.create(group=other, user=bob, role=GroupMember.Role.ADMIN)
    group_ledger.record_expense(group=group, paid_by=alice, title='Cabin', amount=Decimal('300'))
    group_ledger.record_expense(group=other, paid_by=bob, title='Books', amount=Decimal('40'))

    bob_feed = client_for(bob).get('/api/v1/activities/me/').json()['data']
    assert {a['groupName'] for a in bob_feed} == {'Cabin', 'Book club'}

    alice_feed = client_for(alice).get('/api/v1/activities/me/').json()['data']
    assert {a['groupName'] for a in alice_feed} == {'Cabin'}


@pytest.mark.parametrize('raw, expected', [
    (None, 20),
    ('5', 5),
    ('50', 50),
    ('51', 20),
    ('0', 20),
    ('-3', 20),
    ('ten', 20),
])
def test_clamp_limit(raw, expected):
    assert activity_log.clamp_limit(raw, 20, 50) == expected
