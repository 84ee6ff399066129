"""
API tests for the expenses endpoints.
"""
from decimal import Decimal

import pytest

from apps.expenses.models import Expense, Transaction
from apps.expenses.services import group_ledger
from apps.expenses.services.records import ExpenseStatus, ExtraCharges, SettlementStatus
from apps.groups.models import Group, GroupMember

pytestmark = pytest.mark.django_db

EXPENSES_URL = '/api/v1/expenses/'
TRANSACTIONS_URL = '/api/v1/expenses/transactions/'


def _group_url(group, suffix=''):
    return f'/api/v1/expenses/group/{group.id}/{suffix}'


def test_create_equal_expense(client_for, group, alice, bob, carol):
    response = client_for(alice).post(EXPENSES_URL, {
        'groupId': str(group.id),
        'title': 'Cabin rent',
        'amount': '300.00',
    }, format='json')

    assert response.status_code == 201
    body = response.json()
    assert body['success'] is True
    data = body['data']
    assert data['splitType'] == 'equal'
    assert data['totalPayable'] == '300.00'
    assert data['paidBy'] == str(alice.id)
    shares = {s['userId']: s for s in data['splits']}
    assert shares[str(alice.id)]['isPaid'] is True
    assert shares[str(bob.id)]['amount'] == '100.00'
    assert shares[str(carol.id)]['userName'] == 'Carol Ito'


def test_create_item_expense_with_tax(client_for, group, alice, bob):
    response = client_for(alice).post(EXPENSES_URL, {
        'groupId': str(group.id),
        'title': 'Dinner',
        'amount': '100.00',
        'splitType': 'by_item',
        'extraCharges': {'tax': '10.00'},
        'items': [
            {'name': 'steak', 'totalPrice': '60.00', 'assignedTo': [str(alice.id)]},
            {'name': 'salad', 'totalPrice': '40.00', 'assignedTo': [str(bob.id)]},
        ],
    }, format='json')

    assert response.status_code == 201
    data = response.json()['data']
    assert data['extraCharges']['tax'] == '10.00'
    assert {s['userId']: s['amount'] for s in data['splits']} == {
        str(alice.id): '66.00',
        str(bob.id): '44.00',
    }
    assert [i['name'] for i in data['items']] == ['steak', 'salad']


def test_create_percentage_expense(client_for, group, alice, bob):
    response = client_for(bob).post(EXPENSES_URL, {
        'groupId': str(group.id),
        'title': 'Car',
        'amount': '120.00',
        'splitType': 'by_percentage',
        'percentages': [
            {'userId': str(alice.id), 'percentage': '75'},
            {'userId': str(bob.id), 'percentage': '25'},
        ],
    }, format='json')

    assert response.status_code == 201
    splits = {s['userId']: s['amount'] for s in response.json()['data']['splits']}
    assert splits == {str(alice.id): '90.00', str(bob.id): '30.00'}


def test_by_amount_splits_must_match_total(client_for, group, alice, bob):
    response = client_for(alice).post(EXPENSES_URL, {
        'groupId': str(group.id),
        'title': 'Tickets',
        'amount': '30.00',
        'splitType': 'by_amount',
        'splits': [
            {'userId': str(alice.id), 'amount': '10.00'},
            {'userId': str(bob.id), 'amount': '10.00'},
        ],
    }, format='json')

    assert response.status_code == 400
    error = response.json()['error']
    assert error['code'] == 'validation_error'
    assert 'splits' in error['details']


def test_unknown_split_type_is_rejected(client_for, group, alice):
    response = client_for(alice).post(EXPENSES_URL, {
        'groupId': str(group.id),
        'title': 'Mystery',
        'amount': '30.00',
        'splitType': 'shares',
    }, format='json')

    assert response.status_code == 400
    body = response.json()
    assert body['success'] is False
    assert body['error']['code'] == 'unsupported_split_policy'
    assert not Expense.objects.exists()


def test_split_among_non_member_is_rejected(client_for, group, alice, outsider):
    response = client_for(alice).post(EXPENSES_URL, {
        'groupId': str(group.id),
        'title': 'Taxi',
        'amount': '20.00',
        'splitAmong': [str(alice.id), str(outsider.id)],
    }, format='json')

    assert response.status_code == 400
    assert response.json()['error']['code'] == 'unresolvable_member_reference'


def test_non_member_cannot_create_expense(client_for, group, outsider):
    response = client_for(outsider).post(EXPENSES_URL, {
        'groupId': str(group.id),
        'title': 'Snacks',
        'amount': '5.00',
    }, format='json')

    assert response.status_code == 400
    assert 'groupId' in response.json()['error']['details']


def test_only_payer_can_cancel_and_cancel_is_soft(client_for, group, alice, bob):
    expense = group_ledger.record_expense(group=group, paid_by=alice, title='Fuel', amount=Decimal('30'))
    url = f'{EXPENSES_URL}{expense.id}/'

    assert client_for(bob).delete(url).status_code == 403

    response = client_for(alice).delete(url)
    assert response.status_code == 200
    expense.refresh_from_db()
    assert expense.status == ExpenseStatus.CANCELLED
    assert expense.splits.count() == 3


def test_cancelled_expense_cannot_be_reopened(client_for, group, alice):
    expense = group_ledger.record_expense(group=group, paid_by=alice, title='Fuel', amount=Decimal('30'))
    client = client_for(alice)
    client.delete(f'{EXPENSES_URL}{expense.id}/')

    response = client.patch(f'{EXPENSES_URL}{expense.id}/', {'status': 'pending'}, format='json')

    assert response.status_code == 400


def test_group_balances_and_settlements(client_for, group, alice, bob, carol):
    group_ledger.record_expense(group=group, paid_by=alice, title='Cabin', amount=Decimal('300'))
    client = client_for(bob)

    balances = client.get(_group_url(group, 'balances/')).json()['data']
    assert {b['userId']: b['balance'] for b in balances} == {
        str(alice.id): '200.00',
        str(bob.id): '-100.00',
        str(carol.id): '-100.00',
    }
    assert {b['userName'] for b in balances} == {'Alice Ng', 'Bob Ruiz', 'Carol Ito'}

    suggestions = client.get(_group_url(group, 'settlements/')).json()['data']
    assert len(suggestions) == 2
    assert {s['fromUserName'] for s in suggestions} == {'Bob Ruiz', 'Carol Ito'}
    assert all(s['toUserId'] == str(alice.id) for s in suggestions)
    assert all(s['amount'] == '100.00' for s in suggestions)


def test_group_views_require_membership(client_for, group, outsider):
    client = client_for(outsider)

    for suffix in ('', 'balances/', 'settlements/', 'report/'):
        assert client.get(_group_url(group, suffix)).status_code == 403


def test_group_report_is_plain_text(client_for, group, alice):
    group_ledger.record_expense(group=group, paid_by=alice, title='Cabin', amount=Decimal('300'))

    response = client_for(alice).get(_group_url(group, 'report/'))

    assert response.status_code == 200
    assert response['Content-Type'].startswith('text/plain')
    text = response.content.decode()
    assert text.startswith('Balances for Cabin\n')
    assert '  Alice Ng is owed USD 200.00' in text
    assert 'Bob Ruiz pays Alice Ng USD 100.00' in text


def test_summary(client_for, group, alice, bob):
    group_ledger.record_expense(group=group, paid_by=alice, title='Cabin', amount=Decimal('300'))
    group_ledger.record_expense(group=group, paid_by=bob, title='Fuel', amount=Decimal('30'))

    response = client_for(alice).get('/api/v1/expenses/summary/', {'group': str(group.id)})

    assert response.status_code == 200
    data = response.json()['data']
    assert Decimal(data['totalExpenses']) == Decimal('330')
    assert data['expenseCount'] == 2
    assert Decimal(data['mySummary']['totalPaid']) == Decimal('300')
    assert Decimal(data['mySummary']['totalOwed']) == Decimal('110')


def test_payment_confirmed_by_recipient_updates_balances(client_for, group, alice, bob):
    group_ledger.record_expense(group=group, paid_by=alice, title='Cabin', amount=Decimal('300'))

    created = client_for(bob).post(TRANSACTIONS_URL, {
        'groupId': str(group.id),
        'toUserId': str(alice.id),
        'amount': '100.00',
        'paymentMethod': 'cash',
    }, format='json')
    assert created.status_code == 201
    tx_id = created.json()['data']['id']
    assert created.json()['data']['status'] == SettlementStatus.PENDING

    # Pending payments do not count yet
    balances = {b.member_id: b.amount for b in group_ledger.get_group_balances(group.id)}
    assert balances[str(bob.id)] == Decimal('-100.00')

    assert client_for(bob).post(f'{TRANSACTIONS_URL}{tx_id}/confirm/').status_code == 403

    confirmed = client_for(alice).post(f'{TRANSACTIONS_URL}{tx_id}/confirm/')
    assert confirmed.status_code == 200
    assert confirmed.json()['data']['status'] == SettlementStatus.CONFIRMED

    balances = {b.member_id: b.amount for b in group_ledger.get_group_balances(group.id)}
    assert balances[str(bob.id)] == Decimal('0.00')
    assert balances[str(alice.id)] == Decimal('100.00')

    again = client_for(alice).post(f'{TRANSACTIONS_URL}{tx_id}/reject/')
    assert again.status_code == 400
    assert again.json()['error']['code'] == 'invalid_state'


def test_rejected_payment_is_ignored(client_for, group, alice, bob):
    tx = Transaction.objects.create(group=group, from_user=bob, to_user=alice, amount=Decimal('10'))

    response = client_for(alice).post(f'{TRANSACTIONS_URL}{tx.id}/reject/')

    assert response.status_code == 200
    tx.refresh_from_db()
    assert tx.status == SettlementStatus.REJECTED
    assert tx.confirmed_at is None


def test_cannot_pay_yourself(client_for, group, alice):
    response = client_for(alice).post(TRANSACTIONS_URL, {
        'groupId': str(group.id),
        'toUserId': str(alice.id),
        'amount': '5.00',
    }, format='json')

    assert response.status_code == 400
    assert 'toUserId' in response.json()['error']['details']


def test_by_item_totals_must_match_amount(client_for, group, alice, bob):
    response = client_for(alice).post(EXPENSES_URL, {
        'groupId': str(group.id),
        'title': 'Dinner',
        'amount': '100.00',
        'splitType': 'by_item',
        'items': [{'name': 'pasta', 'totalPrice': '30.00', 'assignedTo': [str(bob.id)]}],
    }, format='json')

    assert response.status_code == 400
    error = response.json()['error']
    assert error['code'] == 'validation_error'
    assert 'items' in error['details']
    assert not Expense.objects.exists()


def test_by_item_requires_every_item_assigned(client_for, group, alice, bob):
    response = client_for(alice).post(EXPENSES_URL, {
        'groupId': str(group.id),
        'title': 'Dinner',
        'amount': '100.00',
        'splitType': 'by_item',
        'items': [
            {'name': 'pasta', 'totalPrice': '60.00', 'assignedTo': [str(bob.id)]},
            {'name': 'wine', 'totalPrice': '40.00'},
        ],
    }, format='json')

    assert response.status_code == 400
    assert 'items' in response.json()['error']['details']


def test_by_item_history_conserves_money(client_for, group, alice, bob, carol):
    client = client_for(alice)
    expenses = [
        ('alice', '100.00', {'tax': '8.25', 'tip': '15.00'}, [
            ('steak', '45.50', [alice]),
            ('salad', '21.17', [bob, carol]),
            ('wine', '33.33', [alice, bob, carol]),
        ]),
        ('bob', '61.00', {'serviceCharge': '6.10', 'discount': '5.00'}, [
            ('pizza', '37.00', [bob, carol]),
            ('beer', '24.00', [alice]),
        ]),
    ]
    payers = {'alice': alice, 'bob': bob}
    for payer, amount, charges, items in expenses:
        response = client_for(payers[payer]).post(EXPENSES_URL, {
            'groupId': str(group.id),
            'title': 'Receipt',
            'amount': amount,
            'splitType': 'by_item',
            'extraCharges': charges,
            'items': [
                {'name': name, 'totalPrice': price, 'assignedTo': [str(u.id) for u in assignees]}
                for name, price, assignees in items
            ],
        }, format='json')
        assert response.status_code == 201

    balances = client.get(_group_url(group, 'balances/')).json()['data']
    total = sum(Decimal(b['balance']) for b in balances)
    assert abs(total) <= Decimal('0.01') * len(balances)


def test_by_amount_rejects_same_user_twice(client_for, group, alice, bob):
    response = client_for(alice).post(EXPENSES_URL, {
        'groupId': str(group.id),
        'title': 'Tickets',
        'amount': '100.00',
        'splitType': 'by_amount',
        'splits': [
            {'userId': str(bob.id), 'amount': '50.00'},
            {'userId': str(bob.id), 'amount': '50.00'},
        ],
    }, format='json')

    assert response.status_code == 400
    assert 'splits' in response.json()['error']['details']
    assert not Expense.objects.exists()


def test_by_percentage_rejects_same_user_twice(client_for, group, alice, bob):
    response = client_for(alice).post(EXPENSES_URL, {
        'groupId': str(group.id),
        'title': 'Car',
        'amount': '100.00',
        'splitType': 'by_percentage',
        'percentages': [
            {'userId': str(bob.id), 'percentage': '50'},
            {'userId': str(bob.id), 'percentage': '50'},
        ],
    }, format='json')

    assert response.status_code == 400
    assert 'percentages' in response.json()['error']['details']


def test_summary_counts_extra_charges(client_for, group, alice, bob, carol):
    group_ledger.record_expense(
        group=group,
        paid_by=alice,
        title='Dinner',
        amount=Decimal('90'),
        charges=ExtraCharges(tax=Decimal('9'), tip=Decimal('6'), discount=Decimal('3')),
    )
    client = client_for(alice)

    data = client.get('/api/v1/expenses/summary/', {'group': str(group.id)}).json()['data']

    assert Decimal(data['totalExpenses']) == Decimal('102')
    assert Decimal(data['categoryBreakdown'][0]['total']) == Decimal('102')
    assert Decimal(data['userSpending'][0]['totalPaid']) == Decimal('102')
    assert Decimal(data['mySummary']['totalPaid']) == Decimal('102')
    assert Decimal(data['mySummary']['totalOwed']) == Decimal('34')

    balances = client.get(_group_url(group, 'balances/')).json()['data']
    mine = next(b for b in balances if b['userId'] == str(alice.id))
    assert Decimal(data['mySummary']['netBalance']) == Decimal(mine['balance'])


def test_my_debts_lists_groups_with_open_balances(client_for, group, alice, bob, carol):
    quiet = Group.objects.create(name='Book club', invite_code='BOOKS001', created_by=bob)
    GroupMember.objects.create(group=quiet, user=bob, role=GroupMember.Role.ADMIN)
    group_ledger.record_expense(group=group, paid_by=alice, title='Cabin', amount=Decimal('300'))

    response = client_for(bob).get('/api/v1/expenses/me/debts/')

    assert response.status_code == 200
    data = response.json()['data']
    assert [d['groupName'] for d in data] == ['Cabin']
    assert data[0]['balance'] == '-100.00'
    assert data[0]['currency'] == 'USD'
    assert data[0]['settlements'] == [{
        'fromUserId': str(bob.id),
        'fromUserName': 'Bob Ruiz',
        'toUserId': str(alice.id),
        'toUserName': 'Alice Ng',
        'amount': '100.00',
    }]


def test_my_debts_empty_when_settled(client_for, group, alice):
    response = client_for(alice).get('/api/v1/expenses/me/debts/')

    assert response.status_code == 200
    assert response.json()['data'] == []


def test_my_stats(client_for, group, alice, bob):
    group_ledger.record_expense(
        group=group, paid_by=alice, title='Cabin', amount=Decimal('300'),
        category=Expense.Category.ACCOMMODATION,
    )
    group_ledger.record_expense(
        group=group, paid_by=bob, title='Fuel', amount=Decimal('30'),
        charges=ExtraCharges(tax=Decimal('3')),
        category=Expense.Category.TRANSPORT,
    )

    response = client_for(bob).get('/api/v1/expenses/me/stats/')

    assert response.status_code == 200
    data = response.json()['data']
    assert data['totalGroups'] == 1
    assert data['expenseCount'] == 2
    assert Decimal(data['totalPaid']) == Decimal('33')
    assert Decimal(data['totalOwed']) == Decimal('111')
    assert Decimal(data['netBalance']) == Decimal('-78')
    categories = {row['category']: Decimal(row['total']) for row in data['categoryBreakdown']}
    assert categories == {'accommodation': Decimal('100'), 'transport': Decimal('11')}
    assert data['topGroups'][0]['groupName'] == 'Cabin'
    assert len(data['monthlyTrend']) == 1
    assert Decimal(data['monthlyTrend'][0]['total']) == Decimal('111')


def test_my_stats_ignores_cancelled_expenses(client_for, group, alice):
    expense = group_ledger.record_expense(group=group, paid_by=alice, title='Cabin', amount=Decimal('300'))
    expense.status = ExpenseStatus.CANCELLED
    expense.save()

    data = client_for(alice).get('/api/v1/expenses/me/stats/').json()['data']

    assert data['expenseCount'] == 0
    assert Decimal(data['totalPaid']) == Decimal('0')
    assert data['categoryBreakdown'] == []
