from decimal import Decimal

from apps.expenses.services.records import Balance, SettlementSuggestion
from apps.expenses.services.report import format_amount, render_group_report


def test_format_amount():
    assert format_amount(Decimal('1234.5')) == '1,234.50'
    assert format_amount(Decimal('-20'), 'EUR') == 'EUR 20.00'


def test_report_lists_balances_and_payments():
    balances = [
        Balance('a', Decimal('200')),
        Balance('b', Decimal('-100')),
        Balance('c', Decimal('-100')),
        Balance('d', Decimal('0')),
    ]
    suggestions = [
        SettlementSuggestion('b', 'a', Decimal('100')),
        SettlementSuggestion('c', 'a', Decimal('100')),
    ]
    names = {'a': 'Alex', 'b': 'Priya', 'c': 'Carlos', 'd': 'Dana'}

    report = render_group_report('Trip', balances, suggestions, names=names, currency='USD')

    assert report == (
        'Balances for Trip\n'
        '\n'
        '  Alex is owed USD 200.00\n'
        '  Priya owes USD 100.00\n'
        '  Carlos owes USD 100.00\n'
        '  Dana is settled up\n'
        '\n'
        'Suggested payments\n'
        '\n'
        '  1. Priya pays Alex USD 100.00\n'
        '  2. Carlos pays Alex USD 100.00\n'
    )


def test_report_for_empty_group():
    report = render_group_report('Flat', [], [])

    assert '  No expenses recorded yet.' in report
    assert '  Everyone is settled up.' in report


def test_report_falls_back_to_member_id():
    report = render_group_report('Flat', [Balance('u-1', Decimal('5'))], [])

    assert '  u-1 is owed 5.00' in report
