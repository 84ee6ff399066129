"""
Unit tests for apps.expenses.services.debt_simplifier.
"""
from decimal import Decimal

from apps.expenses.services.debt_simplifier import optimize_settlements
from apps.expenses.services.records import Balance, SettlementSuggestion


def _balances(**amounts):
    return [Balance(member_id, Decimal(value)) for member_id, value in amounts.items()]


def _apply(balances, suggestions):
    remaining = {b.member_id: b.amount for b in balances}
    for s in suggestions:
        remaining[s.from_member_id] += s.amount
        remaining[s.to_member_id] -= s.amount
    return remaining


def test_one_creditor_two_debtors():
    balances = _balances(a='200000', b='-100000', c='-100000')

    suggestions = optimize_settlements(balances)

    assert suggestions == [
        SettlementSuggestion('b', 'a', Decimal('100000.00')),
        SettlementSuggestion('c', 'a', Decimal('100000.00')),
    ]


def test_largest_debtor_pays_largest_creditor_first():
    balances = _balances(a='30', b='70', c='-60', d='-40')

    suggestions = optimize_settlements(balances)

    assert suggestions == [
        SettlementSuggestion('c', 'b', Decimal('60.00')),
        SettlementSuggestion('d', 'b', Decimal('10.00')),
        SettlementSuggestion('d', 'a', Decimal('30.00')),
    ]


def test_equal_amounts_keep_input_order():
    balances = _balances(x='-10', a='10', y='-10', b='10')

    suggestions = optimize_settlements(balances)

    assert suggestions == [
        SettlementSuggestion('x', 'a', Decimal('10.00')),
        SettlementSuggestion('y', 'b', Decimal('10.00')),
    ]


def test_transaction_count_is_bounded():
    balances = _balances(a='45.10', b='-12.35', c='-7.80', d='19.99', e='-30.00', f='-14.94')

    suggestions = optimize_settlements(balances)

    nonzero = [b for b in balances if b.amount != 0]
    assert len(suggestions) <= max(0, len(nonzero) - 1)


def test_applying_suggestions_settles_everyone():
    balances = _balances(a='45.10', b='-12.35', c='-7.80', d='19.99', e='-30.00', f='-14.94')

    remaining = _apply(balances, optimize_settlements(balances))

    assert all(abs(value) < Decimal('0.01') for value in remaining.values())


def test_no_member_pays_more_than_they_owe():
    balances = _balances(a='50', b='25', c='-60', d='-15')

    suggestions = optimize_settlements(balances)

    paid = {}
    for s in suggestions:
        paid[s.from_member_id] = paid.get(s.from_member_id, Decimal('0')) + s.amount
    assert paid == {'c': Decimal('60.00'), 'd': Decimal('15.00')}


def test_same_input_gives_same_plan():
    balances = _balances(a='12.34', b='-5.67', c='-6.67', d='0')

    assert optimize_settlements(balances) == optimize_settlements(balances)


def test_balances_within_epsilon_are_dropped():
    balances = _balances(a='0.01', b='-0.01', c='0')

    assert optimize_settlements(balances) == []


def test_empty_input():
    assert optimize_settlements([]) == []
