"""
Human-readable group summary built from balances and settlement suggestions.
"""
from apps.expenses.services.money import round2


def format_amount(amount, currency=''):
    """Format *amount* with thousands separators, e.g. ``USD 1,234.50``."""
    text = f'{round2(abs(amount)):,.2f}'
    return f'{currency} {text}'.strip()


def render_group_report(group_name, balances, suggestions, names=None, currency=''):
    """
    Render a plain-text summary of a group's balances and suggested transfers.

    *names* maps member IDs to display names; unknown IDs are shown as-is.
    """
    names = names or {}

    def name_of(member_id):
        return names.get(member_id) or str(member_id)

    lines = [f'Balances for {group_name}', '']

    if not balances:
        lines.append('  No expenses recorded yet.')
    for balance in balances:
        who = name_of(balance.member_id)
        if balance.amount > 0:
            lines.append(f'  {who} is owed {format_amount(balance.amount, currency)}')
        elif balance.amount < 0:
            lines.append(f'  {who} owes {format_amount(balance.amount, currency)}')
        else:
            lines.append(f'  {who} is settled up')

    lines.extend(['', 'Suggested payments', ''])
    if not suggestions:
        lines.append('  Everyone is settled up.')
    for index, suggestion in enumerate(suggestions, start=1):
        lines.append(
            f'  {index}. {name_of(suggestion.from_member_id)} pays '
            f'{name_of(suggestion.to_member_id)} '
            f'{format_amount(suggestion.amount, currency)}'
        )

    return '\n'.join(lines) + '\n'
