"""
Management command to seed a demo group with expenses and a payment.

Every expense goes through ``record_expense`` so shares are computed the
same way the API computes them.

Usage:
    python manage.py seed_demo_ledger
    python manage.py seed_demo_ledger --reset  # wipe existing demo data first
"""
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

from apps.activities.services import activity_log
from apps.expenses.models import Expense, Transaction
from apps.expenses.services import group_ledger
from apps.expenses.services.records import (
    ExtraCharges,
    LineItem,
    SettlementStatus,
    Share,
    SplitPolicy,
)
from apps.expenses.services.report import render_group_report
from apps.groups.models import Group, GroupMember
from apps.groups.utils import generate_invite_code

User = get_user_model()

DEMO_PASSWORD = 'SplitLedger2024Demo'
DEMO_GROUP = 'Lisbon Weekend'

DEMO_USERS = [
    {'email': 'alex.johnson@splitledger.app', 'first': 'Alex', 'last': 'Johnson'},
    {'email': 'priya.sharma@splitledger.app', 'first': 'Priya', 'last': 'Sharma'},
    {'email': 'carlos.r@splitledger.app', 'first': 'Carlos', 'last': 'Rodriguez'},
]


class Command(BaseCommand):
    help = 'Seed a demo group with expenses under every split policy'

    def add_arguments(self, parser):
        parser.add_argument(
            '--reset',
            action='store_true',
            help='Delete all existing demo data before seeding',
        )

    def handle(self, *args, **options):
        if options['reset']:
            self._reset()

        alex, priya, carlos = self._seed_users()
        group = self._seed_group(alex, [priya, carlos])

        if group.expenses.exists():
            self.stdout.write('  Demo group already has expenses, skipping.')
        else:
            self._seed_expenses(group, alex, priya, carlos)
            self._seed_payment(group, carlos, alex)

        balances, suggestions = group_ledger.get_settlement_plan(group.id)
        self.stdout.write('')
        self.stdout.write(render_group_report(
            group.name,
            balances,
            suggestions,
            names=group_ledger.member_directory(group.id),
            currency=group.currency,
        ))

        self.stdout.write(self.style.SUCCESS('Demo data seeded successfully!'))
        self.stdout.write('\nDemo login credentials:')
        for u in DEMO_USERS:
            self.stdout.write(f'  {u["email"]} / {DEMO_PASSWORD}')

    # -----------------------------------------------------------------------

    def _reset(self):
        self.stdout.write('Resetting demo data...')
        emails = [u['email'] for u in DEMO_USERS]
        demo_users = User.objects.filter(email__in=emails)
        Group.objects.filter(created_by__in=demo_users).delete()
        demo_users.delete()
        self.stdout.write('  Reset complete.')

    def _seed_users(self):
        self.stdout.write('\nSeeding users...')
        users = []
        for data in DEMO_USERS:
            user, created = User.objects.get_or_create(
                email=data['email'],
                defaults={
                    'username': data['email'].split('@')[0],
                    'first_name': data['first'],
                    'last_name': data['last'],
                },
            )
            if created:
                user.set_password(DEMO_PASSWORD)
                user.save()
            users.append(user)
            self.stdout.write(f'  {"created" if created else "exists"}: {user.email}')
        return users

    def _seed_group(self, admin, members):
        self.stdout.write('\nSeeding group...')
        group = Group.objects.filter(name=DEMO_GROUP, created_by=admin).first()
        if group is None:
            group = Group.objects.create(
                name=DEMO_GROUP,
                description='Three friends sharing a long weekend.',
                currency='EUR',
                invite_code=generate_invite_code(),
                created_by=admin,
            )
            activity_log.log_group_created(group, admin)
        GroupMember.objects.get_or_create(
            group=group, user=admin, defaults={'role': GroupMember.Role.ADMIN},
        )
        for user in members:
            GroupMember.objects.get_or_create(group=group, user=user)
        self.stdout.write(f'  created/updated group: {group.name} ({group.invite_code})')
        return group

    def _seed_expenses(self, group, alex, priya, carlos):
        self.stdout.write('\nSeeding expenses...')
        today = timezone.now().date()

        expenses = [
            group_ledger.record_expense(
                group=group,
                paid_by=alex,
                title='Apartment',
                amount=Decimal('300.00'),
                category=Expense.Category.ACCOMMODATION,
                date=today,
            ),
            group_ledger.record_expense(
                group=group,
                paid_by=priya,
                title='Seafood dinner',
                amount=Decimal('90.00'),
                split_type=SplitPolicy.BY_ITEM,
                charges=ExtraCharges(tax=Decimal('9.00'), tip=Decimal('6.00')),
                items=[
                    LineItem(name='Grilled octopus', unit_price=Decimal('30.00'),
                             total_price=Decimal('30.00'), assigned_to=(str(alex.id),)),
                    LineItem(name='Cataplana', unit_price=Decimal('40.00'),
                             total_price=Decimal('40.00'),
                             assigned_to=(str(priya.id), str(carlos.id))),
                    LineItem(name='Vinho verde', quantity=2, unit_price=Decimal('10.00'),
                             assigned_to=(str(alex.id), str(priya.id), str(carlos.id))),
                ],
                category=Expense.Category.FOOD,
                date=today,
            ),
            group_ledger.record_expense(
                group=group,
                paid_by=carlos,
                title='Car rental',
                amount=Decimal('120.00'),
                split_type=SplitPolicy.BY_PERCENTAGE,
                percentages={
                    str(alex.id): Decimal('50'),
                    str(priya.id): Decimal('25'),
                    str(carlos.id): Decimal('25'),
                },
                category=Expense.Category.TRANSPORT,
                date=today,
            ),
            group_ledger.record_expense(
                group=group,
                paid_by=alex,
                title='Museum tickets',
                amount=Decimal('36.00'),
                split_type=SplitPolicy.BY_AMOUNT,
                exact_shares=[
                    Share(member_id=str(alex.id), amount=Decimal('12.00')),
                    Share(member_id=str(priya.id), amount=Decimal('12.00')),
                    Share(member_id=str(carlos.id), amount=Decimal('12.00')),
                ],
                category=Expense.Category.ENTERTAINMENT,
                date=today,
            ),
        ]
        for expense in expenses:
            self.stdout.write(f'  created: {expense.title} ({expense.total_payable})')

    def _seed_payment(self, group, payer, recipient):
        self.stdout.write('\nSeeding payments...')
        tx = Transaction.objects.create(
            group=group,
            from_user=payer,
            to_user=recipient,
            amount=Decimal('50.00'),
            currency=group.currency,
            status=SettlementStatus.CONFIRMED,
            payment_method='cash',
            confirmed_at=timezone.now(),
        )
        activity_log.log_payment_sent(tx)
        activity_log.log_payment_resolved(tx, recipient)
        self.stdout.write(f'  created: {payer.email} -> {recipient.email} {tx.amount}')
