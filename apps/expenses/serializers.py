"""
Serializers for the Expenses app.
All output uses camelCase to match the mobile client.
"""
from decimal import Decimal

from rest_framework import serializers

from apps.expenses.models import Expense, ExpenseItem, ExpenseSplit, Transaction
from apps.expenses.services.money import CENT, HUNDRED, round2
from apps.expenses.services.records import ExpenseStatus, ExtraCharges, LineItem, Share, SplitPolicy
from apps.groups.models import Group, GroupMember

MONEY = {'max_digits': 14, 'decimal_places': 2}


def _line_item(item):
    return LineItem(
        name=item['name'],
        quantity=item['quantity'],
        unit_price=item['unitPrice'],
        total_price=item['totalPrice'],
        assigned_to=tuple(str(uid) for uid in item['assignedTo']),
    )


def _reject_duplicate_users(entries, field_name):
    seen = set()
    for entry in entries:
        if entry['userId'] in seen:
            raise serializers.ValidationError(
                {field_name: f'User {entry["userId"]} is listed more than once.'}
            )
        seen.add(entry['userId'])


class ExpenseSplitSerializer(serializers.ModelSerializer):
    userId = serializers.CharField(source='user_id', read_only=True)
    userName = serializers.CharField(source='user.display_name', read_only=True)
    isPaid = serializers.BooleanField(source='is_paid', read_only=True)
    paidAt = serializers.DateTimeField(source='paid_at', read_only=True)

    class Meta:
        model = ExpenseSplit
        fields = ['userId', 'userName', 'amount', 'isPaid', 'paidAt']
        read_only_fields = fields


class ExpenseItemSerializer(serializers.ModelSerializer):
    unitPrice = serializers.DecimalField(source='unit_price', read_only=True, **MONEY)
    totalPrice = serializers.DecimalField(source='total_price', read_only=True, **MONEY)
    assignedTo = serializers.SerializerMethodField()

    class Meta:
        model = ExpenseItem
        fields = ['id', 'name', 'quantity', 'unitPrice', 'totalPrice', 'assignedTo']
        read_only_fields = fields

    def get_assignedTo(self, obj):
        return [str(user.pk) for user in obj.assigned_to.all()]


class ExpenseSerializer(serializers.ModelSerializer):
    groupId = serializers.CharField(source='group_id', read_only=True)
    paidBy = serializers.CharField(source='paid_by_id', read_only=True)
    paidByName = serializers.CharField(source='paid_by.display_name', read_only=True)
    splitType = serializers.CharField(source='split_type', read_only=True)
    extraCharges = serializers.SerializerMethodField()
    totalPayable = serializers.DecimalField(source='total_payable', read_only=True, **MONEY)
    receiptUrl = serializers.URLField(source='receipt_url', read_only=True, allow_blank=True)
    items = ExpenseItemSerializer(many=True, read_only=True)
    splits = ExpenseSplitSerializer(many=True, read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Expense
        fields = [
            'id', 'groupId', 'title', 'description', 'amount', 'currency',
            'extraCharges', 'totalPayable', 'category', 'paidBy', 'paidByName',
            'splitType', 'status', 'receiptUrl', 'date', 'items', 'splits', 'createdAt',
        ]
        read_only_fields = fields

    def get_extraCharges(self, obj):
        return {
            'tax': str(obj.tax),
            'serviceCharge': str(obj.service_charge),
            'tip': str(obj.tip),
            'discount': str(obj.discount),
        }


class ExtraChargesSerializer(serializers.Serializer):
    tax = serializers.DecimalField(min_value=Decimal('0'), default=Decimal('0'), **MONEY)
    serviceCharge = serializers.DecimalField(min_value=Decimal('0'), default=Decimal('0'), **MONEY)
    tip = serializers.DecimalField(min_value=Decimal('0'), default=Decimal('0'), **MONEY)
    discount = serializers.DecimalField(min_value=Decimal('0'), default=Decimal('0'), **MONEY)


class ExpenseItemInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    quantity = serializers.IntegerField(min_value=1, default=1)
    unitPrice = serializers.DecimalField(min_value=Decimal('0'), default=Decimal('0'), **MONEY)
    totalPrice = serializers.DecimalField(min_value=Decimal('0'), default=Decimal('0'), **MONEY)
    assignedTo = serializers.ListField(child=serializers.UUIDField(), required=False, default=list)


class PercentageInputSerializer(serializers.Serializer):
    userId = serializers.UUIDField()
    percentage = serializers.DecimalField(max_digits=6, decimal_places=3, min_value=Decimal('0'))


class AmountInputSerializer(serializers.Serializer):
    userId = serializers.UUIDField()
    amount = serializers.DecimalField(min_value=Decimal('0'), **MONEY)


class ExpenseCreateSerializer(serializers.Serializer):
    """
    Accepts camelCase input and records the expense with its computed shares.

    ``splitAmong`` lists participants for an equal split (all members when
    omitted), ``items`` drives a by-item split, ``percentages`` a
    by-percentage split and ``splits`` a by-amount split.
    """
    groupId = serializers.UUIDField()
    title = serializers.CharField(min_length=2, max_length=200)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')
    amount = serializers.DecimalField(min_value=Decimal('0.01'), **MONEY)
    currency = serializers.CharField(max_length=3, required=False)
    category = serializers.ChoiceField(choices=Expense.Category.choices, default=Expense.Category.OTHER)
    paidBy = serializers.UUIDField(required=False)
    splitType = serializers.CharField(max_length=20, default=SplitPolicy.EQUAL)
    extraCharges = ExtraChargesSerializer(required=False)
    items = ExpenseItemInputSerializer(many=True, required=False, default=list)
    splitAmong = serializers.ListField(child=serializers.UUIDField(), required=False, default=list)
    percentages = PercentageInputSerializer(many=True, required=False, default=list)
    splits = AmountInputSerializer(many=True, required=False, default=list)
    receiptUrl = serializers.URLField(max_length=500, required=False, allow_blank=True, default='')
    date = serializers.DateField(required=False)

    def validate_splitType(self, value):
        # SplitPolicy.parse raises UnsupportedSplitPolicy for unknown tags
        return SplitPolicy.parse(value)

    def validate(self, attrs):
        user = self.context['request'].user
        group = Group.objects.filter(id=attrs['groupId'], is_active=True).first()
        if group is None or not GroupMember.objects.filter(group=group, user=user).exists():
            raise serializers.ValidationError({'groupId': 'You must be a member of this group.'})
        attrs['group'] = group

        payer_id = attrs.get('paidBy') or user.id
        payer = GroupMember.objects.filter(group=group, user_id=payer_id).select_related('user').first()
        if payer is None:
            raise serializers.ValidationError({'paidBy': 'The payer must be a member of this group.'})
        attrs['payer'] = payer.user

        charges = attrs.get('extraCharges') or {}
        extra_total = (
            charges.get('tax', Decimal('0'))
            + charges.get('serviceCharge', Decimal('0'))
            + charges.get('tip', Decimal('0'))
            - charges.get('discount', Decimal('0'))
        )
        total_payable = attrs['amount'] + extra_total
        if total_payable < 0:
            raise serializers.ValidationError({'extraCharges': 'Discount cannot exceed the total.'})

        split_type = attrs['splitType']
        if split_type == SplitPolicy.BY_ITEM:
            self._validate_items(attrs.get('items', []), attrs['amount'])

        if split_type == SplitPolicy.BY_PERCENTAGE:
            percentages = attrs.get('percentages', [])
            _reject_duplicate_users(percentages, 'percentages')
            total_pct = sum(p['percentage'] for p in percentages)
            if total_pct != HUNDRED:
                raise serializers.ValidationError({'percentages': 'Percentages must add up to 100.'})

        if split_type == SplitPolicy.BY_AMOUNT:
            splits = attrs.get('splits', [])
            if not splits:
                raise serializers.ValidationError({'splits': 'Splits are required for a by_amount split.'})
            _reject_duplicate_users(splits, 'splits')
            total_exact = sum(s['amount'] for s in splits)
            if round2(total_exact) != round2(total_payable):
                raise serializers.ValidationError(
                    {'splits': f'Split amounts must total {round2(total_payable)}.'}
                )

        return attrs

    def _validate_items(self, items, amount):
        """Every item needs an assignee and the line totals must make up ``amount``."""
        if not items:
            raise serializers.ValidationError({'items': 'Items are required for a by_item split.'})

        for index, item in enumerate(items):
            if not item['assignedTo']:
                raise serializers.ValidationError(
                    {'items': f'Item {index + 1} ({item["name"]}) must be assigned to at least one member.'}
                )

        items_total = sum(
            (_line_item(item).line_total for item in items),
            Decimal('0'),
        )
        if abs(round2(items_total) - round2(amount)) > CENT * len(items):
            raise serializers.ValidationError(
                {'items': f'Item totals add up to {round2(items_total)}, expected {round2(amount)}.'}
            )

    def create(self, validated_data):
        from apps.expenses.services.group_ledger import record_expense

        group = validated_data['group']
        charges = validated_data.get('extraCharges') or {}

        fields = {
            'description': validated_data.get('description', ''),
            'currency': validated_data.get('currency') or group.currency,
            'category': validated_data.get('category', Expense.Category.OTHER),
            'receipt_url': validated_data.get('receiptUrl', ''),
            'date': validated_data.get('date'),
        }

        return record_expense(
            group=group,
            paid_by=validated_data['payer'],
            title=validated_data['title'],
            amount=validated_data['amount'],
            split_type=validated_data['splitType'],
            charges=ExtraCharges(
                tax=charges.get('tax', Decimal('0')),
                service_charge=charges.get('serviceCharge', Decimal('0')),
                tip=charges.get('tip', Decimal('0')),
                discount=charges.get('discount', Decimal('0')),
            ),
            items=[_line_item(item) for item in validated_data.get('items', [])],
            participants=[str(uid) for uid in validated_data.get('splitAmong', [])],
            percentages={
                str(p['userId']): p['percentage'] for p in validated_data.get('percentages', [])
            },
            exact_shares=[
                Share(member_id=str(s['userId']), amount=s['amount'])
                for s in validated_data.get('splits', [])
            ],
            **fields,
        )


class ExpenseUpdateSerializer(serializers.ModelSerializer):
    """Only descriptive fields are editable; shares never change after creation."""

    class Meta:
        model = Expense
        fields = ['title', 'description', 'category', 'receipt_url', 'status']

    def validate_status(self, value):
        if self.instance and self.instance.status == ExpenseStatus.CANCELLED and value != ExpenseStatus.CANCELLED:
            raise serializers.ValidationError('Cancelled expenses cannot be reopened.')
        return value


class BalanceSerializer(serializers.Serializer):
    userId = serializers.CharField(source='member_id')
    userName = serializers.SerializerMethodField()
    balance = serializers.DecimalField(source='amount', **MONEY)

    def get_userName(self, obj):
        names = self.context.get('names', {})
        return names.get(obj.member_id, obj.member_id)


class SettlementSuggestionSerializer(serializers.Serializer):
    fromUserId = serializers.CharField(source='from_member_id')
    fromUserName = serializers.SerializerMethodField()
    toUserId = serializers.CharField(source='to_member_id')
    toUserName = serializers.SerializerMethodField()
    amount = serializers.DecimalField(**MONEY)

    def get_fromUserName(self, obj):
        return self.context.get('names', {}).get(obj.from_member_id, obj.from_member_id)

    def get_toUserName(self, obj):
        return self.context.get('names', {}).get(obj.to_member_id, obj.to_member_id)


class TransactionSerializer(serializers.ModelSerializer):
    groupId = serializers.CharField(source='group_id', read_only=True)
    fromUserId = serializers.CharField(source='from_user_id', read_only=True)
    fromUserName = serializers.CharField(source='from_user.display_name', read_only=True)
    toUserId = serializers.CharField(source='to_user_id', read_only=True)
    toUserName = serializers.CharField(source='to_user.display_name', read_only=True)
    expenseId = serializers.CharField(source='expense_id', read_only=True, allow_null=True)
    paymentMethod = serializers.CharField(source='payment_method', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    confirmedAt = serializers.DateTimeField(source='confirmed_at', read_only=True)

    class Meta:
        model = Transaction
        fields = [
            'id', 'groupId', 'fromUserId', 'fromUserName', 'toUserId', 'toUserName',
            'amount', 'currency', 'expenseId', 'status', 'paymentMethod', 'note',
            'createdAt', 'confirmedAt',
        ]
        read_only_fields = fields


class TransactionCreateSerializer(serializers.Serializer):
    """A member records a payment they made to another member."""
    groupId = serializers.UUIDField()
    toUserId = serializers.UUIDField()
    amount = serializers.DecimalField(min_value=Decimal('0.01'), **MONEY)
    currency = serializers.CharField(max_length=3, required=False)
    expenseId = serializers.UUIDField(required=False, allow_null=True)
    paymentMethod = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    note = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')

    def validate(self, attrs):
        user = self.context['request'].user
        group = Group.objects.filter(id=attrs['groupId']).first()
        if group is None or not GroupMember.objects.filter(group=group, user=user).exists():
            raise serializers.ValidationError({'groupId': 'You must be a member of this group.'})

        if attrs['toUserId'] == user.id:
            raise serializers.ValidationError({'toUserId': 'You cannot pay yourself.'})
        if not GroupMember.objects.filter(group=group, user_id=attrs['toUserId']).exists():
            raise serializers.ValidationError({'toUserId': 'The recipient must be a member of this group.'})

        expense_id = attrs.get('expenseId')
        if expense_id and not Expense.objects.filter(id=expense_id, group=group).exists():
            raise serializers.ValidationError({'expenseId': 'Expense not found in this group.'})

        attrs['group'] = group
        return attrs

    def create(self, validated_data):
        group = validated_data['group']
        return Transaction.objects.create(
            group=group,
            from_user=self.context['request'].user,
            to_user_id=validated_data['toUserId'],
            amount=validated_data['amount'],
            currency=validated_data.get('currency') or group.currency,
            expense_id=validated_data.get('expenseId'),
            payment_method=validated_data.get('paymentMethod', ''),
            note=validated_data.get('note', ''),
        )
