"""
Views for the Expenses app.
"""
import logging
from decimal import Decimal

from django.db.models import Count, Q, Sum
from django.db.models.functions import TruncMonth
from django.http import HttpResponse
from django.utils import timezone
from rest_framework import generics, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.activities.services import activity_log
from apps.expenses.models import Expense, ExpenseSplit, Transaction, total_payable_expression
from apps.expenses.permissions import IsExpensePayer, IsTransactionRecipient
from apps.expenses.serializers import (
    BalanceSerializer,
    ExpenseCreateSerializer,
    ExpenseSerializer,
    ExpenseUpdateSerializer,
    SettlementSuggestionSerializer,
    TransactionCreateSerializer,
    TransactionSerializer,
)
from apps.expenses.services import group_ledger
from apps.expenses.services.records import ExpenseStatus, SettlementStatus
from apps.expenses.services.report import render_group_report
from apps.groups.models import Group
from apps.groups.permissions import IsGroupMember, is_group_member

logger = logging.getLogger(__name__)


def _expense_queryset():
    return Expense.objects.select_related('paid_by', 'group').prefetch_related(
        'splits__user', 'items__assigned_to'
    )


class ExpenseViewSet(viewsets.ModelViewSet):
    """
    ViewSet for Expense operations.

    list:    GET    /api/v1/expenses/?group=<group_id>&status=<status>
    create:  POST   /api/v1/expenses/
    read:    GET    /api/v1/expenses/{id}/
    update:  PATCH  /api/v1/expenses/{id}/
    cancel:  DELETE /api/v1/expenses/{id}/
    """
    permission_classes = [IsAuthenticated, IsExpensePayer]
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        queryset = _expense_queryset().filter(
            group__members__user=self.request.user,
        ).distinct()

        group_id = self.request.query_params.get('group')
        if group_id:
            queryset = queryset.filter(group_id=group_id)

        status_param = self.request.query_params.get('status')
        if status_param:
            queryset = queryset.filter(status=status_param)

        category = self.request.query_params.get('category')
        if category:
            queryset = queryset.filter(category=category)

        return queryset

    def get_serializer_class(self):
        if self.action == 'create':
            return ExpenseCreateSerializer
        if self.action == 'partial_update':
            return ExpenseUpdateSerializer
        return ExpenseSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        expense = serializer.save()
        expense = _expense_queryset().get(pk=expense.pk)
        return Response(
            {
                'success': True,
                'data': ExpenseSerializer(expense).data,
            },
            status=status.HTTP_201_CREATED,
        )

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        return Response({'success': True, 'data': ExpenseSerializer(queryset, many=True).data})

    def retrieve(self, request, *args, **kwargs):
        instance = self.get_object()
        return Response({'success': True, 'data': ExpenseSerializer(instance).data})

    def partial_update(self, request, *args, **kwargs):
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({'success': True, 'data': ExpenseSerializer(self.get_object()).data})

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        instance.status = ExpenseStatus.CANCELLED
        instance.save(update_fields=['status', 'updated_at'])
        activity_log.log_expense_cancelled(instance, request.user)
        logger.info('Expense %s cancelled by %s', instance.id, request.user.id)
        return Response(
            {'success': True, 'message': 'Expense cancelled.'},
            status=status.HTTP_200_OK,
        )


class ExpensesByGroupView(generics.ListAPIView):
    """
    List expenses for a specific group.

    GET /api/v1/expenses/group/{group_id}/
    """
    serializer_class = ExpenseSerializer
    permission_classes = [IsAuthenticated, IsGroupMember]

    def get_queryset(self):
        return _expense_queryset().filter(group_id=self.kwargs['group_id'])

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = self.get_serializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        serializer = self.get_serializer(queryset, many=True)
        return Response({'success': True, 'data': serializer.data})


class GroupBalancesView(APIView):
    """
    Net balance of every member of a group.

    GET /api/v1/expenses/group/{group_id}/balances/
    """
    permission_classes = [IsAuthenticated, IsGroupMember]

    def get(self, request, group_id):
        balances = group_ledger.get_group_balances(group_id)
        names = group_ledger.member_directory(group_id)
        return Response({
            'success': True,
            'data': BalanceSerializer(balances, many=True, context={'names': names}).data,
        })


class GroupSettlementsView(APIView):
    """
    Suggested transfers that settle every balance in a group.

    GET /api/v1/expenses/group/{group_id}/settlements/
    """
    permission_classes = [IsAuthenticated, IsGroupMember]

    def get(self, request, group_id):
        _, suggestions = group_ledger.get_settlement_plan(group_id)
        names = group_ledger.member_directory(group_id)
        return Response({
            'success': True,
            'data': SettlementSuggestionSerializer(
                suggestions, many=True, context={'names': names}
            ).data,
        })


class GroupReportView(APIView):
    """
    Plain-text summary of balances and suggested transfers.

    GET /api/v1/expenses/group/{group_id}/report/
    """
    permission_classes = [IsAuthenticated, IsGroupMember]

    def get(self, request, group_id):
        group = generics.get_object_or_404(Group, pk=group_id)
        balances, suggestions = group_ledger.get_settlement_plan(group_id)
        text = render_group_report(
            group.name,
            balances,
            suggestions,
            names=group_ledger.member_directory(group_id),
            currency=group.currency,
        )
        return HttpResponse(text, content_type='text/plain; charset=utf-8')


class ExpenseSummaryView(APIView):
    """
    Spending statistics for a group.

    GET /api/v1/expenses/summary/?group=<group_id>
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        group_id = request.query_params.get('group')
        if not group_id:
            return Response(
                {
                    'success': False,
                    'error': {
                        'code': 'validation_error',
                        'message': 'group query parameter is required.',
                    },
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        if not is_group_member(group_id, request.user):
            return Response(
                {
                    'success': False,
                    'error': {
                        'code': 'forbidden',
                        'message': 'You are not a member of this group.',
                    },
                },
                status=status.HTTP_403_FORBIDDEN,
            )

        active = Expense.objects.filter(group_id=group_id).exclude(status=ExpenseStatus.CANCELLED)

        total = active.aggregate(total=Sum(total_payable_expression()))['total'] or Decimal('0')

        category_totals = (
            active.values('category')
            .annotate(total=Sum(total_payable_expression()))
            .order_by('-total')
        )

        user_spending = (
            active.values('paid_by__id', 'paid_by__first_name', 'paid_by__last_name', 'paid_by__email')
            .annotate(total_paid=Sum(total_payable_expression()))
            .order_by('-total_paid')
        )

        my_paid = active.filter(paid_by=request.user).aggregate(
            total=Sum(total_payable_expression())
        )['total'] or Decimal('0')

        my_owed = ExpenseSplit.objects.filter(
            expense__in=active,
            user=request.user,
        ).aggregate(total=Sum('amount'))['total'] or Decimal('0')

        return Response({
            'success': True,
            'data': {
                'totalExpenses': str(total),
                'expenseCount': active.count(),
                'categoryBreakdown': [
                    {'category': row['category'], 'total': str(row['total'])}
                    for row in category_totals
                ],
                'userSpending': [
                    {
                        'userId': str(row['paid_by__id']),
                        'userName': (
                            f'{row["paid_by__first_name"]} {row["paid_by__last_name"]}'.strip()
                            or row['paid_by__email']
                        ),
                        'totalPaid': str(row['total_paid']),
                    }
                    for row in user_spending
                ],
                'mySummary': {
                    'totalPaid': str(my_paid),
                    'totalOwed': str(my_owed),
                    'netBalance': str(my_paid - my_owed),
                },
            },
        })


def _my_groups(user):
    return Group.objects.filter(members__user=user, is_active=True).distinct()


class MyDebtsView(APIView):
    """
    The user's position in every group where they owe or are owed money.

    GET /api/v1/expenses/me/debts/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        me = str(request.user.id)
        data = []
        for group in _my_groups(request.user).order_by('name'):
            balances, suggestions = group_ledger.get_settlement_plan(group.id)
            balance = next((b.amount for b in balances if b.member_id == me), Decimal('0'))
            mine = [s for s in suggestions if me in (s.from_member_id, s.to_member_id)]
            if not balance and not mine:
                continue
            names = group_ledger.member_directory(group.id)
            data.append({
                'groupId': str(group.id),
                'groupName': group.name,
                'currency': group.currency,
                'balance': f'{balance:.2f}',
                'settlements': SettlementSuggestionSerializer(
                    mine, many=True, context={'names': names}
                ).data,
            })
        return Response({'success': True, 'data': data})


class MyStatsView(APIView):
    """
    Spending statistics for the user across all of their groups.

    Amounts are summed as recorded, without currency conversion.

    GET /api/v1/expenses/me/stats/
    """
    permission_classes = [IsAuthenticated]
    top_groups = 5

    def get(self, request):
        user = request.user
        groups = _my_groups(user)
        active = Expense.objects.filter(group__in=groups).exclude(status=ExpenseStatus.CANCELLED)
        my_splits = ExpenseSplit.objects.filter(expense__in=active, user=user)

        total_paid = active.filter(paid_by=user).aggregate(
            total=Sum(total_payable_expression())
        )['total'] or Decimal('0')
        total_owed = my_splits.aggregate(total=Sum('amount'))['total'] or Decimal('0')
        expense_count = active.filter(Q(paid_by=user) | Q(splits__user=user)).distinct().count()

        category_totals = (
            my_splits.values('expense__category')
            .annotate(total=Sum('amount'), count=Count('id'))
            .order_by('-total')
        )
        group_totals = (
            my_splits.values('expense__group__id', 'expense__group__name')
            .annotate(total=Sum('amount'))
            .order_by('-total')[:self.top_groups]
        )
        monthly = (
            my_splits.annotate(month=TruncMonth('expense__date'))
            .values('month')
            .annotate(total=Sum('amount'))
            .order_by('month')
        )

        return Response({
            'success': True,
            'data': {
                'totalGroups': groups.count(),
                'expenseCount': expense_count,
                'totalPaid': str(total_paid),
                'totalOwed': str(total_owed),
                'netBalance': str(total_paid - total_owed),
                'categoryBreakdown': [
                    {
                        'category': row['expense__category'],
                        'total': str(row['total']),
                        'count': row['count'],
                    }
                    for row in category_totals
                ],
                'topGroups': [
                    {
                        'groupId': str(row['expense__group__id']),
                        'groupName': row['expense__group__name'],
                        'total': str(row['total']),
                    }
                    for row in group_totals
                ],
                'monthlyTrend': [
                    {'month': row['month'].strftime('%Y-%m'), 'total': str(row['total'])}
                    for row in monthly
                ],
            },
        })


class TransactionViewSet(mixins.CreateModelMixin,
                         mixins.ListModelMixin,
                         mixins.RetrieveModelMixin,
                         viewsets.GenericViewSet):
    """
    Payments recorded between members.

    list:     GET  /api/v1/expenses/transactions/?group=<group_id>&status=<status>
    create:   POST /api/v1/expenses/transactions/
    retrieve: GET  /api/v1/expenses/transactions/{id}/
    confirm:  POST /api/v1/expenses/transactions/{id}/confirm/
    reject:   POST /api/v1/expenses/transactions/{id}/reject/
    """
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        queryset = Transaction.objects.filter(
            Q(from_user=self.request.user) | Q(to_user=self.request.user),
        ).select_related('from_user', 'to_user')

        group_id = self.request.query_params.get('group')
        if group_id:
            queryset = queryset.filter(group_id=group_id)

        status_param = self.request.query_params.get('status')
        if status_param:
            queryset = queryset.filter(status=status_param)

        return queryset

    def get_serializer_class(self):
        if self.action == 'create':
            return TransactionCreateSerializer
        return TransactionSerializer

    def get_permissions(self):
        if self.action in ('confirm', 'reject'):
            return [IsAuthenticated(), IsTransactionRecipient()]
        return [IsAuthenticated()]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tx = serializer.save()
        activity_log.log_payment_sent(tx)
        logger.info(
            'Payment %s recorded in group %s: %s -> %s %s',
            tx.id, tx.group_id, tx.from_user_id, tx.to_user_id, tx.amount,
        )
        return Response(
            {
                'success': True,
                'data': TransactionSerializer(tx).data,
                'message': 'Transaction recorded.',
            },
            status=status.HTTP_201_CREATED,
        )

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        return Response({'success': True, 'data': TransactionSerializer(queryset, many=True).data})

    def retrieve(self, request, *args, **kwargs):
        return Response({'success': True, 'data': TransactionSerializer(self.get_object()).data})

    def _resolve(self, request, new_status, message):
        tx = self.get_object()
        if tx.status != SettlementStatus.PENDING:
            return Response(
                {
                    'success': False,
                    'error': {
                        'code': 'invalid_state',
                        'message': f'Transaction is already {tx.status}.',
                    },
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        tx.status = new_status
        update_fields = ['status', 'updated_at']
        if new_status == SettlementStatus.CONFIRMED:
            tx.confirmed_at = timezone.now()
            update_fields.append('confirmed_at')
        tx.save(update_fields=update_fields)
        activity_log.log_payment_resolved(tx, request.user)

        logger.info('Transaction %s %s by %s', tx.id, new_status, request.user.id)
        return Response({'success': True, 'data': TransactionSerializer(tx).data, 'message': message})

    @action(detail=True, methods=['post'])
    def confirm(self, request, pk=None):
        return self._resolve(request, SettlementStatus.CONFIRMED, 'Transaction confirmed.')

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        return self._resolve(request, SettlementStatus.REJECTED, 'Transaction rejected.')
