"""
URL configuration for the Expenses app.
"""
from django.urls import include, path
from rest_framework.routers import SimpleRouter

from apps.expenses.views import (
    ExpensesByGroupView,
    ExpenseSummaryView,
    ExpenseViewSet,
    GroupBalancesView,
    MyDebtsView,
    MyStatsView,
    GroupReportView,
    GroupSettlementsView,
    TransactionViewSet,
)

app_name = 'expenses'

transaction_router = SimpleRouter()
transaction_router.register(r'transactions', TransactionViewSet, basename='transaction')

router = SimpleRouter()
router.register(r'', ExpenseViewSet, basename='expense')

urlpatterns = [
    # Explicit paths BEFORE the expense router to avoid clashing with its {pk} patterns
    path('group/<uuid:group_id>/', ExpensesByGroupView.as_view(), name='expenses-by-group'),
    path('group/<uuid:group_id>/balances/', GroupBalancesView.as_view(), name='group-balances'),
    path('group/<uuid:group_id>/settlements/', GroupSettlementsView.as_view(), name='group-settlements'),
    path('group/<uuid:group_id>/report/', GroupReportView.as_view(), name='group-report'),
    path('summary/', ExpenseSummaryView.as_view(), name='expense-summary'),
    path('me/debts/', MyDebtsView.as_view(), name='my-debts'),
    path('me/stats/', MyStatsView.as_view(), name='my-stats'),
    path('', include(transaction_router.urls)),
    path('', include(router.urls)),
]
