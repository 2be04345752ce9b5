"""URL routing for the ledger API."""

from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_nested import routers

from .views.accounts import AccountTransactionViewSet, AccountViewSet
from .views.activities import ActivityViewSet
from .views.common import dashboard_summary, party_balance_report
from .views.expenses import ExpenseViewSet
from .views.invoices import PurchaseInvoiceViewSet, SalesInvoiceViewSet
from .views.parties import PartyPaymentViewSet, PartyViewSet
from .views.payments import PaymentViewSet

router = DefaultRouter()
router.register(r'activities', ActivityViewSet, basename='activity')
router.register(r'parties', PartyViewSet, basename='party')
router.register(r'accounts', AccountViewSet, basename='account')
router.register(r'account-transactions', AccountTransactionViewSet, basename='account-transaction')
router.register(r'sales-invoices', SalesInvoiceViewSet, basename='sales-invoice')
router.register(r'purchase-invoices', PurchaseInvoiceViewSet, basename='purchase-invoice')
router.register(r'payments', PaymentViewSet, basename='payment')
router.register(r'expenses', ExpenseViewSet, basename='expense')

parties_router = routers.NestedSimpleRouter(router, r'parties', lookup='party')
parties_router.register(r'payments', PartyPaymentViewSet, basename='party-payments')

urlpatterns = [
    path('dashboard-summary/', dashboard_summary, name='dashboard-summary'),
    path('reports/party-balances/', party_balance_report, name='party-balance-report'),
    path('', include(router.urls)),
    path('', include(parties_router.urls)),
]
