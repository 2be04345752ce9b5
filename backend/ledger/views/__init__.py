"""Expose public API views for the ledger."""

from .accounts import AccountTransactionViewSet, AccountViewSet
from .activities import ActivityViewSet
from .common import dashboard_summary, party_balance_report
from .expenses import ExpenseViewSet
from .invoices import PurchaseInvoiceViewSet, SalesInvoiceViewSet
from .parties import PartyPaymentViewSet, PartyViewSet
from .payments import PaymentViewSet

__all__ = [
    'AccountTransactionViewSet',
    'AccountViewSet',
    'ActivityViewSet',
    'ExpenseViewSet',
    'PartyPaymentViewSet',
    'PartyViewSet',
    'PaymentViewSet',
    'PurchaseInvoiceViewSet',
    'SalesInvoiceViewSet',
    'dashboard_summary',
    'party_balance_report',
]
