# backend/ledger/admin.py

from django.contrib import admin
from .models import (
    Account,
    AccountTransaction,
    Activity,
    Expense,
    Party,
    Payment,
    PaymentDetail,
    PaymentTransaction,
    PurchaseInvoice,
    SalesInvoice,
    Sequence,
)

admin.site.register(Party)
admin.site.register(Account)
admin.site.register(SalesInvoice)
admin.site.register(PurchaseInvoice)
admin.site.register(Payment)
admin.site.register(PaymentDetail)
admin.site.register(PaymentTransaction)
admin.site.register(AccountTransaction)
admin.site.register(Expense)
admin.site.register(Sequence)
admin.site.register(Activity)
