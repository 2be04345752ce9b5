# backend/ledger/models.py
"""Relational schema for parties, cash/bank accounts, invoices and payments.

Reconciliation reads and writes these tables through
:class:`ledger.services.store.LedgerStore` using plain SQL, so every model
pins its ``db_table`` name.  The ORM is used by the API for listings and by the
admin site.
"""

from datetime import date

from django.contrib.auth.models import User
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models


class Activity(models.Model):
    ACTION_TYPES = (
        ('created', 'Created'),
        ('updated', 'Updated'),
        ('deleted', 'Deleted'),
        ('reconciled', 'Reconciled'),
    )

    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        related_name='ledger_activities',
        null=True,
        blank=True,
    )
    action_type = models.CharField(max_length=12, choices=ACTION_TYPES)
    description = models.CharField(max_length=255)
    timestamp = models.DateTimeField(auto_now_add=True)

    content_type = models.ForeignKey(ContentType, on_delete=models.CASCADE)
    object_id = models.PositiveIntegerField()
    content_object = GenericForeignKey('content_type', 'object_id')

    # Snapshot of deleted rows so they can be inspected later
    object_repr = models.TextField(blank=True, null=True)

    class Meta:
        db_table = 'activities'
        ordering = ['-timestamp']
        verbose_name_plural = 'Activities'

    def __str__(self):
        username = self.user.username if self.user_id else 'system'
        return f'{username} {self.action_type} - {self.description}'


class Party(models.Model):
    CUSTOMER = 'customer'
    SUPPLIER = 'supplier'
    BOTH = 'both'

    PARTY_TYPE_CHOICES = [
        (CUSTOMER, 'Customer'),
        (SUPPLIER, 'Supplier'),
        (BOTH, 'Customer & Supplier'),
    ]

    party_type = models.CharField(max_length=10, choices=PARTY_TYPE_CHOICES, default=CUSTOMER)
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=20, blank=True, null=True)
    email = models.EmailField(max_length=254, blank=True, null=True)
    address = models.TextField(blank=True, null=True)
    gst_number = models.CharField(max_length=20, blank=True, null=True)
    opening_balance = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    current_balance = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    min_due_days = models.PositiveIntegerField(default=30)
    is_deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'parties'
        ordering = ['name']
        verbose_name_plural = 'Parties'

    def __str__(self):
        return self.name

    @property
    def balance(self):
        """Cached running balance; kept in step by the reconciliation service."""
        return self.current_balance


class Account(models.Model):
    CASH = 'cash'
    BANK = 'bank'

    ACCOUNT_TYPE_CHOICES = [
        (CASH, 'Cash Account'),
        (BANK, 'Bank Account'),
    ]

    account_name = models.CharField(max_length=255)
    account_type = models.CharField(max_length=10, choices=ACCOUNT_TYPE_CHOICES, default=CASH)
    bank_name = models.CharField(max_length=255, blank=True, null=True)
    account_number = models.CharField(max_length=50, blank=True, null=True)
    ifsc_code = models.CharField(max_length=20, blank=True, null=True)
    opening_balance = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    current_balance = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    is_deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'accounts'
        ordering = ['account_type', 'account_name']

    def __str__(self):
        return self.account_name


class SalesInvoice(models.Model):
    invoice_number = models.CharField(max_length=50, unique=True)
    party = models.ForeignKey(Party, on_delete=models.PROTECT, related_name='sales_invoices')
    invoice_date = models.DateField(default=date.today)
    total_amount = models.DecimalField(max_digits=15, decimal_places=2)
    paid_amount = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    balance_amount = models.DecimalField(max_digits=15, decimal_places=2)
    notes = models.TextField(blank=True, null=True)
    is_cancelled = models.BooleanField(default=False)
    is_deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'sales_invoices'
        ordering = ['-invoice_date', '-id']

    def __str__(self):
        return f"Invoice {self.invoice_number} for {self.party.name}"


class PurchaseInvoice(models.Model):
    bill_number = models.CharField(max_length=50, unique=True)
    supplier = models.ForeignKey(Party, on_delete=models.PROTECT, related_name='purchase_invoices')
    bill_date = models.DateField(default=date.today)
    total_amount = models.DecimalField(max_digits=15, decimal_places=2)
    paid_amount = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    balance_amount = models.DecimalField(max_digits=15, decimal_places=2)
    notes = models.TextField(blank=True, null=True)
    is_cancelled = models.BooleanField(default=False)
    is_deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'purchase_invoices'
        ordering = ['-bill_date', '-id']

    def __str__(self):
        return f"Bill {self.bill_number} from {self.supplier.name}"


class Payment(models.Model):
    PAYMENT_IN = 'payment_in'
    PAYMENT_OUT = 'payment_out'

    PAYMENT_TYPE_CHOICES = [
        (PAYMENT_IN, 'Payment In'),
        (PAYMENT_OUT, 'Payment Out'),
    ]

    PAYMENT_MODES = [
        ('cash', 'Cash'),
        ('cheque', 'Cheque'),
        ('online', 'Online Transfer'),
        ('card', 'Credit/Debit Card'),
    ]

    payment_type = models.CharField(max_length=12, choices=PAYMENT_TYPE_CHOICES)
    payment_number = models.CharField(max_length=50, unique=True)
    payment_date = models.DateField()
    party = models.ForeignKey(Party, on_delete=models.PROTECT, related_name='payments')
    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name='payments',
        null=True,
        blank=True,
    )
    amount = models.DecimalField(max_digits=15, decimal_places=2)
    payment_mode = models.CharField(max_length=10, choices=PAYMENT_MODES, default='cash')
    cheque_number = models.CharField(max_length=50, blank=True, null=True)
    cheque_date = models.DateField(blank=True, null=True)
    bank_ref = models.CharField(max_length=100, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    is_deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'payments'
        ordering = ['-payment_date', '-id']

    def __str__(self):
        return f"{self.payment_number} {self.amount} ({self.get_payment_type_display()})"


class PaymentDetail(models.Model):
    """Allocation of part of a payment to one sales or purchase invoice."""

    payment = models.ForeignKey(Payment, on_delete=models.CASCADE, related_name='details')
    sales_invoice = models.ForeignKey(
        SalesInvoice,
        on_delete=models.CASCADE,
        related_name='allocations',
        null=True,
        blank=True,
    )
    purchase_invoice = models.ForeignKey(
        PurchaseInvoice,
        on_delete=models.CASCADE,
        related_name='allocations',
        null=True,
        blank=True,
    )
    amount = models.DecimalField(max_digits=15, decimal_places=2)
    is_deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'payment_details'

    def __str__(self):
        return f"{self.amount} of {self.payment.payment_number}"


class PaymentTransaction(models.Model):
    reference_type = models.CharField(max_length=30)
    reference_id = models.PositiveIntegerField(null=True, blank=True)
    reference_number = models.CharField(max_length=50, blank=True, null=True)
    party = models.ForeignKey(
        Party,
        on_delete=models.PROTECT,
        related_name='payment_transactions',
        null=True,
        blank=True,
    )
    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name='payment_transactions',
        null=True,
        blank=True,
    )
    payment_type = models.CharField(max_length=12)
    amount = models.DecimalField(max_digits=15, decimal_places=2)
    payment_date = models.DateField()
    payment_method = models.CharField(max_length=20, default='cash')
    description = models.CharField(max_length=255, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    is_deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'payment_transactions'
        ordering = ['-payment_date', '-created_at']

    def __str__(self):
        return f"{self.reference_type} {self.reference_number or self.reference_id}: {self.amount}"


class AccountTransaction(models.Model):
    CREDIT = 'credit'
    DEBIT = 'debit'

    TRANSACTION_TYPE_CHOICES = [
        (CREDIT, 'Credit'),
        (DEBIT, 'Debit'),
    ]

    account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name='transactions')
    reference_type = models.CharField(max_length=30, blank=True, null=True)
    reference_id = models.PositiveIntegerField(null=True, blank=True)
    transaction_type = models.CharField(max_length=6, choices=TRANSACTION_TYPE_CHOICES)
    amount = models.DecimalField(max_digits=15, decimal_places=2)
    balance_before = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    balance_after = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)
    transaction_date = models.DateField()
    description = models.CharField(max_length=255, blank=True, null=True)
    is_deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'account_transactions'
        ordering = ['-transaction_date', '-id']

    def __str__(self):
        return f"{self.get_transaction_type_display()} - {self.amount}"


class Expense(models.Model):
    """Money spent out of a cash or bank account outside of any party ledger."""

    expense_number = models.CharField(max_length=50, unique=True)
    expense_date = models.DateField()
    category = models.CharField(max_length=100, blank=True, null=True)
    description = models.CharField(max_length=255)
    amount = models.DecimalField(max_digits=15, decimal_places=2)
    account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name='expenses')
    payment_mode = models.CharField(max_length=10, choices=Payment.PAYMENT_MODES, default='cash')
    bill_number = models.CharField(max_length=50, blank=True, null=True)
    vendor_name = models.CharField(max_length=255, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    is_deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'expenses'
        ordering = ['-expense_date', '-id']

    def __str__(self):
        return f"{self.expense_number} {self.amount}"


class Sequence(models.Model):
    """Counter behind human readable document numbers such as ``PI-00001``."""

    sequence_name = models.CharField(max_length=50, primary_key=True)
    prefix = models.CharField(max_length=20, blank=True, default='')
    suffix = models.CharField(max_length=20, blank=True, default='')
    current_value = models.PositiveIntegerField(default=0)
    format_length = models.PositiveSmallIntegerField(default=5)

    class Meta:
        db_table = 'sequences'

    def __str__(self):
        return self.sequence_name
