# backend/ledger/serializers.py
from decimal import Decimal

from django.utils import timezone
from rest_framework import serializers

from .models import (
    Account,
    AccountTransaction,
    Activity,
    Expense,
    Party,
    Payment,
    PaymentDetail,
    PurchaseInvoice,
    SalesInvoice,
)


class ActivitySerializer(serializers.ModelSerializer):
    user = serializers.CharField(source='user.username', read_only=True, default=None)
    object_type = serializers.CharField(source='content_type.model', read_only=True)

    class Meta:
        model = Activity
        fields = ['id', 'user', 'action_type', 'description', 'timestamp', 'object_type', 'object_id']


class PartySerializer(serializers.ModelSerializer):
    """Parties are customers, suppliers or both.

    ``current_balance`` is maintained by the reconciliation service and can
    only be read; ``balance`` is kept as a short alias for list views.
    """

    balance = serializers.DecimalField(
        source='current_balance', max_digits=15, decimal_places=2, read_only=True
    )
    party_type_label = serializers.CharField(source='get_party_type_display', read_only=True)

    class Meta:
        model = Party
        fields = [
            'id',
            'name',
            'party_type',
            'party_type_label',
            'phone',
            'email',
            'address',
            'gst_number',
            'opening_balance',
            'current_balance',
            'balance',
            'min_due_days',
            'created_at',
        ]
        read_only_fields = ['current_balance', 'created_at']


class PartyBalanceReportSerializer(serializers.ModelSerializer):
    """Serializer used by the party balance report endpoint.

    Overdue figures come from the ``overdue`` context entry, a mapping of party
    id to its overdue summary.
    """

    balance = serializers.DecimalField(
        source='current_balance', max_digits=15, decimal_places=2, read_only=True
    )
    overdue_count = serializers.SerializerMethodField()
    overdue_amount = serializers.SerializerMethodField()
    status = serializers.SerializerMethodField()

    class Meta:
        model = Party
        fields = ['id', 'name', 'party_type', 'email', 'phone', 'balance', 'overdue_count', 'overdue_amount', 'status']

    def _overdue(self, obj):
        return self.context.get('overdue', {}).get(obj.pk)

    def get_overdue_count(self, obj):
        overdue = self._overdue(obj)
        return overdue.overdue_count if overdue else 0

    def get_overdue_amount(self, obj):
        overdue = self._overdue(obj)
        return overdue.overdue_amount if overdue else Decimal('0.00')

    def get_status(self, obj):
        if obj.current_balance > 0:
            return 'owes_us'
        if obj.current_balance < 0:
            return 'we_owe_them'
        return 'settled'


class AccountSerializer(serializers.ModelSerializer):
    account_type_label = serializers.CharField(source='get_account_type_display', read_only=True)

    class Meta:
        model = Account
        fields = [
            'id',
            'account_name',
            'account_type',
            'account_type_label',
            'bank_name',
            'account_number',
            'ifsc_code',
            'opening_balance',
            'current_balance',
            'created_at',
        ]
        read_only_fields = ['current_balance', 'created_at']

    def validate(self, attrs):
        account_type = attrs.get('account_type', getattr(self.instance, 'account_type', Account.CASH))
        bank_name = attrs.get('bank_name', getattr(self.instance, 'bank_name', None))
        if account_type == Account.BANK and not bank_name:
            raise serializers.ValidationError({'bank_name': 'Bank accounts need a bank name.'})
        return attrs


class AccountTransactionSerializer(serializers.ModelSerializer):
    account_name = serializers.CharField(source='account.account_name', read_only=True)
    amount_in = serializers.SerializerMethodField()
    amount_out = serializers.SerializerMethodField()

    class Meta:
        model = AccountTransaction
        fields = [
            'id',
            'account',
            'account_name',
            'reference_type',
            'reference_id',
            'transaction_type',
            'amount',
            'amount_in',
            'amount_out',
            'balance_before',
            'balance_after',
            'transaction_date',
            'description',
            'created_at',
        ]

    def get_amount_in(self, obj):
        if obj.transaction_type == AccountTransaction.CREDIT:
            return obj.amount
        return Decimal('0.00')

    def get_amount_out(self, obj):
        if obj.transaction_type == AccountTransaction.DEBIT:
            return obj.amount
        return Decimal('0.00')


class AccountMovementSerializer(serializers.Serializer):
    """Input of the deposit and withdraw actions."""

    amount = serializers.DecimalField(max_digits=15, decimal_places=2)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    transaction_date = serializers.DateField(required=False)

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError('Amount must be greater than zero.')
        return value


class TransferSerializer(AccountMovementSerializer):
    target_account = serializers.IntegerField()


class SalesInvoiceSerializer(serializers.ModelSerializer):
    party_name = serializers.CharField(source='party.name', read_only=True)

    class Meta:
        model = SalesInvoice
        fields = [
            'id',
            'invoice_number',
            'party',
            'party_name',
            'invoice_date',
            'total_amount',
            'paid_amount',
            'balance_amount',
            'notes',
            'is_cancelled',
            'created_at',
        ]
        read_only_fields = fields


class PurchaseInvoiceSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)

    class Meta:
        model = PurchaseInvoice
        fields = [
            'id',
            'bill_number',
            'supplier',
            'supplier_name',
            'bill_date',
            'total_amount',
            'paid_amount',
            'balance_amount',
            'notes',
            'is_cancelled',
            'created_at',
        ]
        read_only_fields = fields


class InvoiceWriteSerializer(serializers.Serializer):
    """Input for a new invoice.

    ``amount_received`` records the money taken when the invoice is raised as a
    payment allocated to it, paid into ``account`` when one is given.
    """

    party = serializers.IntegerField()
    total_amount = serializers.DecimalField(max_digits=15, decimal_places=2)
    invoice_date = serializers.DateField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    amount_received = serializers.DecimalField(
        max_digits=15, decimal_places=2, required=False, allow_null=True
    )
    account = serializers.IntegerField(required=False, allow_null=True)
    payment_mode = serializers.ChoiceField(choices=Payment.PAYMENT_MODES, required=False)

    def validate_amount_received(self, value):
        if value is not None and value <= 0:
            raise serializers.ValidationError('Amount received must be greater than zero.')
        return value

    def validate(self, attrs):
        received = attrs.get('amount_received')
        if received is not None and received > attrs['total_amount']:
            raise serializers.ValidationError(
                {'amount_received': 'Amount received cannot exceed the invoice total.'}
            )
        return attrs


class AllocationSerializer(serializers.ModelSerializer):
    invoice_number = serializers.SerializerMethodField()

    class Meta:
        model = PaymentDetail
        fields = ['id', 'sales_invoice', 'purchase_invoice', 'invoice_number', 'amount']

    def get_invoice_number(self, obj):
        if obj.sales_invoice_id:
            return obj.sales_invoice.invoice_number
        return obj.purchase_invoice.bill_number


class AllocationInputSerializer(serializers.Serializer):
    invoice = serializers.IntegerField()
    amount = serializers.DecimalField(max_digits=15, decimal_places=2)


class PaymentSerializer(serializers.ModelSerializer):
    party_name = serializers.CharField(source='party.name', read_only=True)
    account_name = serializers.CharField(source='account.account_name', read_only=True, default=None)
    allocations = serializers.SerializerMethodField()
    unallocated_amount = serializers.SerializerMethodField()

    class Meta:
        model = Payment
        fields = [
            'id',
            'payment_type',
            'payment_number',
            'payment_date',
            'party',
            'party_name',
            'account',
            'account_name',
            'amount',
            'payment_mode',
            'cheque_number',
            'cheque_date',
            'bank_ref',
            'notes',
            'allocations',
            'unallocated_amount',
            'created_at',
        ]
        read_only_fields = fields

    def _live_details(self, obj):
        return [detail for detail in obj.details.all() if not detail.is_deleted]

    def get_allocations(self, obj):
        return AllocationSerializer(self._live_details(obj), many=True).data

    def get_unallocated_amount(self, obj):
        allocated = sum((detail.amount for detail in self._live_details(obj)), Decimal('0.00'))
        return obj.amount - allocated


class PaymentWriteSerializer(serializers.Serializer):
    """Input for recording (all fields) or editing (``partial=True``) a payment.

    The payment type is fixed once recorded; edits that try to change it are
    rejected.  Leaving ``allocations`` out lets the ledger allocate the payment
    to the party's oldest open invoices.
    """

    payment_type = serializers.ChoiceField(choices=Payment.PAYMENT_TYPE_CHOICES)
    party = serializers.IntegerField()
    account = serializers.IntegerField(required=False, allow_null=True)
    amount = serializers.DecimalField(max_digits=15, decimal_places=2)
    payment_date = serializers.DateField(required=False)
    payment_mode = serializers.ChoiceField(choices=Payment.PAYMENT_MODES, required=False)
    cheque_number = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    cheque_date = serializers.DateField(required=False, allow_null=True)
    bank_ref = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    allocations = AllocationInputSerializer(many=True, required=False)

    def validate_payment_type(self, value):
        if self.instance is not None and value != self.instance.payment_type:
            raise serializers.ValidationError('The payment type of a recorded payment cannot change.')
        return value

    def validate(self, attrs):
        if self.instance is None and 'payment_date' not in attrs:
            attrs['payment_date'] = timezone.localdate()
        return attrs

    def to_service_fields(self):
        """Validated data keyed the way the reconciliation service expects."""

        data = dict(self.validated_data)
        data.pop('payment_type', None)
        if 'party' in data:
            data['party_id'] = data.pop('party')
        if 'account' in data:
            data['account_id'] = data.pop('account')
        if 'allocations' in data:
            data['allocations'] = [
                (item['invoice'], item['amount']) for item in data['allocations']
            ]
        return data


class ExpenseSerializer(serializers.ModelSerializer):
    account_name = serializers.CharField(source='account.account_name', read_only=True)

    class Meta:
        model = Expense
        fields = [
            'id',
            'expense_number',
            'expense_date',
            'category',
            'description',
            'amount',
            'account',
            'account_name',
            'payment_mode',
            'bill_number',
            'vendor_name',
            'notes',
            'created_at',
        ]
        read_only_fields = fields


class ExpenseWriteSerializer(serializers.Serializer):
    account = serializers.IntegerField()
    amount = serializers.DecimalField(max_digits=15, decimal_places=2)
    description = serializers.CharField(max_length=255)
    expense_date = serializers.DateField(required=False)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    payment_mode = serializers.ChoiceField(choices=Payment.PAYMENT_MODES, required=False)
    bill_number = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    vendor_name = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError('Amount must be greater than zero.')
        return value

    def to_service_fields(self):
        data = dict(self.validated_data)
        if 'account' in data:
            data['account_id'] = data.pop('account')
        return data
