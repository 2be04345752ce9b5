from decimal import Decimal

from django.test import TestCase

from ..exceptions import InvalidAllocation, InvalidAmount, NotFound, NotReversible
from ..models import AccountTransaction, Party, Payment, PaymentTransaction, SalesInvoice
from ..services import LedgerStore, TransactionRecorder
from ..services.records import PURCHASE, SALES
from . import TODAY, make_account, make_party


class TransactionRecorderTests(TestCase):
    def setUp(self):
        self.recorder = TransactionRecorder(LedgerStore())
        self.party = make_party(opening_balance="0", party_type=Party.BOTH)
        self.account = make_account(opening_balance="100")

    def test_record_payment_writes_payment_and_audit_legs(self):
        payment_id = self.recorder.record_payment(
            "payment_in",
            self.party.pk,
            self.account.pk,
            "250.00",
            TODAY,
            {"payment_mode": "cheque", "cheque_number": "000123", "notes": "April"},
        )

        payment = Payment.objects.get(pk=payment_id)
        self.assertEqual(payment.payment_number, "PI-00001")
        self.assertEqual(payment.amount, Decimal("250.00"))
        self.assertEqual(payment.payment_mode, "cheque")
        self.assertEqual(payment.cheque_number, "000123")

        audit = PaymentTransaction.objects.get(reference_id=payment_id)
        self.assertEqual(audit.reference_type, "payment")
        self.assertEqual(audit.reference_number, "PI-00001")
        self.assertEqual(audit.amount, Decimal("250.00"))

        leg = AccountTransaction.objects.get(reference_type="payment", reference_id=payment_id)
        self.assertEqual(leg.transaction_type, AccountTransaction.CREDIT)
        self.assertEqual(leg.balance_before, Decimal("100.00"))
        self.assertEqual(leg.balance_after, Decimal("350.00"))

    def test_record_payment_leaves_cached_balances_alone(self):
        self.recorder.record_payment("payment_in", self.party.pk, self.account.pk, "10", TODAY)

        self.party.refresh_from_db()
        self.account.refresh_from_db()
        self.assertEqual(self.party.current_balance, Decimal("0.00"))
        self.assertEqual(self.account.current_balance, Decimal("100.00"))

    def test_payment_out_debits_the_account(self):
        payment_id = self.recorder.record_payment("payment_out", self.party.pk, self.account.pk, "40", TODAY)

        leg = AccountTransaction.objects.get(reference_type="payment", reference_id=payment_id)
        self.assertEqual(leg.transaction_type, AccountTransaction.DEBIT)
        self.assertEqual(leg.amount, Decimal("40.00"))
        self.assertEqual(leg.balance_after, Decimal("60.00"))

    def test_payment_out_without_account_has_no_account_leg(self):
        payment_id = self.recorder.record_payment("payment_out", self.party.pk, None, "40", TODAY)

        self.assertTrue(PaymentTransaction.objects.filter(reference_id=payment_id).exists())
        self.assertFalse(AccountTransaction.objects.filter(reference_id=payment_id).exists())

    def test_invalid_amounts_are_rejected(self):
        for amount in ("0", "-5", "abc", None, ""):
            with self.subTest(amount=amount):
                with self.assertRaises(InvalidAmount):
                    self.recorder.record_payment("payment_in", self.party.pk, self.account.pk, amount, TODAY)
        self.assertFalse(Payment.objects.exists())

    def test_missing_party_or_account_is_not_found(self):
        with self.assertRaises(NotFound):
            self.recorder.record_payment("payment_in", 9999, self.account.pk, "10", TODAY)
        with self.assertRaises(NotFound):
            self.recorder.record_payment("payment_in", self.party.pk, 9999, "10", TODAY)
        with self.assertRaises(NotFound):
            self.recorder.record_payment("payment_in", self.party.pk, None, "10", TODAY)

    def test_adjustment_snapshots_derived_balance(self):
        first = self.recorder.record_account_adjustment(self.account.pk, Decimal("2000"), "deposit", TODAY)
        second = self.recorder.record_account_adjustment(self.account.pk, Decimal("-300"), "withdrawal", TODAY)

        first_entry = AccountTransaction.objects.get(pk=first)
        second_entry = AccountTransaction.objects.get(pk=second)
        self.assertEqual(first_entry.balance_before, Decimal("100.00"))
        self.assertEqual(first_entry.balance_after, Decimal("2100.00"))
        self.assertEqual(second_entry.transaction_type, AccountTransaction.DEBIT)
        self.assertEqual(second_entry.amount, Decimal("300.00"))
        self.assertEqual(second_entry.balance_after, Decimal("1800.00"))

    def test_zero_adjustment_is_invalid(self):
        with self.assertRaises(InvalidAmount):
            self.recorder.record_account_adjustment(self.account.pk, "0", "nothing", TODAY)

    def test_reverse_transaction_soft_deletes_and_is_idempotent(self):
        entry_id = self.recorder.record_account_adjustment(self.account.pk, "50", "deposit", TODAY)

        reversed_entries = self.recorder.reverse_transaction(entry_id)
        self.assertEqual([entry.id for entry in reversed_entries], [entry_id])
        self.assertTrue(AccountTransaction.objects.get(pk=entry_id).is_deleted)

        self.assertEqual(self.recorder.reverse_transaction(entry_id), [])
        self.assertEqual(self.recorder.calculator.compute_account_balance(self.account.pk), Decimal("100.00"))

    def test_reverse_transfer_leg_reverses_both_legs(self):
        other = make_account(name="Bank", account_type="bank", bank_name="SBI")
        out_id, in_id = self.recorder.record_transfer(self.account.pk, other.pk, "30", "float", TODAY)

        self.recorder.reverse_transaction(in_id)

        self.assertTrue(AccountTransaction.objects.get(pk=out_id).is_deleted)
        self.assertTrue(AccountTransaction.objects.get(pk=in_id).is_deleted)

    def test_reverse_unknown_or_payment_leg(self):
        with self.assertRaises(NotFound):
            self.recorder.reverse_transaction(424242)

        payment_id = self.recorder.record_payment("payment_in", self.party.pk, self.account.pk, "10", TODAY)
        leg = AccountTransaction.objects.get(reference_type="payment", reference_id=payment_id)
        with self.assertRaises(NotReversible):
            self.recorder.reverse_transaction(leg.pk)

    def test_allocation_rules(self):
        invoice_id = self.recorder.record_invoice(SALES, self.party.pk, "100", TODAY)
        other_party = make_party(name="Other")
        foreign_invoice = self.recorder.record_invoice(SALES, other_party.pk, "100", TODAY)
        payment_id = self.recorder.record_payment("payment_in", self.party.pk, self.account.pk, "150", TODAY)
        payment = self.recorder.repository.get_payment(payment_id)

        with self.assertRaises(InvalidAllocation):
            self.recorder.allocate(payment, [(invoice_id, "120")])
        with self.assertRaises(InvalidAllocation):
            self.recorder.allocate(payment, [(foreign_invoice, "10")])

        self.recorder.allocate(payment, [(invoice_id, "60")])
        invoice = SalesInvoice.objects.get(pk=invoice_id)
        self.assertEqual(invoice.balance_amount, Decimal("40.00"))
        self.assertEqual(invoice.paid_amount, Decimal("60.00"))

        second = self.recorder.record_invoice(SALES, self.party.pk, "200", TODAY)
        with self.assertRaises(InvalidAllocation):
            self.recorder.allocate(payment, [(second, "100")])

    def test_release_allocations_restores_invoices(self):
        invoice_id = self.recorder.record_invoice(PURCHASE, self.party.pk, "80", TODAY)
        payment_id = self.recorder.record_payment("payment_out", self.party.pk, None, "80", TODAY)
        payment = self.recorder.repository.get_payment(payment_id)
        self.recorder.allocate(payment, [(invoice_id, "80")])

        released = self.recorder.release_allocations(payment_id)

        self.assertEqual(len(released), 1)
        invoice = self.recorder.repository.get_invoice(PURCHASE, invoice_id)
        self.assertEqual(invoice.balance_amount, Decimal("80.00"))
        self.assertEqual(invoice.paid_amount, Decimal("0.00"))
        self.assertEqual(self.recorder.repository.allocations_for_payment(payment_id), [])

    def test_invoice_numbers_come_from_their_sequences(self):
        sales_id = self.recorder.record_invoice(SALES, self.party.pk, "10", TODAY)
        purchase_id = self.recorder.record_invoice(PURCHASE, self.party.pk, "10", TODAY)

        self.assertEqual(self.recorder.repository.get_invoice(SALES, sales_id).number, "INV-00001")
        self.assertEqual(self.recorder.repository.get_invoice(PURCHASE, purchase_id).number, "PUR-00001")
