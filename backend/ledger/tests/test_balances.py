from datetime import date
from decimal import Decimal

from django.test import TestCase

from ..exceptions import NotFound
from ..models import Party
from ..services import BalanceCalculator, LedgerStore, PaymentRequest
from ..services.records import PURCHASE, SALES
from . import TODAY, make_account, make_party, make_service


class BalanceCalculatorTests(TestCase):
    def setUp(self):
        self.service = make_service(auto_allocate=False)
        self.calculator = BalanceCalculator(LedgerStore())

    def test_opening_balance_plus_outstanding_sales(self):
        party = make_party(opening_balance="1000")
        self.service.create_invoice(SALES, party.pk, "500", TODAY)

        self.assertEqual(self.calculator.compute_party_balance(party.pk), Decimal("1500.00"))

    def test_party_without_transactions_returns_opening_balance(self):
        party = make_party(opening_balance="-75.50")
        self.assertEqual(self.calculator.compute_party_balance(party.pk), Decimal("-75.50"))

    def test_cancelled_and_deleted_invoices_are_ignored(self):
        party = make_party(opening_balance="100")
        self.service.create_invoice(SALES, party.pk, "40", TODAY)
        cancelled = self.service.create_invoice(SALES, party.pk, "300", TODAY)
        deleted = self.service.create_invoice(SALES, party.pk, "700", TODAY)

        self.service.cancel_invoice(SALES, cancelled.id)
        self.service.delete_invoice(SALES, deleted.id)

        self.assertEqual(self.calculator.compute_party_balance(party.pk), Decimal("140.00"))

    def test_purchases_and_unallocated_payments_enter_the_balance(self):
        party = make_party(opening_balance="0", party_type=Party.BOTH)
        account = make_account(opening_balance="5000")
        self.service.create_invoice(SALES, party.pk, "800", TODAY)
        self.service.create_invoice(PURCHASE, party.pk, "300", TODAY)
        self.service.recorder.record_payment("payment_in", party.pk, account.pk, "200", TODAY)
        self.service.recorder.record_payment("payment_out", party.pk, None, "50", TODAY)

        components = self.calculator.party_components(party.pk)

        self.assertEqual(components.outstanding_sales, Decimal("800.00"))
        self.assertEqual(components.payments_in, Decimal("200.00"))
        self.assertEqual(components.outstanding_purchases, Decimal("300.00"))
        self.assertEqual(components.payments_out, Decimal("50.00"))
        self.assertEqual(components.total, Decimal("850.00"))

    def test_unknown_or_deleted_party_is_not_found(self):
        party = make_party()
        party.is_deleted = True
        party.save()

        with self.assertRaises(NotFound):
            self.calculator.compute_party_balance(party.pk)
        with self.assertRaises(NotFound):
            self.calculator.compute_party_balance(party.pk + 999)

    def test_account_adjustments(self):
        account = make_account(opening_balance="0")
        self.service.recorder.record_account_adjustment(account.pk, Decimal("2000"), "deposit", TODAY)
        self.service.recorder.record_account_adjustment(account.pk, Decimal("-300"), "withdrawal", TODAY)

        self.assertEqual(self.calculator.compute_account_balance(account.pk), Decimal("1700.00"))

    def test_account_without_transactions_returns_opening_balance(self):
        account = make_account(opening_balance="42.10")
        self.assertEqual(self.calculator.compute_account_balance(account.pk), Decimal("42.10"))

    def test_unknown_account_is_not_found(self):
        with self.assertRaises(NotFound):
            self.calculator.compute_account_balance(12345)

    def test_calculator_has_no_side_effects(self):
        party = make_party(opening_balance="1000")
        self.service.recorder.record_invoice(SALES, party.pk, "500", TODAY)

        self.calculator.compute_party_balance(party.pk)

        party.refresh_from_db()
        self.assertEqual(party.current_balance, Decimal("1000.00"))

    def test_summary_splits_cash_bank_receivables_and_payables(self):
        customer = make_party(name="Customer", opening_balance="0")
        supplier = make_party(name="Supplier", opening_balance="0", party_type=Party.SUPPLIER)
        make_account(name="Till", opening_balance="150")
        make_account(name="HDFC", opening_balance="900", account_type="bank", bank_name="HDFC")
        self.service.create_invoice(SALES, customer.pk, "400", TODAY)
        self.service.create_invoice(PURCHASE, supplier.pk, "250", TODAY)

        summary = self.calculator.summary()

        self.assertEqual(summary.cash_balance, Decimal("150.00"))
        self.assertEqual(summary.bank_balance, Decimal("900.00"))
        self.assertEqual(summary.receivables, Decimal("400.00"))
        self.assertEqual(summary.payables, Decimal("250.00"))


class OverdueTests(TestCase):
    def setUp(self):
        self.service = make_service()
        self.calculator = BalanceCalculator(LedgerStore())

    def test_invoice_is_overdue_only_after_its_terms(self):
        party = make_party(opening_balance="0")
        party.min_due_days = 10
        party.save()
        self.service.create_invoice(SALES, party.pk, "100", date(2024, 3, 22))

        self.assertEqual(self.calculator.party_overdue(party.pk, TODAY).overdue_count, 0)

        self.service.create_invoice(SALES, party.pk, "60", date(2024, 3, 21))
        overdue = self.calculator.party_overdue(party.pk, TODAY)
        self.assertEqual(overdue.overdue_count, 1)
        self.assertEqual(overdue.overdue_amount, Decimal("60.00"))

    def test_terms_default_to_thirty_days(self):
        party = make_party(opening_balance="0")
        self.service.create_invoice(SALES, party.pk, "100", date(2024, 3, 2))
        self.service.create_invoice(SALES, party.pk, "40", date(2024, 3, 1))

        overdue = self.calculator.party_overdue(party.pk, TODAY)

        self.assertEqual((overdue.overdue_count, overdue.overdue_amount), (1, Decimal("40.00")))

    def test_only_the_open_part_of_live_invoices_counts(self):
        party = make_party(opening_balance="0")
        account = make_account()
        old = self.service.create_invoice(SALES, party.pk, "100", date(2024, 1, 1))
        cancelled = self.service.create_invoice(SALES, party.pk, "70", date(2024, 1, 1))
        self.service.cancel_invoice(SALES, cancelled.id)
        self.service.apply_payment(
            PaymentRequest("payment_in", party.pk, account.pk, "30", TODAY, allocations=[(old.id, "30")])
        )

        overdue = self.calculator.overdue_by_party(TODAY)

        self.assertEqual(overdue[party.pk].overdue_count, 1)
        self.assertEqual(overdue[party.pk].overdue_amount, Decimal("70.00"))

    def test_purchases_are_never_overdue(self):
        supplier = make_party(opening_balance="0", party_type=Party.SUPPLIER)
        self.service.create_invoice(PURCHASE, supplier.pk, "500", date(2023, 1, 1))

        self.assertEqual(self.calculator.overdue_by_party(TODAY), {})
        self.assertEqual(self.calculator.party_overdue(supplier.pk, TODAY).overdue_count, 0)
