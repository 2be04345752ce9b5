"""Expenses debit their account and carry that debit through edits."""

from decimal import Decimal

from django.test import TestCase

from ..exceptions import InUse, InvalidAmount, NotFound, NotReversible
from ..models import AccountTransaction, Activity, Expense
from . import TODAY, authenticated_client, make_account, make_service


class ExpenseServiceTests(TestCase):
    def setUp(self):
        self.service = make_service()
        self.cash = make_account(name="Cash", opening_balance="500")
        self.bank = make_account(name="Bank", opening_balance="1000", account_type="bank", bank_name="SBI")
        self.expense = self.service.create_expense(
            self.cash.pk, "120", "Printer paper", TODAY, category="Office", vendor_name="Stationers"
        )

    def _balances(self):
        self.cash.refresh_from_db()
        self.bank.refresh_from_db()
        return self.cash.current_balance, self.bank.current_balance

    def _live_legs(self):
        return AccountTransaction.objects.filter(
            reference_type="expense", reference_id=self.expense.id, is_deleted=False
        )

    def test_expense_debits_its_account(self):
        self.assertTrue(self.expense.expense_number.startswith("EXP-"))
        self.assertEqual(self.expense.category, "Office")
        self.assertEqual(self._balances(), (Decimal("380.00"), Decimal("1000.00")))
        leg = self._live_legs().get()
        self.assertEqual(leg.transaction_type, AccountTransaction.DEBIT)
        self.assertEqual(leg.amount, Decimal("120.00"))

    def test_edit_moves_the_debit_to_the_new_account(self):
        updated = self.service.edit_expense(self.expense.id, {"account_id": self.bank.pk, "amount": "200"})

        self.assertEqual(updated.expense_number, self.expense.expense_number)
        self.assertEqual(updated.vendor_name, "Stationers")
        self.assertEqual(self._balances(), (Decimal("500.00"), Decimal("800.00")))
        leg = self._live_legs().get()
        self.assertEqual((leg.account_id, leg.amount), (self.bank.pk, Decimal("200.00")))

    def test_edit_amount_on_the_same_account(self):
        self.service.edit_expense(self.expense.id, {"amount": "20"})
        self.assertEqual(self._balances()[0], Decimal("480.00"))
        self.assertEqual(self._live_legs().count(), 1)

    def test_edit_rejects_unknown_fields(self):
        with self.assertRaises(ValueError):
            self.service.edit_expense(self.expense.id, {"expense_number": "EXP-99999"})

    def test_delete_restores_the_balance(self):
        self.service.delete_expense(self.expense.id)

        self.assertEqual(self._balances()[0], Decimal("500.00"))
        self.assertFalse(self._live_legs().exists())
        with self.assertRaises(NotFound):
            self.service.delete_expense(self.expense.id)

    def test_expense_leg_is_not_reversible(self):
        with self.assertRaises(NotReversible):
            self.service.reverse_adjustment(self._live_legs().get().pk)

    def test_amount_must_be_positive(self):
        with self.assertRaises(InvalidAmount):
            self.service.create_expense(self.cash.pk, "0", "Nothing", TODAY)

    def test_account_with_expense_cannot_be_deleted(self):
        with self.assertRaises(InUse):
            self.service.delete_account(self.cash.pk)


class ExpenseAPITest(TestCase):
    def setUp(self):
        self.user, self.client = authenticated_client()
        self.cash = make_account(name="Cash", opening_balance="500")

    def _create(self, **extra):
        payload = {
            'account': self.cash.pk,
            'amount': '75.00',
            'description': 'Courier',
            'expense_date': '2024-04-01',
            'category': 'Postage',
        }
        payload.update(extra)
        return self.client.post('/api/expenses/', payload, format='json')

    def test_create_list_update_delete(self):
        created = self._create()
        self.assertEqual(created.status_code, 201, created.content)
        self.assertEqual(created.data['account_name'], 'Cash')
        self.cash.refresh_from_db()
        self.assertEqual(self.cash.current_balance, Decimal('425.00'))

        self._create(category='Travel', expense_date='2024-03-01')
        self.assertEqual(len(self.client.get('/api/expenses/', {'category': 'Postage'}).data), 1)
        self.assertEqual(len(self.client.get('/api/expenses/', {'date_from': '2024-03-15'}).data), 1)

        expense_id = created.data['id']
        patched = self.client.patch(f'/api/expenses/{expense_id}/', {'amount': '25.00'}, format='json')
        self.assertEqual(patched.status_code, 200, patched.content)
        self.assertEqual(Decimal(patched.data['amount']), Decimal('25.00'))

        self.assertEqual(self.client.delete(f'/api/expenses/{expense_id}/').status_code, 204)
        self.assertTrue(Expense.objects.get(pk=expense_id).is_deleted)
        self.cash.refresh_from_db()
        self.assertEqual(self.cash.current_balance, Decimal('425.00'))
        self.assertEqual(
            list(Activity.objects.filter(object_id=expense_id).values_list('action_type', flat=True).order_by('id')),
            ['created', 'updated', 'deleted'],
        )

    def test_validation(self):
        self.assertEqual(self._create(amount='-5').status_code, 400)
        self.assertEqual(self._create(account=9999).status_code, 404)
        self.assertFalse(Expense.objects.exists())
