"""Tests for account, party and invoice endpoints."""

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from ..models import Account, AccountTransaction, Party, SalesInvoice
from . import authenticated_client, make_account, make_party


class AccountAPITest(TestCase):
    """Verify deposit, withdrawal, transfer and reversal actions."""

    def setUp(self):
        self.user, self.client = authenticated_client('bankuser')
        self.primary_account = make_account(name='Operating', opening_balance='100.00')
        self.secondary_account = make_account(
            name='Savings', opening_balance='50.00', account_type=Account.BANK, bank_name='SBI'
        )

    def test_create_account_sets_current_balance(self):
        response = self.client.post(
            '/api/accounts/',
            {'account_name': 'Petty cash', 'account_type': 'cash', 'opening_balance': '75.00'},
            format='json',
        )
        self.assertEqual(response.status_code, 201, response.content)
        self.assertEqual(Decimal(response.data['current_balance']), Decimal('75.00'))

    def test_bank_account_needs_bank_name(self):
        response = self.client.post(
            '/api/accounts/',
            {'account_name': 'Current', 'account_type': 'bank'},
            format='json',
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn('bank_name', response.data)

    def test_deposit_updates_balance_and_creates_transaction(self):
        response = self.client.post(
            f'/api/accounts/{self.primary_account.id}/deposit/',
            {'amount': '25.00', 'description': 'Initial funding'},
            format='json',
        )
        self.assertEqual(response.status_code, 201, response.content)

        self.primary_account.refresh_from_db()
        self.assertEqual(self.primary_account.current_balance, Decimal('125.00'))

        transaction = AccountTransaction.objects.get(account=self.primary_account)
        self.assertEqual(transaction.transaction_type, AccountTransaction.CREDIT)
        self.assertEqual(transaction.amount, Decimal('25.00'))
        self.assertEqual(transaction.description, 'Initial funding')
        self.assertEqual(transaction.balance_after, Decimal('125.00'))

    def test_withdraw_updates_balance(self):
        response = self.client.post(
            f'/api/accounts/{self.primary_account.id}/withdraw/',
            {'amount': '20.00', 'description': 'Petty cash'},
            format='json',
        )
        self.assertEqual(response.status_code, 201, response.content)

        self.primary_account.refresh_from_db()
        self.assertEqual(self.primary_account.current_balance, Decimal('80.00'))
        self.assertEqual(response.data['transaction']['transaction_type'], 'debit')

    def test_negative_amount_is_rejected(self):
        response = self.client.post(
            f'/api/accounts/{self.primary_account.id}/deposit/',
            {'amount': '-5.00'},
            format='json',
        )
        self.assertEqual(response.status_code, 400)

    def test_transfer_moves_funds_between_accounts(self):
        response = self.client.post(
            f'/api/accounts/{self.primary_account.id}/transfer/',
            {'amount': '30.00', 'target_account': self.secondary_account.id},
            format='json',
        )
        self.assertEqual(response.status_code, 201, response.content)

        self.primary_account.refresh_from_db()
        self.secondary_account.refresh_from_db()
        self.assertEqual(self.primary_account.current_balance, Decimal('70.00'))
        self.assertEqual(self.secondary_account.current_balance, Decimal('80.00'))
        self.assertEqual(len(response.data['transactions']), 2)

    def test_transfer_to_same_or_unknown_account(self):
        same = self.client.post(
            f'/api/accounts/{self.primary_account.id}/transfer/',
            {'amount': '30.00', 'target_account': self.primary_account.id},
            format='json',
        )
        self.assertEqual(same.status_code, 400)

        unknown = self.client.post(
            f'/api/accounts/{self.primary_account.id}/transfer/',
            {'amount': '30.00', 'target_account': 9999},
            format='json',
        )
        self.assertEqual(unknown.status_code, 404)

    def test_reverse_manual_transaction(self):
        deposit = self.client.post(
            f'/api/accounts/{self.primary_account.id}/deposit/', {'amount': '40.00'}, format='json'
        )
        transaction_id = deposit.data['transaction']['id']

        response = self.client.post(f'/api/account-transactions/{transaction_id}/reverse/')
        self.assertEqual(response.status_code, 200, response.content)
        self.assertEqual(response.data['reversed'], [transaction_id])

        again = self.client.post(f'/api/account-transactions/{transaction_id}/reverse/')
        self.assertEqual(again.data['reversed'], [])

        self.primary_account.refresh_from_db()
        self.assertEqual(self.primary_account.current_balance, Decimal('100.00'))

    def test_reverse_payment_leg_is_refused(self):
        party = make_party(opening_balance='100')
        self.client.post(
            '/api/payments/',
            {
                'payment_type': 'payment_in',
                'party': party.pk,
                'account': self.primary_account.pk,
                'amount': '10.00',
            },
            format='json',
        )
        leg = AccountTransaction.objects.get(reference_type='payment')

        response = self.client.post(f'/api/account-transactions/{leg.pk}/reverse/')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['code'], 'not_reversible')

    def test_statement_exports(self):
        self.client.post(
            f'/api/accounts/{self.primary_account.id}/deposit/', {'amount': '40.00'}, format='json'
        )

        response = self.client.get(f'/api/accounts/{self.primary_account.id}/statement/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data['transactions']), 1)

        pdf = self.client.get(
            f'/api/accounts/{self.primary_account.id}/statement/', {'export_format': 'pdf'}
        )
        self.assertEqual(pdf['Content-Type'], 'application/pdf')

    def test_recalculate_repairs_cached_balance(self):
        Account.objects.filter(pk=self.primary_account.pk).update(current_balance=Decimal('0'))

        response = self.client.post(f'/api/accounts/{self.primary_account.id}/recalculate/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Decimal(response.data['current_balance']), Decimal('100.00'))

    def test_delete_is_soft(self):
        response = self.client.delete(f'/api/accounts/{self.secondary_account.id}/')
        self.assertEqual(response.status_code, 204)
        self.assertTrue(Account.objects.get(pk=self.secondary_account.pk).is_deleted)
        self.assertEqual(len(self.client.get('/api/accounts/').data), 1)


class PartyAndInvoiceAPITest(TestCase):
    def setUp(self):
        self.user, self.client = authenticated_client()
        self.customer = make_party(name='Alice', opening_balance='1000')
        self.supplier = make_party(name='Mehta', party_type=Party.SUPPLIER)
        self.both = make_party(name='Zen', party_type=Party.BOTH)

    def test_party_type_filter_includes_both(self):
        response = self.client.get('/api/parties/', {'party_type': 'supplier'})
        self.assertEqual([row['name'] for row in response.data], ['Mehta', 'Zen'])

    def test_create_invoice_and_balance_breakdown(self):
        response = self.client.post(
            '/api/sales-invoices/',
            {'party': self.customer.pk, 'total_amount': '500.00', 'invoice_date': '2024-04-01'},
            format='json',
        )
        self.assertEqual(response.status_code, 201, response.content)
        self.assertEqual(response.data['invoice_number'], 'INV-00001')

        breakdown = self.client.get(f'/api/parties/{self.customer.pk}/balance/')
        self.assertEqual(Decimal(breakdown.data['balance']), Decimal('1500.00'))
        self.assertEqual(Decimal(breakdown.data['outstanding_sales']), Decimal('500.00'))

    def test_cancel_and_delete_invoice(self):
        created = self.client.post(
            '/api/purchase-invoices/',
            {'party': self.supplier.pk, 'total_amount': '300.00'},
            format='json',
        )
        self.assertEqual(created.status_code, 201, created.content)
        self.supplier.refresh_from_db()
        self.assertEqual(self.supplier.current_balance, Decimal('300.00'))

        cancelled = self.client.post(f"/api/purchase-invoices/{created.data['id']}/cancel/")
        self.assertEqual(cancelled.status_code, 200)
        self.assertTrue(cancelled.data['is_cancelled'])
        self.supplier.refresh_from_db()
        self.assertEqual(self.supplier.current_balance, Decimal('0.00'))

        sale = self.client.post(
            '/api/sales-invoices/', {'party': self.customer.pk, 'total_amount': '50.00'}, format='json'
        )
        self.assertEqual(self.client.delete(f"/api/sales-invoices/{sale.data['id']}/").status_code, 204)
        self.assertTrue(SalesInvoice.objects.get(pk=sale.data['id']).is_deleted)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.current_balance, Decimal('1000.00'))

    def test_opening_balance_update_recomputes(self):
        response = self.client.patch(
            f'/api/parties/{self.customer.pk}/', {'opening_balance': '200.00'}, format='json'
        )
        self.assertEqual(response.status_code, 200, response.content)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.opening_balance, Decimal('200.00'))
        self.assertEqual(self.customer.current_balance, Decimal('200.00'))

    def test_current_balance_is_read_only(self):
        response = self.client.patch(
            f'/api/parties/{self.customer.pk}/', {'current_balance': '5.00'}, format='json'
        )
        self.assertEqual(response.status_code, 200)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.current_balance, Decimal('1000.00'))

    def test_dashboard_and_party_balance_report(self):
        make_account(name='Till', opening_balance='150')
        summary = self.client.get('/api/dashboard-summary/')
        self.assertEqual(summary.status_code, 200)
        self.assertEqual(Decimal(str(summary.data['cash_balance'])), Decimal('150.00'))
        self.assertEqual(Decimal(str(summary.data['receivables'])), Decimal('1000.00'))

        report = self.client.get('/api/reports/party-balances/')
        statuses = {row['name']: row['status'] for row in report.data}
        self.assertEqual(statuses, {'Alice': 'owes_us', 'Mehta': 'settled', 'Zen': 'settled'})

    def test_invoice_for_wrong_party_type_returns_400(self):
        bill = self.client.post(
            '/api/purchase-invoices/', {'party': self.customer.pk, 'total_amount': '10.00'}, format='json'
        )
        self.assertEqual(bill.status_code, 400, bill.content)
        self.assertEqual(bill.data['code'], 'wrong_party_type')
        sale = self.client.post(
            '/api/sales-invoices/', {'party': self.supplier.pk, 'total_amount': '10.00'}, format='json'
        )
        self.assertEqual(sale.data['code'], 'wrong_party_type')
        self.assertFalse(SalesInvoice.objects.exists())

    def test_balance_and_report_show_overdue_sales(self):
        self.customer.min_due_days = 10
        self.customer.save()
        today = timezone.localdate()
        for days, amount in ((10, '100.00'), (11, '40.00')):
            response = self.client.post(
                '/api/sales-invoices/',
                {
                    'party': self.customer.pk,
                    'total_amount': amount,
                    'invoice_date': (today - timedelta(days=days)).isoformat(),
                },
                format='json',
            )
            self.assertEqual(response.status_code, 201, response.content)

        breakdown = self.client.get(f'/api/parties/{self.customer.pk}/balance/')
        self.assertEqual(breakdown.data['min_due_days'], 10)
        self.assertEqual(breakdown.data['overdue_count'], 1)
        self.assertEqual(Decimal(str(breakdown.data['overdue_amount'])), Decimal('40.00'))

        report = {row['name']: row for row in self.client.get('/api/reports/party-balances/').data}
        self.assertEqual(report['Alice']['overdue_count'], 1)
        self.assertEqual(Decimal(str(report['Alice']['overdue_amount'])), Decimal('40.00'))
        self.assertEqual(report['Zen']['overdue_count'], 0)

    def test_invoice_with_amount_received(self):
        till = make_account(name='Till')
        response = self.client.post(
            '/api/sales-invoices/',
            {
                'party': self.customer.pk,
                'total_amount': '500.00',
                'amount_received': '200.00',
                'account': till.pk,
                'payment_mode': 'online',
            },
            format='json',
        )
        self.assertEqual(response.status_code, 201, response.content)
        self.assertEqual(Decimal(response.data['paid_amount']), Decimal('200.00'))
        self.assertEqual(Decimal(response.data['balance_amount']), Decimal('300.00'))

        payments = self.client.get('/api/payments/', {'party': self.customer.pk}).data
        self.assertEqual(len(payments), 1)
        self.assertEqual(payments[0]['payment_mode'], 'online')
        self.assertEqual(payments[0]['allocations'][0]['invoice_number'], response.data['invoice_number'])
        till.refresh_from_db()
        self.assertEqual(till.current_balance, Decimal('200.00'))

    def test_amount_received_above_total_returns_400(self):
        response = self.client.post(
            '/api/sales-invoices/',
            {'party': self.customer.pk, 'total_amount': '50.00', 'amount_received': '80.00'},
            format='json',
        )
        self.assertEqual(response.status_code, 400, response.content)
        self.assertIn('amount_received', response.data)
        self.assertFalse(SalesInvoice.objects.exists())
