from io import BytesIO

from django.test import SimpleTestCase, TestCase
from openpyxl import load_workbook

from ..report_exports import (
    generate_account_statement_workbook,
    generate_party_balance_pdf,
    generate_party_balance_workbook,
)
from . import authenticated_client, make_party


class ReportExportTests(SimpleTestCase):
    parties = [
        {'name': 'Alice', 'party_type': 'customer', 'email': 'a@example.com', 'phone': '1', 'balance': '120.00', 'overdue_amount': '45.00', 'status': 'owes_us'},
        {'name': 'Mehta', 'party_type': 'supplier', 'email': '', 'phone': '', 'balance': '-80.50', 'status': 'we_owe_them'},
        {'name': 'Zen', 'party_type': 'both', 'email': None, 'phone': None, 'balance': '0.00', 'status': 'settled'},
    ]

    def test_party_balance_workbook_contains_summary_and_details(self):
        workbook = load_workbook(BytesIO(generate_party_balance_workbook(self.parties)))
        sheet = workbook['Party Balances']
        values = list(sheet.iter_rows(values_only=True))

        self.assertEqual(values[0][0], 'Party Balance Report')
        self.assertIn(('Parties Owing Us', 1), [tuple(row[:2]) for row in values])
        self.assertIn(('Owed To Us', 120.0), [tuple(row[:2]) for row in values])
        self.assertIn(('We Owe', 80.5), [tuple(row[:2]) for row in values])
        self.assertIn(
            ('Alice', 'Customer', 'a@example.com', '1', 120.0, 45.0, 'Parties Owing Us'),
            [tuple(row[:7]) for row in values],
        )

    def test_party_balance_pdf_is_a_pdf(self):
        pdf = generate_party_balance_pdf(self.parties)
        self.assertTrue(pdf.startswith(b'%PDF'))

    def test_empty_report_still_renders(self):
        workbook = load_workbook(BytesIO(generate_party_balance_workbook([])))
        rows = list(workbook.active.iter_rows(values_only=True))
        self.assertEqual(rows[-1][0], 'No party balances available.')

    def test_account_statement_workbook(self):
        statement = {
            'account': {'account_name': 'Till', 'opening_balance': '10.00', 'current_balance': '35.00'},
            'transactions': [
                {
                    'transaction_date': '2024-04-01',
                    'description': 'deposit',
                    'reference_type': 'manual_adjustment',
                    'amount_in': '25.00',
                    'amount_out': '0.00',
                    'balance_after': '35.00',
                },
            ],
        }
        workbook = load_workbook(BytesIO(generate_account_statement_workbook(statement)))
        rows = list(workbook.active.iter_rows(values_only=True))

        self.assertEqual(rows[0][0], 'Account Statement: Till')
        self.assertIn(('2024-04-01', 'deposit', 'manual_adjustment', 25.0, 0.0, 35.0), [tuple(r[:6]) for r in rows])
        self.assertEqual(rows[-1][1], 'Closing Balance')
        self.assertEqual(rows[-1][5], 35.0)


class PartyBalanceReportEndpointTests(TestCase):
    def setUp(self):
        self.user, self.client = authenticated_client()
        make_party(name='Alice', opening_balance='120.00')

    def test_xlsx_export(self):
        response = self.client.get('/api/reports/party-balances/', {'export_format': 'xlsx'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response['Content-Type'],
            'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        )
        self.assertIn('party-balance-report.xlsx', response['Content-Disposition'])
        workbook = load_workbook(BytesIO(response.content))
        self.assertEqual(workbook.active.title, 'Party Balances')

    def test_pdf_export(self):
        response = self.client.get('/api/reports/party-balances/', {'export_format': 'pdf'})
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertTrue(response.content.startswith(b'%PDF'))
