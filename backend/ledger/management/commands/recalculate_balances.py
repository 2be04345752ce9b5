from django.core.management.base import BaseCommand, CommandError

from ledger.exceptions import LedgerError
from ledger.services import get_reconciliation_service


class Command(BaseCommand):
    help = 'Recalculate cached party and account balances from the ledger.'

    def add_arguments(self, parser):
        parser.add_argument('--party', type=int, help='Only recalculate this party.')
        parser.add_argument('--account', type=int, help='Only recalculate this account.')

    def handle(self, *args, **options):
        service = get_reconciliation_service()
        try:
            result = service.recalculate_all(
                party_id=options.get('party'),
                account_id=options.get('account'),
            )
        except LedgerError as exc:
            raise CommandError(str(exc)) from exc

        for party_id, balance in result.parties.items():
            self.stdout.write(
                self.style.SUCCESS(f'Party {party_id} balance updated to {balance}')
            )
        for account_id, balance in result.accounts.items():
            self.stdout.write(
                self.style.SUCCESS(f'Account {account_id} balance updated to {balance}')
            )
