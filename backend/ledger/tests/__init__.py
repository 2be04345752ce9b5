from datetime import date
from decimal import Decimal

from django.contrib.auth.models import User
from rest_framework.test import APIClient

from ..models import Account, Party
from ..services import LedgerStore, ReconciliationPolicy, ReconciliationService, KeyedLock


def make_party(name="Alice Traders", opening_balance="0", party_type=Party.CUSTOMER):
    return Party.objects.create(
        name=name,
        party_type=party_type,
        opening_balance=Decimal(opening_balance),
        current_balance=Decimal(opening_balance),
    )


def make_account(name="Cash in hand", opening_balance="0", account_type=Account.CASH, bank_name=None):
    return Account.objects.create(
        account_name=name,
        account_type=account_type,
        bank_name=bank_name,
        opening_balance=Decimal(opening_balance),
        current_balance=Decimal(opening_balance),
    )


def make_service(**policy):
    return ReconciliationService(
        LedgerStore(),
        policy=ReconciliationPolicy(**policy),
        locks=KeyedLock(),
    )


def authenticated_client(username="ledger"):
    user = User.objects.create_user(username=username, password="pw")
    client = APIClient()
    client.force_authenticate(user=user)
    return user, client


TODAY = date(2024, 4, 1)
