"""Cash and bank account API views."""

from django.db import transaction
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..activity_logger import log_activity
from ..models import Account, AccountTransaction
from ..report_exports import (
    generate_account_statement_pdf,
    generate_account_statement_workbook,
)
from ..serializers import (
    AccountMovementSerializer,
    AccountSerializer,
    AccountTransactionSerializer,
    TransferSerializer,
)
from .utils import export_format_param, export_response, get_service


class AccountViewSet(viewsets.ModelViewSet):
    """CRUD operations for cash and bank accounts.

    An account with live payments, expenses or entries cannot be deleted.
    """

    serializer_class = AccountSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        queryset = Account.objects.filter(is_deleted=False).order_by('account_type', 'account_name')
        account_type = self.request.query_params.get('account_type')
        if account_type:
            queryset = queryset.filter(account_type=account_type)
        return queryset

    def perform_create(self, serializer):
        with transaction.atomic():
            instance = serializer.save()
            get_service().recalculate_account(instance.pk)
            instance.refresh_from_db()
            log_activity(self.request.user, 'created', instance)

    def perform_update(self, serializer):
        opening_balance = serializer.validated_data.pop('opening_balance', None)
        with transaction.atomic():
            instance = serializer.save()
            if opening_balance is not None and opening_balance != instance.opening_balance:
                get_service().set_account_opening_balance(instance.pk, opening_balance)
                instance.refresh_from_db()
            log_activity(self.request.user, 'updated', instance)

    def perform_destroy(self, instance):
        with transaction.atomic():
            get_service().delete_account(instance.pk)
            log_activity(self.request.user, 'deleted', instance)

    @action(detail=True, methods=['get'])
    def transactions(self, request, pk=None):
        account = self.get_object()
        queryset = account.transactions.filter(is_deleted=False).order_by('-transaction_date', '-id')
        limit = request.query_params.get('limit')
        if limit is not None:
            try:
                limit_value = int(limit)
            except ValueError:
                return Response({'detail': 'limit must be an integer.'}, status=status.HTTP_400_BAD_REQUEST)
            queryset = queryset[:max(0, limit_value)]
        serializer = AccountTransactionSerializer(queryset, many=True)
        return Response(serializer.data)

    @action(detail=True, methods=['get'])
    def statement(self, request, pk=None):
        """Oldest-first statement of the account, optionally as xlsx or pdf."""

        account = self.get_object()
        queryset = account.transactions.filter(is_deleted=False).order_by('transaction_date', 'id')
        data = {
            'account': AccountSerializer(account).data,
            'transactions': AccountTransactionSerializer(queryset, many=True).data,
        }
        export = export_response(
            export_format_param(request),
            data,
            f'account-statement-{account.pk}',
            generate_account_statement_workbook,
            generate_account_statement_pdf,
        )
        if export is not None:
            return export
        return Response(data)

    def _movement_response(self, account, entry_id):
        account.refresh_from_db()
        entry = AccountTransaction.objects.get(pk=entry_id)
        return Response(
            {
                'account': AccountSerializer(account).data,
                'transaction': AccountTransactionSerializer(entry).data,
            },
            status=status.HTTP_201_CREATED,
        )

    def _adjust(self, request, sign, verb):
        account = self.get_object()
        serializer = AccountMovementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        amount = data['amount']
        with transaction.atomic():
            entry = get_service().adjust_account(
                account.pk,
                amount * sign,
                reason=data['description'] or f'{verb} {amount}',
                when=data.get('transaction_date'),
            )
            log_activity(
                request.user,
                'updated',
                account,
                description=f'{verb} {amount} {"into" if sign > 0 else "from"} {account.account_name}.',
            )
        return self._movement_response(account, entry.id)

    @action(detail=True, methods=['post'])
    def deposit(self, request, pk=None):
        return self._adjust(request, 1, 'Deposited')

    @action(detail=True, methods=['post'])
    def withdraw(self, request, pk=None):
        return self._adjust(request, -1, 'Withdrew')

    @action(detail=True, methods=['post'])
    def transfer(self, request, pk=None):
        source_account = self.get_object()
        serializer = TransferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        if data['target_account'] == source_account.pk:
            return Response(
                {'detail': 'A different target_account is required for transfers.'},
                status=status.HTTP_400_BAD_REQUEST,
            )

        with transaction.atomic():
            outgoing, incoming = get_service().transfer(
                source_account.pk,
                data['target_account'],
                data['amount'],
                description=data['description'] or None,
                when=data.get('transaction_date'),
            )
            source_account.refresh_from_db()
            target_account = Account.objects.get(pk=data['target_account'])
            log_activity(
                request.user,
                'updated',
                source_account,
                description=(
                    f"Transferred {data['amount']} from {source_account.account_name} "
                    f"to {target_account.account_name}."
                ),
            )
        transactions = AccountTransaction.objects.filter(pk__in=[outgoing.id, incoming.id]).order_by('id')
        return Response(
            {
                'source_account': AccountSerializer(source_account).data,
                'target_account': AccountSerializer(target_account).data,
                'transactions': AccountTransactionSerializer(transactions, many=True).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=['post'])
    def recalculate(self, request, pk=None):
        account = self.get_object()
        with transaction.atomic():
            get_service().recalculate_account(account.pk)
            account.refresh_from_db()
            log_activity(
                request.user,
                'reconciled',
                account,
                description=f'Recalculated balance of {account.account_name}: {account.current_balance}.',
            )
        return Response(AccountSerializer(account).data)


class AccountTransactionViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Read access to account entries plus reversal of manual ones."""

    serializer_class = AccountTransactionSerializer
    permission_classes = [IsAuthenticated]
    lookup_value_regex = r'\d+'

    def get_queryset(self):
        queryset = AccountTransaction.objects.filter(is_deleted=False).select_related('account')
        account_id = self.request.query_params.get('account')
        if account_id:
            queryset = queryset.filter(account_id=account_id)
        return queryset.order_by('-transaction_date', '-id')

    @action(detail=True, methods=['post'])
    def reverse(self, request, pk=None):
        # Reversal looks the row up itself so that already reversed rows are
        # acknowledged instead of answered with 404.
        with transaction.atomic():
            reversed_entries = get_service().reverse_adjustment(int(pk))
            for entry in reversed_entries:
                account = Account.objects.get(pk=entry.account_id)
                log_activity(
                    request.user,
                    'updated',
                    account,
                    description=f'Reversed account transaction {entry.id} of {entry.amount}.',
                )
        return Response({'reversed': [entry.id for entry in reversed_entries]})
