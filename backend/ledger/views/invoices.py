"""Sales invoice and purchase bill API views.

Invoices are created and retired through the reconciliation service so the
party's cached balance follows every change.  Line items and tax are outside
this API; an invoice carries only its total and, optionally, the amount
received when it was raised.
"""

from django.db import transaction
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..activity_logger import log_activity
from ..models import PurchaseInvoice, SalesInvoice
from ..serializers import (
    InvoiceWriteSerializer,
    PurchaseInvoiceSerializer,
    SalesInvoiceSerializer,
)
from ..services.records import PURCHASE, SALES
from .utils import get_service, parse_date_param


class BaseInvoiceViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated]
    model = None
    kind = None
    party_field = None
    date_field = None

    def get_queryset(self):
        queryset = self.model.objects.filter(is_deleted=False).select_related(self.party_field)
        party_id = self.request.query_params.get('party')
        if party_id:
            queryset = queryset.filter(**{f'{self.party_field}_id': party_id})
        date_from = parse_date_param(self.request, 'date_from')
        if date_from:
            queryset = queryset.filter(**{f'{self.date_field}__gte': date_from})
        date_to = parse_date_param(self.request, 'date_to')
        if date_to:
            queryset = queryset.filter(**{f'{self.date_field}__lte': date_to})
        if self.request.query_params.get('open') in {'1', 'true'}:
            queryset = queryset.filter(is_cancelled=False, balance_amount__gt=0)
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = InvoiceWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        with transaction.atomic():
            invoice = get_service().create_invoice(
                self.kind,
                data['party'],
                data['total_amount'],
                invoice_date=data.get('invoice_date'),
                notes=data.get('notes'),
                amount_received=data.get('amount_received'),
                account_id=data.get('account'),
                payment_mode=data.get('payment_mode', 'cash'),
            )
            instance = self.model.objects.get(pk=invoice.id)
            log_activity(request.user, 'created', instance)
        return Response(self.get_serializer(instance).data, status=status.HTTP_201_CREATED)

    def perform_destroy(self, instance):
        with transaction.atomic():
            get_service().delete_invoice(self.kind, instance.pk)
            instance.refresh_from_db()
            log_activity(self.request.user, 'deleted', instance)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        instance = self.get_object()
        with transaction.atomic():
            get_service().cancel_invoice(self.kind, instance.pk)
            instance.refresh_from_db()
            log_activity(request.user, 'updated', instance, description=f'{instance} was cancelled.')
        return Response(self.get_serializer(instance).data)


class SalesInvoiceViewSet(BaseInvoiceViewSet):
    serializer_class = SalesInvoiceSerializer
    model = SalesInvoice
    kind = SALES
    party_field = 'party'
    date_field = 'invoice_date'


class PurchaseInvoiceViewSet(BaseInvoiceViewSet):
    serializer_class = PurchaseInvoiceSerializer
    model = PurchaseInvoice
    kind = PURCHASE
    party_field = 'supplier'
    date_field = 'bill_date'
