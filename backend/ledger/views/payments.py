"""Payment API views.

Recording, editing and deleting a payment all go through
:class:`~ledger.services.ReconciliationService`; the viewset never writes the
payment tables itself.  Each write and its activity record share one
transaction.
"""

from django.db import transaction
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..activity_logger import log_activity
from ..models import Payment
from ..serializers import PaymentSerializer, PaymentWriteSerializer
from ..services import PaymentRequest
from .utils import get_service, parse_date_param


class PaymentViewSet(viewsets.ModelViewSet):
    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        queryset = (
            Payment.objects.filter(is_deleted=False)
            .select_related('party', 'account')
            .prefetch_related('details__sales_invoice', 'details__purchase_invoice')
        )
        params = self.request.query_params
        if params.get('payment_type'):
            queryset = queryset.filter(payment_type=params['payment_type'])
        if params.get('party'):
            queryset = queryset.filter(party_id=params['party'])
        if params.get('account'):
            queryset = queryset.filter(account_id=params['account'])
        date_from = parse_date_param(self.request, 'date_from')
        if date_from:
            queryset = queryset.filter(payment_date__gte=date_from)
        date_to = parse_date_param(self.request, 'date_to')
        if date_to:
            queryset = queryset.filter(payment_date__lte=date_to)
        return queryset.order_by('-payment_date', '-id')

    def _read(self, payment_id):
        return self.get_queryset().get(pk=payment_id)

    def create(self, request, *args, **kwargs):
        serializer = PaymentWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment_type = serializer.validated_data['payment_type']
        fields = serializer.to_service_fields()
        with transaction.atomic():
            payment = get_service().apply_payment(
                PaymentRequest(
                    payment_type=payment_type,
                    party_id=fields.pop('party_id'),
                    account_id=fields.pop('account_id', None),
                    **fields,
                )
            )
            instance = self._read(payment.id)
            log_activity(request.user, 'created', instance)
        return Response(PaymentSerializer(instance).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()
        serializer = PaymentWriteSerializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            payment = get_service().edit_payment(instance.pk, serializer.to_service_fields())
            instance = self._read(payment.id)
            log_activity(request.user, 'updated', instance)
        return Response(PaymentSerializer(instance).data)

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        with transaction.atomic():
            get_service().delete_payment(instance.pk)
            instance.refresh_from_db()
            log_activity(request.user, 'deleted', instance)
        return Response(status=status.HTTP_204_NO_CONTENT)
