"""Party related API views."""

from django.db import transaction
from django.db.models import Q
from rest_framework import mixins, viewsets
from rest_framework.decorators import action
from rest_framework.filters import SearchFilter
from rest_framework.generics import get_object_or_404
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..activity_logger import log_activity
from ..models import Party, Payment
from ..serializers import PartySerializer, PaymentSerializer
from .utils import get_service


class PartyViewSet(viewsets.ModelViewSet):
    """CRUD operations for customers and suppliers.

    Deleting a party only flags it, and only once none of its invoices or
    payments are live.
    """

    serializer_class = PartySerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [SearchFilter]
    search_fields = ['name', 'email', 'phone']

    def get_queryset(self):
        queryset = Party.objects.filter(is_deleted=False).order_by('name')
        party_type = self.request.query_params.get('party_type')
        if party_type in {Party.CUSTOMER, Party.SUPPLIER}:
            queryset = queryset.filter(Q(party_type=party_type) | Q(party_type=Party.BOTH))
        elif party_type == Party.BOTH:
            queryset = queryset.filter(party_type=Party.BOTH)
        return queryset

    def perform_create(self, serializer):
        with transaction.atomic():
            instance = serializer.save()
            get_service().recalculate_party(instance.pk)
            instance.refresh_from_db()
            log_activity(self.request.user, 'created', instance)

    def perform_update(self, serializer):
        opening_balance = serializer.validated_data.pop('opening_balance', None)
        with transaction.atomic():
            instance = serializer.save()
            if opening_balance is not None and opening_balance != instance.opening_balance:
                get_service().set_party_opening_balance(instance.pk, opening_balance)
                instance.refresh_from_db()
            log_activity(self.request.user, 'updated', instance)

    def perform_destroy(self, instance):
        with transaction.atomic():
            get_service().delete_party(instance.pk)
            log_activity(self.request.user, 'deleted', instance)

    @action(detail=True, methods=['get'])
    def balance(self, request, pk=None):
        party = self.get_object()
        service = get_service()
        components = service.party_balance(party.pk)
        overdue = service.party_overdue(party.pk)
        return Response(
            {
                'party': party.pk,
                'opening_balance': components.opening_balance,
                'outstanding_sales': components.outstanding_sales,
                'unallocated_payments_in': components.payments_in,
                'outstanding_purchases': components.outstanding_purchases,
                'unallocated_payments_out': components.payments_out,
                'balance': components.total,
                'cached_balance': party.current_balance,
                'min_due_days': party.min_due_days,
                'overdue_count': overdue.overdue_count,
                'overdue_amount': overdue.overdue_amount,
            }
        )

    @action(detail=True, methods=['post'])
    def recalculate(self, request, pk=None):
        party = self.get_object()
        with transaction.atomic():
            get_service().recalculate_party(party.pk)
            party.refresh_from_db()
            log_activity(
                request.user,
                'reconciled',
                party,
                description=f'Recalculated balance of {party.name}: {party.current_balance}.',
            )
        return Response(PartySerializer(party).data)


class PartyPaymentViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """Payments recorded against one party, newest first."""

    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        party = get_object_or_404(Party, pk=self.kwargs.get('party_pk'), is_deleted=False)
        return (
            Payment.objects.filter(party=party, is_deleted=False)
            .select_related('party', 'account')
            .prefetch_related('details')
            .order_by('-payment_date', '-id')
        )
