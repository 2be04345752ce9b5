"""Expense API views.

An expense debits the account it was paid from; edits move that debit with it.
"""

from django.db import transaction
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..activity_logger import log_activity
from ..models import Expense
from ..serializers import ExpenseSerializer, ExpenseWriteSerializer
from .utils import get_service, parse_date_param


class ExpenseViewSet(viewsets.ModelViewSet):
    """CRUD operations for expenses."""

    serializer_class = ExpenseSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        queryset = Expense.objects.filter(is_deleted=False).select_related('account')
        params = self.request.query_params
        if params.get('account'):
            queryset = queryset.filter(account_id=params['account'])
        if params.get('category'):
            queryset = queryset.filter(category=params['category'])
        date_from = parse_date_param(self.request, 'date_from')
        if date_from:
            queryset = queryset.filter(expense_date__gte=date_from)
        date_to = parse_date_param(self.request, 'date_to')
        if date_to:
            queryset = queryset.filter(expense_date__lte=date_to)
        return queryset.order_by('-expense_date', '-id')

    def create(self, request, *args, **kwargs):
        serializer = ExpenseWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            expense = get_service().create_expense(**serializer.to_service_fields())
            instance = self.get_queryset().get(pk=expense.id)
            log_activity(request.user, 'created', instance)
        return Response(ExpenseSerializer(instance).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()
        serializer = ExpenseWriteSerializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            expense = get_service().edit_expense(instance.pk, serializer.to_service_fields())
            instance = self.get_queryset().get(pk=expense.id)
            log_activity(request.user, 'updated', instance)
        return Response(ExpenseSerializer(instance).data)

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        with transaction.atomic():
            get_service().delete_expense(instance.pk)
            instance.refresh_from_db()
            log_activity(request.user, 'deleted', instance)
        return Response(status=status.HTTP_204_NO_CONTENT)
