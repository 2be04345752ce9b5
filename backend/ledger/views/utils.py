"""Utility helpers shared across API view modules."""

import logging

from django.http import HttpResponse
from django.utils.dateparse import parse_date
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from ..exceptions import (
    ExceedsOutstanding,
    InvalidAllocation,
    InvalidAmount,
    InUse,
    LedgerError,
    NotFound,
    NotReversible,
    StoreFailure,
    WrongPartyType,
)
from ..services import get_reconciliation_service

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidAmount: status.HTTP_400_BAD_REQUEST,
    InvalidAllocation: status.HTTP_400_BAD_REQUEST,
    ExceedsOutstanding: status.HTTP_400_BAD_REQUEST,
    NotReversible: status.HTTP_400_BAD_REQUEST,
    WrongPartyType: status.HTTP_400_BAD_REQUEST,
    InUse: status.HTTP_409_CONFLICT,
    StoreFailure: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def ledger_error_response(exc):
    """Translate a :class:`LedgerError` into ``{"detail", "code"}``."""

    status_code = STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
    if status_code >= 500:
        logger.error("Ledger store failure: %s", exc)
    return Response({'detail': str(exc), 'code': exc.code}, status=status_code)


def ledger_exception_handler(exc, context):
    """DRF exception handler that also understands ledger failures."""

    if isinstance(exc, LedgerError):
        return ledger_error_response(exc)
    return exception_handler(exc, context)


def get_service():
    """Reconciliation service for the current request."""

    return get_reconciliation_service()


def parse_date_param(request, name):
    """Return the ``YYYY-MM-DD`` query parameter ``name`` as a date, or ``None``."""

    value = request.query_params.get(name)
    if not value:
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise ValidationError({name: 'Use the YYYY-MM-DD format.'})
    return parsed


def export_format_param(request):
    return (request.query_params.get('export_format') or '').lower()


def export_response(export_format, data, filename_stub, workbook_builder, pdf_builder):
    """Return an xlsx or pdf attachment for ``data``, or ``None`` for JSON."""

    if export_format in {'xlsx', 'excel'}:
        response = HttpResponse(
            workbook_builder(data),
            content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        )
        response['Content-Disposition'] = f'attachment; filename="{filename_stub}.xlsx"'
        return response
    if export_format == 'pdf':
        response = HttpResponse(pdf_builder(data), content_type='application/pdf')
        response['Content-Disposition'] = f'attachment; filename="{filename_stub}.pdf"'
        return response
    return None
