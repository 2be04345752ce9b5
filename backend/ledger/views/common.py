"""Dashboard and report endpoints."""

from django.db.models import Q
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Party
from ..report_exports import generate_party_balance_pdf, generate_party_balance_workbook
from ..serializers import PartyBalanceReportSerializer
from .utils import export_format_param, export_response, get_service


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_summary(request):
    """Cash and bank totals with receivables and payables, derived from the ledger."""

    summary = get_service().summary()
    return Response(
        {
            'cash_balance': summary.cash_balance,
            'bank_balance': summary.bank_balance,
            'total_balance': summary.cash_balance + summary.bank_balance,
            'receivables': summary.receivables,
            'payables': summary.payables,
        }
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def party_balance_report(request):
    """Return the cached balance and overdue sales of every live party."""

    queryset = Party.objects.filter(is_deleted=False).order_by('name')
    party_type = request.query_params.get('party_type')
    if party_type in {Party.CUSTOMER, Party.SUPPLIER}:
        queryset = queryset.filter(Q(party_type=party_type) | Q(party_type=Party.BOTH))
    overdue = get_service().overdue_by_party()
    data = PartyBalanceReportSerializer(queryset, many=True, context={'overdue': overdue}).data

    export = export_response(
        export_format_param(request),
        data,
        'party-balance-report',
        generate_party_balance_workbook,
        generate_party_balance_pdf,
    )
    if export is not None:
        return export
    return Response(data)
