"""Activity log related API views."""

from rest_framework import viewsets
from rest_framework.permissions import IsAuthenticated

from ..models import Activity
from ..serializers import ActivitySerializer
from .utils import parse_date_param


class ActivityViewSet(viewsets.ReadOnlyModelViewSet):
    """Read-only access to the ledger's activity log."""

    serializer_class = ActivitySerializer
    permission_classes = [IsAuthenticated]
    pagination_class = None

    def get_queryset(self):
        queryset = Activity.objects.select_related('user', 'content_type').order_by('-timestamp')
        day = parse_date_param(self.request, 'date')
        if day:
            queryset = queryset.filter(timestamp__date=day)
        action_type = self.request.query_params.get('action_type')
        if action_type:
            queryset = queryset.filter(action_type=action_type)
        return queryset
