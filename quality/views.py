import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, status, filters
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.serializers import StockEntrySerializer
from utils.enums import QCStatusChoices
from .models import QCInspection
from .serializers import (
    QCInspectionSerializer, QCInspectionCreateSerializer,
    QCInspectionUpdateSerializer, QCResolveSerializer
)
from .services import QCInspectionService

logger = logging.getLogger(__name__)


class QCInspectionViewSet(viewsets.ModelViewSet):
    """
    QC inspections of received GRNs
    """
    serializer_class = QCInspectionSerializer
    permission_classes = [IsAuthenticated]
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'grn']
    search_fields = ['grn__grn_number', 'grn__purchase_order__po_number', 'items__item_code']
    ordering_fields = ['inspection_date', 'created_at']
    ordering = ['-created_at']

    def get_queryset(self):
        return QCInspection.objects.select_related(
            'grn', 'grn__purchase_order', 'inspected_by'
        ).prefetch_related('items').distinct()

    def _detail(self, inspection):
        return self.get_serializer(self.get_queryset().get(pk=inspection.pk)).data

    def create(self, request, *args, **kwargs):
        serializer = QCInspectionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        inspection = QCInspectionService.create(
            grn=data['grn'],
            user=request.user,
            inspection_date=data.get('inspection_date'),
            defects=data.get('defects', ''),
            remarks=data.get('remarks', ''),
            items=data.get('items'),
        )
        return Response(self._detail(inspection), status=status.HTTP_201_CREATED)

    @transaction.atomic
    def partial_update(self, request, *args, **kwargs):
        inspection = self.get_object()
        serializer = QCInspectionUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        header_fields = [field for field in ('inspection_date', 'defects', 'remarks') if field in data]
        if header_fields:
            for field in header_fields:
                setattr(inspection, field, data[field])
            inspection.save(update_fields=header_fields + ['updated_at'])

        if 'items' in data:
            inspection = QCInspectionService.record_results(inspection, data['items'], user=request.user)

        return Response(self._detail(inspection))

    def destroy(self, request, *args, **kwargs):
        inspection = self.get_object()
        if inspection.status != QCStatusChoices.PENDING:
            raise ValidationError(f"Inspection is {inspection.status}; only pending inspections can be deleted")
        return super().destroy(request, *args, **kwargs)

    @action(detail=True, methods=['post'])
    def start(self, request, pk=None):
        inspection = QCInspectionService.start(self.get_object(), user=request.user)
        return Response(self._detail(inspection))

    @action(detail=True, methods=['post'])
    def resolve(self, request, pk=None):
        """ACCEPT, ACCEPT_SHORTAGE, ACCEPT_OVERAGE or FAIL"""
        serializer = QCResolveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = QCInspectionService.resolve(
            self.get_object(),
            serializer.validated_data['decision'],
            user=request.user,
            remarks=serializer.validated_data['remarks'],
        )
        stock_entry = result['stock_entry']
        return Response({
            'inspection': self._detail(result['inspection']),
            'stock_entry': StockEntrySerializer(stock_entry).data if stock_entry else None,
        })

    @action(detail=False, methods=['get'])
    def stats(self, request):
        return Response(QCInspectionService.stats())
