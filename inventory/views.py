import logging

from rest_framework import viewsets, status, filters
from rest_framework.decorators import api_view, permission_classes, action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend
from django.core.exceptions import ValidationError
from django.db import transaction

from utils.enums import GRNStatusChoices
from .models import (
    Warehouse, StockLedgerEntry, StockBalance, StockEntry,
    GRN, GRNItem, WarehouseAllocation
)
from .serializers import (
    WarehouseSerializer, GRNSerializer, GRNListSerializer, GRNItemSerializer,
    GRNCreateSerializer, GRNUpdateSerializer, ExcessDecisionSerializer,
    WarehouseAllocationSerializer, AllocateSerializer, PendingAllocationSerializer,
    StockEntrySerializer, StockLedgerEntrySerializer, StockBalanceSerializer
)
from .allocation_service import WarehouseAllocationService
from .grn_service import GRNService
from .transaction_manager import StockTransactionManager

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([AllowAny])
def health_check(request):
    """
    Health check endpoint for inventory service
    """
    return Response({'status': 'healthy', 'message': 'Inventory service is running'})


class WarehouseViewSet(viewsets.ModelViewSet):
    queryset = Warehouse.objects.all()
    serializer_class = WarehouseSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['warehouse_type', 'status']
    search_fields = ['code', 'name', 'location']
    ordering = ['code']


class GRNViewSet(viewsets.ModelViewSet):
    """
    ViewSet for Goods Receipt Notes
    """
    permission_classes = [IsAuthenticated]
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'purchase_order']
    search_fields = ['grn_number', 'purchase_order__po_number', 'purchase_order__vendor__name']
    ordering_fields = ['grn_date', 'created_at']
    ordering = ['-created_at']

    def get_queryset(self):
        return GRN.objects.select_related(
            'purchase_order', 'purchase_order__vendor', 'received_by'
        ).prefetch_related('items')

    def get_serializer_class(self):
        if self.action == 'list':
            return GRNListSerializer
        return GRNSerializer

    def create(self, request, *args, **kwargs):
        serializer = GRNCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        grn = GRNService.create_with_items(
            purchase_order=data['purchase_order'],
            items=data['items'],
            user=request.user,
            grn_date=data.get('grn_date'),
            notes=data.get('notes', ''),
        )
        return Response(GRNSerializer(grn).data, status=status.HTTP_201_CREATED)

    @transaction.atomic
    def partial_update(self, request, *args, **kwargs):
        grn = self.get_object()
        serializer = GRNUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        header_fields = [field for field in ('grn_date', 'notes') if field in data]
        if header_fields:
            for field in header_fields:
                setattr(grn, field, data[field])
            grn.save(update_fields=header_fields + ['updated_at'])

        if data.get('items'):
            grn = GRNService.update_received(grn, data['items'], user=request.user)

        return Response(GRNSerializer(self.get_queryset().get(pk=grn.pk)).data)

    def destroy(self, request, *args, **kwargs):
        grn = self.get_object()
        if grn.status != GRNStatusChoices.PENDING:
            raise ValidationError(f"{grn.grn_number} is {grn.status}; only pending GRNs can be deleted")
        return super().destroy(request, *args, **kwargs)

    @action(detail=True, methods=['get'])
    def summary(self, request, pk=None):
        """Quantity totals for the GRN"""
        return Response(GRNService.summary(self.get_object()))

    @action(detail=False, methods=['get'])
    def stats(self, request):
        return Response(GRNService.stats())


class GRNItemViewSet(viewsets.ReadOnlyModelViewSet):
    """
    GRN lines, plus one-call GRN creation and the excess decisions
    """
    serializer_class = GRNItemSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['grn', 'status', 'allocation_status', 'po_item']
    search_fields = ['item_code', 'material_name']

    def get_queryset(self):
        return GRNItem.objects.select_related('grn')

    @action(detail=False, methods=['post'], url_path='create-with-items')
    def create_with_items(self, request):
        """Create a GRN header and its lines in one call"""
        serializer = GRNCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        grn = GRNService.create_with_items(
            purchase_order=data['purchase_order'],
            items=data['items'],
            user=request.user,
            grn_date=data.get('grn_date'),
            notes=data.get('notes', ''),
        )
        return Response(GRNSerializer(grn).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='approve-excess')
    def approve_excess(self, request, pk=None):
        serializer = ExcessDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        grn_item = GRNService.approve_excess(self.get_object(), notes=serializer.validated_data['notes'], user=request.user)
        return Response(GRNItemSerializer(grn_item).data)

    @action(detail=True, methods=['post'], url_path='reject-excess')
    def reject_excess(self, request, pk=None):
        serializer = ExcessDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        grn_item = GRNService.reject_excess(self.get_object(), reason=serializer.validated_data['notes'], user=request.user)
        return Response(GRNItemSerializer(grn_item).data)


class WarehouseAllocationViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Allocation history, allocation of accepted quantities and the pending list
    """
    serializer_class = WarehouseAllocationSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['grn_item', 'to_warehouse', 'from_warehouse']
    ordering = ['-allocated_at']

    def get_queryset(self):
        return WarehouseAllocation.objects.select_related(
            'grn_item', 'grn_item__grn', 'from_warehouse', 'to_warehouse'
        )

    @action(detail=False, methods=['post'])
    def allocate(self, request):
        serializer = AllocateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = WarehouseAllocationService.allocate(
            grn_item_id=data['grn_item_id'],
            target_warehouse=data['target_warehouse'],
            allocate_qty=data['allocate_qty'],
            remarks=data.get('remarks', ''),
            user=request.user,
        )
        return Response(result, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def pending(self, request):
        """GRN lines with accepted quantity still waiting in the receiving hold"""
        pending = WarehouseAllocationService.pending()
        return Response(PendingAllocationSerializer(pending, many=True).data)


class StockEntryViewSet(viewsets.ModelViewSet):
    """
    Stock entries. Drafts can be edited and deleted; submitted entries move
    stock and can only be cancelled.
    """
    serializer_class = StockEntrySerializer
    permission_classes = [IsAuthenticated]
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['entry_type', 'status', 'from_warehouse', 'to_warehouse', 'grn']
    search_fields = ['entry_no', 'purpose', 'items__item_code']
    ordering_fields = ['entry_date', 'created_at']
    ordering = ['-created_at']

    def get_queryset(self):
        return StockEntry.objects.select_related(
            'from_warehouse', 'to_warehouse', 'grn'
        ).prefetch_related('items').distinct()

    def destroy(self, request, *args, **kwargs):
        StockTransactionManager.delete_entry(self.get_object())
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def submit(self, request, pk=None):
        entry = StockTransactionManager.submit_entry(self.get_object(), user=request.user)
        return Response(self.get_serializer(self.get_queryset().get(pk=entry.pk)).data)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        entry = StockTransactionManager.cancel_entry(self.get_object(), user=request.user)
        return Response(self.get_serializer(self.get_queryset().get(pk=entry.pk)).data)


class StockLedgerViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = StockLedgerEntrySerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['item_code', 'warehouse', 'transaction_type', 'reference_doc_type', 'reference_doc_id']
    search_fields = ['item_code', 'reference_doc_number', 'remarks']
    ordering_fields = ['transaction_date', 'id']
    ordering = ['-transaction_date', '-id']

    def get_queryset(self):
        queryset = StockLedgerEntry.objects.select_related('warehouse', 'created_by')
        warehouse_code = self.request.query_params.get('warehouse_code')
        if warehouse_code:
            queryset = queryset.filter(warehouse__code=warehouse_code.upper())
        return queryset


class StockBalanceViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = StockBalanceSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['item_code', 'warehouse', 'material_type']
    search_fields = ['item_code', 'material_name']
    ordering = ['item_code', 'warehouse__code']

    def get_queryset(self):
        queryset = StockBalance.objects.select_related('warehouse')
        warehouse_code = self.request.query_params.get('warehouse_code')
        if warehouse_code:
            queryset = queryset.filter(warehouse__code=warehouse_code.upper())
        return queryset
