from rest_framework import viewsets, status, filters
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from .models import PurchaseOrder, Payment
from .serializers import (
    PurchaseOrderSerializer, PurchaseOrderListSerializer,
    ReplacementPOSerializer, PaymentSerializer
)
from .services import POBalanceService, ReconciliationService, PaymentService


class PurchaseOrderViewSet(viewsets.ModelViewSet):
    """
    ViewSet for purchase orders and their reconciliation views
    """
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'vendor', 'parent_po', 'sales_order']
    search_fields = ['po_number', 'vendor__name', 'items__item_code']
    ordering_fields = ['order_date', 'created_at', 'po_number']
    ordering = ['-created_at']

    def get_queryset(self):
        return PurchaseOrder.objects.select_related(
            'vendor', 'parent_po', 'created_by'
        ).prefetch_related('items').distinct()

    def get_serializer_class(self):
        if self.action == 'list':
            return PurchaseOrderListSerializer
        return PurchaseOrderSerializer

    @action(detail=True, methods=['get'])
    def balance(self, request, pk=None):
        """Ordered vs. accepted quantity per line"""
        return Response(POBalanceService.balance(self.get_object()))

    @action(detail=True, methods=['get'])
    def reconciliation(self, request, pk=None):
        """Shortage/overage per line against GRN-accepted quantities"""
        purchase_order = self.get_object()
        return Response({
            'po_id': purchase_order.id,
            'po_number': purchase_order.po_number,
            'items': ReconciliationService.reconcile(purchase_order),
        })

    @action(detail=True, methods=['post'])
    def replacement(self, request, pk=None):
        """Create a replacement PO covering every shortage"""
        serializer = ReplacementPOSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        replacement = ReconciliationService.create_replacement_po(
            self.get_object(),
            user=request.user,
            **serializer.validated_data
        )
        return Response(PurchaseOrderSerializer(replacement).data, status=status.HTTP_201_CREATED)


class PaymentViewSet(viewsets.ModelViewSet):
    """
    Vendor payments. Payments are cancelled through a status change, never deleted.
    """
    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated]
    http_method_names = ['get', 'post', 'patch', 'head', 'options']
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'mode', 'vendor', 'purchase_order']
    search_fields = ['payment_number', 'reference_no', 'vendor__name', 'purchase_order__po_number']
    ordering_fields = ['payment_date', 'amount', 'created_at']
    ordering = ['-payment_date', '-created_at']

    def get_queryset(self):
        return Payment.objects.select_related('vendor', 'purchase_order')

    @action(detail=False, methods=['get'])
    def outstanding(self, request):
        """Outstanding amount for a purchase order (?purchase_order=<id>)"""
        po_id = request.query_params.get('purchase_order')
        if not po_id:
            return Response({'error': 'purchase_order parameter is required'}, status=status.HTTP_400_BAD_REQUEST)

        purchase_order = PurchaseOrder.objects.get(pk=po_id)
        return Response({
            'po_id': purchase_order.id,
            'po_number': purchase_order.po_number,
            'total_amount': purchase_order.total_amount,
            'outstanding': PaymentService.outstanding(purchase_order),
        })
