import logging

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, status, filters
from rest_framework.decorators import api_view, permission_classes, action
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .grouping import group_quotations
from .models import QuotationRequest, VendorQuotation, SalesOrder
from .serializers import (
    QuotationRequestSerializer, SendQuotationSerializer, BatchApproveSerializer,
    QuotationGroupSerializer, VendorQuotationSerializer, UploadResponseSerializer,
    SalesOrderSerializer, BatchStatusSerializer
)
from .services import QuotationService, VendorQuotationService, SalesOrderService, DashboardService

logger = logging.getLogger(__name__)


class QuotationRequestViewSet(viewsets.ModelViewSet):
    """
    Client quotation requests, one row per quoted item
    """
    serializer_class = QuotationRequestSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['client', 'status']
    search_fields = ['item_description', 'client__company_name', 'approval_reference']
    ordering_fields = ['created_at', 'total_amount']
    ordering = ['-created_at', 'id']

    def get_queryset(self):
        return QuotationRequest.objects.select_related('client', 'created_by')

    @action(detail=False, methods=['post'])
    def send(self, request):
        """Send a quotation with one or more items to a client"""
        serializer = SendQuotationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        rows = QuotationService.send(
            serializer.validated_data['client'],
            serializer.validated_data['items'],
            user=request.user,
        )
        return Response(QuotationRequestSerializer(rows, many=True).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'], url_path='batch-approve',
            parser_classes=[MultiPartParser, FormParser, JSONParser])
    def batch_approve(self, request):
        data = request.data
        if hasattr(data, 'getlist'):
            data = {
                'ids': data.getlist('ids'),
                'approval_document': data.get('approval_document'),
                'approval_reference': data.get('approval_reference', ''),
            }
        serializer = BatchApproveSerializer(data=data)
        serializer.is_valid(raise_exception=True)

        rows = QuotationService.batch_approve(
            serializer.validated_data['ids'],
            approval_document=serializer.validated_data.get('approval_document'),
            approval_reference=serializer.validated_data['approval_reference'],
            user=request.user,
        )
        return Response({
            'approved': len(rows),
            'items': QuotationRequestSerializer(rows, many=True).data,
        })

    @action(detail=False, methods=['get'])
    def grouped(self, request):
        """Rows grouped by client and send time"""
        queryset = self.filter_queryset(self.get_queryset()).order_by('-created_at', 'id')
        groups = group_quotations(queryset)
        return Response(QuotationGroupSerializer(groups, many=True).data)


class VendorQuotationViewSet(viewsets.ModelViewSet):
    serializer_class = VendorQuotationSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['vendor', 'status', 'purchase_order']
    search_fields = ['reference', 'vendor__name']
    ordering = ['-created_at']

    def get_queryset(self):
        return VendorQuotation.objects.select_related('vendor', 'purchase_order')

    @action(detail=True, methods=['post'], url_path='upload-response',
            parser_classes=[MultiPartParser, FormParser, JSONParser])
    def upload_response(self, request, pk=None):
        serializer = UploadResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        quotation = VendorQuotationService.upload_response(
            self.get_object(),
            document=data.get('document'),
            document_name=data.get('document_name', ''),
            total_amount=data.get('total_amount'),
            user=request.user,
        )
        return Response(VendorQuotationSerializer(quotation).data)


class SalesOrderViewSet(viewsets.ModelViewSet):
    serializer_class = SalesOrderSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['client', 'status', 'material_available']
    search_fields = ['so_number', 'project_name', 'client__company_name']
    ordering_fields = ['order_date', 'delivery_date', 'created_at']
    ordering = ['-created_at']

    def get_queryset(self):
        return SalesOrder.objects.select_related('client', 'quotation_request')

    @action(detail=False, methods=['post'], url_path='batch-status')
    def batch_status(self, request):
        """
        Set one status on many orders. Orders are updated independently
        unless `atomic` is true; the response lists updated and failed ids.
        """
        serializer = BatchStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = SalesOrderService.bulk_update_status(data['ids'], data['status'], atomic=data['atomic'])
        return Response(result)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_stats(request):
    """
    Counters for the sales dashboard
    """
    return Response(DashboardService.stats())
