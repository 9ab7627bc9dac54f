from decimal import Decimal

from rest_framework import serializers

from third_party.models import Client
from utils.enums import SalesOrderStatusChoices
from .models import QuotationRequest, VendorQuotation, SalesOrder


class QuotationRequestSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.company_name', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = QuotationRequest
        fields = [
            'id', 'client', 'client_name', 'item_description', 'quantity', 'unit_rate',
            'total_amount', 'status', 'status_display', 'approval_reference', 'approval_document',
            'remarks', 'created_at', 'updated_at', 'created_by'
        ]
        read_only_fields = [
            'id', 'total_amount', 'approval_reference', 'approval_document',
            'created_at', 'updated_at', 'created_by'
        ]

    def create(self, validated_data):
        request = self.context.get('request')
        if request and request.user.is_authenticated:
            validated_data['created_by'] = request.user
        return super().create(validated_data)


class QuotationItemInputSerializer(serializers.Serializer):
    item_description = serializers.CharField(max_length=255)
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal('0.001'))
    unit_rate = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False, default=Decimal('0'))
    remarks = serializers.CharField(required=False, allow_blank=True, default='')


class SendQuotationSerializer(serializers.Serializer):
    client = serializers.PrimaryKeyRelatedField(queryset=Client.objects.filter(is_active=True))
    items = QuotationItemInputSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('At least one item is required')
        return value


class BatchApproveSerializer(serializers.Serializer):
    """JSON or multipart; `ids` may repeat in form data"""
    ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    approval_document = serializers.FileField(required=False, allow_null=True)
    approval_reference = serializers.CharField(required=False, allow_blank=True, default='')


class QuotationGroupSerializer(serializers.Serializer):
    group_key = serializers.CharField()
    client_id = serializers.IntegerField()
    client_name = serializers.CharField()
    created_at = serializers.DateTimeField()
    status = serializers.CharField()
    total_amount = serializers.DecimalField(max_digits=16, decimal_places=2)
    items = QuotationRequestSerializer(many=True)


class VendorQuotationSerializer(serializers.ModelSerializer):
    vendor_name = serializers.CharField(source='vendor.name', read_only=True)
    po_number = serializers.CharField(source='purchase_order.po_number', read_only=True, default=None)

    class Meta:
        model = VendorQuotation
        fields = [
            'id', 'reference', 'vendor', 'vendor_name', 'purchase_order', 'po_number',
            'total_amount', 'status', 'received_document', 'received_document_name', 'received_at',
            'remarks', 'created_at', 'updated_at', 'created_by'
        ]
        read_only_fields = [
            'id', 'received_document', 'received_document_name', 'received_at',
            'created_at', 'updated_at', 'created_by'
        ]

    def create(self, validated_data):
        request = self.context.get('request')
        if request and request.user.is_authenticated:
            validated_data['created_by'] = request.user
        return super().create(validated_data)


class UploadResponseSerializer(serializers.Serializer):
    document = serializers.FileField(required=False, allow_null=True)
    document_name = serializers.CharField(required=False, allow_blank=True, default='')
    total_amount = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)

    def validate(self, data):
        if not data.get('document') and not data.get('document_name'):
            raise serializers.ValidationError('A response document is required')
        return data


class SalesOrderSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.company_name', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = SalesOrder
        fields = [
            'id', 'so_number', 'client', 'client_name', 'quotation_request', 'project_name',
            'order_date', 'delivery_date', 'status', 'status_display', 'material_available',
            'remarks', 'created_at', 'updated_at', 'created_by'
        ]
        read_only_fields = ['id', 'so_number', 'created_at', 'updated_at', 'created_by']

    def validate(self, data):
        quotation_request = data.get('quotation_request')
        client = data.get('client', getattr(self.instance, 'client', None))
        if quotation_request and client and quotation_request.client_id != client.id:
            raise serializers.ValidationError({'quotation_request': 'Quotation request belongs to a different client'})
        return data

    def create(self, validated_data):
        request = self.context.get('request')
        if request and request.user.is_authenticated:
            validated_data['created_by'] = request.user
        return super().create(validated_data)


class BatchStatusSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    status = serializers.ChoiceField(choices=SalesOrderStatusChoices.choices)
    atomic = serializers.BooleanField(required=False, default=False)
