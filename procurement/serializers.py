"""
Serializers for procurement app models
"""
from django.db import transaction
from rest_framework import serializers

from utils.enums import POStatusChoices
from .models import PurchaseOrder, PurchaseOrderItem, Payment
from .services import PaymentService


class PurchaseOrderItemSerializer(serializers.ModelSerializer):

    class Meta:
        model = PurchaseOrderItem
        fields = [
            'id', 'item_code', 'description', 'material_name', 'material_type',
            'unit', 'quantity', 'unit_rate', 'amount'
        ]
        read_only_fields = ['id', 'amount']


class PurchaseOrderListSerializer(serializers.ModelSerializer):
    vendor_name = serializers.CharField(source='vendor.name', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    parent_po_number = serializers.CharField(source='parent_po.po_number', read_only=True, default=None)

    class Meta:
        model = PurchaseOrder
        fields = [
            'id', 'po_number', 'vendor', 'vendor_name', 'order_date', 'expected_date',
            'status', 'status_display', 'parent_po', 'parent_po_number', 'created_at'
        ]


class PurchaseOrderSerializer(serializers.ModelSerializer):
    """PO with its lines; lines are written together with the header"""
    items = PurchaseOrderItemSerializer(many=True)
    vendor_name = serializers.CharField(source='vendor.name', read_only=True)
    total_amount = serializers.DecimalField(max_digits=16, decimal_places=2, read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            'id', 'po_number', 'vendor', 'vendor_name', 'order_date', 'expected_date',
            'status', 'parent_po', 'sales_order', 'notes', 'items', 'total_amount',
            'created_at', 'updated_at', 'created_by'
        ]
        read_only_fields = ['id', 'po_number', 'parent_po', 'created_at', 'updated_at', 'created_by']

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required")
        return value

    def validate(self, data):
        if self.instance and 'items' in data and self.instance.status not in (
            POStatusChoices.DRAFT, POStatusChoices.SENT, POStatusChoices.SENT_LEGACY
        ):
            raise serializers.ValidationError({
                'items': f"Items cannot be changed once the PO is {self.instance.status.strip()}"
            })
        return data

    @transaction.atomic
    def create(self, validated_data):
        items_data = validated_data.pop('items')
        request = self.context.get('request')
        if request and request.user.is_authenticated:
            validated_data['created_by'] = request.user

        purchase_order = PurchaseOrder.objects.create(**validated_data)
        for item_data in items_data:
            PurchaseOrderItem.objects.create(purchase_order=purchase_order, **item_data)
        return purchase_order

    @transaction.atomic
    def update(self, instance, validated_data):
        items_data = validated_data.pop('items', None)
        instance = super().update(instance, validated_data)

        if items_data is not None:
            instance.items.all().delete()
            for item_data in items_data:
                PurchaseOrderItem.objects.create(purchase_order=instance, **item_data)
        return instance


class ReplacementPOSerializer(serializers.Serializer):
    expected_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class PaymentSerializer(serializers.ModelSerializer):
    vendor_name = serializers.CharField(source='vendor.name', read_only=True)
    po_number = serializers.CharField(source='purchase_order.po_number', read_only=True, default=None)

    class Meta:
        model = Payment
        fields = [
            'id', 'payment_number', 'vendor', 'vendor_name', 'purchase_order', 'po_number',
            'amount', 'payment_date', 'mode', 'reference_no', 'status', 'remarks',
            'created_at', 'updated_at', 'created_by'
        ]
        read_only_fields = ['id', 'payment_number', 'created_at', 'updated_at', 'created_by']

    def validate(self, data):
        vendor = data.get('vendor', getattr(self.instance, 'vendor', None))
        purchase_order = data.get('purchase_order', getattr(self.instance, 'purchase_order', None))
        amount = data.get('amount', getattr(self.instance, 'amount', None))

        if purchase_order and vendor and purchase_order.vendor_id != vendor.id:
            raise serializers.ValidationError({'purchase_order': 'Purchase order belongs to a different vendor'})

        if purchase_order and amount is not None and data.get('status') != 'CANCELLED':
            outstanding = PaymentService.outstanding(purchase_order, exclude_payment=self.instance)
            if amount > outstanding:
                raise serializers.ValidationError({
                    'amount': f'Payment exceeds outstanding amount {outstanding} on {purchase_order.po_number}'
                })
        return data

    def create(self, validated_data):
        request = self.context.get('request')
        if request and request.user.is_authenticated:
            validated_data['created_by'] = request.user
        return super().create(validated_data)
