from decimal import Decimal

from django.db import transaction
from rest_framework import serializers

from procurement.models import PurchaseOrder, PurchaseOrderItem
from utils.enums import StockEntryStatusChoices
from .models import (
    Warehouse, StockLedgerEntry, StockBalance, StockEntry, StockEntryItem,
    GRN, GRNItem, WarehouseAllocation
)
from .transaction_manager import StockTransactionManager


class WarehouseSerializer(serializers.ModelSerializer):
    warehouse_type_display = serializers.CharField(source='get_warehouse_type_display', read_only=True)

    class Meta:
        model = Warehouse
        fields = [
            'id', 'code', 'name', 'warehouse_type', 'warehouse_type_display',
            'location', 'capacity', 'status', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_code(self, value):
        return value.strip().upper()


# ============================================================================
# GRN
# ============================================================================

class GRNItemSerializer(serializers.ModelSerializer):
    pending_allocation_qty = serializers.DecimalField(max_digits=12, decimal_places=3, read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = GRNItem
        fields = [
            'id', 'grn', 'po_item', 'item_code', 'material_name', 'material_type', 'unit',
            'ordered_qty', 'received_qty', 'accepted_qty', 'rejected_qty',
            'shortage_qty', 'overage_qty', 'status', 'status_display',
            'allocated_qty', 'allocation_status', 'pending_allocation_qty',
            'version', 'remarks'
        ]
        read_only_fields = fields


class GRNSerializer(serializers.ModelSerializer):
    items = GRNItemSerializer(many=True, read_only=True)
    po_number = serializers.CharField(source='purchase_order.po_number', read_only=True)
    vendor_name = serializers.CharField(source='purchase_order.vendor.name', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    received_by_name = serializers.CharField(source='received_by.get_full_name', read_only=True, default=None)

    class Meta:
        model = GRN
        fields = [
            'id', 'grn_number', 'purchase_order', 'po_number', 'vendor_name',
            'grn_date', 'status', 'status_display', 'notes',
            'received_by', 'received_by_name', 'items', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'grn_number', 'status', 'received_by', 'created_at', 'updated_at']


class GRNListSerializer(serializers.ModelSerializer):
    po_number = serializers.CharField(source='purchase_order.po_number', read_only=True)
    vendor_name = serializers.CharField(source='purchase_order.vendor.name', read_only=True)
    items_count = serializers.IntegerField(source='items.count', read_only=True)

    class Meta:
        model = GRN
        fields = ['id', 'grn_number', 'purchase_order', 'po_number', 'vendor_name', 'grn_date', 'status', 'items_count', 'created_at']


class GRNItemInputSerializer(serializers.Serializer):
    po_item = serializers.PrimaryKeyRelatedField(queryset=PurchaseOrderItem.objects.all(), required=False, allow_null=True)
    item_code = serializers.CharField(max_length=50, required=False, allow_blank=True)
    material_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    material_type = serializers.CharField(max_length=50, required=False, allow_blank=True)
    unit = serializers.CharField(max_length=20, required=False, allow_blank=True)
    ordered_qty = serializers.DecimalField(max_digits=12, decimal_places=3, required=False, min_value=Decimal('0'))
    received_qty = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal('0'))
    remarks = serializers.CharField(required=False, allow_blank=True)


class GRNCreateSerializer(serializers.Serializer):
    """GRN header and lines in one payload"""
    purchase_order = serializers.PrimaryKeyRelatedField(queryset=PurchaseOrder.objects.all())
    grn_date = serializers.DateField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    items = GRNItemInputSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('At least one item is required')
        return value


class GRNReceivedLineSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    received_qty = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal('0'))


class GRNUpdateSerializer(serializers.Serializer):
    """PATCH payload: header fields and/or received quantities"""
    grn_date = serializers.DateField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    items = GRNReceivedLineSerializer(many=True, required=False)


class ExcessDecisionSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default='')


# ============================================================================
# ALLOCATION
# ============================================================================

class WarehouseAllocationSerializer(serializers.ModelSerializer):
    from_warehouse_code = serializers.CharField(source='from_warehouse.code', read_only=True)
    to_warehouse_code = serializers.CharField(source='to_warehouse.code', read_only=True)
    item_code = serializers.CharField(source='grn_item.item_code', read_only=True)
    grn_number = serializers.CharField(source='grn_item.grn.grn_number', read_only=True)

    class Meta:
        model = WarehouseAllocation
        fields = [
            'id', 'grn_item', 'grn_number', 'item_code', 'from_warehouse', 'from_warehouse_code',
            'to_warehouse', 'to_warehouse_code', 'quantity', 'remarks', 'allocated_by', 'allocated_at'
        ]
        read_only_fields = fields


class AllocateSerializer(serializers.Serializer):
    grn_item_id = serializers.IntegerField()
    target_warehouse = serializers.CharField(max_length=20, allow_blank=True)
    allocate_qty = serializers.DecimalField(max_digits=12, decimal_places=3)
    remarks = serializers.CharField(required=False, allow_blank=True, default='')


class PendingAllocationSerializer(serializers.ModelSerializer):
    grn_number = serializers.CharField(source='grn.grn_number', read_only=True)
    po_number = serializers.CharField(source='grn.purchase_order.po_number', read_only=True)
    vendor_name = serializers.CharField(source='grn.purchase_order.vendor.name', read_only=True)
    pending_allocation_qty = serializers.DecimalField(max_digits=12, decimal_places=3, read_only=True)

    class Meta:
        model = GRNItem
        fields = [
            'id', 'grn', 'grn_number', 'po_number', 'vendor_name', 'item_code', 'material_name',
            'accepted_qty', 'allocated_qty', 'pending_allocation_qty', 'allocation_status', 'version'
        ]


# ============================================================================
# STOCK
# ============================================================================

class StockEntryItemSerializer(serializers.ModelSerializer):

    class Meta:
        model = StockEntryItem
        fields = [
            'id', 'item_code', 'material_name', 'material_type', 'quantity',
            'uom', 'batch_no', 'valuation_rate', 'amount'
        ]
        read_only_fields = ['id', 'amount']


class StockEntrySerializer(serializers.ModelSerializer):
    items = StockEntryItemSerializer(many=True)
    from_warehouse_code = serializers.CharField(source='from_warehouse.code', read_only=True, default=None)
    to_warehouse_code = serializers.CharField(source='to_warehouse.code', read_only=True, default=None)
    submit = serializers.BooleanField(write_only=True, required=False, default=False)

    class Meta:
        model = StockEntry
        fields = [
            'id', 'entry_no', 'entry_type', 'purpose', 'entry_date',
            'from_warehouse', 'from_warehouse_code', 'to_warehouse', 'to_warehouse_code',
            'grn', 'remarks', 'status', 'items', 'submit',
            'created_by', 'created_at', 'updated_at', 'submitted_at'
        ]
        read_only_fields = ['id', 'entry_no', 'status', 'created_by', 'created_at', 'updated_at', 'submitted_at']

    def validate(self, data):
        if self.instance and self.instance.status != StockEntryStatusChoices.DRAFT:
            raise serializers.ValidationError(f'{self.instance.entry_no} is {self.instance.status} and cannot be edited')
        return data

    def create(self, validated_data):
        items_data = validated_data.pop('items')
        submit = validated_data.pop('submit', False)
        request = self.context.get('request')
        user = request.user if request and request.user.is_authenticated else None
        return StockTransactionManager.create_entry(validated_data, items_data, user=user, submit=submit)

    @transaction.atomic
    def update(self, instance, validated_data):
        items_data = validated_data.pop('items', None)
        validated_data.pop('submit', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)

        StockTransactionManager.validate_entry(
            instance,
            items_data if items_data is not None else list(instance.items.all())
        )
        instance.save()

        if items_data is not None:
            instance.items.all().delete()
            for item_data in items_data:
                StockEntryItem.objects.create(stock_entry=instance, **item_data)
        return instance


class StockLedgerEntrySerializer(serializers.ModelSerializer):
    warehouse_code = serializers.CharField(source='warehouse.code', read_only=True)

    class Meta:
        model = StockLedgerEntry
        fields = [
            'id', 'item_code', 'warehouse', 'warehouse_code', 'transaction_type', 'quantity',
            'reference_doc_type', 'reference_doc_id', 'reference_doc_number',
            'balance_after', 'remarks', 'created_by', 'transaction_date'
        ]
        read_only_fields = fields


class StockBalanceSerializer(serializers.ModelSerializer):
    warehouse_code = serializers.CharField(source='warehouse.code', read_only=True)
    warehouse_type = serializers.CharField(source='warehouse.warehouse_type', read_only=True)

    class Meta:
        model = StockBalance
        fields = [
            'id', 'item_code', 'warehouse', 'warehouse_code', 'warehouse_type',
            'material_name', 'material_type', 'current_balance', 'last_updated'
        ]
        read_only_fields = fields
