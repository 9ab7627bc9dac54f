from decimal import Decimal

from rest_framework import serializers

from inventory.models import GRN, GRNItem
from .models import QCInspection, QCInspectionItem, QC_WORKFLOW
from .services import RESOLUTIONS


class QCInspectionItemSerializer(serializers.ModelSerializer):
    line_status_display = serializers.CharField(source='get_line_status_display', read_only=True)

    class Meta:
        model = QCInspectionItem
        fields = [
            'id', 'grn_item', 'item_code', 'ordered_qty', 'received_qty', 'accepted_qty',
            'rejected_qty', 'line_status', 'line_status_display', 'shortage_qty', 'overage_qty', 'remarks'
        ]
        read_only_fields = fields


class QCInspectionSerializer(serializers.ModelSerializer):
    items = QCInspectionItemSerializer(many=True, read_only=True)
    grn_number = serializers.CharField(source='grn.grn_number', read_only=True)
    po_number = serializers.CharField(source='grn.purchase_order.po_number', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    allowed_events = serializers.SerializerMethodField()
    is_closed = serializers.SerializerMethodField()

    class Meta:
        model = QCInspection
        fields = [
            'id', 'grn', 'grn_number', 'po_number', 'inspection_date', 'status', 'status_display',
            'allowed_events', 'is_closed', 'defects', 'remarks', 'inspected_by', 'items', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_allowed_events(self, obj):
        return QC_WORKFLOW.allowed_events(obj.status)

    def get_is_closed(self, obj):
        return QC_WORKFLOW.is_terminal(obj.status)


class QCItemInputSerializer(serializers.Serializer):
    grn_item = serializers.PrimaryKeyRelatedField(queryset=GRNItem.objects.all())
    accepted_qty = serializers.DecimalField(
        max_digits=12, decimal_places=3, min_value=Decimal('0'), required=False, allow_null=True
    )
    rejected_qty = serializers.DecimalField(
        max_digits=12, decimal_places=3, min_value=Decimal('0'), required=False, allow_null=True
    )
    remarks = serializers.CharField(required=False, allow_blank=True)


class QCInspectionCreateSerializer(serializers.Serializer):
    grn = serializers.PrimaryKeyRelatedField(queryset=GRN.objects.all())
    inspection_date = serializers.DateField(required=False)
    defects = serializers.CharField(required=False, allow_blank=True, default='')
    remarks = serializers.CharField(required=False, allow_blank=True, default='')
    items = QCItemInputSerializer(many=True, required=False)


class QCInspectionUpdateSerializer(serializers.Serializer):
    """PATCH payload; `items` replaces the whole line array"""
    inspection_date = serializers.DateField(required=False)
    defects = serializers.CharField(required=False, allow_blank=True)
    remarks = serializers.CharField(required=False, allow_blank=True)
    items = QCItemInputSerializer(many=True, required=False)


class QCResolveSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=RESOLUTIONS)
    remarks = serializers.CharField(required=False, allow_blank=True, default='')
