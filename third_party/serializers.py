"""
Serializers for third_party app models
"""

from rest_framework import serializers
from .models import Vendor, Client


class VendorSerializer(serializers.ModelSerializer):
    """Serializer for Vendor model"""

    class Meta:
        model = Vendor
        fields = [
            'id', 'name', 'vendor_code', 'gst_no', 'address',
            'contact_person', 'email', 'phone',
            'is_active', 'created_at', 'updated_at', 'created_by'
        ]
        read_only_fields = ['id', 'vendor_code', 'created_at', 'updated_at', 'created_by']

    def validate_gst_no(self, value):
        """Custom validation for GST number"""
        if value and len(value) != 15:
            raise serializers.ValidationError("GST number must be exactly 15 characters long.")
        return value.upper() if value else value

    def create(self, validated_data):
        request = self.context.get('request')
        if request and request.user.is_authenticated:
            validated_data['created_by'] = request.user
        return super().create(validated_data)


class ClientSerializer(serializers.ModelSerializer):
    """Serializer for Client model"""
    display_name = serializers.SerializerMethodField()

    class Meta:
        model = Client
        fields = [
            'id', 'company_name', 'company_code', 'display_name', 'gst_no', 'address',
            'contact_person', 'email', 'phone',
            'is_active', 'created_at', 'updated_at', 'created_by'
        ]
        read_only_fields = ['id', 'company_code', 'display_name', 'created_at', 'updated_at', 'created_by']

    def get_display_name(self, obj):
        """Return formatted display name for dropdown"""
        return f"{obj.company_code} - {obj.company_name}"

    def validate_gst_no(self, value):
        if value and len(value) != 15:
            raise serializers.ValidationError("GST number must be exactly 15 characters long.")
        return value.upper() if value else value

    def validate_company_name(self, value):
        return value.strip()

    def create(self, validated_data):
        request = self.context.get('request')
        if request and request.user.is_authenticated:
            validated_data['created_by'] = request.user
        return super().create(validated_data)
