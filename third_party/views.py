"""
API Views for third_party app models
"""

from rest_framework import generics, filters
from rest_framework.permissions import IsAuthenticated
from django_filters.rest_framework import DjangoFilterBackend

from .models import Vendor, Client
from .serializers import VendorSerializer, ClientSerializer


# Vendor Views
class VendorListCreateView(generics.ListCreateAPIView):
    """List all vendors or create a new vendor"""
    queryset = Vendor.objects.all()
    serializer_class = VendorSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['is_active']
    search_fields = ['name', 'vendor_code', 'gst_no', 'contact_person', 'email']
    ordering_fields = ['name', 'vendor_code', 'created_at']
    ordering = ['name']


class VendorDetailView(generics.RetrieveUpdateDestroyAPIView):
    """Retrieve, update or delete a vendor"""
    queryset = Vendor.objects.all()
    serializer_class = VendorSerializer
    permission_classes = [IsAuthenticated]


# Client Views
class ClientListCreateView(generics.ListCreateAPIView):
    """List all clients or create a new client"""
    queryset = Client.objects.all()
    serializer_class = ClientSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['is_active']
    search_fields = ['company_name', 'company_code', 'gst_no', 'contact_person', 'email']
    ordering_fields = ['company_name', 'company_code', 'created_at']
    ordering = ['company_name']


class ClientDetailView(generics.RetrieveUpdateDestroyAPIView):
    """Retrieve, update or delete a client"""
    queryset = Client.objects.all()
    serializer_class = ClientSerializer
    permission_classes = [IsAuthenticated]
