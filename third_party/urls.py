"""
URL patterns for third_party app
"""

from django.urls import path
from . import views

app_name = 'third_party'

urlpatterns = [
    # Vendor URLs
    path('vendors/', views.VendorListCreateView.as_view(), name='vendor-list-create'),
    path('vendors/<int:pk>/', views.VendorDetailView.as_view(), name='vendor-detail'),

    # Client URLs
    path('clients/', views.ClientListCreateView.as_view(), name='client-list-create'),
    path('clients/<int:pk>/', views.ClientDetailView.as_view(), name='client-detail'),
]
