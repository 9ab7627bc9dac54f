from django.urls import path, include
from rest_framework.routers import DefaultRouter

from . import views

app_name = 'procurement'

router = DefaultRouter()
router.register(r'purchase-orders', views.PurchaseOrderViewSet, basename='purchase-order')
router.register(r'payments', views.PaymentViewSet, basename='payment')

urlpatterns = [
    path('', include(router.urls)),
]

"""
Available endpoints:

Purchase Orders:
- GET/POST /api/procurement/purchase-orders/
- GET/PUT/PATCH/DELETE /api/procurement/purchase-orders/{id}/
- GET /api/procurement/purchase-orders/{id}/balance/
- GET /api/procurement/purchase-orders/{id}/reconciliation/
- POST /api/procurement/purchase-orders/{id}/replacement/

Payments:
- GET/POST /api/procurement/payments/
- GET/PATCH /api/procurement/payments/{id}/
- GET /api/procurement/payments/outstanding/?purchase_order={id}
"""
