from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'sales'

router = DefaultRouter()
router.register(r'quotation-requests', views.QuotationRequestViewSet, basename='quotation-request')
router.register(r'vendor-quotations', views.VendorQuotationViewSet, basename='vendor-quotation')
router.register(r'sales-orders', views.SalesOrderViewSet, basename='sales-order')

urlpatterns = [
    path('dashboard/stats/', views.dashboard_stats, name='dashboard_stats'),
    path('', include(router.urls)),
]

# Available API endpoints:
"""
Quotation Requests:
- GET/POST   /api/sales/quotation-requests/
- GET/PUT/PATCH/DELETE /api/sales/quotation-requests/{id}/
- POST       /api/sales/quotation-requests/send/            - One row per item, status SENT
- POST       /api/sales/quotation-requests/batch-approve/   - ids[] + optional approval_document (multipart or JSON)
- GET        /api/sales/quotation-requests/grouped/         - Grouped by client and send time

Vendor Quotations:
- GET/POST   /api/sales/vendor-quotations/
- GET/PUT/PATCH/DELETE /api/sales/vendor-quotations/{id}/
- POST       /api/sales/vendor-quotations/{id}/upload-response/

Sales Orders:
- GET/POST   /api/sales/sales-orders/
- GET/PUT/PATCH/DELETE /api/sales/sales-orders/{id}/
- POST       /api/sales/sales-orders/batch-status/          - {"ids": [...], "status": ..., "atomic": false}

Dashboard:
- GET        /api/sales/dashboard/stats/
"""
