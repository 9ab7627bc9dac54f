from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'quality'

router = DefaultRouter()
router.register(r'qc-inspections', views.QCInspectionViewSet, basename='qc-inspection')

urlpatterns = [
    path('', include(router.urls)),
]

# Available API endpoints:
"""
QC Inspections:
- GET/POST   /api/quality/qc-inspections/
- GET/PATCH/DELETE /api/quality/qc-inspections/{id}/         - PATCH items[] replaces the inspection lines
- POST       /api/quality/qc-inspections/{id}/start/
- POST       /api/quality/qc-inspections/{id}/resolve/       - {"decision": ACCEPT | ACCEPT_SHORTAGE | ACCEPT_OVERAGE | FAIL}
- GET        /api/quality/qc-inspections/stats/
"""
