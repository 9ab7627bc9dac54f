from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'inventory'

# Create router and register viewsets
router = DefaultRouter()
router.register(r'warehouses', views.WarehouseViewSet, basename='warehouse')
router.register(r'grns', views.GRNViewSet, basename='grn')
router.register(r'grn-items', views.GRNItemViewSet, basename='grn-item')
router.register(r'warehouse-allocations', views.WarehouseAllocationViewSet, basename='warehouse-allocation')
router.register(r'stock-entries', views.StockEntryViewSet, basename='stock-entry')
router.register(r'stock-ledger', views.StockLedgerViewSet, basename='stock-ledger')
router.register(r'stock-balances', views.StockBalanceViewSet, basename='stock-balance')

urlpatterns = [
    # Health check
    path('health/', views.health_check, name='health_check'),

    # Include router URLs
    path('', include(router.urls)),
]

# Available API endpoints:
"""
Warehouses:
- GET/POST   /api/inventory/warehouses/
- GET/PUT/PATCH/DELETE /api/inventory/warehouses/{id}/

GRNs:
- GET/POST   /api/inventory/grns/                          - List / create GRN with items
- GET/PATCH/DELETE /api/inventory/grns/{id}/                - PATCH items[] updates received quantities
- GET        /api/inventory/grns/{id}/summary/             - Quantity totals
- GET        /api/inventory/grns/stats/                    - Counts by status

GRN Items:
- GET        /api/inventory/grn-items/
- POST       /api/inventory/grn-items/create-with-items/   - GRN header + lines in one call
- POST       /api/inventory/grn-items/{id}/approve-excess/
- POST       /api/inventory/grn-items/{id}/reject-excess/

Warehouse Allocation:
- GET        /api/inventory/warehouse-allocations/          - Allocation history
- POST       /api/inventory/warehouse-allocations/allocate/
- GET        /api/inventory/warehouse-allocations/pending/

Stock Entries:
- GET/POST   /api/inventory/stock-entries/
- GET/PATCH/DELETE /api/inventory/stock-entries/{id}/       - Drafts only for PATCH/DELETE
- POST       /api/inventory/stock-entries/{id}/submit/
- POST       /api/inventory/stock-entries/{id}/cancel/

Stock Ledger / Balances (read only):
- GET        /api/inventory/stock-ledger/
- GET        /api/inventory/stock-balances/

Health:
- GET        /api/inventory/health/
"""
