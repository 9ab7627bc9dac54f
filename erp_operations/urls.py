from django.contrib import admin
from django.urls import path, include
from django.shortcuts import redirect

urlpatterns = [
    path('', lambda request: redirect('admin/')),
    path('admin/', admin.site.urls),
    path('api/auth/', include('authentication.urls')),
    path('api/third-party/', include('third_party.urls')),
    path('api/procurement/', include('procurement.urls')),
    path('api/inventory/', include('inventory.urls')),
    path('api/quality/', include('quality.urls')),
    path('api/sales/', include('sales.urls')),
]
