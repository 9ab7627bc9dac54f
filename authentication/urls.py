from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from . import views

app_name = 'authentication'

urlpatterns = [
    path('token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('health/', views.health_check, name='health_check'),
    path('me/', views.me, name='me'),
    path('change-password/', views.change_password, name='change_password'),
]

# Available API endpoints:
"""
- POST       /api/auth/token/               - {"username", "password"} -> {"access", "refresh"}
- POST       /api/auth/token/refresh/       - {"refresh"} -> {"access"}
- GET        /api/auth/health/
- GET        /api/auth/me/
- POST       /api/auth/change-password/
"""
