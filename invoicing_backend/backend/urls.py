# backend/urls.py
"""
PROJECT URLS

All API routes live under /api/:
- /api/auth/        JWT pair + current user profile
- /api/documents/   commercial documents, conversions, live totals
- /api/products/    products, low stock, stock movements
- /api/health/      DB connectivity probe (public)

The admin path comes from settings.ADMIN_PATH (env) so deployments can
move it away from /admin/.
"""

from __future__ import annotations

from django.conf import settings
from django.contrib import admin
from django.db import DatabaseError, connection
from django.urls import include, path
from django.views.generic import RedirectView
from drf_spectacular.utils import OpenApiResponse, extend_schema
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView


@extend_schema(responses={200: OpenApiResponse(description="Entry points of the API")})
@api_view(["GET"])
@permission_classes([AllowAny])
def api_root(request):
    return Response(
        {
            "message": "Invoicing Backend API is running",
            "auth": {
                "jwt_create": "/api/auth/jwt/create/",
                "jwt_refresh": "/api/auth/jwt/refresh/",
                "me": "/api/auth/me/",
            },
            "documents": {
                "list": "/api/documents/",
                "totals_preview": "/api/documents/totals/preview/",
            },
            "products": {
                "list": "/api/products/",
                "low_stock": "/api/products/low-stock/",
                "movements": "/api/products/movements/",
            },
            "docs": "/api/docs/",
        }
    )


@extend_schema(
    responses={
        200: OpenApiResponse(description="Database reachable"),
        503: OpenApiResponse(description="Database unreachable"),
    }
)
@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError as exc:
        return Response({"status": "degraded", "db": "down", "error": str(exc)}, status=503)

    return Response({"status": "ok", "db": "ok"})


ADMIN_PATH = getattr(settings, "ADMIN_PATH", "admin/")
if not ADMIN_PATH.endswith("/"):
    ADMIN_PATH = f"{ADMIN_PATH}/"


api_urlpatterns = [
    path("", api_root, name="api-root"),
    path("health/", health_check, name="health-check"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("auth/jwt/create/", TokenObtainPairView.as_view(), name="jwt-create"),
    path("auth/jwt/refresh/", TokenRefreshView.as_view(), name="jwt-refresh"),
    path("auth/", include("users.urls")),
    path("documents/", include("documents.api.urls")),
    path("products/", include("products.urls")),
]

urlpatterns = [
    path(ADMIN_PATH, admin.site.urls),
    path("", RedirectView.as_view(url="/api/docs/", permanent=False), name="root"),
    path("api/", include(api_urlpatterns)),
]
