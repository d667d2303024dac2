# products/urls.py

"""
PRODUCTS URLS

Provides (under /api/products/):
    GET        /                  product list (?q=&is_active=)
    POST       /                  product create
    GET/PATCH  /<uuid>/
    GET        /low-stock/
    GET/POST   /movements/        ledger + manual movements
    GET        /movements/<uuid>/

"movements" MUST be registered before the empty-prefix product routes,
otherwise "movements/" is matched as a product <pk>.
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from products.views import ProductViewSet, StockMovementViewSet

router = SimpleRouter()

router.register(r"movements", StockMovementViewSet, basename="stock-movements")
router.register(r"", ProductViewSet, basename="products")

urlpatterns = [
    path("", include(router.urls)),
]
