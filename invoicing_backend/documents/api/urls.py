# documents/api/urls.py

"""
DOCUMENTS API URLS

Provides:
    POST  /api/documents/totals/preview/
    GET   /api/documents/                      (?kind=&status=&client=&supplier=)
    POST  /api/documents/
    GET   /api/documents/<uuid>/
    PATCH /api/documents/<uuid>/
    POST  /api/documents/<uuid>/convert/
    POST  /api/documents/<uuid>/transition/
    GET   /api/documents/<uuid>/amount-in-words/

Explicit non-PK routes MUST be registered BEFORE router URLs.
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from documents.api.views import DocumentViewSet, TotalsPreviewView

router = SimpleRouter()
router.register(r"", DocumentViewSet, basename="documents")

urlpatterns = [
    path("totals/preview/", TotalsPreviewView.as_view(), name="documents-totals-preview"),
    path("", include(router.urls)),
]
