# products/views/product.py

"""
PRODUCT VIEWSET

Purpose:
- Staff product master data (list / retrieve / create / update)
- Low stock alerts (quantity <= min_stock)

Key rules:
- Company-scoped: users only ever see their company's products.
- quantity is read-only here; it moves through stock services only.
"""

from django.db.models import F, Q
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import mixins, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from permissions.roles import (
    CAP_INVENTORY_ADJUST,
    CAP_INVENTORY_VIEW,
    BelongsToCompany,
    HasCapability,
)
from products.models import Product
from products.serializers import ProductSerializer


class ProductViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Product endpoints.

    - list/retrieve/low-stock: CAP_INVENTORY_VIEW
    - create/update: CAP_INVENTORY_ADJUST
    """

    serializer_class = ProductSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["is_active", "fodec_applicable"]

    required_capability = None

    def get_queryset(self):
        qs = Product.objects.filter(
            company_id=getattr(self.request.user, "company_id", None)
        )

        q = (self.request.query_params.get("q") or "").strip()
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(sku__icontains=q))

        return qs.order_by("name")

    def get_permissions(self):
        if self.action in ("create", "update", "partial_update"):
            self.required_capability = CAP_INVENTORY_ADJUST
        else:
            self.required_capability = CAP_INVENTORY_VIEW
        return [IsAuthenticated(), BelongsToCompany(), HasCapability()]

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context["company_id"] = getattr(self.request.user, "company_id", None)
        return context

    def perform_create(self, serializer):
        serializer.save(company_id=self.request.user.company_id)

    @extend_schema(
        parameters=[OpenApiParameter("q", str, description="Search by name or SKU")],
        responses={200: ProductSerializer(many=True)},
    )
    @action(detail=False, methods=["get"], url_path="low-stock")
    def low_stock(self, request):
        """
        Products at or below their minimum stock (active only).
        """
        qs = (
            self.get_queryset()
            .filter(is_active=True, quantity__lte=F("min_stock"))
            .order_by("quantity", "name")
        )
        serializer = self.get_serializer(qs, many=True)
        return Response(serializer.data)
