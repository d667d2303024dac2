# products/views/stock_movement.py

"""
STOCK MOVEMENT VIEWSET

- list/retrieve: the append-only ledger (CAP_INVENTORY_VIEW)
- create: manual entry / exit / adjust (CAP_INVENTORY_ADJUST),
  routed through products.services.stock_effects
- no update / delete endpoints: movements are immutable
"""

from django.core.exceptions import PermissionDenied
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from companies.context import TenantContext
from permissions.roles import (
    CAP_INVENTORY_ADJUST,
    CAP_INVENTORY_VIEW,
    BelongsToCompany,
    HasCapability,
)
from products.models import Product, StockMovement
from products.serializers import ManualMovementSerializer, StockMovementSerializer
from products.services.stock_effects import (
    StockError,
    StockInsufficientError,
    record_manual_movement,
)


def error_response(*, code: str, message: str, http_status: int):
    """
    Canonical API error response.
    """
    return Response(
        {"error": {"code": code, "message": message}},
        status=http_status,
    )


class StockMovementViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = StockMovementSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["product", "movement_type", "document"]

    required_capability = None

    def get_queryset(self):
        return (
            StockMovement.objects.filter(
                company_id=getattr(self.request.user, "company_id", None)
            )
            .select_related("product", "document", "performed_by")
            .order_by("-created_at")
        )

    def get_permissions(self):
        if self.action == "create":
            self.required_capability = CAP_INVENTORY_ADJUST
        else:
            self.required_capability = CAP_INVENTORY_VIEW
        return [IsAuthenticated(), BelongsToCompany(), HasCapability()]

    def get_serializer_class(self):
        if self.action == "create":
            return ManualMovementSerializer
        return StockMovementSerializer

    @extend_schema(request=ManualMovementSerializer, responses={201: StockMovementSerializer})
    def create(self, request, *args, **kwargs):
        serializer = ManualMovementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        ctx = TenantContext.from_request(request)
        product = Product.objects.filter(company_id=ctx.company_id, pk=data["product"]).first()
        if product is None:
            return error_response(
                code="PRODUCT_NOT_FOUND",
                message="Product not found.",
                http_status=status.HTTP_404_NOT_FOUND,
            )

        try:
            result = record_manual_movement(
                ctx=ctx,
                product=product,
                movement_type=data["movement_type"],
                quantity=data["quantity"],
                note=data.get("note", ""),
            )
        except StockInsufficientError as exc:
            return error_response(
                code="STOCK_INSUFFICIENT",
                message=str(exc),
                http_status=status.HTTP_409_CONFLICT,
            )
        except StockError as exc:
            return error_response(
                code="STOCK_ERROR",
                message=str(exc),
                http_status=status.HTTP_400_BAD_REQUEST,
            )
        except PermissionDenied as exc:
            return error_response(
                code="PERMISSION_DENIED",
                message=str(exc),
                http_status=status.HTTP_403_FORBIDDEN,
            )

        payload = StockMovementSerializer(result.movements[0]).data
        return Response(
            {**payload, "low_stock": [p.sku for p in result.low_stock]},
            status=status.HTTP_201_CREATED,
        )
