# documents/api/views.py

"""
DOCUMENT API

Thin HTTP layer over documents.services.document_service:
- builds the TenantContext from the authenticated user
- validates request shape with command serializers
- maps domain errors to canonical {"error": {...}} payloads
"""

from __future__ import annotations

from django.core.exceptions import PermissionDenied
from django.core.exceptions import ValidationError as DjangoValidationError
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from companies.context import TenantContext
from documents.api.serializers import (
    DocumentConvertSerializer,
    DocumentCreateSerializer,
    DocumentSerializer,
    DocumentTransitionSerializer,
    DocumentUpdateSerializer,
    TotalsPreviewSerializer,
    low_stock_payload,
    totals_payload,
)
from documents.models import Document
from documents.services.document_service import (
    convert_document,
    create_document,
    preview_totals,
    transition_document,
    update_document,
)
from documents.services.exceptions import (
    DocumentFrozenError,
    DocumentValidationError,
    DuplicateConversionError,
)
from documents.services.formatting import amount_in_words, format_amount
from permissions.roles import (
    CAP_DOCUMENTS_CONVERT,
    CAP_DOCUMENTS_VIEW,
    CAP_PURCHASES_EDIT,
    CAP_SALES_EDIT,
    BelongsToCompany,
    HasAnyCapability,
    HasCapability,
)
from products.services.stock_effects import StockError, StockInsufficientError


# ======================================================
# API ERROR NORMALIZATION
# ======================================================

def error_response(*, code: str, message: str, http_status: int, **extra):
    """
    Canonical API error response.
    """
    payload = {"code": code, "message": message}
    payload.update(extra)
    return Response({"error": payload}, status=http_status)


DOMAIN_ERRORS = (
    DocumentValidationError,
    StockError,
    DjangoValidationError,
    PermissionDenied,
    Document.DoesNotExist,
)


def domain_error_response(exc):
    if isinstance(exc, Document.DoesNotExist):
        return error_response(
            code="DOCUMENT_NOT_FOUND",
            message="Document not found.",
            http_status=status.HTTP_404_NOT_FOUND,
        )

    if isinstance(exc, PermissionDenied):
        return error_response(
            code="PERMISSION_DENIED",
            message=str(exc) or "Not allowed.",
            http_status=status.HTTP_403_FORBIDDEN,
        )

    if isinstance(exc, StockInsufficientError):
        return error_response(
            code="STOCK_INSUFFICIENT",
            message=str(exc),
            http_status=status.HTTP_409_CONFLICT,
            shortages=[
                {
                    "product": str(s.product_id),
                    "sku": s.sku,
                    "name": s.name,
                    "available": str(s.available),
                    "requested": str(s.requested),
                }
                for s in exc.shortages
            ],
        )

    if isinstance(exc, StockError):
        return error_response(
            code="STOCK_ERROR",
            message=str(exc),
            http_status=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, (DuplicateConversionError, DocumentFrozenError)):
        return error_response(
            code=exc.code,
            message=str(exc),
            http_status=status.HTTP_409_CONFLICT,
        )

    if isinstance(exc, DocumentValidationError):
        return error_response(
            code=exc.code,
            message=str(exc),
            http_status=status.HTTP_400_BAD_REQUEST,
        )

    # django.core.exceptions.ValidationError from model full_clean()
    messages = getattr(exc, "messages", None) or [str(exc)]
    return error_response(
        code="VALIDATION_ERROR",
        message="; ".join(messages),
        http_status=status.HTTP_400_BAD_REQUEST,
    )


EDIT_CAPABILITIES = {CAP_SALES_EDIT, CAP_PURCHASES_EDIT}


# ======================================================
# DOCUMENT VIEWSET
# ======================================================

class DocumentViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Commercial documents of the caller's company.

    - list/retrieve/amount-in-words: CAP_DOCUMENTS_VIEW
    - create/partial_update/transition: sales or purchases edit capability
      (the service checks the precise one for the document kind)
    - convert: CAP_DOCUMENTS_CONVERT
    """

    serializer_class = DocumentSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["kind", "status", "client", "supplier", "currency"]
    http_method_names = ["get", "post", "patch", "head", "options"]

    required_capability = None
    required_any_capabilities = None

    def get_queryset(self):
        return (
            Document.objects.filter(company_id=getattr(self.request.user, "company_id", None))
            .select_related("client", "supplier", "source_document", "origin")
            .prefetch_related("items", "items__product")
        )

    def get_permissions(self):
        if self.action in ("create", "partial_update", "transition"):
            self.required_any_capabilities = EDIT_CAPABILITIES
            return [IsAuthenticated(), BelongsToCompany(), HasAnyCapability()]

        if self.action == "convert":
            self.required_capability = CAP_DOCUMENTS_CONVERT
        else:
            self.required_capability = CAP_DOCUMENTS_VIEW
        return [IsAuthenticated(), BelongsToCompany(), HasCapability()]

    def get_serializer_class(self):
        if self.action == "create":
            return DocumentCreateSerializer
        if self.action == "partial_update":
            return DocumentUpdateSerializer
        if self.action == "convert":
            return DocumentConvertSerializer
        if self.action == "transition":
            return DocumentTransitionSerializer
        return DocumentSerializer

    def _result_response(self, result, http_status=status.HTTP_200_OK):
        document = self.get_queryset().get(pk=result.document.pk)
        data = dict(DocumentSerializer(document).data)
        data["low_stock"] = low_stock_payload(result.low_stock)
        return Response(data, status=http_status)

    # --------------------------------------------------
    # CREATE / UPDATE
    # --------------------------------------------------

    @extend_schema(request=DocumentCreateSerializer, responses={201: DocumentSerializer})
    def create(self, request, *args, **kwargs):
        serializer = DocumentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = create_document(
                ctx=TenantContext.from_request(request),
                data=serializer.validated_data,
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        return self._result_response(result, status.HTTP_201_CREATED)

    @extend_schema(request=DocumentUpdateSerializer, responses={200: DocumentSerializer})
    def partial_update(self, request, *args, **kwargs):
        serializer = DocumentUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = update_document(
                ctx=TenantContext.from_request(request),
                document_id=kwargs["pk"],
                patch=serializer.validated_data,
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        return self._result_response(result)

    # --------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------

    @extend_schema(request=DocumentConvertSerializer, responses={201: DocumentSerializer})
    @action(detail=True, methods=["post"], url_path="convert")
    def convert(self, request, pk=None):
        serializer = DocumentConvertSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = convert_document(
                ctx=TenantContext.from_request(request),
                document_id=pk,
                target_kind=serializer.validated_data["target_kind"],
                status=serializer.validated_data.get("status"),
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        return self._result_response(result, status.HTTP_201_CREATED)

    @extend_schema(request=DocumentTransitionSerializer, responses={200: DocumentSerializer})
    @action(detail=True, methods=["post"], url_path="transition")
    def transition(self, request, pk=None):
        serializer = DocumentTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = transition_document(
                ctx=TenantContext.from_request(request),
                document_id=pk,
                target_status=serializer.validated_data["status"],
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)

        return self._result_response(result)

    # --------------------------------------------------
    # PDF HELPERS
    # --------------------------------------------------

    @extend_schema(
        responses={
            200: OpenApiResponse(description="Legal text and display string of the total"),
        }
    )
    @action(detail=True, methods=["get"], url_path="amount-in-words")
    def amount_in_words(self, request, pk=None):
        document = self.get_object()
        return Response(
            {
                "number": document.number,
                "currency": document.currency,
                "total": str(document.total),
                "formatted_total": format_amount(document.total, document.currency),
                "amount_in_words": amount_in_words(document.total, document.currency),
            }
        )


# ======================================================
# LIVE TOTALS
# ======================================================

class TotalsPreviewView(APIView):
    """
    POST /api/documents/totals/preview/

    Pure computation for live UI display; nothing is persisted.
    """

    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_DOCUMENTS_VIEW

    @extend_schema(request=TotalsPreviewSerializer, responses={200: OpenApiResponse()})
    def post(self, request):
        serializer = TotalsPreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        totals = preview_totals(
            items=serializer.validated_data.get("items") or [],
            stamp_included=serializer.validated_data.get("stamp_included", False),
            discount=serializer.validated_data.get("discount"),
        )
        return Response(totals_payload(totals))
