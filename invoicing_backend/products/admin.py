# products/admin.py
"""
=====================================================
PATH: products/admin.py
=====================================================

Admin rules (audit-safe stock):

- Product master data is editable; quantity is NOT.
  Stock changes go through products.services.stock_effects
  (documents or manual movements via the API).
- StockMovement rows are read-only: no add, no change, no delete.
"""

from __future__ import annotations

from django.contrib import admin

from products.models import Product, StockMovement


class StockMovementInline(admin.TabularInline):
    model = StockMovement
    extra = 0
    can_delete = False
    fields = ("created_at", "movement_type", "quantity", "signed_delta", "note", "document")
    readonly_fields = fields
    ordering = ("-created_at",)

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = (
        "sku",
        "name",
        "company",
        "quantity",
        "min_stock",
        "sale_price",
        "vat_rate",
        "is_active",
    )
    list_filter = ("company", "is_active", "fodec_applicable")
    search_fields = ("sku", "name")
    readonly_fields = ("quantity", "created_at", "updated_at")
    inlines = [StockMovementInline]


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("created_at", "product", "movement_type", "quantity", "note", "document")
    list_filter = ("movement_type", "company")
    search_fields = ("product__sku", "product__name", "note", "document__number")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
