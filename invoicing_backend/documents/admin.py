# documents/admin.py

"""
DOCUMENTS ADMIN

Read-mostly: documents are created, converted and transitioned through
documents.services only (totals, numbering and stock live there).
"""

from django.contrib import admin

from documents.models import Document, DocumentSequence, LineItem


class LineItemInline(admin.TabularInline):
    model = LineItem
    extra = 0
    can_delete = False
    fields = (
        "position",
        "product",
        "reference",
        "description",
        "quantity",
        "unit_price",
        "vat_rate",
        "fodec_applicable",
        "total",
        "vat_amount",
    )
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ("number", "kind", "status", "company", "client", "supplier", "total", "issue_date")
    list_filter = ("kind", "status", "company")
    search_fields = ("number", "client__name", "supplier__name")
    inlines = [LineItemInline]

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(DocumentSequence)
class DocumentSequenceAdmin(admin.ModelAdmin):
    list_display = ("company", "kind", "year", "last_number", "updated_at")
    list_filter = ("company", "kind", "year")
    readonly_fields = ("last_number", "updated_at")
