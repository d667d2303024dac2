# companies/admin.py

from django.contrib import admin

from companies.models import Client, Company, Supplier


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("name", "tax_id", "default_currency", "is_active", "created_at")
    list_filter = ("is_active", "default_currency")
    search_fields = ("name", "tax_id")


class _PartyAdmin(admin.ModelAdmin):
    list_display = ("name", "company", "email", "phone", "is_active")
    list_filter = ("company", "is_active")
    search_fields = ("name", "email", "vat_number")


admin.site.register(Client, _PartyAdmin)
admin.site.register(Supplier, _PartyAdmin)
