# companies/apps.py

"""
COMPANIES APP CONFIG

Tenant master data:
- Company (numbering settings, default currency / VAT)
- Clients and suppliers (document parties)
"""

from django.apps import AppConfig


class CompaniesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "companies"
    verbose_name = "Companies"
