# companies/models/party.py

"""
Document parties: clients (sales side) and suppliers (purchase side).

Both are plain company-scoped master data. The document service only
checks presence and ownership; CRUD screens own everything else.
"""

import uuid

from django.db import models

from .company import Company


class Party(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, default="")
    address = models.TextField(blank=True, default="")
    city = models.CharField(max_length=100, blank=True, default="")
    postal_code = models.CharField(max_length=20, blank=True, default="")
    vat_number = models.CharField(max_length=64, blank=True, default="")

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True
        ordering = ["name"]

    def __str__(self):
        return self.name


class Client(Party):
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="clients")

    class Meta(Party.Meta):
        indexes = [models.Index(fields=["company", "name"], name="client_company_name_idx")]


class Supplier(Party):
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="suppliers")

    class Meta(Party.Meta):
        indexes = [models.Index(fields=["company", "name"], name="supplier_company_name_idx")]
