# documents/models/sequence.py

from django.db import models

from companies.models import Company


class DocumentSequence(models.Model):
    """
    Running counter for document numbers.

    One row per (company, kind, year). The document service locks the row
    (select_for_update) before incrementing, so two concurrent documents
    never receive the same number.
    """

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="document_sequences",
    )
    kind = models.CharField(max_length=32)
    year = models.PositiveIntegerField()
    last_number = models.PositiveIntegerField(default=0)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "kind", "year"],
                name="uniq_sequence_per_company_kind_year",
            ),
        ]

    def __str__(self):
        return f"{self.kind}/{self.year}: {self.last_number}"
