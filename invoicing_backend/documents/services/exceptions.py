# documents/services/exceptions.py

"""
DOCUMENT DOMAIN ERRORS

Raised by documents.services; translated to HTTP payloads in
documents.api.views. Nothing is persisted when one of these is raised
(every service entry point runs inside transaction.atomic).
"""


class DocumentValidationError(Exception):
    """Base error: the requested document operation is not valid."""

    code = "DOCUMENT_INVALID"


class InvalidConversionError(DocumentValidationError):
    """The target kind is not in the source kind's conversion allow-list."""

    code = "INVALID_CONVERSION"


class DuplicateConversionError(DocumentValidationError):
    """The source was already converted along this edge."""

    code = "DUPLICATE_CONVERSION"


class InvalidStatusTransitionError(DocumentValidationError):
    code = "INVALID_STATUS_TRANSITION"


class CreditNoteReferenceError(DocumentValidationError):
    """Missing / wrong / over-credited source invoice on a credit note."""

    code = "CREDIT_NOTE_REFERENCE"


class DocumentFrozenError(DocumentValidationError):
    """The document can no longer be edited (converted, stock applied, terminal)."""

    code = "DOCUMENT_FROZEN"
