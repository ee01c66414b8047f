"""PDF form processing package.

Reads AcroForm field data (inspect) and writes field values, optionally
flattening the form (fill). XFA forms are not supported.
"""
from .schema import FieldKind, FieldDescriptor, FillRequest, FillResult
from .document import (
    open_document,
    PDFFormError,
    SourceValidationError,
    SourceFetchError,
    DocumentOpenError,
    PDFFormFillError,
)
from .extract import inspect_fields, describe_fields
from .fill import fill_fields

__all__ = [
    "FieldKind",
    "FieldDescriptor",
    "FillRequest",
    "FillResult",
    "open_document",
    "PDFFormError",
    "SourceValidationError",
    "SourceFetchError",
    "DocumentOpenError",
    "PDFFormFillError",
    "inspect_fields",
    "describe_fields",
    "fill_fields",
]
