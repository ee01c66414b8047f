from __future__ import annotations
from typing import List, Optional

from pypdf import PdfReader

from .document import open_document
from .fields import (
    PageIndex,
    collect_fields,
    get_fill_options,
    get_page_number,
    get_position,
    is_read_only,
    is_required,
    value_as_string,
)
from .schema import FieldDescriptor


def describe_fields(reader: PdfReader) -> List[FieldDescriptor]:
    """Snapshot every named field of an open document, in /Fields order.

    A document without an /AcroForm yields an empty list. Nothing in the
    document is modified.
    """
    root = reader.trailer.get("/Root") if reader.trailer else None
    fields = collect_fields(root.get_object() if root is not None else None)
    if not fields:
        return []

    page_index = PageIndex(reader.pages)
    descriptors: List[FieldDescriptor] = []
    for name, form_field in fields.items():
        page = get_page_number(form_field, page_index)
        descriptors.append(FieldDescriptor(
            name=name,
            kind=form_field.kind,
            value=value_as_string(form_field),
            options=get_fill_options(form_field),
            page=page if page > 0 else None,
            rect=get_position(form_field),
            read_only=is_read_only(form_field),
            required=is_required(form_field),
        ))
    return descriptors


def inspect_fields(pdf_bytes: bytes, password: Optional[str] = None) -> List[FieldDescriptor]:
    with open_document(pdf_bytes, password) as reader:
        return describe_fields(reader)
