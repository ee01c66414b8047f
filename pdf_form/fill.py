from __future__ import annotations
from typing import Dict, List, Optional, Union
import io
import logging

from pypdf import PdfWriter
from pypdf.generic import ArrayObject, NameObject

from .document import PDFFormFillError, open_document
from .fields import FormField, PageIndex, collect_fields, set_new_value, value_as_string, value_item
from .schema import FieldKind, FillRequest, FillResult

logger = logging.getLogger(__name__)

# Kinds whose widget appearances pypdf can regenerate from /V.
_REGENERATED_KINDS = (FieldKind.TEXT, FieldKind.CHOICE)

AppearanceValue = Union[str, List[str]]


def _has_normal_appearance(form_field: FormField) -> bool:
    for ref in form_field.widgets:
        widget = ref.get_object()
        ap = widget.get("/AP")
        if ap is None or "/N" not in ap.get_object():
            return False
    return bool(form_field.widgets)


def _appearance_value(form_field: FormField, flatten: bool) -> Optional[AppearanceValue]:
    kind = form_field.kind
    if kind in _REGENERATED_KINDS:
        stored = form_field.inherited("/V")
        if isinstance(stored, ArrayObject):
            # multi-select choice: keep every selected item
            return [item for item in (value_item(v) for v in stored) if item is not None]
        return value_as_string(form_field) or ""
    if kind is FieldKind.BUTTON and flatten and _has_normal_appearance(form_field):
        return "/" + (value_as_string(form_field) or "Off")
    return None


def _appearance_values(fields: Dict[str, FormField], names, flatten: bool) -> Dict[str, AppearanceValue]:
    """Values handed to pypdf to rebuild (and, when flattening, draw) appearances.

    Buttons already carry the right /AS after a write; they only go through
    pypdf when flattening, and only when every widget has a normal appearance.
    Fields without widgets have nothing to draw.
    """
    values: Dict[str, AppearanceValue] = {}
    for name in names:
        form_field = fields[name]
        if not form_field.widgets:
            continue
        value = _appearance_value(form_field, flatten)
        if value is not None:
            values[name] = value
    return values


def _refresh_appearances(writer: PdfWriter, fields: Dict[str, FormField],
                         values: Dict[str, AppearanceValue], flatten: bool) -> List[str]:
    """Regenerate appearances one field at a time, page by page.

    Returns the names pypdf failed on; the rest of the page is still drawn.
    """
    if not values:
        return []
    pages = list(writer.pages)
    index = PageIndex(pages)
    by_page: Dict[int, List[str]] = {}
    for name in values:
        for ref in fields[name].widgets:
            number = index.page_of(ref)
            if number > 0 and name not in by_page.setdefault(number, []):
                by_page[number].append(name)

    failed: List[str] = []
    for number in sorted(by_page):
        page = pages[number - 1]
        for name in by_page[number]:
            try:
                writer.update_page_form_field_values(
                    page, {name: values[name]}, auto_regenerate=True, flatten=flatten)
            except Exception as e:
                logger.warning("Appearance update for %r failed on page %d: %s", name, number, e)
                if name not in failed:
                    failed.append(name)
    return failed


def _remove_form(writer: PdfWriter):
    writer.remove_annotations(subtypes="/Widget")
    root = writer._root_object
    if NameObject("/AcroForm") in root:
        del root[NameObject("/AcroForm")]


def fill_writer(writer: PdfWriter, request: FillRequest) -> FillResult:
    """Apply ``request`` to a writer that owns a copy of the document.

    Unknown field names are skipped, never reported as errors.
    """
    fields = collect_fields(writer._root_object)
    applied: Dict[str, str] = {}
    skipped = []
    unrendered: List[str] = []

    if fields:
        # Viewers must rebuild appearances, cached streams show stale values.
        writer.set_need_appearances_writer(True)

    for name, raw in request.values.items():
        form_field = fields.get(name)
        if form_field is None:
            skipped.append(name)
            continue
        try:
            applied[name] = set_new_value(form_field, raw)
        except Exception as e:
            logger.debug("Skipping field %r: %s", name, e)
            skipped.append(name)

    if fields:
        targets = fields.keys() if request.flatten else applied.keys()
        values = _appearance_values(fields, targets, request.flatten)
        unrendered = _refresh_appearances(writer, fields, values, request.flatten)
        if request.flatten:
            _remove_form(writer)

    bio = io.BytesIO()
    try:
        writer.write(bio)
    except Exception as e:
        raise PDFFormFillError(f"Failed to serialize filled PDF: {e}") from e
    return FillResult(pdf_bytes=bio.getvalue(), applied=list(applied), skipped=skipped,
                      unrendered=unrendered)


def fill_fields(pdf_bytes: bytes, request: FillRequest, password: Optional[str] = None) -> FillResult:
    with open_document(pdf_bytes, password) as reader:
        # Not a context manager: PdfWriter.__enter__ re-initializes the writer.
        writer = PdfWriter(clone_from=reader)
        result = fill_writer(writer, request)
    logger.info("Filled %d field(s), skipped %d, unrendered %d, flatten=%s",
                len(result.applied), len(result.skipped), len(result.unrendered), request.flatten)
    return result
