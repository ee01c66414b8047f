from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pypdf.generic import (
    ArrayObject,
    ByteStringObject,
    DictionaryObject,
    IndirectObject,
    NameObject,
    TextStringObject,
)

from .schema import FieldKind, Rect

ON_STATE = "/Yes"
OFF_STATE = "/Off"
FLAG_READ_ONLY = 1
FLAG_REQUIRED = 1 << 1
MAX_DEPTH = 32  # safety cap for /Kids and /Parent chains


def _resolve(obj: Any) -> Any:
    return obj.get_object() if isinstance(obj, IndirectObject) else obj


def _text(obj: Any) -> Optional[str]:
    obj = _resolve(obj)
    if isinstance(obj, ByteStringObject):
        return bytes(obj).decode("latin-1")
    if isinstance(obj, str) and not isinstance(obj, NameObject):
        return str(obj)
    return None


def parse_bool(raw: Optional[str]) -> Optional[bool]:
    """Case-insensitive ``true``/``false``; anything else is not a boolean."""
    if raw is None:
        return None
    lowered = raw.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return None


@dataclass
class FormField:
    """A named AcroForm field of an open document, terminal or not.

    ``widgets`` holds the widget references in /Kids order; a merged
    field/widget dictionary is its own single widget.
    """
    name: str
    obj: DictionaryObject
    widgets: List[Any] = field(default_factory=list)

    def inherited(self, key: str) -> Any:
        node = self.obj
        for _ in range(MAX_DEPTH):
            if node is None:
                break
            if key in node:
                return _resolve(node.get(key))
            node = _resolve(node.get("/Parent"))
        return None

    @property
    def tag(self) -> Optional[str]:
        ft = self.inherited("/FT")
        return str(ft) if ft is not None else None

    @property
    def kind(self) -> FieldKind:
        return FieldKind.from_tag(self.tag)

    @property
    def flags(self) -> int:
        try:
            return int(self.inherited("/Ff") or 0)
        except (TypeError, ValueError):
            return 0


def _is_widget(obj: DictionaryObject) -> bool:
    return obj.get("/Subtype") == "/Widget" or "/Rect" in obj


def _walk(ref: Any, parent_name: Optional[str], out: Dict[str, FormField], seen: set, depth: int):
    obj = _resolve(ref)
    if not isinstance(obj, DictionaryObject) or depth > MAX_DEPTH:
        return
    key = ref.idnum if isinstance(ref, IndirectObject) else id(obj)
    if key in seen:
        return
    seen.add(key)

    partial = _text(obj.get("/T"))
    if partial is None:
        return
    name = f"{parent_name}.{partial}" if parent_name else partial

    kids = _resolve(obj.get("/Kids")) or []
    child_fields = []
    widgets = []
    for kid in kids:
        kid_obj = _resolve(kid)
        if not isinstance(kid_obj, DictionaryObject):
            continue
        if "/T" in kid_obj:
            child_fields.append(kid)
        else:
            widgets.append(kid)

    if not child_fields and not widgets and _is_widget(obj):
        widgets = [ref]
    # Parents come before their kids.
    out.setdefault(name, FormField(name=name, obj=obj, widgets=widgets))
    for kid in child_fields:
        _walk(kid, name, out, seen, depth + 1)


def collect_fields(root: DictionaryObject) -> Dict[str, FormField]:
    """Named fields of the document catalog, keyed by fully qualified name.

    Non-terminal fields precede their descendants, in document order.

    Returns an empty mapping when the document has no /AcroForm.
    """
    acro = _resolve(root.get("/AcroForm")) if root is not None else None
    if not isinstance(acro, DictionaryObject):
        return {}
    out: Dict[str, FormField] = {}
    seen: set = set()
    for ref in _resolve(acro.get("/Fields")) or []:
        _walk(ref, None, out, seen, 0)
    return out


def _normal_states(widget: DictionaryObject) -> Optional[Iterable[str]]:
    ap = _resolve(widget.get("/AP"))
    if not isinstance(ap, DictionaryObject):
        return None
    normal = _resolve(ap.get("/N"))
    if not isinstance(normal, DictionaryObject):
        return None
    return normal.keys()


def set_new_value(form_field: FormField, raw_value: Optional[str]) -> str:
    """Write ``raw_value`` into the field and return the stored value.

    Checkboxes and radio buttons only know two states: ``false`` turns them
    off, every other input turns them on with the conventional ``Yes`` state.
    Kind comes from the resolved /FT tag itself, never from the shape of the
    field dictionary.
    """
    if form_field.kind is FieldKind.BUTTON:
        state = OFF_STATE if parse_bool(raw_value) is False else ON_STATE
        form_field.obj[NameObject("/V")] = NameObject(state)
        for ref in form_field.widgets:
            widget = _resolve(ref)
            states = _normal_states(widget)
            shown = state if states is None or state in states else OFF_STATE
            widget[NameObject("/AS")] = NameObject(shown)
        return state[1:]

    value = raw_value or ""
    form_field.obj[NameObject("/V")] = TextStringObject(value)
    return value


def get_fill_options(form_field: FormField) -> Optional[Tuple[str, ...]]:
    if form_field.kind is not FieldKind.CHOICE:
        return None
    opt = form_field.inherited("/Opt")
    if not isinstance(opt, ArrayObject) or len(opt) == 0:
        return None

    options: List[str] = []
    for entry in opt:
        entry = _resolve(entry)
        if isinstance(entry, ArrayObject):
            # [export, display]
            if len(entry) == 2:
                options.append(_text(entry[1]) or _text(entry[0]) or "")
            else:
                options.append("")
        else:
            options.append(_text(entry) or "")
    return tuple(options)


class PageIndex:
    """Maps page and widget object numbers to 1-based page ordinals."""

    def __init__(self, pages: Iterable[Any]):
        self._by_page: Dict[int, int] = {}
        self._by_annot: Dict[int, int] = {}
        for number, page in enumerate(pages, start=1):
            ref = getattr(page, "indirect_reference", None)
            if ref is not None:
                self._by_page[ref.idnum] = number
            for annot in _resolve(page.get("/Annots")) or []:
                if isinstance(annot, IndirectObject):
                    self._by_annot.setdefault(annot.idnum, number)

    def page_of(self, widget_ref: Any) -> int:
        widget = _resolve(widget_ref)
        page_ref = widget.get("/P") if isinstance(widget, DictionaryObject) else None
        if not isinstance(page_ref, IndirectObject):
            page_ref = getattr(page_ref, "indirect_reference", None)
        if page_ref is not None and page_ref.idnum in self._by_page:
            return self._by_page[page_ref.idnum]
        if isinstance(widget_ref, IndirectObject):
            return self._by_annot.get(widget_ref.idnum, -1)
        return -1


def get_page_number(form_field: FormField, page_index: PageIndex) -> int:
    if not form_field.widgets:
        return -1
    return page_index.page_of(form_field.widgets[0])


def get_position(form_field: FormField) -> Optional[Rect]:
    if not form_field.widgets:
        return None
    widget = _resolve(form_field.widgets[0])
    if not isinstance(widget, DictionaryObject):
        return None
    rect = _resolve(widget.get("/Rect"))
    if not isinstance(rect, ArrayObject) or len(rect) != 4:
        return None
    numbers = [_resolve(x) for x in rect]
    if not all(isinstance(n, (int, float)) and not isinstance(n, bool) for n in numbers):
        return None
    try:
        llx, lly, urx, ury = (float(n) for n in numbers)
    except (TypeError, ValueError):
        return None
    return llx, lly, urx, ury


def value_as_string(form_field: FormField) -> Optional[str]:
    value = form_field.inherited("/V")
    if value is None:
        return None
    if isinstance(value, NameObject):
        return str(value)[1:]
    if isinstance(value, ArrayObject):
        parts = [value_item(item) for item in value]
        return ", ".join(p for p in parts if p is not None)
    return value_item(value)


def value_item(item: Any) -> Optional[str]:
    item = _resolve(item)
    if isinstance(item, NameObject):
        return str(item)[1:]
    text = _text(item)
    if text is not None:
        return text
    if isinstance(item, (int, float)):
        return str(item)
    return None


def is_read_only(form_field: FormField) -> bool:
    return bool(form_field.flags & FLAG_READ_ONLY)


def is_required(form_field: FormField) -> bool:
    return bool(form_field.flags & FLAG_REQUIRED)
