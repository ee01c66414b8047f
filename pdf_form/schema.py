from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Any, Optional, Tuple
import json

from .document import SourceValidationError

Rect = Tuple[float, float, float, float]


class FieldKind(Enum):
    """Form type tag of a field. The value is the outward ``type`` string."""
    TEXT = "/Tx"
    BUTTON = "/Btn"
    CHOICE = "/Ch"
    SIGNATURE = "/Sig"
    UNKNOWN = "Unknown"

    @classmethod
    def from_tag(cls, tag: Optional[str]) -> "FieldKind":
        for kind in cls:
            if kind.value == tag:
                return kind
        return cls.UNKNOWN


@dataclass(frozen=True)
class FieldDescriptor:
    """Snapshot of one form field at inspection time.

    ``page`` is 1-based and ``None`` when the field has no resolvable widget
    placement; ``rect`` is (llx, lly, urx, ury) of the first widget.
    """
    name: str
    kind: FieldKind
    value: Optional[str] = None
    options: Optional[Tuple[str, ...]] = None
    page: Optional[int] = None
    rect: Optional[Rect] = None
    read_only: bool = False
    required: bool = False

    def to_public(self) -> Dict[str, Any]:  # stable outward shape
        return {
            "name": self.name,
            "type": self.kind.value,
            "value": self.value,
            "options": list(self.options) if self.options is not None else None,
            "page": self.page,
            "rect": list(self.rect) if self.rect is not None else None,
            "readOnly": self.read_only,
            "required": self.required,
        }


def _as_field_value(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, bool):
        return "true" if raw else "false"
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (int, float)):
        return json.dumps(raw)
    raise SourceValidationError('bad_fields', f"Unsupported value type {type(raw).__name__}")


@dataclass
class FillRequest:
    values: Dict[str, str]
    flatten: bool = True

    @classmethod
    def from_json(cls, text: Optional[str], flatten: bool = True) -> "FillRequest":
        """Parse the ``fields`` payload: a JSON object of field name -> value."""
        if text is None or not text.strip():
            raise SourceValidationError('no_fields')
        try:
            data = json.loads(text)
        except ValueError as e:
            raise SourceValidationError('bad_fields', f"fields is not valid JSON: {e}")
        if not isinstance(data, dict):
            raise SourceValidationError('bad_fields')
        return cls(values={str(k): _as_field_value(v) for k, v in data.items()}, flatten=flatten)


@dataclass
class FillResult:
    pdf_bytes: bytes
    applied: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    # fields whose appearance pypdf could not draw
    unrendered: List[str] = field(default_factory=list)

    def summary(self) -> Dict[str, Any]:
        return {
            "applied_count": len(self.applied),
            "skipped_count": len(self.skipped),
            "skipped_sample": self.skipped[:10],
            "unrendered": self.unrendered[:10],
            "output_bytes": len(self.pdf_bytes),
        }
