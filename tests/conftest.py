"""Fixture PDFs built in memory with pypdf.

``form_pdf`` has two pages:

page 1: name (text, required), agree (checkbox), color (combo, export/display
        pairs), size (list, plain options, read-only, widget without /P),
        bad_rect (text with a three-number /Rect)
page 2: address.street (hierarchical text), pick (radio group with states
        /A and /B), sig (signature)
no widget: notes (text)
"""
import io

import pytest
from pypdf import PdfReader, PdfWriter
from pypdf.generic import (
    ArrayObject,
    BooleanObject,
    DecodedStreamObject,
    DictionaryObject,
    FloatObject,
    NameObject,
    NumberObject,
    TextStringObject,
)

import logging_utils


def _name(value):
    return NameObject(value)


def _rect(*numbers):
    return ArrayObject([FloatObject(n) for n in numbers])


def _appearance(writer, width=10, height=10, data=b""):
    stream = DecodedStreamObject()
    stream.set_data(data)
    stream.update({
        _name("/Type"): _name("/XObject"),
        _name("/Subtype"): _name("/Form"),
        _name("/BBox"): _rect(0, 0, width, height),
    })
    return writer._add_object(stream)


def _widget(page, rect, **entries):
    widget = DictionaryObject({
        _name("/Type"): _name("/Annot"),
        _name("/Subtype"): _name("/Widget"),
        _name("/Rect"): rect,
        _name("/F"): NumberObject(4),
    })
    if page is not None:
        widget[_name("/P")] = page.indirect_reference
    for key, value in entries.items():
        widget[_name(key)] = value
    return widget


def build_form_pdf() -> bytes:
    writer = PdfWriter()
    page1 = writer.add_blank_page(612, 792)
    page2 = writer.add_blank_page(612, 792)
    da = TextStringObject("/Helv 10 Tf 0 g")

    name = writer._add_object(_widget(page1, _rect(50, 700, 250, 720), **{
        "/FT": _name("/Tx"), "/T": TextStringObject("name"), "/V": TextStringObject("Jane"),
        "/Ff": NumberObject(2), "/DA": da,
    }))
    states = DictionaryObject({_name("/Yes"): _appearance(writer), _name("/Off"): _appearance(writer)})
    agree = writer._add_object(_widget(page1, _rect(50, 650, 60, 660), **{
        "/FT": _name("/Btn"), "/T": TextStringObject("agree"), "/V": _name("/Off"),
        "/AS": _name("/Off"), "/AP": DictionaryObject({_name("/N"): states}),
    }))
    color = writer._add_object(_widget(page1, _rect(50, 600, 150, 620), **{
        "/FT": _name("/Ch"), "/T": TextStringObject("color"), "/V": TextStringObject("r"),
        "/Ff": NumberObject(1 << 17), "/DA": da,
        "/Opt": ArrayObject([
            ArrayObject([TextStringObject("r"), TextStringObject("Red")]),
            ArrayObject([TextStringObject("g"), TextStringObject("Green")]),
            ArrayObject([TextStringObject("b"), TextStringObject("")]),
        ]),
    }))
    size = writer._add_object(_widget(None, _rect(200, 600, 300, 660), **{
        "/FT": _name("/Ch"), "/T": TextStringObject("size"), "/V": TextStringObject("M"),
        "/Ff": NumberObject(1), "/DA": da,
        "/Opt": ArrayObject([TextStringObject("S"), TextStringObject("M"), TextStringObject("L")]),
    }))
    bad_rect = writer._add_object(_widget(page1, ArrayObject([FloatObject(0), FloatObject(0), FloatObject(10)]), **{
        "/FT": _name("/Tx"), "/T": TextStringObject("bad_rect"), "/DA": da,
    }))

    address = writer._add_object(DictionaryObject({
        _name("/T"): TextStringObject("address"),
        _name("/Ff"): NumberObject(2),
    }))
    street = writer._add_object(_widget(page2, _rect(50, 700, 250, 720), **{
        "/FT": _name("/Tx"), "/T": TextStringObject("street"), "/V": TextStringObject("Main St"),
        "/Parent": address, "/DA": da,
    }))
    address.get_object()[_name("/Kids")] = ArrayObject([street])

    pick = writer._add_object(DictionaryObject({
        _name("/FT"): _name("/Btn"),
        _name("/T"): TextStringObject("pick"),
        _name("/Ff"): NumberObject((1 << 15) | (1 << 14)),
        _name("/V"): _name("/Off"),
    }))
    kids = []
    for state, x in (("/A", 50), ("/B", 80)):
        kid_states = DictionaryObject({_name(state): _appearance(writer), _name("/Off"): _appearance(writer)})
        kids.append(writer._add_object(_widget(page2, _rect(x, 600, x + 10, 610), **{
            "/Parent": pick, "/AS": _name("/Off"),
            "/AP": DictionaryObject({_name("/N"): kid_states}),
        })))
    pick.get_object()[_name("/Kids")] = ArrayObject(kids)

    sig = writer._add_object(_widget(page2, _rect(300, 100, 500, 150), **{
        "/FT": _name("/Sig"), "/T": TextStringObject("sig"),
    }))
    notes = writer._add_object(DictionaryObject({
        _name("/FT"): _name("/Tx"), _name("/T"): TextStringObject("notes"),
    }))

    page1[_name("/Annots")] = ArrayObject([name, agree, color, size, bad_rect])
    page2[_name("/Annots")] = ArrayObject([street] + kids + [sig])

    font = writer._add_object(DictionaryObject({
        _name("/Type"): _name("/Font"),
        _name("/Subtype"): _name("/Type1"),
        _name("/BaseFont"): _name("/Helvetica"),
    }))
    writer._root_object[_name("/AcroForm")] = writer._add_object(DictionaryObject({
        _name("/Fields"): ArrayObject([name, agree, color, size, bad_rect, address, pick, sig, notes]),
        _name("/DA"): da,
        _name("/DR"): DictionaryObject({_name("/Font"): DictionaryObject({_name("/Helv"): font})}),
        _name("/NeedAppearances"): BooleanObject(False),
    }))

    bio = io.BytesIO()
    writer.write(bio)
    return bio.getvalue()


def build_plain_pdf() -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(612, 792)
    bio = io.BytesIO()
    writer.write(bio)
    return bio.getvalue()


def encrypt_pdf(data: bytes, user_password: str, owner_password: str = "owner") -> bytes:
    writer = PdfWriter(clone_from=PdfReader(io.BytesIO(data)))
    writer.encrypt(user_password=user_password, owner_password=owner_password, algorithm="RC4-128")
    bio = io.BytesIO()
    writer.write(bio)
    return bio.getvalue()


@pytest.fixture(scope="session")
def form_pdf() -> bytes:
    return build_form_pdf()


@pytest.fixture(scope="session")
def plain_pdf() -> bytes:
    return build_plain_pdf()


@pytest.fixture(scope="session")
def encrypted_pdf(form_pdf) -> bytes:
    return encrypt_pdf(form_pdf, "secret")


@pytest.fixture(autouse=True)
def request_log(tmp_path, monkeypatch):
    path = tmp_path / "requests.log"
    monkeypatch.setattr(logging_utils, "LOG_FILE", str(path))
    return path
