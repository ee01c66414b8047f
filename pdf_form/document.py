"""Opening PDF documents and the error taxonomy shared by the form operations.

Every operation owns its document exclusively: it is opened from bytes at the
start of a request and released when the ``with`` block exits, on success and
on failure alike.
"""
from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator, Optional
import io

from pypdf import PasswordType, PdfReader


class PDFFormError(Exception):
    """Base class for every error the form service reports to callers."""

    code = 'internal_error'

    def __init__(self, code: Optional[str] = None, message: Optional[str] = None):
        if code:
            self.code = code
        self.message = message
        super().__init__(message or self.code)


class SourceValidationError(PDFFormError):
    """Input rejected before any document object is constructed."""

    code = 'invalid_input'


class SourceFetchError(PDFFormError):
    code = 'download_failed'

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None):
        self.status = status
        super().__init__(None, message)


class DocumentOpenError(PDFFormError):
    """Wrong password, encrypted without password, or a corrupted structure."""

    code = 'open_failed'

    def __init__(self, message: Optional[str] = None):
        super().__init__(None, message)


class PDFFormFillError(PDFFormError):
    code = 'fill_failed'

    def __init__(self, message: Optional[str] = None):
        super().__init__(None, message)


@contextmanager
def open_document(pdf_bytes: bytes, password: Optional[str] = None) -> Iterator[PdfReader]:
    stream = io.BytesIO(pdf_bytes)
    try:
        try:
            reader = PdfReader(stream)
            if reader.is_encrypted and password:
                if reader.decrypt(password) == PasswordType.NOT_DECRYPTED:
                    raise DocumentOpenError("Wrong password")
            # Touching the page tree forces the catalog to load (and decrypt).
            len(reader.pages)
        except DocumentOpenError:
            raise
        except Exception as e:
            raise DocumentOpenError(f"Failed to read PDF bytes: {e}") from e
        yield reader
    finally:
        stream.close()
