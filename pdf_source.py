"""
Input acquisition for the form endpoints.
A request supplies its PDF either inline (multipart upload) or as a URL to fetch;
both feed the same inspect / fill core.
"""

from typing import Optional
from dataclasses import dataclass
from urllib.parse import urlparse, parse_qs
import socket
import urllib.request
import urllib.error

from pdf_form import SourceValidationError, SourceFetchError
from config import DRIVE_HOST, DRIVE_DOWNLOAD_URL, FETCH_TIMEOUT, MAX_FILE_SIZE, PDF_MAGIC


def normalize_drive_url(url: str) -> str:
    """Rewrite Google Drive share links into direct-download links.

    ``/file/d/<id>/view`` and ``?id=<id>`` shapes are recognised; any other host
    or shape is returned unchanged.
    """
    try:
        parsed = urlparse(url)
        if DRIVE_HOST not in (parsed.hostname or "").lower():
            return url
        segments = [s for s in parsed.path.split('/') if s]
        if len(segments) >= 3 and segments[0] == 'file' and segments[1] == 'd':
            return DRIVE_DOWNLOAD_URL.format(file_id=segments[2])
        ids = parse_qs(parsed.query).get('id')
        if ids and ids[0].strip():
            return DRIVE_DOWNLOAD_URL.format(file_id=ids[0].strip())
        return url
    except ValueError:
        return url


def is_pdf(data: bytes) -> bool:
    return data[:4] == PDF_MAGIC


def fetch_pdf(url: str, timeout: float = FETCH_TIMEOUT) -> bytes:
    """Download ``url`` with a bounded timeout.

    Raises:
        SourceFetchError: non-success status (``status`` set), timeout or
            network failure (``status`` None), or an oversized body.
    """
    req = urllib.request.Request(url=url, method="GET", headers={"Accept": "application/pdf,*/*"})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as r:
            status = getattr(r, "status", 200)
            if status < 200 or status >= 300:
                raise SourceFetchError(f"Download failed: {status}", status=status)
            data = r.read(MAX_FILE_SIZE + 1)
    except urllib.error.HTTPError as e:
        raise SourceFetchError(f"Download failed: {e.code}", status=e.code) from e
    except (socket.timeout, TimeoutError) as e:
        raise SourceFetchError(f"Download timed out after {timeout}s") from e
    except urllib.error.URLError as e:
        raise SourceFetchError(f"Download failed: {e.reason}") from e
    if len(data) > MAX_FILE_SIZE:
        raise SourceFetchError("Download failed: file too large")
    return data


class PDFSource:
    """Strategy for obtaining the raw bytes of the request's PDF."""

    def load(self) -> bytes:
        raise NotImplementedError

    def describe(self) -> str:
        return self.__class__.__name__


@dataclass
class UploadSource(PDFSource):
    data: bytes

    def load(self) -> bytes:
        return self.data

    def describe(self) -> str:
        return f"upload ({len(self.data)} bytes)"


@dataclass
class UrlSource(PDFSource):
    url: str
    timeout: float = FETCH_TIMEOUT

    def load(self) -> bytes:
        return fetch_pdf(normalize_drive_url(self.url.strip()), self.timeout)

    def describe(self) -> str:
        return f"url {self.url}"


def select_source(upload: Optional[bytes], url: Optional[str]) -> PDFSource:
    """A URL takes precedence over an upload when both are supplied."""
    if url and url.strip():
        return UrlSource(url.strip())
    if upload is not None:
        return UploadSource(upload)
    raise SourceValidationError('no_source')


def load_pdf(source: PDFSource) -> bytes:
    data = source.load()
    if not is_pdf(data):
        raise SourceValidationError('not_pdf')
    return data
